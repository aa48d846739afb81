"""
Typed commands accepted by the services.

Callers build one of these at their boundary (or via ``from_dict`` for
transported payloads); each validates its own fields once, before any
store access.
"""

from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Optional, List

from upkeep.config import SchedulingConfig
from upkeep.dates import add_years, parse_date
from upkeep.errors import ValidationError
from upkeep.models.task import (
    RECURRING_BY_LAST_MAINTENANCE,
    TASK_STATUSES,
    IntervalSchedule,
    MaintenanceWindow,
    Schedule,
    build_schedule,
)

PRODUCT_NAME_MAX_LENGTH = 100


def _check_task_name(task_name: Optional[str], policy: SchedulingConfig) -> str:
    name = (task_name or "").strip()
    if not name:
        raise ValidationError("Task name is required", field="task_name")
    if len(name) > policy.task_name_max_length:
        raise ValidationError(
            f"Task name cannot exceed {policy.task_name_max_length} characters",
            field="task_name",
        )
    return name


def _check_description(description: Optional[str], policy: SchedulingConfig) -> None:
    if description and len(description) > policy.description_max_length:
        raise ValidationError(
            f"Description cannot exceed {policy.description_max_length} characters",
            field="description",
        )


def _check_frequency_bound(schedule: Schedule, policy: SchedulingConfig) -> None:
    if isinstance(schedule, IntervalSchedule) and schedule.frequency > policy.max_frequency_days:
        raise ValidationError(
            f"Frequency cannot exceed {policy.max_frequency_days} days",
            field="frequency",
        )


def _window_from(value: Any) -> Optional[MaintenanceWindow]:
    if value is None or isinstance(value, MaintenanceWindow):
        return value
    if not isinstance(value, dict):
        raise ValidationError("Maintenance window must be an object", field="maintenance_window")
    try:
        return MaintenanceWindow(
            start_date=parse_date(value["start_date"]),
            end_date=parse_date(value["end_date"]),
        )
    except ValidationError:
        raise
    except KeyError as e:
        raise ValidationError(
            f"Maintenance window needs {e.args[0]}", field=f"maintenance_window.{e.args[0]}"
        ) from e
    except (TypeError, ValueError) as e:
        raise ValidationError("Maintenance window dates must be ISO dates", field="maintenance_window") from e


def _date_from(value: Any, field_name: str) -> Optional[date]:
    try:
        return parse_date(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} must be an ISO date", field=field_name) from e


def _reject_unknown(cls, data: dict) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(unknown)}", field=unknown[0])


@dataclass
class CreateTaskCommand:
    """
    Fields for a new task.

    ``last_maintenance`` defaults to today for tasks recurring by last
    maintenance.
    """

    task_name: str
    is_recurring: bool = False
    recurring_type: Optional[str] = None
    frequency: Optional[int] = None
    last_maintenance: Optional[date] = None
    maintenance_window: Optional[MaintenanceWindow] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CreateTaskCommand":
        """Build from a transported payload with ISO date strings."""
        _reject_unknown(cls, data)
        return cls(
            task_name=data.get("task_name", ""),
            is_recurring=bool(data.get("is_recurring", False)),
            recurring_type=data.get("recurring_type"),
            frequency=data.get("frequency"),
            last_maintenance=_date_from(data.get("last_maintenance"), "last_maintenance"),
            maintenance_window=_window_from(data.get("maintenance_window")),
            description=data.get("description"),
        )

    def validate(self, today: date, policy: SchedulingConfig) -> Schedule:
        """
        Check every creation rule and return the task's schedule.

        Creation dates must lie between today and the creation horizon.

        Raises:
            ValidationError: On the first rule that fails
        """
        self.task_name = _check_task_name(self.task_name, policy)
        _check_description(self.description, policy)

        schedule = build_schedule(
            is_recurring=self.is_recurring,
            recurring_type=self.recurring_type,
            frequency=self.frequency,
            window=self.maintenance_window,
        )
        _check_frequency_bound(schedule, policy)

        horizon = add_years(today, policy.creation_horizon_years)
        checks = [("last_maintenance", self.last_maintenance)]
        if self.maintenance_window:
            checks.append(("maintenance_window.start_date", self.maintenance_window.start_date))
            checks.append(("maintenance_window.end_date", self.maintenance_window.end_date))

        for field_name, value in checks:
            if value is None:
                continue
            if value < today:
                raise ValidationError(f"{field_name} cannot be in the past", field=field_name)
            if value > horizon:
                raise ValidationError(
                    f"{field_name} cannot be more than {policy.creation_horizon_years} years ahead",
                    field=field_name,
                )

        return schedule


@dataclass
class UpdateTaskCommand:
    """
    Partial update of a task.

    ``None`` leaves a field unchanged. Set ``clear_description`` to remove
    the description. Owner, product and status are not patchable.
    """

    task_name: Optional[str] = None
    description: Optional[str] = None
    clear_description: bool = False
    is_recurring: Optional[bool] = None
    recurring_type: Optional[str] = None
    frequency: Optional[int] = None
    last_maintenance: Optional[date] = None
    maintenance_window: Optional[MaintenanceWindow] = None

    @classmethod
    def from_dict(cls, data: dict) -> "UpdateTaskCommand":
        """Build from a transported payload with ISO date strings."""
        _reject_unknown(cls, data)
        return cls(
            task_name=data.get("task_name"),
            description=data.get("description"),
            clear_description=bool(data.get("clear_description", False)),
            is_recurring=data.get("is_recurring"),
            recurring_type=data.get("recurring_type"),
            frequency=data.get("frequency"),
            last_maintenance=_date_from(data.get("last_maintenance"), "last_maintenance"),
            maintenance_window=_window_from(data.get("maintenance_window")),
        )

    @property
    def touches_schedule(self) -> bool:
        return any(
            value is not None
            for value in (
                self.is_recurring,
                self.recurring_type,
                self.frequency,
                self.last_maintenance,
                self.maintenance_window,
            )
        )

    @property
    def is_empty(self) -> bool:
        return (
            not self.touches_schedule
            and self.task_name is None
            and self.description is None
            and not self.clear_description
        )

    def validate(self, policy: SchedulingConfig) -> None:
        """Check the text fields this patch sets."""
        if self.task_name is not None:
            self.task_name = _check_task_name(self.task_name, policy)
        _check_description(self.description, policy)
        if self.clear_description and self.description is not None:
            raise ValidationError(
                "Cannot set and clear the description at once", field="description"
            )

    def merged_schedule(self, current: Schedule, policy: SchedulingConfig) -> Schedule:
        """
        Overlay this patch on ``current`` and rebuild the schedule.

        Fields belonging only to the shape being left behind are dropped;
        fields the patch sets explicitly are always validated.
        """
        is_recurring = self.is_recurring if self.is_recurring is not None else current.is_recurring

        if self.recurring_type is not None:
            recurring_type = self.recurring_type
        elif self.is_recurring is False:
            recurring_type = None
        else:
            recurring_type = current.recurring_type

        current_frequency = current.frequency if isinstance(current, IntervalSchedule) else None
        current_window = current.window if not isinstance(current, IntervalSchedule) else None

        if is_recurring and recurring_type == RECURRING_BY_LAST_MAINTENANCE:
            frequency = self.frequency if self.frequency is not None else current_frequency
            window = self.maintenance_window
        else:
            frequency = self.frequency
            window = self.maintenance_window or current_window

        schedule = build_schedule(
            is_recurring=is_recurring,
            recurring_type=recurring_type,
            frequency=frequency,
            window=window,
        )
        _check_frequency_bound(schedule, policy)
        return schedule


@dataclass
class TaskQuery:
    """Filter and paging for task listings."""

    product_id: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None
    page: int = 1
    limit: Optional[int] = None

    def validate(self, policy: SchedulingConfig) -> None:
        if self.limit is None:
            self.limit = policy.default_page_size
        _check_paging(self.page, self.limit, policy)
        if self.status is not None and self.status not in TASK_STATUSES:
            raise ValidationError(
                f"Invalid status. Must be one of: {', '.join(TASK_STATUSES)}",
                field="status",
            )
        if self.search is not None:
            self.search = self.search.strip() or None


def _check_paging(page: int, limit: int, policy: SchedulingConfig) -> None:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise ValidationError("Page must be a whole number of at least 1", field="page")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError("Limit must be a whole number of at least 1", field="limit")
    if limit > policy.max_page_size:
        raise ValidationError(f"Limit cannot exceed {policy.max_page_size}", field="limit")


def _check_product_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Product name is required", field="name")
    if len(name) > PRODUCT_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Product name cannot exceed {PRODUCT_NAME_MAX_LENGTH} characters", field="name"
        )
    return name


@dataclass
class CreateProductCommand:
    """Fields for a new product."""

    name: str
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    purchase_date: Optional[date] = None

    def validate(self) -> None:
        self.name = _check_product_name(self.name)
        self.tags = [t.strip() for t in self.tags if t and t.strip()]


@dataclass
class UpdateProductCommand:
    """Partial update of a product; ``None`` leaves a field unchanged."""

    name: Optional[str] = None
    category: Optional[str] = None
    manufacturer: Optional[str] = None
    model: Optional[str] = None
    tags: Optional[List[str]] = None
    purchase_date: Optional[date] = None

    def validate(self) -> None:
        if self.name is not None:
            self.name = _check_product_name(self.name)
        if self.tags is not None:
            self.tags = [t.strip() for t in self.tags if t and t.strip()]


@dataclass
class ProductQuery:
    """Filter and paging for product listings."""

    search: Optional[str] = None
    category: Optional[str] = None
    page: int = 1
    limit: Optional[int] = None

    def validate(self, policy: SchedulingConfig) -> None:
        if self.limit is None:
            self.limit = policy.default_page_size
        _check_paging(self.page, self.limit, policy)
        if self.search is not None:
            self.search = self.search.strip() or None
