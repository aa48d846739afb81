"""
Task model for Upkeep.

A task is a maintenance obligation attached to one product. How it recurs
is captured by exactly one of two schedule shapes:

- IntervalSchedule: repeats every ``frequency`` days, counted from the last
  time the work was done.
- WindowSchedule: a single start/end window. ``recurring`` only records
  how the task was entered; completion is terminal either way.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union
from uuid import uuid4

from upkeep.dates import parse_date, parse_datetime, to_iso, utc_now
from upkeep.errors import ValidationError


RECURRING_BY_LAST_MAINTENANCE = "byLastMaintenance"
RECURRING_BY_WINDOW = "byWindow"

# Valid recurring types
RECURRING_TYPES = (RECURRING_BY_LAST_MAINTENANCE, RECURRING_BY_WINDOW)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_OVERDUE = "overdue"
STATUS_INACTIVE = "inactive"

# Valid status values
TASK_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_OVERDUE, STATUS_INACTIVE)


@dataclass(frozen=True)
class MaintenanceWindow:
    """Inclusive date range in which a windowed task should be done."""

    start_date: date
    end_date: date

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValidationError(
                "End date must be after or equal to the start date",
                field="maintenance_window.end_date",
            )

    def to_dict(self) -> dict:
        return {
            "start_date": to_iso(self.start_date),
            "end_date": to_iso(self.end_date),
        }


@dataclass(frozen=True)
class IntervalSchedule:
    """Recurs ``frequency`` days after each completion."""

    frequency: int

    def __post_init__(self):
        if isinstance(self.frequency, bool) or not isinstance(self.frequency, int):
            raise ValidationError("Frequency must be a whole number of days", field="frequency")
        if self.frequency <= 0:
            raise ValidationError("Frequency must be greater than 0", field="frequency")

    @property
    def is_recurring(self) -> bool:
        return True

    @property
    def recurring_type(self) -> str:
        return RECURRING_BY_LAST_MAINTENANCE


@dataclass(frozen=True)
class WindowSchedule:
    """Due once, at the end of ``window``."""

    window: MaintenanceWindow
    recurring: bool = False

    @property
    def is_recurring(self) -> bool:
        return self.recurring

    @property
    def recurring_type(self) -> Optional[str]:
        return RECURRING_BY_WINDOW if self.recurring else None


Schedule = Union[IntervalSchedule, WindowSchedule]


def build_schedule(
    is_recurring: bool,
    recurring_type: Optional[str] = None,
    frequency: Optional[int] = None,
    window: Optional[MaintenanceWindow] = None,
) -> Schedule:
    """
    Build the schedule variant for a flag/type/frequency/window combination.

    Raises:
        ValidationError: If the combination is incomplete or contradictory
    """
    if recurring_type is not None and recurring_type not in RECURRING_TYPES:
        raise ValidationError(
            f"Invalid recurring type. Must be one of: {', '.join(RECURRING_TYPES)}",
            field="recurring_type",
        )

    if is_recurring and recurring_type is None:
        raise ValidationError("Recurring tasks need a recurring type", field="recurring_type")

    if is_recurring and recurring_type == RECURRING_BY_LAST_MAINTENANCE:
        if frequency is None:
            raise ValidationError(
                "Recurring tasks with last maintenance require a frequency",
                field="frequency",
            )
        if window is not None:
            raise ValidationError(
                "A maintenance window only applies to windowed tasks",
                field="maintenance_window",
            )
        return IntervalSchedule(frequency=frequency)

    if not is_recurring and recurring_type == RECURRING_BY_LAST_MAINTENANCE:
        raise ValidationError(
            "One-time tasks cannot recur by last maintenance",
            field="recurring_type",
        )

    if frequency is not None:
        raise ValidationError(
            "Frequency only applies to tasks recurring by last maintenance",
            field="frequency",
        )
    if window is None:
        message = (
            "Recurring tasks with date range require start date and end date"
            if is_recurring
            else "One-time tasks require a start date and end date"
        )
        raise ValidationError(message, field="maintenance_window")

    return WindowSchedule(window=window, recurring=bool(is_recurring))


@dataclass
class Task:
    """
    A maintenance task.

    Attributes:
        id: Unique identifier (UUID)
        product_id: Owning product
        user_id: Owner; fixed at creation
        task_name: Short name
        schedule: IntervalSchedule or WindowSchedule
        next_maintenance: Due date driving status and calendar placement
        description: Optional longer text
        last_maintenance: When the work was last done
        status: Cached status; recomputed on every read
        completed_at: Timestamp of the most recent completion
        created_at: When the task was created
        updated_at: When last modified
    """

    product_id: str
    user_id: str
    task_name: str
    schedule: Schedule
    next_maintenance: date
    id: str = field(default_factory=lambda: str(uuid4()))
    description: Optional[str] = None
    last_maintenance: Optional[date] = None
    status: str = STATUS_PENDING
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = utc_now()
        if self.updated_at is None:
            self.updated_at = self.created_at

        if self.last_maintenance and self.next_maintenance < self.last_maintenance:
            raise ValidationError(
                "Next maintenance cannot be before last maintenance",
                field="next_maintenance",
            )

    @property
    def is_recurring(self) -> bool:
        return self.schedule.is_recurring

    @property
    def recurring_type(self) -> Optional[str]:
        return self.schedule.recurring_type

    @property
    def frequency(self) -> Optional[int]:
        if isinstance(self.schedule, IntervalSchedule):
            return self.schedule.frequency
        return None

    @property
    def maintenance_window(self) -> Optional[MaintenanceWindow]:
        if isinstance(self.schedule, WindowSchedule):
            return self.schedule.window
        return None

    @property
    def is_terminal(self) -> bool:
        """Windowed tasks are finished for good once completed."""
        return isinstance(self.schedule, WindowSchedule) and self.completed_at is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        window = self.maintenance_window
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "task_name": self.task_name,
            "description": self.description,
            "is_recurring": self.is_recurring,
            "recurring_type": self.recurring_type,
            "frequency": self.frequency,
            "maintenance_window": window.to_dict() if window else None,
            "last_maintenance": to_iso(self.last_maintenance),
            "next_maintenance": to_iso(self.next_maintenance),
            "status": self.status,
            "completed_at": to_iso(self.completed_at),
            "created_at": to_iso(self.created_at),
            "updated_at": to_iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create Task from a database row."""
        window = None
        if data.get("window_start") and data.get("window_end"):
            window = MaintenanceWindow(
                start_date=parse_date(data["window_start"]),
                end_date=parse_date(data["window_end"]),
            )

        schedule = build_schedule(
            is_recurring=bool(data.get("is_recurring")),
            recurring_type=data.get("recurring_type"),
            frequency=data.get("frequency"),
            window=window,
        )

        return cls(
            id=data.get("id"),
            product_id=data.get("product_id"),
            user_id=data.get("user_id"),
            task_name=data.get("task_name", ""),
            description=data.get("description"),
            schedule=schedule,
            last_maintenance=parse_date(data.get("last_maintenance")),
            next_maintenance=parse_date(data.get("next_maintenance")),
            status=data.get("status") or STATUS_PENDING,
            completed_at=parse_datetime(data.get("completed_at")),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )
