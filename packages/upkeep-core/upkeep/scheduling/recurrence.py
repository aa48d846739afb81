"""
Recurrence calculator.

Pure date arithmetic over the two schedule shapes. Nothing here reads a
clock; callers pass the server's "today".
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from upkeep.dates import add_days
from upkeep.errors import ValidationError
from upkeep.models.task import IntervalSchedule, Schedule, Task, WindowSchedule


@dataclass(frozen=True)
class Completion:
    """Dates produced by completing a task."""

    last_maintenance: date
    next_maintenance: date
    terminal: bool


def next_on_create(schedule: Schedule, last_maintenance: Optional[date]) -> date:
    """
    First due date of a new (or rescheduled) task.

    Interval tasks fall due ``frequency`` days after the last maintenance;
    windowed tasks at the end of their window.
    """
    if isinstance(schedule, IntervalSchedule):
        if last_maintenance is None:
            raise ValidationError(
                "Recurring tasks with last maintenance require a last maintenance date",
                field="last_maintenance",
            )
        return add_days(last_maintenance, schedule.frequency)

    if isinstance(schedule, WindowSchedule):
        return schedule.window.end_date

    raise TypeError(f"Unknown schedule type: {type(schedule).__name__}")


def on_complete(task: Task, today: date) -> Completion:
    """
    Dates after completing ``task`` on ``today``.

    Interval tasks restart their cycle from today. Windowed tasks become
    terminal; their due date only moves forward if they were completed
    after it, so it never precedes the new last maintenance.
    """
    schedule = task.schedule

    if isinstance(schedule, IntervalSchedule):
        return Completion(
            last_maintenance=today,
            next_maintenance=add_days(today, schedule.frequency),
            terminal=False,
        )

    if isinstance(schedule, WindowSchedule):
        return Completion(
            last_maintenance=today,
            next_maintenance=max(task.next_maintenance, today),
            terminal=True,
        )

    raise TypeError(f"Unknown schedule type: {type(schedule).__name__}")


def check_postpone_days(days: int) -> None:
    """Raise ValidationError unless ``days`` is a whole number of at least 1."""
    if isinstance(days, bool) or not isinstance(days, int) or days < 1:
        raise ValidationError("Postponement must be at least 1 day", field="days")


def on_postpone(task: Task, days: int) -> date:
    """Due date after pushing ``task`` back by ``days``."""
    check_postpone_days(days)
    return add_days(task.next_maintenance, days)
