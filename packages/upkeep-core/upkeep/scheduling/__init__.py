"""
Scheduling engine: recurrence, status derivation and calendar aggregation.
"""

from upkeep.scheduling.calendar import (
    CalendarEvent,
    build_events,
    group_by_day,
    month_grid,
    overall_maintenance,
)
from upkeep.scheduling.recurrence import (
    Completion,
    check_postpone_days,
    next_on_create,
    on_complete,
    on_postpone,
)
from upkeep.scheduling.status import derive_status

__all__ = [
    "derive_status",
    "check_postpone_days",
    "next_on_create",
    "on_complete",
    "on_postpone",
    "Completion",
    "CalendarEvent",
    "build_events",
    "group_by_day",
    "month_grid",
    "overall_maintenance",
]
