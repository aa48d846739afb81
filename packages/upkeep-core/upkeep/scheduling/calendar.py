"""
Calendar aggregation.

Projects active tasks onto calendar days and builds the fixed six-week
month grid. All functions are pure.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from upkeep.dates import add_days, parse_date, to_iso
from upkeep.models.task import STATUS_OVERDUE, STATUS_PENDING, Task
from upkeep.scheduling.status import derive_status

# Statuses that put a task on the calendar
CALENDAR_STATUSES = (STATUS_PENDING, STATUS_OVERDUE)

GRID_DAYS = 42


@dataclass(frozen=True)
class CalendarEvent:
    """A task placed on its due date. Never persisted."""

    id: str
    title: str
    start: date
    end: date
    product_id: str
    product_name: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "start": to_iso(self.start),
            "end": to_iso(self.end),
            "product": {"id": self.product_id, "name": self.product_name},
        }


def build_events(
    tasks: Iterable[Task],
    product_names: Mapping[str, str],
    today: date,
) -> List[CalendarEvent]:
    """
    One event per pending or overdue task, ordered by due date.

    Args:
        tasks: Candidate tasks
        product_names: Product id to display name
        today: Server date used to derive status
    """
    events = [
        CalendarEvent(
            id=task.id,
            title=task.task_name,
            start=task.next_maintenance,
            end=task.next_maintenance,
            product_id=task.product_id,
            product_name=product_names.get(task.product_id, ""),
        )
        for task in tasks
        if derive_status(task, today) in CALENDAR_STATUSES
    ]
    events.sort(key=lambda event: event.start)
    return events


def group_by_day(events: Iterable[CalendarEvent]) -> Dict[date, List[CalendarEvent]]:
    """Map each calendar day to all of its events, days in ascending order."""
    grouped: Dict[date, List[CalendarEvent]] = defaultdict(list)
    for event in events:
        grouped[parse_date(event.start)].append(event)
    return dict(sorted(grouped.items()))


def month_grid(anchor: date) -> List[date]:
    """
    42 consecutive days covering ``anchor``'s month.

    Starts on the Sunday on or before the first of the month, so every
    month renders as six full weeks.
    """
    first = parse_date(anchor).replace(day=1)
    # weekday(): Monday=0 .. Sunday=6
    start = add_days(first, -((first.weekday() + 1) % 7))
    return [add_days(start, offset) for offset in range(GRID_DAYS)]


def overall_maintenance(tasks: Iterable[Task]) -> Tuple[Optional[Task], Optional[Task]]:
    """
    A product's (last, next) overall maintenance.

    last: the completed task with the latest last maintenance.
    next: the unfinished task with the earliest next maintenance.
    """
    tasks = list(tasks)

    done = [t for t in tasks if t.completed_at is not None and t.last_maintenance]
    upcoming = [t for t in tasks if not t.is_terminal]

    last_task = max(done, key=lambda t: t.last_maintenance) if done else None
    next_task = min(upcoming, key=lambda t: t.next_maintenance) if upcoming else None
    return last_task, next_task
