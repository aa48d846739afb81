"""
Status deriver.

The only source of truth for a task's status. Stored status values are a
cache written alongside each change and overwritten with this result on
every read.
"""

from datetime import date, datetime
from typing import Union

from upkeep.dates import parse_date
from upkeep.models.task import (
    STATUS_COMPLETED,
    STATUS_INACTIVE,
    STATUS_OVERDUE,
    STATUS_PENDING,
    Task,
)


def derive_status(task: Task, now: Union[date, datetime]) -> str:
    """
    Status of ``task`` as of ``now``; the first matching rule wins.

    1. completed  - a windowed task that has been completed
    2. inactive   - its window has not opened yet
    3. overdue    - today is past the due date
    4. pending    - otherwise
    """
    today = parse_date(now)

    if task.is_terminal:
        return STATUS_COMPLETED

    window = task.maintenance_window
    if window is not None and today < window.start_date:
        return STATUS_INACTIVE

    if today > task.next_maintenance:
        return STATUS_OVERDUE

    return STATUS_PENDING
