"""
Tests for calendar aggregation and the Calendar Service.
"""

import pytest
from datetime import date, datetime, timezone

from upkeep.errors import NotFoundError
from upkeep.models.commands import CreateProductCommand
from upkeep.models.task import IntervalSchedule, MaintenanceWindow, Task, WindowSchedule
from upkeep.scheduling.calendar import (
    build_events,
    group_by_day,
    month_grid,
    overall_maintenance,
)


def task(name, next_, product_id="p1", last=None, window=None, completed=False):
    schedule = WindowSchedule(window) if window else IntervalSchedule(30)
    t = Task(
        product_id=product_id,
        user_id="alice",
        task_name=name,
        schedule=schedule,
        last_maintenance=last,
        next_maintenance=next_,
    )
    if completed:
        t.completed_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return t


class TestBuildEvents:
    """Tests for build_events()."""

    def test_only_pending_and_overdue(self):
        today = date(2024, 6, 15)
        tasks = [
            task("pending", date(2024, 6, 20)),
            task("overdue", date(2024, 6, 1)),
            task("inactive", date(2024, 8, 10),
                 window=MaintenanceWindow(date(2024, 8, 1), date(2024, 8, 10))),
            task("done", date(2024, 6, 10),
                 window=MaintenanceWindow(date(2024, 6, 1), date(2024, 6, 10)), completed=True),
        ]

        events = build_events(tasks, {"p1": "Mower"}, today)

        assert [e.title for e in events] == ["overdue", "pending"]

    def test_event_shape(self):
        t = task("Change oil", date(2024, 6, 20))

        event = build_events([t], {"p1": "Mower"}, date(2024, 6, 15))[0]

        assert event.id == t.id
        assert event.start == event.end == date(2024, 6, 20)
        assert event.to_dict()["product"] == {"id": "p1", "name": "Mower"}
        assert event.to_dict()["start"] == "2024-06-20"


class TestGroupByDay:
    """Tests for group_by_day()."""

    def test_groups_same_day(self):
        today = date(2024, 6, 15)
        events = build_events(
            [
                task("a", date(2024, 6, 20)),
                task("b", date(2024, 6, 20), product_id="p2"),
                task("c", date(2024, 6, 18)),
            ],
            {"p1": "Mower", "p2": "Car"},
            today,
        )

        grouped = group_by_day(events)

        assert list(grouped) == [date(2024, 6, 18), date(2024, 6, 20)]
        assert {e.title for e in grouped[date(2024, 6, 20)]} == {"a", "b"}

    def test_empty(self):
        assert group_by_day([]) == {}


class TestMonthGrid:
    """Tests for month_grid()."""

    def test_starts_on_sunday_before_first(self):
        """June 2024 starts on a Saturday; the grid starts May 26."""
        grid = month_grid(date(2024, 6, 15))

        assert len(grid) == 42
        assert grid[0] == date(2024, 5, 26)
        assert grid[-1] == date(2024, 7, 6)

    def test_month_starting_on_sunday(self):
        """September 2024 starts on a Sunday."""
        grid = month_grid(date(2024, 9, 30))

        assert grid[0] == date(2024, 9, 1)

    def test_days_are_consecutive(self):
        grid = month_grid(date(2024, 2, 1))

        assert all((b - a).days == 1 for a, b in zip(grid, grid[1:]))
        assert grid[0].weekday() == 6


class TestOverallMaintenance:
    """Tests for overall_maintenance()."""

    def test_last_and_next(self):
        older = task("older", date(2024, 7, 1), last=date(2024, 1, 5))
        older.completed_at = datetime(2024, 1, 5, tzinfo=timezone.utc)
        newer = task("newer", date(2024, 8, 1), last=date(2024, 3, 5))
        newer.completed_at = datetime(2024, 3, 5, tzinfo=timezone.utc)
        never_done = task("never", date(2024, 6, 1), last=date(2024, 5, 1))

        last_task, next_task = overall_maintenance([older, newer, never_done])

        assert last_task is newer
        assert next_task is never_done

    def test_terminal_tasks_are_not_next(self):
        done = task(
            "done", date(2024, 1, 10),
            window=MaintenanceWindow(date(2024, 1, 1), date(2024, 1, 10)),
            last=date(2024, 1, 10), completed=True,
        )

        last_task, next_task = overall_maintenance([done])

        assert last_task is done
        assert next_task is None

    def test_no_tasks(self):
        assert overall_maintenance([]) == (None, None)


class TestCalendarService:
    """Tests for CalendarService."""

    @pytest.mark.asyncio
    async def test_events_for_user(self, calendar_service, task_service, product, interval_command, window_command):
        oil = await task_service.create_task("alice", product.id, interval_command())
        await task_service.create_task(
            "alice", product.id,
            window_command(start=date(2024, 3, 1), end=date(2024, 3, 10)),
        )

        events = await calendar_service.events_for_user("alice")

        assert [e.id for e in events] == [oil.id]
        assert events[0].product_name == "Lawn Mower"

    @pytest.mark.asyncio
    async def test_events_for_product(self, calendar_service, task_service, product_service, product, interval_command):
        car = await product_service.create_product("alice", CreateProductCommand(name="Car"))
        await task_service.create_task("alice", product.id, interval_command())
        tyres = await task_service.create_task("alice", car.id, interval_command(name="Rotate tyres"))

        events = await calendar_service.events_for_product("alice", car.id)

        assert [e.id for e in events] == [tyres.id]

    @pytest.mark.asyncio
    async def test_events_for_foreign_product(self, calendar_service, product):
        with pytest.raises(NotFoundError):
            await calendar_service.events_for_product("bob", product.id)

    @pytest.mark.asyncio
    async def test_other_users_tasks_hidden(self, calendar_service, task_service, product, interval_command):
        await task_service.create_task("alice", product.id, interval_command())

        assert await calendar_service.events_for_user("bob") == []

    @pytest.mark.asyncio
    async def test_month(self, calendar_service, task_service, product, interval_command):
        await task_service.create_task("alice", product.id, interval_command())

        grid = await calendar_service.month("alice", date(2024, 1, 15))

        assert len(grid) == 42
        assert [e.title for e in grid[date(2024, 1, 31)]] == ["Change oil"]
        assert grid[date(2024, 1, 1)] == []
