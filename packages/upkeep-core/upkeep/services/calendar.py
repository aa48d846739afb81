"""
Calendar Service for Upkeep.

Loads a user's tasks with their product names and hands them to the pure
calendar functions in ``upkeep.scheduling.calendar``.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from upkeep.errors import NotFoundError
from upkeep.models.task import Task
from upkeep.scheduling.calendar import CalendarEvent, build_events, group_by_day, month_grid
from upkeep.services.base import BaseService

logger = logging.getLogger(__name__)


class CalendarService(BaseService):
    """Read-only calendar projections of active tasks."""

    async def _load(self, user_id: str, product_id: Optional[str] = None) -> List[CalendarEvent]:
        tasks_table = self._table("tasks")
        products_table = self._table("products")

        conditions = ["t.user_id = $1"]
        params = [user_id]
        if product_id:
            conditions.append(f"t.product_id = ${len(params)+1}")
            params.append(product_id)

        rows = await self.adapter.fetch(
            f"""
            SELECT t.*, p.name AS product_name
            FROM {tasks_table} t
            JOIN {products_table} p ON p.id = t.product_id
            WHERE {" AND ".join(conditions)}
            ORDER BY t.next_maintenance ASC, t.created_at ASC, t.id ASC
            """,
            *params,
        )

        tasks: List[Task] = []
        names: Dict[str, str] = {}
        for row in rows:
            tasks.append(Task.from_dict(row))
            names[row["product_id"]] = row["product_name"]

        return build_events(tasks, names, self.today())

    async def events_for_user(self, user_id: str) -> List[CalendarEvent]:
        """Pending and overdue tasks across all of the user's products."""
        async with self._storage("Load calendar"):
            events = await self._load(user_id)
        logger.debug(f"Calendar for {user_id}: {len(events)} events")
        return events

    async def events_for_product(self, user_id: str, product_id: str) -> List[CalendarEvent]:
        """
        Pending and overdue tasks of one product.

        Raises:
            NotFoundError: If the product is missing or not owned
        """
        async with self._storage("Load product calendar"):
            exists = await self.adapter.fetchval(
                f"SELECT id FROM {self._table('products')} WHERE id = $1 AND user_id = $2",
                product_id, user_id,
            )
            if exists is None:
                raise NotFoundError("product", product_id)
            return await self._load(user_id, product_id)

    async def get_calendar(
        self,
        user_id: str,
        product_id: Optional[str] = None,
    ) -> Dict[date, List[CalendarEvent]]:
        """Events grouped by due date, days ascending."""
        if product_id:
            events = await self.events_for_product(user_id, product_id)
        else:
            events = await self.events_for_user(user_id)
        return group_by_day(events)

    async def month(
        self,
        user_id: str,
        anchor: date,
        product_id: Optional[str] = None,
    ) -> Dict[date, List[CalendarEvent]]:
        """
        The six-week grid around ``anchor``'s month.

        Every grid day is present; days without events map to an empty list.
        """
        grouped = await self.get_calendar(user_id, product_id)
        return {day: grouped.get(day, []) for day in month_grid(anchor)}
