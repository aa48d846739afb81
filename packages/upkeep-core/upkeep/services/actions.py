"""
Action Log Service for Upkeep.

Records one audit row per committed write and lists them back.
"""

import logging

from upkeep.db.interface import Transaction
from upkeep.models.action import MaintenanceAction
from upkeep.services.base import BaseService

logger = logging.getLogger(__name__)


class ActionLogService(BaseService):
    """
    Service for the maintenance action log.

    Writes go through ``record`` on the caller's open transaction, so an
    action row exists exactly when the write it describes committed.
    """

    def _actions_table(self) -> str:
        return self._table("maintenance_actions")

    async def record(
        self,
        tx: Transaction,
        user_id: str,
        action: str,
        entity_type: str,
        entity_id: str,
        message: str | None = None,
    ) -> MaintenanceAction:
        """
        Insert an action inside ``tx``.

        Args:
            tx: Open transaction of the write being logged
            user_id: Who performed the write
            action: CREATE, UPDATE, COMPLETE, POSTPONE or DELETE
            entity_type: TASK or PRODUCT
            entity_id: Id of the written entity
            message: Human-readable summary

        Returns:
            The recorded MaintenanceAction
        """
        entry = MaintenanceAction(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            message=message,
        )

        await tx.execute(
            f"""
            INSERT INTO {self._actions_table()}
                (id, user_id, action, entity_type, entity_id, message, created_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            """,
            *self._params(
                entry.id, entry.user_id, entry.action, entry.entity_type,
                entry.entity_id, entry.message, entry.created_at,
            ),
        )

        logger.debug(f"Recorded {action} {entity_type} {entity_id} for {user_id}")
        return entry

    async def list_actions(
        self,
        user_id: str,
        entity_id: str | None = None,
        limit: int = 50,
    ) -> list[MaintenanceAction]:
        """
        List a user's actions, newest first.

        Args:
            user_id: Owner
            entity_id: Optional filter to one task or product
            limit: Max results
        """
        conditions = ["user_id = $1"]
        params = [user_id]

        if entity_id:
            conditions.append(f"entity_id = ${len(params)+1}")
            params.append(entity_id)

        where_clause = " AND ".join(conditions)
        params.append(limit)

        async with self._storage("List actions"):
            rows = await self.adapter.fetch(
                f"""
                SELECT * FROM {self._actions_table()}
                WHERE {where_clause}
                ORDER BY created_at DESC, id DESC
                LIMIT ${len(params)}
                """,
                *params,
            )
        return [MaintenanceAction.from_dict(row) for row in rows]
