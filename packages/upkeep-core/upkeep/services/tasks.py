"""
Task Service for Upkeep.

The scheduling repository: owner-scoped CRUD, completion and postponement,
and filtered, paginated listing. Works across PostgreSQL and SQLite.
"""

import dataclasses
import logging

from upkeep.dates import utc_now
from upkeep.db.interface import Transaction
from upkeep.errors import NotFoundError, ValidationError
from upkeep.models.commands import CreateTaskCommand, TaskQuery, UpdateTaskCommand
from upkeep.models.page import Page
from upkeep.models.product import Product
from upkeep.models.task import IntervalSchedule, Task
from upkeep.scheduling.recurrence import (
    check_postpone_days,
    next_on_create,
    on_complete,
    on_postpone,
)
from upkeep.scheduling.status import derive_status
from upkeep.services.actions import ActionLogService
from upkeep.services.base import BaseService, affected_rows, like_pattern

logger = logging.getLogger(__name__)

# Soonest due first; ties broken deterministically
TASK_ORDER = "ORDER BY next_maintenance ASC, created_at ASC, id ASC"


class TaskService(BaseService):
    """
    Service for managing maintenance tasks.

    Every operation takes the caller's ``user_id``. Tasks owned by someone
    else behave exactly like tasks that do not exist.
    """

    def __init__(self, adapter=None, config=None, today=None):
        super().__init__(adapter=adapter, config=config, today=today)
        self.actions = ActionLogService(adapter=adapter, config=config, today=today)

    def _tasks_table(self) -> str:
        return self._table("tasks")

    def _products_table(self) -> str:
        return self._table("products")

    def _hydrate(self, row: dict, today) -> Task:
        """Build a Task from a row, replacing the cached status."""
        task = Task.from_dict(row)
        task.status = derive_status(task, today)
        return task

    async def _owned_task(self, tx: Transaction, user_id: str, task_id: str) -> Task:
        row = await tx.fetchrow(
            f"SELECT * FROM {self._tasks_table()} WHERE id = $1 AND user_id = $2"
            f"{self.adapter.row_lock_clause}",
            task_id, user_id,
        )
        if row is None:
            raise NotFoundError("task", task_id)
        return Task.from_dict(row)

    async def _owned_product(self, tx: Transaction, user_id: str, product_id: str) -> Product:
        row = await tx.fetchrow(
            f"SELECT * FROM {self._products_table()} WHERE id = $1 AND user_id = $2"
            f"{self.adapter.row_lock_clause}",
            product_id, user_id,
        )
        if row is None:
            raise NotFoundError("product", product_id)
        return Product.from_dict(row)

    async def _set_task_ids(self, tx: Transaction, product: Product, task_ids: list[str]) -> None:
        await tx.execute(
            f"UPDATE {self._products_table()} SET task_ids = $1, updated_at = $2 WHERE id = $3",
            *self._params(task_ids, utc_now(), product.id),
        )

    async def _insert(self, tx: Transaction, task: Task) -> None:
        window = task.maintenance_window
        await tx.execute(
            f"""
            INSERT INTO {self._tasks_table()}
                (id, product_id, user_id, task_name, description, is_recurring,
                 recurring_type, frequency, window_start, window_end,
                 last_maintenance, next_maintenance, status, completed_at,
                 created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16)
            """,
            *self._params(
                task.id, task.product_id, task.user_id, task.task_name, task.description,
                task.is_recurring, task.recurring_type, task.frequency,
                window.start_date if window else None,
                window.end_date if window else None,
                task.last_maintenance, task.next_maintenance, task.status,
                task.completed_at, task.created_at, task.updated_at,
            ),
        )

    async def _save(self, tx: Transaction, task: Task) -> None:
        window = task.maintenance_window
        await tx.execute(
            f"""
            UPDATE {self._tasks_table()}
            SET task_name = $1, description = $2, is_recurring = $3,
                recurring_type = $4, frequency = $5, window_start = $6,
                window_end = $7, last_maintenance = $8, next_maintenance = $9,
                status = $10, completed_at = $11, updated_at = $12
            WHERE id = $13 AND user_id = $14
            """,
            *self._params(
                task.task_name, task.description, task.is_recurring,
                task.recurring_type, task.frequency,
                window.start_date if window else None,
                window.end_date if window else None,
                task.last_maintenance, task.next_maintenance,
                task.status, task.completed_at, task.updated_at,
                task.id, task.user_id,
            ),
        )

    async def create_task(
        self,
        user_id: str,
        product_id: str,
        command: CreateTaskCommand,
    ) -> Task:
        """
        Create a task and append it to its product's task list.

        Args:
            user_id: Owner
            product_id: Product the task belongs to
            command: Validated task fields

        Returns:
            Created Task

        Raises:
            ValidationError: On bad input
            NotFoundError: If the product is unknown or not owned
        """
        today = self.today()
        schedule = command.validate(today, self.policy)

        last_maintenance = command.last_maintenance
        if isinstance(schedule, IntervalSchedule) and last_maintenance is None:
            last_maintenance = today

        task = Task(
            product_id=product_id,
            user_id=user_id,
            task_name=command.task_name,
            description=command.description,
            schedule=schedule,
            last_maintenance=last_maintenance,
            next_maintenance=next_on_create(schedule, last_maintenance),
        )
        task.status = derive_status(task, today)

        async with self._storage("Create task"):
            async with self.adapter.transaction() as tx:
                product = await self._owned_product(tx, user_id, product_id)
                await self._insert(tx, task)
                await self._set_task_ids(tx, product, product.task_ids + [task.id])
                await self.actions.record(
                    tx, user_id, "CREATE", "TASK", task.id,
                    f'Task "{task.task_name}" was created',
                )

        logger.info(f"Created task: {task.id} - {task.task_name}")
        return task

    async def get_task_by_id(self, user_id: str, task_id: str) -> Task:
        """
        Get a task by ID.

        Raises:
            NotFoundError: If missing or not owned
        """
        async with self._storage("Get task"):
            row = await self.adapter.fetchrow(
                f"SELECT * FROM {self._tasks_table()} WHERE id = $1 AND user_id = $2",
                task_id, user_id,
            )
        if row is None:
            raise NotFoundError("task", task_id)
        return self._hydrate(row, self.today())

    def _apply_patch(self, task: Task, command: UpdateTaskCommand) -> Task:
        changes = {}

        if command.task_name is not None:
            changes["task_name"] = command.task_name

        if command.clear_description:
            changes["description"] = None
        elif command.description is not None:
            changes["description"] = command.description

        if command.touches_schedule:
            if task.is_terminal:
                raise ValidationError(
                    "Completed one-time tasks cannot be rescheduled", field="status"
                )
            schedule = command.merged_schedule(task.schedule, self.policy)
            last_maintenance = command.last_maintenance or task.last_maintenance
            if last_maintenance is None and isinstance(schedule, IntervalSchedule):
                last_maintenance = self.today()
            if type(schedule) is not type(task.schedule):
                # a completion belongs to the schedule it was made against
                changes["completed_at"] = None
            changes["schedule"] = schedule
            changes["last_maintenance"] = last_maintenance
            changes["next_maintenance"] = next_on_create(schedule, last_maintenance)

        # replace() re-runs the model's invariant checks
        return dataclasses.replace(task, **changes)

    async def update_task(
        self,
        user_id: str,
        task_id: str,
        command: UpdateTaskCommand,
    ) -> Task:
        """
        Apply a partial update.

        Schedule changes recompute the due date from the last maintenance.
        Creation-time date range checks do not apply here.

        Raises:
            ValidationError: If the merged task breaks an invariant
            NotFoundError: If missing or not owned
        """
        command.validate(self.policy)
        today = self.today()

        async with self._storage("Update task"):
            async with self.adapter.transaction() as tx:
                task = await self._owned_task(tx, user_id, task_id)
                if command.is_empty:
                    task.status = derive_status(task, today)
                    return task

                task = self._apply_patch(task, command)
                task.status = derive_status(task, today)
                task.updated_at = utc_now()

                await self._save(tx, task)
                await self.actions.record(
                    tx, user_id, "UPDATE", "TASK", task.id,
                    f'Task "{task.task_name}" was updated',
                )

        logger.info(f"Updated task: {task.id}")
        return task

    async def complete_task(self, user_id: str, task_id: str) -> Task:
        """
        Mark a task as done today.

        Interval tasks roll over to their next cycle; windowed tasks become
        permanently completed.

        Raises:
            ValidationError: If the task is already permanently completed
            NotFoundError: If missing or not owned
        """
        today = self.today()

        async with self._storage("Complete task"):
            async with self.adapter.transaction() as tx:
                task = await self._owned_task(tx, user_id, task_id)
                if task.is_terminal:
                    raise ValidationError("Task is already completed", field="status")

                completion = on_complete(task, today)
                now = utc_now()
                task.last_maintenance = completion.last_maintenance
                task.next_maintenance = completion.next_maintenance
                task.completed_at = now
                task.updated_at = now
                task.status = derive_status(task, today)

                await self._save(tx, task)
                await self.actions.record(
                    tx, user_id, "COMPLETE", "TASK", task.id,
                    f'Task "{task.task_name}" was completed',
                )

        logger.info(f"Completed task: {task.id} (next {task.next_maintenance})")
        return task

    async def postpone_task(self, user_id: str, task_id: str, days: int) -> Task:
        """
        Push a task's due date back by ``days``.

        Raises:
            ValidationError: If days < 1 or the task is permanently completed
            NotFoundError: If missing or not owned
        """
        check_postpone_days(days)
        today = self.today()

        async with self._storage("Postpone task"):
            async with self.adapter.transaction() as tx:
                task = await self._owned_task(tx, user_id, task_id)
                if task.is_terminal:
                    raise ValidationError(
                        "Completed one-time tasks cannot be postponed", field="status"
                    )
                task.next_maintenance = on_postpone(task, days)
                task.updated_at = utc_now()
                task.status = derive_status(task, today)

                await self._save(tx, task)
                await self.actions.record(
                    tx, user_id, "POSTPONE", "TASK", task.id,
                    f'Task "{task.task_name}" postponed by {days} days',
                )

        logger.info(f"Postponed task: {task.id} by {days} days")
        return task

    async def delete_task(self, user_id: str, task_id: str) -> None:
        """
        Delete a task and drop its id from the owning product.

        Both changes commit together or not at all. Deleting a task that is
        already gone raises NotFoundError.
        """
        async with self._storage("Delete task"):
            async with self.adapter.transaction() as tx:
                task = await self._owned_task(tx, user_id, task_id)

                status = await tx.execute(
                    f"DELETE FROM {self._tasks_table()} WHERE id = $1 AND user_id = $2",
                    task_id, user_id,
                )
                if affected_rows(status) == 0:
                    raise NotFoundError("task", task_id)

                product = await self._owned_product(tx, user_id, task.product_id)
                await self._set_task_ids(
                    tx, product, [tid for tid in product.task_ids if tid != task_id]
                )
                await self.actions.record(
                    tx, user_id, "DELETE", "TASK", task_id,
                    f'Task "{task.task_name}" was deleted',
                )

        logger.info(f"Deleted task: {task_id}")

    async def get_tasks(self, user_id: str, query: TaskQuery | None = None) -> Page[Task]:
        """
        List tasks, soonest due first.

        Status filtering uses derived status, so it is applied after the
        store query; the other filters run in the store.

        Args:
            user_id: Owner
            query: Filters and paging (defaults to the first page)

        Returns:
            Page of Task objects
        """
        query = query or TaskQuery()
        query.validate(self.policy)
        today = self.today()

        conditions = ["user_id = $1"]
        params = [user_id]

        if query.product_id:
            conditions.append(f"product_id = ${len(params)+1}")
            params.append(query.product_id)

        if query.search:
            lower = self.adapter.lower_function
            conditions.append(f"{lower}(task_name) LIKE ${len(params)+1} ESCAPE '\\'")
            params.append(like_pattern(query.search))

        table = self._tasks_table()
        where_clause = " AND ".join(conditions)
        result = Page(items=[], total=0, page=query.page, limit=query.limit)

        # count and page come from one snapshot so they agree
        async with self._storage("List tasks"):
            async with self.adapter.snapshot() as tx:
                if query.status is None:
                    total = await tx.fetchval(
                        f"SELECT COUNT(*) FROM {table} WHERE {where_clause}", *params
                    )
                    rows = await tx.fetch(
                        f"""
                        SELECT * FROM {table}
                        WHERE {where_clause}
                        {TASK_ORDER}
                        LIMIT ${len(params)+1} OFFSET ${len(params)+2}
                        """,
                        *params, query.limit, result.offset,
                    )
                    result.items = [self._hydrate(row, today) for row in rows]
                else:
                    rows = await tx.fetch(
                        f"SELECT * FROM {table} WHERE {where_clause} {TASK_ORDER}", *params
                    )
                    matching = [
                        task for task in (self._hydrate(row, today) for row in rows)
                        if task.status == query.status
                    ]
                    total = len(matching)
                    result.items = matching[result.offset:result.offset + query.limit]

        result.total = int(total or 0)
        logger.debug(f"Listed {len(result.items)} of {result.total} tasks for {user_id}")
        return result
