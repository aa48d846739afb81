"""
Product Service for Upkeep.

Owner-scoped product CRUD. Every read fills in the product's overall
last and next maintenance from its tasks.
"""

import logging
from typing import Optional, List

from upkeep.dates import utc_now
from upkeep.db.interface import Transaction
from upkeep.errors import NotFoundError
from upkeep.models.commands import CreateProductCommand, ProductQuery, UpdateProductCommand
from upkeep.models.page import Page
from upkeep.models.product import Product, slugify
from upkeep.models.task import Task
from upkeep.scheduling.calendar import overall_maintenance
from upkeep.scheduling.status import derive_status
from upkeep.services.actions import ActionLogService
from upkeep.services.base import BaseService, affected_rows, like_pattern

logger = logging.getLogger(__name__)


class ProductService(BaseService):
    """Service for managing products."""

    def __init__(self, adapter=None, config=None, today=None):
        super().__init__(adapter=adapter, config=config, today=today)
        self.actions = ActionLogService(adapter=adapter, config=config, today=today)

    def _products_table(self) -> str:
        return self._table("products")

    def _tasks_table(self) -> str:
        return self._table("tasks")

    async def _unique_slug(
        self,
        tx: Transaction,
        user_id: str,
        name: str,
        exclude_id: Optional[str] = None,
    ) -> str:
        """Slug for ``name``, suffixed -2, -3, ... if the owner already uses it."""
        base = slugify(name)
        rows = await tx.fetch(
            f"""
            SELECT id, slug FROM {self._products_table()}
            WHERE user_id = $1 AND (slug = $2 OR slug LIKE $3)
            """,
            user_id, base, f"{base}-%",
        )
        taken = {row["slug"] for row in rows if row["id"] != exclude_id}

        if base not in taken:
            return base
        suffix = 2
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"

    async def _with_overall(self, products: List[Product]) -> List[Product]:
        """Attach overall last/next maintenance to each product."""
        if not products:
            return products

        today = self.today()
        by_product = {product.id: [] for product in products}
        user_id = products[0].user_id

        rows = await self.adapter.fetch(
            f"SELECT * FROM {self._tasks_table()} WHERE user_id = $1", user_id
        )
        for row in rows:
            if row["product_id"] in by_product:
                task = Task.from_dict(row)
                task.status = derive_status(task, today)
                by_product[task.product_id].append(task)

        for product in products:
            last_task, next_task = overall_maintenance(by_product[product.id])
            product.last_overall_maintenance = last_task
            product.next_overall_maintenance = next_task
        return products

    async def create_product(self, user_id: str, command: CreateProductCommand) -> Product:
        """
        Create a product.

        Args:
            user_id: Owner
            command: Product fields

        Returns:
            Created Product with a slug unique to the owner
        """
        command.validate()

        async with self._storage("Create product"):
            async with self.adapter.transaction() as tx:
                product = Product(
                    user_id=user_id,
                    name=command.name,
                    slug=await self._unique_slug(tx, user_id, command.name),
                    category=command.category,
                    manufacturer=command.manufacturer,
                    model=command.model,
                    tags=command.tags,
                    purchase_date=command.purchase_date,
                )
                await tx.execute(
                    f"""
                    INSERT INTO {self._products_table()}
                        (id, user_id, name, slug, category, manufacturer, model,
                         tags, purchase_date, task_ids, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
                    """,
                    *self._params(
                        product.id, product.user_id, product.name, product.slug,
                        product.category, product.manufacturer, product.model,
                        product.tags, product.purchase_date, product.task_ids,
                        product.created_at, product.updated_at,
                    ),
                )
                await self.actions.record(
                    tx, user_id, "CREATE", "PRODUCT", product.id,
                    f'Product "{product.name}" was created',
                )

        logger.info(f"Created product: {product.id} - {product.name}")
        return product

    async def get_product(self, user_id: str, product_id: str) -> Product:
        """
        Get a product by ID.

        Raises:
            NotFoundError: If missing or not owned
        """
        async with self._storage("Get product"):
            row = await self.adapter.fetchrow(
                f"SELECT * FROM {self._products_table()} WHERE id = $1 AND user_id = $2",
                product_id, user_id,
            )
            if row is None:
                raise NotFoundError("product", product_id)
            products = await self._with_overall([Product.from_dict(row)])
        return products[0]

    async def get_product_by_slug(self, user_id: str, slug: str) -> Product:
        async with self._storage("Get product"):
            row = await self.adapter.fetchrow(
                f"SELECT * FROM {self._products_table()} WHERE slug = $1 AND user_id = $2",
                slug, user_id,
            )
            if row is None:
                raise NotFoundError("product", slug)
            products = await self._with_overall([Product.from_dict(row)])
        return products[0]

    async def list_products(
        self,
        user_id: str,
        query: Optional[ProductQuery] = None,
    ) -> Page[Product]:
        """
        List products by name.

        Args:
            user_id: Owner
            query: Optional name search, category filter and paging
        """
        query = query or ProductQuery()
        query.validate(self.policy)

        conditions = ["user_id = $1"]
        params = [user_id]

        if query.category:
            conditions.append(f"category = ${len(params)+1}")
            params.append(query.category)

        lower = self.adapter.lower_function
        if query.search:
            conditions.append(f"{lower}(name) LIKE ${len(params)+1} ESCAPE '\\'")
            params.append(like_pattern(query.search))

        table = self._products_table()
        where_clause = " AND ".join(conditions)
        result = Page(items=[], total=0, page=query.page, limit=query.limit)

        async with self._storage("List products"):
            async with self.adapter.snapshot() as tx:
                total = await tx.fetchval(
                    f"SELECT COUNT(*) FROM {table} WHERE {where_clause}", *params
                )
                rows = await tx.fetch(
                    f"""
                    SELECT * FROM {table}
                    WHERE {where_clause}
                    ORDER BY {lower}(name) ASC, id ASC
                    LIMIT ${len(params)+1} OFFSET ${len(params)+2}
                    """,
                    *params, query.limit, result.offset,
                )
            result.items = await self._with_overall([Product.from_dict(row) for row in rows])

        result.total = int(total or 0)
        return result

    async def update_product(
        self,
        user_id: str,
        product_id: str,
        command: UpdateProductCommand,
    ) -> Product:
        """
        Update a product. Renaming re-derives the slug.

        Raises:
            NotFoundError: If missing or not owned
        """
        command.validate()

        async with self._storage("Update product"):
            async with self.adapter.transaction() as tx:
                row = await tx.fetchrow(
                    f"SELECT * FROM {self._products_table()} WHERE id = $1 AND user_id = $2"
                    f"{self.adapter.row_lock_clause}",
                    product_id, user_id,
                )
                if row is None:
                    raise NotFoundError("product", product_id)
                product = Product.from_dict(row)

                if command.name is not None and command.name != product.name:
                    product.name = command.name
                    product.slug = await self._unique_slug(
                        tx, user_id, command.name, exclude_id=product.id
                    )
                for attr in ("category", "manufacturer", "model", "tags", "purchase_date"):
                    value = getattr(command, attr)
                    if value is not None:
                        setattr(product, attr, value)
                product.updated_at = utc_now()

                await tx.execute(
                    f"""
                    UPDATE {self._products_table()}
                    SET name = $1, slug = $2, category = $3, manufacturer = $4,
                        model = $5, tags = $6, purchase_date = $7, updated_at = $8
                    WHERE id = $9 AND user_id = $10
                    """,
                    *self._params(
                        product.name, product.slug, product.category,
                        product.manufacturer, product.model, product.tags,
                        product.purchase_date, product.updated_at,
                        product.id, user_id,
                    ),
                )
                await self.actions.record(
                    tx, user_id, "UPDATE", "PRODUCT", product.id,
                    f'Product "{product.name}" was updated',
                )

            products = await self._with_overall([product])

        logger.info(f"Updated product: {product.id}")
        return products[0]

    async def delete_product(self, user_id: str, product_id: str) -> None:
        """
        Delete a product together with all of its tasks.

        Raises:
            NotFoundError: If missing or not owned
        """
        async with self._storage("Delete product"):
            async with self.adapter.transaction() as tx:
                name = await tx.fetchval(
                    f"SELECT name FROM {self._products_table()} WHERE id = $1 AND user_id = $2"
                    f"{self.adapter.row_lock_clause}",
                    product_id, user_id,
                )
                if name is None:
                    raise NotFoundError("product", product_id)

                await tx.execute(
                    f"DELETE FROM {self._tasks_table()} WHERE product_id = $1 AND user_id = $2",
                    product_id, user_id,
                )
                status = await tx.execute(
                    f"DELETE FROM {self._products_table()} WHERE id = $1 AND user_id = $2",
                    product_id, user_id,
                )
                if affected_rows(status) == 0:
                    raise NotFoundError("product", product_id)

                await self.actions.record(
                    tx, user_id, "DELETE", "PRODUCT", product_id,
                    f'Product "{name}" was deleted',
                )

        logger.info(f"Deleted product: {product_id}")

    async def list_categories(self, user_id: str) -> List[str]:
        """Distinct categories in use by the owner's products."""
        async with self._storage("List categories"):
            rows = await self.adapter.fetch(
                f"""
                SELECT DISTINCT category FROM {self._products_table()}
                WHERE user_id = $1 AND category IS NOT NULL AND category <> ''
                ORDER BY category
                """,
                user_id,
            )
        return [row["category"] for row in rows]
