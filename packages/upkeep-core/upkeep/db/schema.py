"""
Schema migrations for Upkeep.

Each migration is a version string plus the statements that create it.
Applied versions are recorded in ``schema_migrations`` and skipped on
later runs.
"""

import logging

from upkeep.db.interface import DatabaseAdapter

logger = logging.getLogger(__name__)


SQLITE_MIGRATIONS = [
    ("001", [
        """
        CREATE TABLE IF NOT EXISTS products (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            category TEXT,
            manufacturer TEXT,
            model TEXT,
            tags TEXT DEFAULT '[]',
            purchase_date TEXT,
            task_ids TEXT DEFAULT '[]',
            created_at TEXT,
            updated_at TEXT,
            UNIQUE (user_id, slug)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            product_id TEXT NOT NULL REFERENCES products(id),
            user_id TEXT NOT NULL,
            task_name TEXT NOT NULL,
            description TEXT,
            is_recurring INTEGER NOT NULL DEFAULT 0,
            recurring_type TEXT,
            frequency INTEGER,
            window_start TEXT,
            window_end TEXT,
            last_maintenance TEXT,
            next_maintenance TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            completed_at TEXT,
            created_at TEXT,
            updated_at TEXT
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_tasks_user_next ON tasks (user_id, next_maintenance)",
        "CREATE INDEX IF NOT EXISTS idx_tasks_product ON tasks (product_id)",
        """
        CREATE TABLE IF NOT EXISTS maintenance_actions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            message TEXT,
            created_at TEXT
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_actions_user ON maintenance_actions (user_id, created_at)",
    ]),
]

POSTGRES_MIGRATIONS = [
    ("001", [
        """
        CREATE TABLE IF NOT EXISTS upkeep.products (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            category TEXT,
            manufacturer TEXT,
            model TEXT,
            tags TEXT[] DEFAULT '{}',
            purchase_date DATE,
            task_ids TEXT[] DEFAULT '{}',
            created_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ,
            UNIQUE (user_id, slug)
        )
        """,
        """
        CREATE TABLE IF NOT EXISTS upkeep.tasks (
            id TEXT PRIMARY KEY,
            product_id TEXT NOT NULL REFERENCES upkeep.products(id),
            user_id TEXT NOT NULL,
            task_name TEXT NOT NULL,
            description TEXT,
            is_recurring BOOLEAN NOT NULL DEFAULT FALSE,
            recurring_type TEXT,
            frequency INTEGER,
            window_start DATE,
            window_end DATE,
            last_maintenance DATE,
            next_maintenance DATE NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            completed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ,
            updated_at TIMESTAMPTZ
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_tasks_user_next ON upkeep.tasks (user_id, next_maintenance)",
        "CREATE INDEX IF NOT EXISTS idx_tasks_product ON upkeep.tasks (product_id)",
        """
        CREATE TABLE IF NOT EXISTS upkeep.maintenance_actions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id TEXT NOT NULL,
            message TEXT,
            created_at TIMESTAMPTZ
        )
        """,
        "CREATE INDEX IF NOT EXISTS idx_actions_user ON upkeep.maintenance_actions (user_id, created_at)",
    ]),
]


async def run_migrations(adapter: DatabaseAdapter) -> list[str]:
    """
    Apply pending migrations.

    Args:
        adapter: Connected DatabaseAdapter

    Returns:
        Versions applied by this call, in order
    """
    await adapter.ensure_schema()

    if adapter.placeholder_style == "dollar":
        migrations = POSTGRES_MIGRATIONS
    else:
        migrations = SQLITE_MIGRATIONS

    ledger = adapter.table("schema_migrations")
    await adapter.execute(
        f"CREATE TABLE IF NOT EXISTS {ledger} (version TEXT PRIMARY KEY, applied_at TEXT)"
    )
    applied = {row["version"] for row in await adapter.fetch(f"SELECT version FROM {ledger}")}

    newly_applied = []
    for version, statements in migrations:
        if version in applied:
            continue

        logger.info(f"Running migration: {version}")
        async with adapter.transaction() as tx:
            for statement in statements:
                await tx.execute(statement)
            await tx.execute(
                f"INSERT INTO {ledger} (version, applied_at) VALUES ($1, CURRENT_TIMESTAMP)",
                version,
            )
        newly_applied.append(version)

    return newly_applied
