"""
Database adapter factory.

Creates the appropriate adapter based on configuration.
"""

import logging

from upkeep.db.interface import DatabaseAdapter

logger = logging.getLogger(__name__)

# Global adapter instance (singleton pattern)
_adapter: DatabaseAdapter | None = None


def get_adapter(config=None) -> DatabaseAdapter:
    """
    Get or create the database adapter based on configuration.

    Uses singleton pattern - returns same adapter instance on subsequent calls.

    Args:
        config: Optional UpkeepConfig. If not provided, uses the cached config.

    Returns:
        DatabaseAdapter instance (PostgresAdapter or SQLiteAdapter)

    Raises:
        ValueError: If database configuration is invalid
    """
    global _adapter

    if _adapter is not None:
        return _adapter

    if config is None:
        from upkeep.config import get_config
        config = get_config()

    db_type = config.database.type.lower()

    if db_type == "postgres" or db_type == "postgresql":
        from upkeep.db.postgres import PostgresAdapter

        url = config.database.postgres_url
        if not url:
            raise ValueError(
                "PostgreSQL URL not configured. "
                "Set database.postgres.url in config or UPKEEP_DATABASE_URL env var."
            )

        _adapter = PostgresAdapter(url)
        logger.info("Using PostgreSQL adapter")

    elif db_type == "sqlite":
        from upkeep.db.sqlite import SQLiteAdapter

        path = config.database.sqlite_path
        _adapter = SQLiteAdapter(path)
        logger.info(f"Using SQLite adapter: {path}")

    else:
        raise ValueError(
            f"Unknown database type: {db_type}. "
            "Use 'postgres' or 'sqlite'."
        )

    return _adapter


async def init_adapter(config=None, migrate: bool = True) -> DatabaseAdapter:
    """
    Initialize the database adapter, connect, and apply migrations.

    Args:
        config: Optional UpkeepConfig
        migrate: Apply pending schema migrations after connecting

    Returns:
        Connected DatabaseAdapter instance
    """
    from upkeep.db.schema import run_migrations

    adapter = get_adapter(config)
    await adapter.connect()
    if migrate:
        await run_migrations(adapter)
    return adapter


async def close_adapter() -> None:
    """Close the global adapter connection."""
    global _adapter

    if _adapter is not None:
        await _adapter.close()
        _adapter = None


def reset_adapter() -> None:
    """
    Reset the global adapter instance.

    Useful for testing or when configuration changes.
    """
    global _adapter
    _adapter = None
