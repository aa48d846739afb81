"""
Database abstraction layer supporting PostgreSQL and SQLite.
"""

from upkeep.db.factory import close_adapter, get_adapter, init_adapter, reset_adapter
from upkeep.db.interface import DatabaseAdapter, Transaction
from upkeep.db.schema import run_migrations

__all__ = [
    "DatabaseAdapter",
    "Transaction",
    "get_adapter",
    "init_adapter",
    "close_adapter",
    "reset_adapter",
    "run_migrations",
]
