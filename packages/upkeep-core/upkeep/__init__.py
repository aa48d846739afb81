"""
Upkeep Core Library

Maintenance scheduling for owned products, with support for PostgreSQL
and SQLite.
"""

__version__ = "0.1.0"

from upkeep.config import UpkeepConfig, load_config
from upkeep.db import DatabaseAdapter, get_adapter, init_adapter
from upkeep.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    UpkeepError,
    ValidationError,
)

__all__ = [
    "load_config",
    "UpkeepConfig",
    "get_adapter",
    "init_adapter",
    "DatabaseAdapter",
    "UpkeepError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StorageError",
]
