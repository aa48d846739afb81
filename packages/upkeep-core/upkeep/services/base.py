"""
Shared plumbing for Upkeep services.

Resolves the adapter, configuration and clock, converts values for the
active backend, and translates store exceptions into Upkeep errors.
"""

import json
import logging
import sqlite3
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, AsyncIterator, Callable, Optional

from upkeep.config import SchedulingConfig, UpkeepConfig, get_config
from upkeep.dates import utc_today
from upkeep.db import get_adapter
from upkeep.errors import ConflictError, StorageError, UpkeepError

logger = logging.getLogger(__name__)

# PostgreSQL serialization_failure and deadlock_detected
_CONFLICT_SQLSTATES = ("40001", "40P01")


def _is_conflict(exc: Exception) -> bool:
    if getattr(exc, "sqlstate", None) in _CONFLICT_SQLSTATES:
        return True
    if isinstance(exc, sqlite3.OperationalError):
        message = str(exc).lower()
        return "locked" in message or "busy" in message
    return False


def affected_rows(status: str) -> int:
    """Row count from a command status such as "DELETE 1"."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


def like_pattern(text: str) -> str:
    """
    Lowercased substring pattern for ``LIKE ... ESCAPE '\\'``.

    Compare it against the column passed through the adapter's
    ``lower_function`` so both sides fold the same way.
    """
    escaped = text.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class BaseService:
    """
    Base for services that talk to the store.

    Args:
        adapter: Optional DatabaseAdapter. If not provided, uses global adapter.
        config: Optional UpkeepConfig. If not provided, uses cached config.
        today: Optional zero-argument callable returning the server's
            current date. Defaults to the UTC system clock.
    """

    def __init__(
        self,
        adapter=None,
        config: Optional[UpkeepConfig] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._adapter = adapter
        self._config = config
        self._today = today or utc_today

    @property
    def adapter(self):
        """Get the database adapter."""
        if self._adapter is None:
            self._adapter = get_adapter()
        return self._adapter

    @property
    def config(self) -> UpkeepConfig:
        if self._config is None:
            self._config = get_config()
        return self._config

    @property
    def policy(self) -> SchedulingConfig:
        return self.config.scheduling

    def today(self) -> date:
        return self._today()

    def _table(self, name: str) -> str:
        return self.adapter.table(name)

    def _db_value(self, value: Any) -> Any:
        """Convert a Python value to what the active backend expects."""
        if isinstance(value, (date, datetime)) and self.adapter.placeholder_style == "qmark":
            return value.isoformat()
        if isinstance(value, list) and not self.adapter.supports_arrays:
            return json.dumps(value)
        return value

    def _params(self, *values: Any) -> list:
        return [self._db_value(v) for v in values]

    @asynccontextmanager
    async def _storage(self, operation: str) -> AsyncIterator[None]:
        """
        Translate store exceptions raised inside the block.

        Upkeep errors pass through untouched. Store failures are logged by
        type only and re-raised as ConflictError or StorageError.
        """
        try:
            yield
        except UpkeepError:
            raise
        except Exception as e:
            if _is_conflict(e):
                logger.warning(f"{operation} conflicted with a concurrent write: {type(e).__name__}")
                raise ConflictError(f"{operation} conflicted with a concurrent write") from e
            logger.error(f"{operation} failed: {type(e).__name__}")
            raise StorageError(f"{operation} failed") from e
