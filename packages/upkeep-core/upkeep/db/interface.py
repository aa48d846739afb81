"""
Abstract database adapter interface.

Supports both PostgreSQL and SQLite. Queries are written with PostgreSQL
style placeholders ($1, $2, ...) and converted by the adapter when needed.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager

_DOLLAR_PLACEHOLDER = re.compile(r'\$\d+')


class Transaction(ABC):
    """
    Handle for statements that must commit or roll back together.

    Obtained from DatabaseAdapter.transaction(); only valid inside the
    ``async with`` block that produced it.
    """

    @abstractmethod
    async def execute(self, query: str, *args) -> str:
        """Execute a statement and return a status string."""
        pass

    @abstractmethod
    async def fetch(self, query: str, *args) -> list[dict]:
        """Fetch multiple rows as list of dicts."""
        pass

    @abstractmethod
    async def fetchrow(self, query: str, *args) -> dict | None:
        """Fetch single row as dict, or None."""
        pass

    @abstractmethod
    async def fetchval(self, query: str, *args) -> Any:
        """Fetch single value."""
        pass


class DatabaseAdapter(ABC):
    """
    Abstract base class for database adapters.

    Implementations must support:
    - Basic CRUD operations (execute, fetch, fetchrow, fetchval)
    - Atomic multi-statement writes (transaction)
    - Feature detection (supports_arrays, placeholder_style)
    """

    @abstractmethod
    async def connect(self) -> None:
        """Initialize connection/pool."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connection/pool."""
        pass

    @abstractmethod
    async def execute(self, query: str, *args) -> str:
        """
        Execute a query and return status.

        Args:
            query: SQL query with $1, $2 placeholders
            *args: Query parameters

        Returns:
            Status string (e.g., "INSERT 0 1")
        """
        pass

    @abstractmethod
    async def fetch(self, query: str, *args) -> list[dict]:
        """
        Fetch multiple rows as list of dicts.

        Args:
            query: SQL SELECT query
            *args: Query parameters

        Returns:
            List of row dicts
        """
        pass

    @abstractmethod
    async def fetchrow(self, query: str, *args) -> dict | None:
        """
        Fetch single row as dict.

        Args:
            query: SQL SELECT query
            *args: Query parameters

        Returns:
            Row dict or None if no results
        """
        pass

    @abstractmethod
    async def fetchval(self, query: str, *args) -> Any:
        """
        Fetch single value.

        Args:
            query: SQL SELECT query returning one column
            *args: Query parameters

        Returns:
            The value or None
        """
        pass

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Transaction]:
        """
        Open a transaction.

        Usage:
            async with adapter.transaction() as tx:
                await tx.execute(...)

        Commits when the block exits normally; rolls back on any exception,
        including task cancellation.
        """
        pass

    def snapshot(self) -> AsyncContextManager[Transaction]:
        """
        Open a read-only transaction whose statements all see the same data.

        Defaults to transaction(), which is enough where writers are
        already serialized.
        """
        return self.transaction()

    @property
    @abstractmethod
    def supports_arrays(self) -> bool:
        """Does this adapter support native array columns?"""
        pass

    @property
    @abstractmethod
    def placeholder_style(self) -> str:
        """
        Return the placeholder style for this adapter.

        Returns:
            "dollar" for PostgreSQL ($1, $2, ...)
            "qmark" for SQLite (?, ?, ...)
        """
        pass

    @property
    def row_lock_clause(self) -> str:
        """Suffix that locks selected rows for the rest of a transaction."""
        return ""

    @property
    def lower_function(self) -> str:
        """SQL function that lowercases text the same way as str.lower()."""
        return "LOWER"

    def table(self, name: str) -> str:
        """Qualify a table name for this backend."""
        return name

    def format_query(self, query: str) -> str:
        """
        Convert query placeholders to the adapter's style.

        Input uses $1, $2 style (PostgreSQL).
        For SQLite, converts to ? style. Each placeholder must appear once,
        in argument order.
        """
        if self.placeholder_style == "dollar":
            return query

        return _DOLLAR_PLACEHOLDER.sub('?', query)

    async def ensure_schema(self) -> None:
        """
        Create schema namespace if needed (PostgreSQL only).
        Default implementation does nothing.
        """
        pass
