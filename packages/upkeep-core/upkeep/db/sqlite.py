"""
SQLite database adapter using aiosqlite.

Differences from PostgreSQL handled here:
- Placeholders: $n rewritten to ?
- Arrays: stored as JSON text
- Dates: stored as ISO-8601 text
- Row locks: a single connection serialized by an asyncio lock, with
  BEGIN IMMEDIATE so other processes cannot interleave writes
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, List, Any

import aiosqlite

from upkeep.db.interface import DatabaseAdapter, Transaction

logger = logging.getLogger(__name__)


def _status(query: str, rowcount: int) -> str:
    """Build a status string similar to PostgreSQL's command tags."""
    verb = query.strip().split(None, 1)[0].upper() if query.strip() else ""
    if verb == "INSERT":
        return f"INSERT 0 {rowcount}"
    elif verb in ("UPDATE", "DELETE"):
        return f"{verb} {rowcount}"
    return "OK"


def _unicode_lower(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


class SQLiteTransaction(Transaction):
    """Statements issued on the adapter's connection inside BEGIN/COMMIT."""

    def __init__(self, adapter: "SQLiteAdapter", conn: aiosqlite.Connection):
        self._adapter = adapter
        self._conn = conn

    async def execute(self, query: str, *args) -> str:
        query = self._adapter.format_query(query)
        cursor = await self._conn.execute(query, args)
        return _status(query, cursor.rowcount)

    async def fetch(self, query: str, *args) -> List[dict]:
        cursor = await self._conn.execute(self._adapter.format_query(query), args)
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def fetchrow(self, query: str, *args) -> Optional[dict]:
        cursor = await self._conn.execute(self._adapter.format_query(query), args)
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def fetchval(self, query: str, *args) -> Any:
        cursor = await self._conn.execute(self._adapter.format_query(query), args)
        row = await cursor.fetchone()
        return row[0] if row else None


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite adapter.

    Uses aiosqlite for async database operations.
    Automatically creates the database file and parent directories.
    """

    def __init__(self, db_path: str = "~/.upkeep/upkeep.db"):
        """
        Initialize SQLite adapter.

        Args:
            db_path: Path to SQLite database file.
                    Supports ~ expansion for home directory.
        """
        self.db_path = Path(db_path).expanduser()
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Initialize database connection and create file if needed."""
        if self._conn is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        # Connect (creates file if doesn't exist)
        self._conn = await aiosqlite.connect(str(self.db_path))

        await self._conn.execute("PRAGMA foreign_keys = ON")

        # Use WAL mode for better concurrent access
        await self._conn.execute("PRAGMA journal_mode = WAL")

        await self._conn.create_function("unicode_lower", 1, _unicode_lower, deterministic=True)

        # Row factory to return dicts
        self._conn.row_factory = aiosqlite.Row

        logger.info(f"SQLite database connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("SQLite connection closed")

    async def _get_conn(self) -> aiosqlite.Connection:
        """Get or create connection."""
        if self._conn is None:
            await self.connect()
        return self._conn

    async def execute(self, query: str, *args) -> str:
        """Execute query, commit, and return status."""
        conn = await self._get_conn()
        query = self.format_query(query)

        async with self._lock:
            cursor = await conn.execute(query, args)
            await conn.commit()

        return _status(query, cursor.rowcount)

    async def fetch(self, query: str, *args) -> List[dict]:
        """Fetch rows as list of dicts."""
        conn = await self._get_conn()
        query = self.format_query(query)

        async with self._lock:
            cursor = await conn.execute(query, args)
            rows = await cursor.fetchall()

        return [dict(row) for row in rows]

    async def fetchrow(self, query: str, *args) -> Optional[dict]:
        """Fetch single row as dict."""
        conn = await self._get_conn()
        query = self.format_query(query)

        async with self._lock:
            cursor = await conn.execute(query, args)
            row = await cursor.fetchone()

        return dict(row) if row else None

    async def fetchval(self, query: str, *args) -> Any:
        """Fetch single value."""
        conn = await self._get_conn()
        query = self.format_query(query)

        async with self._lock:
            cursor = await conn.execute(query, args)
            row = await cursor.fetchone()

        if row:
            return row[0]
        return None

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SQLiteTransaction]:
        """Run statements in one BEGIN IMMEDIATE ... COMMIT block."""
        conn = await self._get_conn()

        async with self._lock:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield SQLiteTransaction(self, conn)
            except BaseException:
                await conn.rollback()
                raise
            else:
                await conn.commit()

    @property
    def supports_arrays(self) -> bool:
        """SQLite doesn't support native arrays (use JSON)."""
        return False

    @property
    def placeholder_style(self) -> str:
        """SQLite uses ? style placeholders."""
        return "qmark"

    @property
    def lower_function(self) -> str:
        # built-in LOWER only folds ASCII
        return "unicode_lower"
