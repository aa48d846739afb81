"""
Tests for SQLite database adapter, migrations and the adapter factory.
"""

import asyncio
import pytest
import tempfile
from pathlib import Path


@pytest.fixture
async def raw_adapter():
    """A temporary SQLite adapter with a scratch table."""
    from upkeep.db.sqlite import SQLiteAdapter

    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        adapter = SQLiteAdapter(str(db_path))
        await adapter.connect()

        await adapter.execute("""
            CREATE TABLE test_items (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                value INTEGER
            )
        """)

        yield adapter

        await adapter.close()


@pytest.mark.asyncio
async def test_sqlite_connect(raw_adapter):
    """Test SQLite connection."""
    result = await raw_adapter.fetchval("SELECT 1")
    assert result == 1


@pytest.mark.asyncio
async def test_sqlite_execute_status(raw_adapter):
    result = await raw_adapter.execute(
        "INSERT INTO test_items (id, name, value) VALUES ($1, $2, $3)",
        "test-1", "Test Item", 42,
    )
    assert result == "INSERT 0 1"

    result = await raw_adapter.execute("DELETE FROM test_items WHERE id = $1", "missing")
    assert result == "DELETE 0"


@pytest.mark.asyncio
async def test_sqlite_fetch(raw_adapter):
    """Test fetching multiple rows."""
    await raw_adapter.execute(
        "INSERT INTO test_items (id, name, value) VALUES ($1, $2, $3)",
        "item-1", "Item 1", 10,
    )
    await raw_adapter.execute(
        "INSERT INTO test_items (id, name, value) VALUES ($1, $2, $3)",
        "item-2", "Item 2", 20,
    )

    rows = await raw_adapter.fetch("SELECT * FROM test_items ORDER BY name")

    assert [row["name"] for row in rows] == ["Item 1", "Item 2"]


@pytest.mark.asyncio
async def test_sqlite_fetchrow_not_found(raw_adapter):
    """Test fetchrow returns None when not found."""
    row = await raw_adapter.fetchrow("SELECT * FROM test_items WHERE id = $1", "nonexistent")

    assert row is None


@pytest.mark.asyncio
async def test_transaction_commits(raw_adapter):
    async with raw_adapter.transaction() as tx:
        await tx.execute("INSERT INTO test_items (id, name) VALUES ($1, $2)", "a", "A")
        await tx.execute("INSERT INTO test_items (id, name) VALUES ($1, $2)", "b", "B")
        assert await tx.fetchval("SELECT COUNT(*) FROM test_items") == 2

    assert await raw_adapter.fetchval("SELECT COUNT(*) FROM test_items") == 2


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(raw_adapter):
    with pytest.raises(RuntimeError):
        async with raw_adapter.transaction() as tx:
            await tx.execute("INSERT INTO test_items (id, name) VALUES ($1, $2)", "a", "A")
            raise RuntimeError("boom")

    assert await raw_adapter.fetchval("SELECT COUNT(*) FROM test_items") == 0


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_cancel(raw_adapter):
    started = asyncio.Event()

    async def slow_write():
        async with raw_adapter.transaction() as tx:
            await tx.execute("INSERT INTO test_items (id, name) VALUES ($1, $2)", "a", "A")
            started.set()
            await asyncio.sleep(10)

    writer = asyncio.create_task(slow_write())
    await started.wait()
    writer.cancel()
    with pytest.raises(asyncio.CancelledError):
        await writer

    assert await raw_adapter.fetchval("SELECT COUNT(*) FROM test_items") == 0


@pytest.mark.asyncio
async def test_concurrent_transactions_serialize(raw_adapter):
    """Read-modify-write inside transactions never loses an update."""
    await raw_adapter.execute(
        "INSERT INTO test_items (id, name, value) VALUES ($1, $2, $3)", "counter", "c", 0
    )

    async def increment():
        async with raw_adapter.transaction() as tx:
            value = await tx.fetchval("SELECT value FROM test_items WHERE id = $1", "counter")
            await asyncio.sleep(0)
            await tx.execute("UPDATE test_items SET value = $1 WHERE id = $2", value + 1, "counter")

    await asyncio.gather(*(increment() for _ in range(10)))

    assert await raw_adapter.fetchval("SELECT value FROM test_items WHERE id = $1", "counter") == 10


@pytest.mark.asyncio
async def test_sqlite_features(raw_adapter):
    """Test feature detection."""
    assert raw_adapter.supports_arrays is False
    assert raw_adapter.placeholder_style == "qmark"
    assert raw_adapter.row_lock_clause == ""
    assert raw_adapter.table("tasks") == "tasks"
    assert raw_adapter.lower_function == "unicode_lower"


@pytest.mark.asyncio
async def test_sqlite_unicode_lower(raw_adapter):
    lower = raw_adapter.lower_function

    assert await raw_adapter.fetchval(f"SELECT {lower}($1)", "ÖLWECHSEL") == "ölwechsel"
    assert await raw_adapter.fetchval(f"SELECT {lower}(NULL)") is None


@pytest.mark.asyncio
async def test_snapshot_reads_together(raw_adapter):
    await raw_adapter.execute("INSERT INTO test_items (id, name) VALUES ($1, $2)", "a", "A")

    async with raw_adapter.snapshot() as tx:
        total = await tx.fetchval("SELECT COUNT(*) FROM test_items")
        rows = await tx.fetch("SELECT * FROM test_items")

    assert total == len(rows) == 1


@pytest.mark.asyncio
async def test_sqlite_format_query(raw_adapter):
    """Test query placeholder conversion."""
    sqlite_query = raw_adapter.format_query("SELECT * FROM items WHERE id = $1 AND name = $12")

    assert sqlite_query == "SELECT * FROM items WHERE id = ? AND name = ?"


class TestMigrations:
    """Tests for run_migrations()."""

    @pytest.mark.asyncio
    async def test_migrations_are_idempotent(self, raw_adapter):
        from upkeep.db.schema import run_migrations

        first = await run_migrations(raw_adapter)
        second = await run_migrations(raw_adapter)

        assert first == ["001"]
        assert second == []

    @pytest.mark.asyncio
    async def test_tables_created(self, sqlite_adapter):
        rows = await sqlite_adapter.fetch(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        names = {row["name"] for row in rows}

        assert {"products", "tasks", "maintenance_actions", "schema_migrations"} <= names


class TestFactory:
    """Tests for the adapter factory."""

    def test_sqlite_from_config(self, tmp_path):
        from upkeep.config import UpkeepConfig
        from upkeep.db.factory import get_adapter, reset_adapter
        from upkeep.db.sqlite import SQLiteAdapter

        reset_adapter()
        config = UpkeepConfig()
        config.database.sqlite_path = str(tmp_path / "factory.db")
        try:
            adapter = get_adapter(config)

            assert isinstance(adapter, SQLiteAdapter)
            assert get_adapter() is adapter
        finally:
            reset_adapter()

    def test_postgres_without_url(self):
        from upkeep.config import UpkeepConfig
        from upkeep.db.factory import get_adapter, reset_adapter

        reset_adapter()
        config = UpkeepConfig()
        config.database.type = "postgres"

        with pytest.raises(ValueError):
            get_adapter(config)

    def test_unknown_type(self):
        from upkeep.config import UpkeepConfig
        from upkeep.db.factory import get_adapter, reset_adapter

        reset_adapter()
        config = UpkeepConfig()
        config.database.type = "oracle"

        with pytest.raises(ValueError):
            get_adapter(config)

    @pytest.mark.asyncio
    async def test_init_adapter_migrates(self, tmp_path):
        from upkeep.config import UpkeepConfig
        from upkeep.db.factory import close_adapter, init_adapter, reset_adapter

        reset_adapter()
        config = UpkeepConfig()
        config.database.sqlite_path = str(tmp_path / "init.db")

        adapter = await init_adapter(config)
        try:
            assert await adapter.fetchval("SELECT COUNT(*) FROM tasks") == 0
        finally:
            await close_adapter()
