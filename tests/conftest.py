"""
Pytest configuration and fixtures for upkeep tests.
"""

import pytest
import sys
import tempfile
from datetime import date
from pathlib import Path

# Add packages to path for testing
packages_dir = Path(__file__).parent.parent / "packages"
sys.path.insert(0, str(packages_dir / "upkeep-core"))


class FixedClock:
    """Stand-in for the server clock that tests can move forward."""

    def __init__(self, today: date):
        self.current = today

    def __call__(self) -> date:
        return self.current

    def advance(self, days: int) -> date:
        from upkeep.dates import add_days

        self.current = add_days(self.current, days)
        return self.current


@pytest.fixture
def clock():
    """Server clock pinned to 2024-01-01."""
    return FixedClock(date(2024, 1, 1))


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / ".upkeep"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
async def sqlite_adapter():
    """A migrated SQLite database in a temporary directory."""
    from upkeep.db.schema import run_migrations
    from upkeep.db.sqlite import SQLiteAdapter

    with tempfile.TemporaryDirectory() as tmpdir:
        adapter = SQLiteAdapter(str(Path(tmpdir) / "test.db"))
        await adapter.connect()
        await run_migrations(adapter)

        yield adapter

        await adapter.close()


@pytest.fixture
def upkeep_config():
    """Default configuration, independent of ~/.upkeep."""
    from upkeep.config import UpkeepConfig

    return UpkeepConfig()


@pytest.fixture
def task_service(sqlite_adapter, upkeep_config, clock):
    from upkeep.services.tasks import TaskService

    return TaskService(adapter=sqlite_adapter, config=upkeep_config, today=clock)


@pytest.fixture
def product_service(sqlite_adapter, upkeep_config, clock):
    from upkeep.services.products import ProductService

    return ProductService(adapter=sqlite_adapter, config=upkeep_config, today=clock)


@pytest.fixture
def calendar_service(sqlite_adapter, upkeep_config, clock):
    from upkeep.services.calendar import CalendarService

    return CalendarService(adapter=sqlite_adapter, config=upkeep_config, today=clock)


@pytest.fixture
def action_service(sqlite_adapter, upkeep_config, clock):
    from upkeep.services.actions import ActionLogService

    return ActionLogService(adapter=sqlite_adapter, config=upkeep_config, today=clock)


@pytest.fixture
async def product(product_service):
    """A product owned by alice."""
    from upkeep.models.commands import CreateProductCommand

    return await product_service.create_product(
        "alice", CreateProductCommand(name="Lawn Mower", category="garden")
    )


@pytest.fixture
def interval_command():
    """Every 30 days, last done on 2024-01-01."""
    from upkeep.models.commands import CreateTaskCommand

    def make(name="Change oil", frequency=30, last=date(2024, 1, 1)):
        return CreateTaskCommand(
            task_name=name,
            is_recurring=True,
            recurring_type="byLastMaintenance",
            frequency=frequency,
            last_maintenance=last,
        )

    return make


@pytest.fixture
def window_command():
    """One-time task due inside a window."""
    from upkeep.models.commands import CreateTaskCommand
    from upkeep.models.task import MaintenanceWindow

    def make(name="Sharpen blade", start=date(2024, 1, 10), end=date(2024, 1, 20)):
        return CreateTaskCommand(
            task_name=name,
            maintenance_window=MaintenanceWindow(start_date=start, end_date=end),
        )

    return make
