"""
Upkeep Configuration

Loads settings from ~/.upkeep/config.yaml with environment variable overrides.
Supports both PostgreSQL and SQLite database configurations.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional
import os
import logging

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".upkeep"
CONFIG_FILE = CONFIG_DIR / "config.yaml"


@dataclass
class DatabaseConfig:
    """Database configuration settings."""

    type: str = "sqlite"  # "sqlite" or "postgres"
    sqlite_path: str = "~/.upkeep/upkeep.db"
    postgres_url: Optional[str] = None


@dataclass
class SchedulingConfig:
    """
    Validation policy and paging defaults for the scheduling engine.

    Attributes:
        creation_horizon_years: How far ahead creation dates may lie
        task_name_max_length: Maximum task name length
        description_max_length: Maximum task description length
        max_frequency_days: Upper bound for a maintenance interval
        default_page_size: Page size used when a query gives none
        max_page_size: Largest page a query may request
    """

    creation_horizon_years: int = 2
    task_name_max_length: int = 25
    description_max_length: int = 200
    max_frequency_days: int = 365
    default_page_size: int = 10
    max_page_size: int = 100


@dataclass
class UpkeepConfig:
    """
    Complete Upkeep configuration.

    Loaded from ~/.upkeep/config.yaml with environment variable overrides.
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)

    def to_dict(self) -> dict:
        """Convert to dictionary for display (masks secrets)."""
        result = asdict(self)

        # Mask database URL
        if result.get("database", {}).get("postgres_url"):
            url = result["database"]["postgres_url"]
            result["database"]["postgres_url"] = url[:30] + "..." if len(url) > 30 else "***"

        return result


def _parse_database_config(data: dict) -> DatabaseConfig:
    """Parse database configuration from YAML data."""
    db_data = data.get("database", {})

    db_type = db_data.get("type", "sqlite")

    sqlite_config = db_data.get("sqlite", {})
    sqlite_path = sqlite_config.get("path", "~/.upkeep/upkeep.db")

    postgres_config = db_data.get("postgres", {})
    postgres_url = postgres_config.get("url")

    # URL may live in an environment variable named by the config
    url_env = postgres_config.get("url_env")
    if url_env and not postgres_url:
        postgres_url = os.environ.get(url_env)

    return DatabaseConfig(
        type=db_type,
        sqlite_path=sqlite_path,
        postgres_url=postgres_url,
    )


def _parse_scheduling_config(data: dict) -> SchedulingConfig:
    """Parse scheduling policy from YAML data, ignoring unknown keys."""
    sched_data = data.get("scheduling", {}) or {}
    defaults = SchedulingConfig()

    values = {}
    for name in asdict(defaults):
        if name in sched_data:
            try:
                values[name] = int(sched_data[name])
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-integer scheduling.{name}: {sched_data[name]!r}")

    return SchedulingConfig(**values)


def load_config(config_path: Optional[Path] = None) -> UpkeepConfig:
    """
    Load configuration from file with environment variable overrides.

    Args:
        config_path: Optional path to config file. Defaults to ~/.upkeep/config.yaml

    Returns:
        UpkeepConfig instance
    """
    config_file = config_path or CONFIG_FILE
    config = UpkeepConfig()

    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f) or {}

            config.database = _parse_database_config(data)
            config.scheduling = _parse_scheduling_config(data)

        except yaml.YAMLError as e:
            logger.warning(f"Could not parse config file at {config_file}: {e}")
        except OSError as e:
            logger.warning(f"Could not read config file at {config_file}: {e}")

    # Environment variable overrides
    if os.environ.get("UPKEEP_DATABASE_URL"):
        config.database.type = "postgres"
        config.database.postgres_url = os.environ["UPKEEP_DATABASE_URL"]

    if os.environ.get("UPKEEP_SQLITE_PATH"):
        config.database.sqlite_path = os.environ["UPKEEP_SQLITE_PATH"]

    horizon = os.environ.get("UPKEEP_CREATION_HORIZON_YEARS")
    if horizon:
        try:
            config.scheduling.creation_horizon_years = int(horizon)
        except ValueError:
            logger.warning(f"Ignoring non-integer UPKEEP_CREATION_HORIZON_YEARS: {horizon!r}")

    return config


def save_config(config: UpkeepConfig, config_path: Optional[Path] = None) -> None:
    """
    Save configuration to file.

    Args:
        config: UpkeepConfig instance to save
        config_path: Optional path to config file. Defaults to ~/.upkeep/config.yaml
    """
    config_file = config_path or CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "database": {
            "type": config.database.type,
        },
        "scheduling": asdict(config.scheduling),
    }

    if config.database.type == "sqlite":
        data["database"]["sqlite"] = {"path": config.database.sqlite_path}
    elif config.database.postgres_url:
        data["database"]["postgres"] = {"url": config.database.postgres_url}

    with open(config_file, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    # Secure permissions (readable only by owner)
    config_file.chmod(0o600)

    logger.info(f"Configuration saved to {config_file}")


# Cached config instance
_config: Optional[UpkeepConfig] = None


def get_config() -> UpkeepConfig:
    """Get cached config instance, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> UpkeepConfig:
    """Force reload config from file."""
    global _config
    _config = load_config()
    return _config
