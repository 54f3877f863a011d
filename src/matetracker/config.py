"""Configuration loading from environment variables and matetracker.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_DEFAULT_DATA_DIR = Path.home() / ".matetracker" / "data"
_CONFIG_FILENAME = "matetracker.toml"


@dataclass
class CapacityConfig:
    """Per-collection record ceilings."""

    max_users: int = 20
    max_items: int = 50
    max_consumption: int = 500
    max_payments: int = 200


@dataclass
class StorageConfig:
    """Where and how the state document is persisted."""

    data_dir: Path = _DEFAULT_DATA_DIR
    key: str = "state"
    size_warn_bytes: int = 15000
    persist_retries: int = 1


@dataclass
class InventoryConfig:
    """Defaults used by the service layer and reports."""

    default_initial_stock: int = 24
    low_stock_threshold: int = 6


@dataclass
class TrackerConfig:
    """Top-level Mate Tracker configuration."""

    capacity: CapacityConfig = field(default_factory=CapacityConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> TrackerConfig:
    """Load configuration from environment variables and optional matetracker.toml.

    Priority: environment variables > matetracker.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.matetracker/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".matetracker" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    capacity_data = file_data.get("capacity", {})
    storage_data = file_data.get("storage", {})
    inventory_data = file_data.get("inventory", {})

    config = TrackerConfig(
        capacity=CapacityConfig(
            max_users=int(os.getenv("MATE_MAX_USERS", capacity_data.get("max_users", 20))),
            max_items=int(os.getenv("MATE_MAX_ITEMS", capacity_data.get("max_items", 50))),
            max_consumption=int(
                os.getenv("MATE_MAX_CONSUMPTION", capacity_data.get("max_consumption", 500))
            ),
            max_payments=int(
                os.getenv("MATE_MAX_PAYMENTS", capacity_data.get("max_payments", 200))
            ),
        ),
        storage=StorageConfig(
            data_dir=Path(
                os.getenv("MATE_DATA_DIR", storage_data.get("data_dir", str(_DEFAULT_DATA_DIR)))
            ).expanduser(),
            key=storage_data.get("key", "state"),
            size_warn_bytes=int(storage_data.get("size_warn_bytes", 15000)),
            persist_retries=int(
                os.getenv("MATE_PERSIST_RETRIES", storage_data.get("persist_retries", 1))
            ),
        ),
        inventory=InventoryConfig(
            default_initial_stock=int(inventory_data.get("default_initial_stock", 24)),
            low_stock_threshold=int(inventory_data.get("low_stock_threshold", 6)),
        ),
        log_level=os.getenv("MATE_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
    return config
