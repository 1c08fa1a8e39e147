#!/usr/bin/env python3
"""
config.py
---------
Runtime configuration for the storage core.

StorageConfig gathers every tunable of the subsystem in one dataclass.
Defaults come from ``momentum.core.paths``; an optional YAML file can
override any field:

    # momentum.yaml
    data_dir: ~/journal
    preview_length: 120
    mirror_retries: 3
    search_case_sensitive: false

Usage:
    from momentum.core.config import load_config

    config = load_config(Path("momentum.yaml"))
    coordinator = StorageCoordinator.from_config(config)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

# --- Third party imports ---
import yaml

# --- Local imports ---
from momentum.core import paths
from momentum.core.exceptions import ValidationError


@dataclass
class StorageConfig:
    """
    Configuration for an IndexStore/ContentStore/StorageCoordinator stack.

    Attributes:
        db_path: SQLite database file for the relational index
        storage_dir: Root directory of the mirrored markdown files
        log_dir: Directory for log files (None disables file logging)
        migrations_dir: Alembic script location
        preview_length: Characters of content returned by list/search
        mirror_retries: Extra attempts for a failed mirror write
        search_case_sensitive: Substring search mode
    """

    db_path: Path = field(default_factory=lambda: paths.DB_PATH)
    storage_dir: Path = field(default_factory=lambda: paths.STORAGE_DIR)
    log_dir: Optional[Path] = field(default_factory=lambda: paths.LOG_DIR)
    migrations_dir: Path = field(default_factory=lambda: paths.MIGRATIONS_DIR)
    preview_length: int = 100
    mirror_retries: int = 2
    search_case_sensitive: bool = False

    def __post_init__(self) -> None:
        """Normalize paths and validate numeric settings."""
        self.db_path = Path(self.db_path).expanduser()
        self.storage_dir = Path(self.storage_dir).expanduser()
        self.migrations_dir = Path(self.migrations_dir).expanduser()
        if self.log_dir is not None:
            self.log_dir = Path(self.log_dir).expanduser()

        if self.preview_length <= 0:
            raise ValidationError(
                f"preview_length must be positive, got {self.preview_length}"
            )
        if self.mirror_retries < 0:
            raise ValidationError(
                f"mirror_retries must be non-negative, got {self.mirror_retries}"
            )

    @classmethod
    def for_data_dir(cls, data_dir: Union[str, Path], **overrides: Any) -> "StorageConfig":
        """Build a config with every user path placed under ``data_dir``."""
        root = Path(data_dir).expanduser()
        values: Dict[str, Any] = {
            "db_path": root / paths.DB_FILENAME,
            "storage_dir": root / "storage",
            "log_dir": root / "logs",
        }
        values.update(overrides)
        return cls(**values)


def load_config(
    config_path: Optional[Union[str, Path]] = None, **overrides: Any
) -> StorageConfig:
    """
    Load configuration from an optional YAML file.

    A ``data_dir`` key relocates db_path, storage_dir and log_dir together;
    explicit keys win over it. Keyword overrides win over the file.

    Args:
        config_path: YAML file to read (missing path -> defaults)
        **overrides: Field values taking precedence over the file

    Returns:
        StorageConfig instance

    Raises:
        ValidationError: If the file is not a mapping or has unknown keys
    """
    data: Dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path).expanduser()
        if path.exists():
            try:
                loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
            except yaml.YAMLError as e:
                raise ValidationError(f"Invalid YAML in config: {e}", path=str(path))
            if loaded is None:
                loaded = {}
            if not isinstance(loaded, dict):
                raise ValidationError("Config file must contain a mapping", path=str(path))
            data.update(loaded)

    data.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(StorageConfig)} | {"data_dir"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValidationError(f"Unknown config keys: {', '.join(unknown)}")

    data_dir = data.pop("data_dir", None)
    if data_dir is not None:
        return StorageConfig.for_data_dir(data_dir, **data)
    return StorageConfig(**data)
