#!/usr/bin/env python3
"""
paths.py
-------------------
Path constants for the Momentum journal storage.

All paths are Path objects resolved at import time. User data lives under
a single data directory, which defaults to ``./data`` and can be moved with
the ``MOMENTUM_DATA_DIR`` environment variable:

    DATA_DIR/
    ├── momentum.db    # Relational index (entries, versions, metadata)
    ├── storage/       # Mirrored markdown copies (entries/<id>.md)
    └── logs/          # Application logs

Package-internal paths (Alembic migrations) are resolved relative to this
file.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import os
from pathlib import Path


def _get_package_root() -> Path:
    """
    Determine the installed package directory.

    Assumes this file is at PACKAGE/core/paths.py.

    Returns:
        Path object for the momentum package
    """
    return Path(__file__).resolve().parent.parent


def _get_data_dir() -> Path:
    """Resolve the user data directory from the environment."""
    env_value = os.environ.get("MOMENTUM_DATA_DIR")
    if env_value:
        return Path(env_value).expanduser().resolve()
    return (Path.cwd() / "data").resolve()


# ----- Package -----
PACKAGE_DIR: Path = _get_package_root()
MIGRATIONS_DIR = PACKAGE_DIR / "migrations"

# ----- User data -----
DATA_DIR: Path = _get_data_dir()
DB_FILENAME = "momentum.db"
DB_PATH = DATA_DIR / DB_FILENAME
STORAGE_DIR = DATA_DIR / "storage"
LOG_DIR = DATA_DIR / "logs"

# ----- Mirror layout -----
ENTRIES_SUBDIR = "entries"
MIRROR_SUFFIX = ".md"
