#!/usr/bin/env python3
"""
managers package
--------------------
Per-table managers for the Momentum index database.

Each manager is bound to one session and handles one table family,
inheriting from BaseManager.

Available Managers:
    BaseManager: Abstract base class bound to a session
    EntryManager: JournalEntry rows, list/search projections, cascade delete
    VersionManager: Append-only EntryVersion log and EntryDiff rows
    MetadataManager: One EntryMetadata row per entry

Usage:
    from momentum.database.managers import EntryManager, VersionManager

    entries = EntryManager(session, logger)
    versions = VersionManager(session, logger)
"""
from .base_manager import BaseManager, new_id
from .entry_manager import EntryManager
from .version_manager import VersionManager
from .metadata_manager import MetadataManager

__all__ = [
    "BaseManager",
    "EntryManager",
    "VersionManager",
    "MetadataManager",
    "new_id",
]
