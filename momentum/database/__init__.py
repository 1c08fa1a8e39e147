#!/usr/bin/env python3
"""
Momentum Database Package
-------------------------
Relational index of journal entries, their version history and derived
metadata.

- manager: IndexStore (engine, sessions, migrations, record API)
- managers: Per-table managers bound to one session
- models: SQLAlchemy ORM models
- records: Plain records returned to callers
"""

from .manager import IndexStore, IndexTransaction, is_lock_error
from .records import DiffRecord, EntryRecord, EntrySummary, MetadataRecord, VersionRecord
from .decorators import DatabaseOperation, handle_db_errors, log_database_operation

__all__ = [
    # Main store
    "IndexStore",
    "IndexTransaction",
    "is_lock_error",
    # Records
    "EntryRecord",
    "EntrySummary",
    "VersionRecord",
    "MetadataRecord",
    "DiffRecord",
    # Decorators
    "DatabaseOperation",
    "handle_db_errors",
    "log_database_operation",
]
