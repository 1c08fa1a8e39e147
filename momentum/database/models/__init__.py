"""
Database Models Package
------------------------

SQLAlchemy ORM models for the Momentum index database.

- base: Base class and timestamp factory
- enums: Enumeration types
- core: JournalEntry, EntryVersion, EntryMetadata, EntryDiff

Usage:
    from momentum.database.models import JournalEntry, EntryVersion
"""
# Base classes
from .base import Base, as_utc, utc_now

# Enumerations
from .enums import ChangeType, DiffOperation

# Core models
from .core import EntryDiff, EntryMetadata, EntryVersion, JournalEntry

__all__ = [
    "Base",
    "utc_now",
    "as_utc",
    "ChangeType",
    "DiffOperation",
    "JournalEntry",
    "EntryVersion",
    "EntryMetadata",
    "EntryDiff",
]
