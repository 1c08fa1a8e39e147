"""
Base Classes
------------

Foundational ORM classes for the Momentum index database.

Classes:
    - Base: Declarative base for all SQLAlchemy models
    - utc_now: Timestamp factory shared by every model
    - as_utc: Normalizer for datetimes read back from SQLite

This module provides the core infrastructure that other model modules build upon.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import datetime, timezone
from typing import Optional

# --- Third party ---
from sqlalchemy.orm import DeclarativeBase


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# --- Base ORM class ---
class Base(DeclarativeBase):
    """
    Base class for all ORM models.

    Serves as the declarative base for SQLAlchemy models and provides
    access to the metadata object for table creation and migrations.
    """

    pass


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes read back from SQLite.

    SQLite stores DateTime columns without an offset, so values written as
    aware UTC come back naive.
    """
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
