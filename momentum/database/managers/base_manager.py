#!/usr/bin/env python3
"""
base_manager.py
--------------------
Base manager shared by the per-table managers.

All index managers are bound to one SQLAlchemy session, so every manager
participating in a logical operation shares the same atomic unit of work.
Managers flush, they never commit: committing (and retrying on lock
contention) belongs to the enclosing ``IndexStore.transaction()``.

Usage:
    class VersionManager(BaseManager):
        def append(self, entry_id, content, change_type):
            with DatabaseOperation(self.logger, "append_version", entry_id=entry_id):
                ...
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import uuid
from abc import ABC
from typing import Optional

# --- Third party imports ---
from sqlalchemy.orm import Session

# --- Local imports ---
from momentum.core.logging_manager import MomentumLogger


def new_id() -> str:
    """Generate a globally unique identifier."""
    return str(uuid.uuid4())


class BaseManager(ABC):
    """
    Abstract base manager bound to one session.

    Attributes:
        session: SQLAlchemy session for database operations
        logger: Optional logger for operation tracking
    """

    def __init__(self, session: Session, logger: Optional[MomentumLogger] = None):
        """
        Initialize the base manager.

        Args:
            session: SQLAlchemy session
            logger: Optional logger for operation tracking
        """
        self.session = session
        self.logger = logger
