"""
Enumeration Types
------------------

Enum classes for the Momentum index models.

Enums:
    - ChangeType: Why a version was recorded (create, update)
    - DiffOperation: Kind of text change operation (insert, delete, replace)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from enum import Enum
from typing import List


class ChangeType(str, Enum):
    """
    Enumeration of version change types.
    - CREATE: First version of an entry (exactly one, always the earliest)
    - UPDATE: Any later content write, restores included
    """

    CREATE = "create"
    UPDATE = "update"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all available change type choices."""
        return [change_type.value for change_type in cls]


class DiffOperation(str, Enum):
    """
    Enumeration of text change operations produced by the version engine.
    - INSERT: Insert content at a position
    - DELETE: Remove ``length`` characters at a position
    - REPLACE: Replace ``length`` characters at a position with content
    """

    INSERT = "insert"
    DELETE = "delete"
    REPLACE = "replace"

    @classmethod
    def choices(cls) -> List[str]:
        """Get all available diff operation choices."""
        return [operation.value for operation in cls]
