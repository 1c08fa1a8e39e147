#!/usr/bin/env python3
"""
exceptions.py
--------------------
Custom exception classes for the Momentum journal storage core.

This module defines the hierarchy of exceptions raised by the index store,
the content store and the storage coordinator. Every exception carries a
``context`` dictionary (operation name, entry/version id, path) so callers
can log and report failures precisely.

Exception Hierarchy:
    Exception (built-in)
    └── MomentumError - Base for every error raised by the core
        ├── DatabaseError - Base for relational index errors
        │   ├── NotFoundError - Referenced entry/version/file does not exist
        │   ├── ConflictError - Identifier collision on create
        │   └── TransactionError - Atomic unit of work failed before commit
        ├── ContentStoreError - Base for mirrored file errors
        │   └── MirrorWriteError - Post-commit mirror write failed (recoverable)
        └── ValidationError - Invalid input (content type, unsafe path, config)

Usage:
    from momentum.core.exceptions import NotFoundError, TransactionError

    try:
        coordinator.update_entry(entry_id, content)
    except NotFoundError as e:
        logger.log_warning(f"Unknown entry: {e}", e.context)
    except TransactionError as e:
        # Nothing was persisted, safe to retry
        ...
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import Any, Dict


class MomentumError(Exception):
    """
    Base exception for the storage core.

    Attributes:
        message: Error description
        context: Structured details (operation, entry_id, version_id, path)
    """

    def __init__(self, message: str = "", **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {
            key: value for key, value in context.items() if value is not None
        }

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class DatabaseError(MomentumError):
    """
    Base exception for relational index errors.

    Catch this to handle any index failure, or catch the specific
    subclasses for more granular handling.

    See Also:
        NotFoundError, ConflictError, TransactionError
    """

    pass


class NotFoundError(DatabaseError):
    """
    A referenced entry, version or mirrored file does not exist.

    Surfaced directly to the caller as a client-side condition and never
    retried automatically.

    Examples:
        >>> raise NotFoundError("Entry not found", entry_id="0f1c...")
        >>> raise NotFoundError("Mirror file not found", path="entries/x.md")
    """

    pass


class ConflictError(DatabaseError):
    """
    An entry id already exists on create.

    Identifiers are generated to be globally unique, so a collision
    points at a generator defect and is treated as fatal.
    """

    pass


class TransactionError(DatabaseError):
    """
    The atomic unit of work failed before commit.

    No rows were persisted; the operation is safe to retry.
    """

    pass


class ContentStoreError(MomentumError):
    """Base exception for mirrored file operations."""

    pass


class MirrorWriteError(ContentStoreError):
    """
    The content-store write after a committed index transaction failed.

    The logical operation already succeeded (the index is authoritative).
    The coordinator logs and records this error for out-of-band repair
    instead of raising it.

    Examples:
        >>> MirrorWriteError("Mirror write failed", entry_id="...", path="entries/x.md", attempts=3)
    """

    pass


class ValidationError(MomentumError):
    """
    Input validation failure.

    Raised for non-text entry content, unsafe mirror paths (absolute or
    escaping the storage root) and malformed configuration files.
    """

    pass
