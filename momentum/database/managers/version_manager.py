#!/usr/bin/env python3
"""
version_manager.py
--------------------
Manages the append-only EntryVersion log and the EntryDiff rows recorded
with each version.

Versions are never updated or deleted individually; the only removal path
is the entry cascade in EntryManager.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import timedelta
from typing import Iterable, List, Optional

# --- Third party imports ---
from sqlalchemy import func, select

# --- Local imports ---
from momentum.core.exceptions import NotFoundError, ValidationError
from momentum.core.validators import DataValidator
from momentum.database.decorators import DatabaseOperation
from momentum.database.models import (
    ChangeType,
    DiffOperation,
    EntryDiff,
    EntryVersion,
    JournalEntry,
    as_utc,
    utc_now,
)
from .base_manager import BaseManager, new_id


class VersionManager(BaseManager):
    """Manages EntryVersion and EntryDiff rows within one session."""

    def append(
        self,
        entry_id: str,
        content: str,
        change_type: ChangeType,
        diff: Optional[str] = None,
        changes: Optional[Iterable] = None,
    ) -> EntryVersion:
        """
        Append a new version to an entry.

        Always assigns a fresh id, the current timestamp and the next
        per-entry sequence number.

        Args:
            entry_id: Owning entry
            content: Full snapshot of the text
            change_type: create or update
            diff: Optional human/debug description
            changes: Optional change operations (objects with
                operation/position/content/length) stored as EntryDiff rows

        Raises:
            NotFoundError: If the entry does not exist
            ValidationError: If change_type does not fit the history (a
                second create, or an update before the create)
        """
        DataValidator.validate_content(content)
        change_type = ChangeType(change_type)

        with DatabaseOperation(
            self.logger, "append_version", entry_id=entry_id, change_type=change_type.value
        ):
            if self.session.get(JournalEntry, entry_id) is None:
                raise NotFoundError(
                    "Entry not found", operation="append_version", entry_id=entry_id
                )

            last = self.session.execute(
                select(EntryVersion.sequence, EntryVersion.timestamp)
                .where(EntryVersion.entry_id == entry_id)
                .order_by(EntryVersion.sequence.desc())
                .limit(1)
            ).first()

            # Exactly one create version per entry, always the first
            if change_type is ChangeType.CREATE and last is not None:
                raise ValidationError(
                    "Entry already has a create version",
                    operation="append_version",
                    entry_id=entry_id,
                )
            if change_type is ChangeType.UPDATE and last is None:
                raise ValidationError(
                    "First version of an entry must be a create version",
                    operation="append_version",
                    entry_id=entry_id,
                )

            # Timestamps strictly increase within an entry
            timestamp = utc_now()
            if last is not None and as_utc(last.timestamp) >= timestamp:
                timestamp = as_utc(last.timestamp) + timedelta(microseconds=1)

            version = EntryVersion(
                id=new_id(),
                entry_id=entry_id,
                sequence=(last.sequence if last is not None else 0) + 1,
                content=content,
                change_type=change_type,
                diff=diff,
                timestamp=timestamp,
            )
            self.session.add(version)
            self.session.flush()

            for index, change in enumerate(changes or []):
                self.session.add(
                    EntryDiff(
                        id=new_id(),
                        version_id=version.id,
                        position_index=index,
                        operation=DiffOperation(change.operation),
                        position=change.position,
                        content=change.content,
                        length=change.length,
                    )
                )
            self.session.flush()
            return version

    def get(self, version_id: str) -> EntryVersion:
        """
        Retrieve a version.

        Raises:
            NotFoundError: If no version has this id
        """
        version = self.session.get(EntryVersion, version_id)
        if version is None:
            raise NotFoundError(
                "Version not found", operation="get_version", version_id=version_id
            )
        return version

    def for_entry(self, entry_id: str, order: str = "desc") -> List[EntryVersion]:
        """
        Versions of an entry ordered by timestamp, ties by insertion order.

        Unknown entries yield an empty list.

        Args:
            entry_id: Owning entry
            order: 'desc' (newest first) or 'asc' (oldest first)
        """
        if order not in ("asc", "desc"):
            raise ValueError(f"order must be 'asc' or 'desc', got {order!r}")

        if order == "desc":
            ordering = (EntryVersion.timestamp.desc(), EntryVersion.sequence.desc())
        else:
            ordering = (EntryVersion.timestamp.asc(), EntryVersion.sequence.asc())

        statement = (
            select(EntryVersion).where(EntryVersion.entry_id == entry_id).order_by(*ordering)
        )
        return list(self.session.scalars(statement))

    def latest(self, entry_id: str) -> Optional[EntryVersion]:
        """Most recent version of an entry, if any."""
        versions = self.for_entry(entry_id, order="desc")
        return versions[0] if versions else None

    def count(self, entry_id: str) -> int:
        return self.session.scalar(
            select(func.count(EntryVersion.id)).where(EntryVersion.entry_id == entry_id)
        ) or 0

    def diffs(self, version_id: str) -> List[EntryDiff]:
        """
        Stored change operations of a version, in sequence order.

        Raises:
            NotFoundError: If the version does not exist
        """
        self.get(version_id)
        statement = (
            select(EntryDiff)
            .where(EntryDiff.version_id == version_id)
            .order_by(EntryDiff.position_index)
        )
        return list(self.session.scalars(statement))
