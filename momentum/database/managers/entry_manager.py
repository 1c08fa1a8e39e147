#!/usr/bin/env python3
"""
entry_manager.py
--------------------
Manages JournalEntry rows: insert, content updates, lookups, list/search
projections and the cascade delete of an entry with everything it owns.

Cascade order (one transaction, issued by the caller's session):
    1. entry_metadata row
    2. entry_diffs rows of the entry's versions
    3. entry_versions rows
    4. journal_entries row
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from datetime import datetime
from typing import Any, List, Optional

# --- Third party imports ---
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

# --- Local imports ---
from momentum.core.exceptions import ConflictError, NotFoundError
from momentum.core.validators import DataValidator
from momentum.database.decorators import DatabaseOperation
from momentum.database.models import (
    EntryDiff,
    EntryMetadata,
    EntryVersion,
    JournalEntry,
    as_utc,
    utc_now,
)
from momentum.database.records import EntrySummary
from momentum.utils.md import get_text_hash
from .base_manager import BaseManager

LIKE_ESCAPE = "\\"


def _escape_like(query: str) -> str:
    """Escape LIKE wildcards so the query matches literally."""
    return (
        query.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class EntryManager(BaseManager):
    """Manages JournalEntry rows within one session."""

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def exists(self, entry_id: str) -> bool:
        """Check whether an entry exists without raising."""
        return self.session.get(JournalEntry, entry_id) is not None

    def get(self, entry_id: str) -> JournalEntry:
        """
        Retrieve an entry.

        Raises:
            NotFoundError: If no entry has this id
        """
        entry = self.session.get(JournalEntry, entry_id)
        if entry is None:
            raise NotFoundError("Entry not found", operation="get_entry", entry_id=entry_id)
        return entry

    def _summary_query(self, preview_length: int):
        return (
            select(
                JournalEntry.id,
                JournalEntry.file_path,
                JournalEntry.created_at,
                JournalEntry.updated_at,
                func.substr(func.coalesce(JournalEntry.content, ""), 1, preview_length).label(
                    "content_preview"
                ),
                EntryMetadata.word_count,
                EntryMetadata.reading_time,
                EntryMetadata.tags,
                EntryMetadata.last_accessed,
            )
            .outerjoin(EntryMetadata, EntryMetadata.entry_id == JournalEntry.id)
            .order_by(JournalEntry.updated_at.desc(), JournalEntry.id)
        )

    @staticmethod
    def _to_summary(row: Any) -> EntrySummary:
        return EntrySummary(
            id=row.id,
            file_path=row.file_path,
            created_at=as_utc(row.created_at),
            updated_at=as_utc(row.updated_at),
            content_preview=row.content_preview or "",
            word_count=row.word_count or 0,
            reading_time=row.reading_time or 0.0,
            tags=list(row.tags or []),
            last_accessed=as_utc(row.last_accessed),
        )

    def list_summaries(self, preview_length: int = 100) -> List[EntrySummary]:
        """All entries, most recently updated first, with bounded previews."""
        rows = self.session.execute(self._summary_query(preview_length)).all()
        return [self._to_summary(row) for row in rows]

    def search_summaries(
        self,
        query: str,
        preview_length: int = 100,
        case_sensitive: bool = False,
    ) -> List[EntrySummary]:
        """
        Substring search over the full content.

        Case-insensitive by default (SQLite LIKE folds ASCII case);
        ``case_sensitive=True`` uses ``instr``.
        """
        statement = self._summary_query(preview_length)
        if case_sensitive:
            statement = statement.where(func.instr(JournalEntry.content, query) > 0)
        else:
            statement = statement.where(
                JournalEntry.content.like(f"%{_escape_like(query)}%", escape=LIKE_ESCAPE)
            )
        rows = self.session.execute(statement).all()
        return [self._to_summary(row) for row in rows]

    def all_ids(self) -> List[str]:
        return list(self.session.scalars(select(JournalEntry.id).order_by(JournalEntry.id)))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def insert(self, entry_id: str, content: str, file_path: str) -> JournalEntry:
        """
        Insert a new entry row.

        Raises:
            ConflictError: If the id (or its file path) already exists
        """
        entry_id = DataValidator.validate_identifier(entry_id)
        DataValidator.validate_content(content)

        with DatabaseOperation(self.logger, "insert_entry", entry_id=entry_id):
            if self.exists(entry_id):
                raise ConflictError(
                    "Entry id already exists", operation="insert_entry", entry_id=entry_id
                )

            now = utc_now()
            entry = JournalEntry(
                id=entry_id,
                content=content,
                file_path=file_path,
                content_hash=get_text_hash(content),
                created_at=now,
                updated_at=now,
            )
            self.session.add(entry)
            try:
                self.session.flush()
            except IntegrityError as e:
                raise ConflictError(
                    f"Entry could not be inserted: {e.orig}",
                    operation="insert_entry",
                    entry_id=entry_id,
                    path=file_path,
                ) from e
            return entry

    def update_content(
        self, entry_id: str, content: str, updated_at: Optional[datetime] = None
    ) -> JournalEntry:
        """
        Replace the current content and refresh ``updated_at``.

        Raises:
            NotFoundError: If the entry does not exist
        """
        DataValidator.validate_content(content)

        with DatabaseOperation(self.logger, "update_entry_content", entry_id=entry_id):
            entry = self.get(entry_id)
            entry.content = content
            entry.content_hash = get_text_hash(content)
            entry.updated_at = updated_at or utc_now()
            self.session.flush()
            return entry

    def delete_cascade(self, entry_id: str) -> int:
        """
        Delete an entry with its metadata, versions and diffs.

        Returns:
            Number of versions removed

        Raises:
            NotFoundError: If the entry does not exist
        """
        with DatabaseOperation(self.logger, "delete_entry_cascade", entry_id=entry_id):
            self.get(entry_id)
            version_ids = select(EntryVersion.id).where(EntryVersion.entry_id == entry_id)

            self.session.execute(delete(EntryMetadata).where(EntryMetadata.entry_id == entry_id))
            self.session.execute(delete(EntryDiff).where(EntryDiff.version_id.in_(version_ids)))
            removed = self.session.execute(
                delete(EntryVersion).where(EntryVersion.entry_id == entry_id)
            ).rowcount
            self.session.execute(delete(JournalEntry).where(JournalEntry.id == entry_id))
            self.session.flush()
            return removed
