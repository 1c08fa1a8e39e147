#!/usr/bin/env python3
"""
metadata_manager.py
--------------------
Manages the single EntryMetadata row of each entry.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from typing import List, Optional

# --- Local imports ---
from momentum.core.exceptions import NotFoundError
from momentum.database.decorators import DatabaseOperation
from momentum.database.models import EntryMetadata, JournalEntry, utc_now
from momentum.utils.md import reading_time as estimate_reading_time
from .base_manager import BaseManager


class MetadataManager(BaseManager):
    """Manages EntryMetadata rows within one session."""

    def upsert(
        self,
        entry_id: str,
        word_count: int,
        tags: Optional[List[str]] = None,
        reading_time: Optional[float] = None,
    ) -> EntryMetadata:
        """
        Insert or overwrite the metadata row of an entry (last write wins).

        ``last_accessed`` is set to now on every call.

        Raises:
            NotFoundError: If the entry does not exist
            ValueError: If word_count is negative
        """
        if word_count < 0:
            raise ValueError(f"word_count must be non-negative, got {word_count}")

        with DatabaseOperation(self.logger, "upsert_metadata", entry_id=entry_id):
            if self.session.get(JournalEntry, entry_id) is None:
                raise NotFoundError(
                    "Entry not found", operation="upsert_metadata", entry_id=entry_id
                )

            metadata = self.session.get(EntryMetadata, entry_id)
            if metadata is None:
                metadata = EntryMetadata(entry_id=entry_id)
                self.session.add(metadata)

            metadata.word_count = word_count
            metadata.reading_time = (
                reading_time if reading_time is not None else estimate_reading_time(word_count)
            )
            metadata.tags = sorted(set(tags or []))
            metadata.last_accessed = utc_now()
            self.session.flush()
            return metadata

    def get(self, entry_id: str) -> EntryMetadata:
        """
        Retrieve the metadata row of an entry.

        Raises:
            NotFoundError: If the entry has no metadata row
        """
        metadata = self.session.get(EntryMetadata, entry_id)
        if metadata is None:
            raise NotFoundError(
                "Metadata not found", operation="get_metadata", entry_id=entry_id
            )
        return metadata
