#!/usr/bin/env python3
"""
records.py
----------
Plain data records returned by the index store.

Callers above the database layer never receive ORM instances or sessions;
every read is converted into one of these frozen dataclasses before the
session closes.

Records:
    EntryRecord: Full entry row
    VersionRecord: One historical snapshot
    MetadataRecord: Derived statistics
    EntrySummary: List/search projection (preview instead of body)
    DiffRecord: One stored change operation
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

# --- Local imports ---
from momentum.utils.md import UNTITLED, extract_title
from .models import (
    ChangeType,
    DiffOperation,
    EntryDiff,
    EntryMetadata,
    EntryVersion,
    JournalEntry,
    as_utc,
)


@dataclass(frozen=True)
class EntryRecord:
    """Current state of an entry."""

    id: str
    content: Optional[str]
    file_path: str
    created_at: datetime
    updated_at: datetime
    content_hash: Optional[str] = None

    @classmethod
    def from_model(cls, entry: JournalEntry) -> "EntryRecord":
        return cls(
            id=entry.id,
            content=entry.content,
            file_path=entry.file_path,
            created_at=as_utc(entry.created_at),
            updated_at=as_utc(entry.updated_at),
            content_hash=entry.content_hash,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VersionRecord:
    """Immutable snapshot of an entry's content."""

    id: str
    entry_id: str
    sequence: int
    content: str
    change_type: ChangeType
    timestamp: datetime
    diff: Optional[str] = None

    @classmethod
    def from_model(cls, version: EntryVersion) -> "VersionRecord":
        return cls(
            id=version.id,
            entry_id=version.entry_id,
            sequence=version.sequence,
            content=version.content,
            change_type=ChangeType(version.change_type),
            timestamp=as_utc(version.timestamp),
            diff=version.diff,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["change_type"] = self.change_type.value
        return data


@dataclass(frozen=True)
class MetadataRecord:
    """Derived statistics for an entry."""

    entry_id: str
    word_count: int
    reading_time: float
    tags: List[str] = field(default_factory=list)
    last_accessed: Optional[datetime] = None

    @classmethod
    def from_model(cls, metadata: EntryMetadata) -> "MetadataRecord":
        return cls(
            entry_id=metadata.entry_id,
            word_count=metadata.word_count,
            reading_time=metadata.reading_time,
            tags=list(metadata.tags or []),
            last_accessed=as_utc(metadata.last_accessed),
        )


@dataclass(frozen=True)
class EntrySummary:
    """
    List/search projection of an entry.

    Holds a bounded ``content_preview`` and the derived metadata, never
    the full body. ``title`` is derived from the preview.
    """

    id: str
    file_path: str
    created_at: datetime
    updated_at: datetime
    content_preview: str
    word_count: int = 0
    reading_time: float = 0.0
    tags: List[str] = field(default_factory=list)
    last_accessed: Optional[datetime] = None

    @property
    def title(self) -> str:
        return extract_title(self.content_preview) if self.content_preview else UNTITLED

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["title"] = self.title
        return data


@dataclass(frozen=True)
class DiffRecord:
    """One stored change operation of a version."""

    version_id: str
    position_index: int
    operation: DiffOperation
    position: int
    content: Optional[str] = None
    length: Optional[int] = None

    @classmethod
    def from_model(cls, diff: EntryDiff) -> "DiffRecord":
        return cls(
            version_id=diff.version_id,
            position_index=diff.position_index,
            operation=DiffOperation(diff.operation),
            position=diff.position,
            content=diff.content,
            length=diff.length,
        )
