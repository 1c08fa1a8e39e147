"""
Core Models
------------

Central models for the Momentum index database.

Models:
    - JournalEntry: Current state of a journal entry (the primary model)
    - EntryVersion: Immutable full-content snapshot, append-only per entry
    - EntryMetadata: Derived statistics, one row per entry
    - EntryDiff: Change operations recorded with each version

No ORM relationships or cascades are declared: every multi-row mutation
(create with first version, cascade delete) is issued explicitly by the
managers so the order of row changes is visible and testable.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utc_now
from .enums import ChangeType, DiffOperation


# ----- Entry Model -----
class JournalEntry(Base):
    """
    Current state of a journal entry.

    Each entry is mirrored to a single markdown file in the content store;
    the row here is the authoritative copy.

    Attributes:
        id: Opaque unique identifier (UUID string), immutable
        content: Current markdown body; NULL when the index does not hold
            the body and reads must fall back to the mirrored file
        file_path: Relative mirror path, set once at creation
        content_hash: MD5 of content, used to detect stale mirrors
        created_at: When the entry was created
        updated_at: Refreshed on every successful write
    """

    __tablename__ = "journal_entries"
    __table_args__ = (
        CheckConstraint("file_path != ''", name="ck_entry_non_empty_file_path"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_path: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    content_hash: Mapped[Optional[str]] = mapped_column(String(32))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False, index=True
    )

    def __repr__(self) -> str:
        return f"<JournalEntry(id={self.id}, file_path={self.file_path})>"


# ----- Version Model -----
class EntryVersion(Base):
    """
    Immutable snapshot of an entry's content at one point in time.

    Versions store the full text (not a delta) so restoring is a single
    read. They are totally ordered per entry by ``timestamp``, with
    ``sequence`` (the per-entry insertion counter) breaking ties.

    Attributes:
        id: Unique identifier (UUID string)
        entry_id: Owning entry
        sequence: 1-based insertion order within the entry
        content: Full snapshot of the text
        change_type: create (first version only) or update
        diff: Human/debug description of the change, not used for restore
        timestamp: Creation time
    """

    __tablename__ = "entry_versions"
    __table_args__ = (
        UniqueConstraint("entry_id", "sequence", name="uq_version_entry_sequence"),
        CheckConstraint("sequence >= 1", name="positive_version_sequence"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    entry_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("journal_entries.id"), nullable=False, index=True
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    change_type: Mapped[ChangeType] = mapped_column(
        SQLEnum(ChangeType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    diff: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<EntryVersion(id={self.id}, entry_id={self.entry_id}, "
            f"sequence={self.sequence}, change_type={self.change_type.value})>"
        )


# ----- Metadata Model -----
class EntryMetadata(Base):
    """
    Derived statistics for an entry, recomputed on every write.

    Attributes:
        entry_id: Owning entry (also the primary key)
        word_count: Whitespace-separated tokens in the current content
        reading_time: Estimated minutes to read
        tags: Sorted inline #hashtags
        last_accessed: Time of the last write
    """

    __tablename__ = "entry_metadata"
    __table_args__ = (
        CheckConstraint("word_count >= 0", name="positive_metadata_word_count"),
        CheckConstraint("reading_time >= 0.0", name="positive_metadata_reading_time"),
    )

    entry_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("journal_entries.id"), primary_key=True
    )
    word_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reading_time: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    last_accessed: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )


# ----- Diff Model -----
class EntryDiff(Base):
    """
    One change operation of a version, as produced by the version engine.

    Diagnostic only: restores read ``EntryVersion.content`` directly.

    Attributes:
        id: Unique identifier (UUID string)
        version_id: Owning version
        position_index: Order of the operation within its version
        operation: insert, delete or replace
        position: Character offset in the previous content
        content: Inserted/replacement text
        length: Characters removed/replaced
    """

    __tablename__ = "entry_diffs"
    __table_args__ = (
        UniqueConstraint("version_id", "position_index", name="uq_diff_version_index"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    version_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("entry_versions.id"), nullable=False, index=True
    )
    position_index: Mapped[int] = mapped_column(Integer, nullable=False)
    operation: Mapped[DiffOperation] = mapped_column(
        SQLEnum(DiffOperation, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    length: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
