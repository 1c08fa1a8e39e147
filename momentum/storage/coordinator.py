#!/usr/bin/env python3
"""
coordinator.py
--------------------
Transactional storage API for journal entries.

The StorageCoordinator is the only component other layers talk to. It
orchestrates the relational index (authoritative), the markdown mirror
(best-effort copy) and the version engine behind create, read, update,
delete, list, search and restore operations.

Every write runs in two phases:
    1. One index transaction: entry row, new version row and metadata.
       Either every row change commits or none does.
    2. An explicit post-commit hook writes the mirror file, retrying a
       bounded number of times. A final failure is logged as a warning,
       handed to ``on_mirror_error`` and remembered in ``pending_repairs``;
       the operation itself still succeeds.

Usage:
    coordinator = StorageCoordinator(index, content)
    entry_id = coordinator.create_entry("# Draft\\nline one")
    coordinator.update_entry(entry_id, "# Draft\\nline one\\nline two")
    for version in coordinator.get_versions(entry_id):
        print(version.sequence, version.change_type.value)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence

# --- Local imports ---
from momentum.core.config import StorageConfig
from momentum.core.exceptions import ContentStoreError, MirrorWriteError, NotFoundError
from momentum.core.logging_manager import MomentumLogger, safe_logger
from momentum.core.paths import ENTRIES_SUBDIR, MIRROR_SUFFIX
from momentum.core.validators import DataValidator
from momentum.database.decorators import log_database_operation
from momentum.database.manager import IndexStore, IndexTransaction
from momentum.database.managers import new_id
from momentum.database.models import ChangeType
from momentum.database.records import EntryRecord, EntrySummary, MetadataRecord, VersionRecord
from momentum.utils import md
from .content_store import ContentStore
from .version_engine import Change, VersionEngine

MirrorErrorCallback = Callable[[MirrorWriteError], None]


def mirror_path(entry_id: str) -> str:
    """Deterministic relative mirror path of an entry."""
    return f"{ENTRIES_SUBDIR}/{entry_id}{MIRROR_SUFFIX}"


class StorageCoordinator:
    """
    Orchestrates IndexStore, ContentStore and VersionEngine.

    Attributes:
        index: Relational index (source of truth)
        content: Mirror file store
        engine: Change descriptor engine
        mirror_retries: Extra attempts after a failed mirror write
        on_mirror_error: Optional callback receiving each MirrorWriteError
    """

    def __init__(
        self,
        index: IndexStore,
        content: ContentStore,
        engine: Optional[VersionEngine] = None,
        logger: Optional[MomentumLogger] = None,
        mirror_retries: int = 2,
        on_mirror_error: Optional[MirrorErrorCallback] = None,
        mirror_retry_delay: float = 0.05,
    ) -> None:
        self.index = index
        self.content = content
        self.engine = engine or VersionEngine()
        self.logger = logger
        self.mirror_retries = mirror_retries
        self.on_mirror_error = on_mirror_error
        self.mirror_retry_delay = mirror_retry_delay

        self._pending: Dict[str, MirrorWriteError] = {}
        self._pending_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: StorageConfig,
        logger: Optional[MomentumLogger] = None,
        on_mirror_error: Optional[MirrorErrorCallback] = None,
    ) -> "StorageCoordinator":
        """Build the full stack (index, content store, engine) from a config."""
        index = IndexStore(
            config.db_path,
            migrations_dir=config.migrations_dir,
            logger=logger,
            preview_length=config.preview_length,
            search_case_sensitive=config.search_case_sensitive,
        )
        content = ContentStore(config.storage_dir, logger=logger)
        return cls(
            index,
            content,
            logger=logger,
            mirror_retries=config.mirror_retries,
            on_mirror_error=on_mirror_error,
        )

    # ---- Writes ----
    @log_database_operation("create_entry")
    def create_entry(self, content: str) -> str:
        """
        Create an entry with its first version and metadata.

        Returns:
            The new entry id

        Raises:
            ValidationError: If content is not text
            ConflictError: On an id collision
            TransactionError: If the index transaction failed (nothing persisted)
        """
        DataValidator.validate_content(content)
        entry_id = new_id()
        file_path = mirror_path(entry_id)

        def work(tx: IndexTransaction) -> EntryRecord:
            entry = tx.entries.insert(entry_id, content, file_path)
            tx.versions.append(entry_id, content, ChangeType.CREATE)
            self._refresh_metadata(tx, entry_id, content)
            return EntryRecord.from_model(entry)

        record = self.index.run_in_transaction("create_entry", work, entry_id=entry_id)
        self._after_commit("create_entry", record.id, record.file_path, content)
        return record.id

    @log_database_operation("update_entry")
    def update_entry(self, entry_id: str, content: str) -> None:
        """
        Replace an entry's content, appending an update version.

        The mirror is rewritten at the entry's existing file path.

        Raises:
            NotFoundError: If the entry does not exist
            ValidationError: If content is not text
            TransactionError: If the index transaction failed (nothing persisted)
        """
        DataValidator.validate_content(content)

        def work(tx: IndexTransaction) -> EntryRecord:
            entry = tx.entries.get(entry_id)
            previous = entry.content
            if previous is None:
                previous = self._read_mirror_or_empty(entry.file_path)

            changes = self.engine.diff(previous, content)
            entry = tx.entries.update_content(entry_id, content)
            tx.versions.append(
                entry_id,
                content,
                ChangeType.UPDATE,
                diff=self.engine.describe(changes),
                changes=changes,
            )
            self._refresh_metadata(tx, entry_id, content)
            return EntryRecord.from_model(entry)

        record = self.index.run_in_transaction("update_entry", work, entry_id=entry_id)
        self._after_commit("update_entry", record.id, record.file_path, content)

    @log_database_operation("delete_entry")
    def delete_entry(self, entry_id: str) -> None:
        """
        Delete an entry, its versions and metadata, then its mirror file.

        Raises:
            NotFoundError: If the entry does not exist (also on a second call)
        """

        def work(tx: IndexTransaction) -> str:
            file_path = tx.entries.get(entry_id).file_path
            tx.entries.delete_cascade(entry_id)
            return file_path

        file_path = self.index.run_in_transaction("delete_entry", work, entry_id=entry_id)

        with self._pending_lock:
            self._pending.pop(entry_id, None)
        try:
            self.content.delete(file_path)
        except ContentStoreError as e:
            safe_logger(self.logger).log_warning(
                "Mirror delete failed", {"entry_id": entry_id, "path": file_path, "error": str(e)}
            )

    @log_database_operation("restore_version")
    def restore_version(self, version_id: str) -> None:
        """
        Make a past version's content current again.

        History is never rewound: the restored content is written as a new
        update version.

        Raises:
            NotFoundError: If the version, or the entry owning it, does not exist
        """
        version = self.index.get_version(version_id)
        if not self.index.entry_exists(version.entry_id):
            raise NotFoundError(
                "Entry for version not found",
                operation="restore_version",
                version_id=version_id,
                entry_id=version.entry_id,
            )
        self.update_entry(version.entry_id, version.content)

    # ---- Reads ----
    def get_entry(self, entry_id: str) -> EntryRecord:
        """
        Raises:
            NotFoundError: If the entry does not exist
        """
        return self.index.get_entry(entry_id)

    def get_entry_body(self, entry_id: str) -> str:
        """
        Full body of an entry.

        Comes from the index; when the index row holds no body the mirrored
        file is read instead.

        Raises:
            NotFoundError: If the entry (or, on fallback, its file) does not exist
        """
        record = self.index.get_entry(entry_id)
        if record.content is not None:
            return record.content
        return self.content.read(record.file_path)

    def get_metadata(self, entry_id: str) -> MetadataRecord:
        return self.index.get_metadata(entry_id)

    def list_entries(self) -> List[EntrySummary]:
        return self.index.list_entries()

    def search_entries(
        self, query: str, case_sensitive: Optional[bool] = None
    ) -> List[EntrySummary]:
        return self.index.search_entries(query, case_sensitive=case_sensitive)

    def get_versions(self, entry_id: str, order: str = "desc") -> List[VersionRecord]:
        return self.index.get_versions_for_entry(entry_id, order=order)

    def get_version(self, version_id: str) -> VersionRecord:
        return self.index.get_version(version_id)

    def get_diff(self, version_id: str) -> List[Change]:
        """
        Change operations recorded with a version (empty for create versions).

        Raises:
            NotFoundError: If the version does not exist
        """
        return [
            Change(
                operation=record.operation,
                position=record.position,
                content=record.content,
                length=record.length,
            )
            for record in self.index.get_diffs(version_id)
        ]

    @staticmethod
    def extract_title(content: str) -> str:
        return md.extract_title(content)

    # ---- Mirror maintenance ----
    @property
    def pending_repairs(self) -> Dict[str, MirrorWriteError]:
        """Entries whose last mirror write failed, keyed by entry id."""
        with self._pending_lock:
            return dict(self._pending)

    def check_mirrors(self) -> List[str]:
        """
        Entries whose mirror file is missing or differs from the index.

        Rows without an indexed body are skipped; their file is the only copy.
        """
        stale = []
        for entry_id in self.index.list_entry_ids():
            try:
                record = self.index.get_entry(entry_id)
            except NotFoundError:
                continue
            if record.content is None:
                continue
            expected = record.content_hash or md.get_text_hash(record.content)
            if self.content.file_hash(record.file_path) != expected:
                stale.append(entry_id)
        return stale

    @log_database_operation("repair_mirrors")
    def repair_mirrors(self, entry_ids: Optional[Sequence[str]] = None) -> List[str]:
        """
        Rewrite mirror files from the index.

        Args:
            entry_ids: Entries to repair; defaults to every stale mirror plus
                every entry in ``pending_repairs``

        Returns:
            Ids whose mirror was rewritten
        """
        if entry_ids is None:
            targets = list(dict.fromkeys(self.check_mirrors() + list(self.pending_repairs)))
        else:
            targets = list(entry_ids)

        repaired = []
        for entry_id in targets:
            try:
                record = self.index.get_entry(entry_id)
            except NotFoundError:
                with self._pending_lock:
                    self._pending.pop(entry_id, None)
                continue
            if record.content is None:
                continue
            if self._after_commit("repair_mirrors", entry_id, record.file_path, record.content):
                repaired.append(entry_id)
        return repaired

    # ---- Internal ----
    @staticmethod
    def _refresh_metadata(tx: IndexTransaction, entry_id: str, content: str) -> None:
        tx.metadata.upsert(
            entry_id,
            word_count=md.count_words(content),
            tags=md.extract_tags(content),
        )

    def _read_mirror_or_empty(self, file_path: str) -> str:
        try:
            return self.content.read(file_path)
        except NotFoundError:
            return ""

    def _after_commit(self, operation: str, entry_id: str, file_path: str, content: str) -> bool:
        """
        Post-commit hook: write the mirror, retrying a bounded number of times.

        Returns:
            True if the mirror was written
        """
        attempts = self.mirror_retries + 1
        last_error: Optional[ContentStoreError] = None

        for attempt in range(1, attempts + 1):
            try:
                self.content.write(file_path, content)
            except ContentStoreError as e:
                last_error = e
                if attempt < attempts:
                    time.sleep(self.mirror_retry_delay * attempt)
                continue

            with self._pending_lock:
                self._pending.pop(entry_id, None)
            return True

        error = MirrorWriteError(
            f"Mirror write failed: {last_error}",
            operation=operation,
            entry_id=entry_id,
            path=file_path,
            attempts=attempts,
        )
        error.__cause__ = last_error
        self._report_mirror_error(error)
        return False

    def _report_mirror_error(self, error: MirrorWriteError) -> None:
        logger = safe_logger(self.logger)
        logger.log_warning(error.message, error.context)

        with self._pending_lock:
            self._pending[error.context["entry_id"]] = error

        if self.on_mirror_error is not None:
            try:
                self.on_mirror_error(error)
            except Exception as callback_error:
                logger.log_error(
                    callback_error,
                    {"operation": "on_mirror_error", "entry_id": error.context["entry_id"]},
                )

    # ---- Teardown ----
    def close(self) -> None:
        """Release the index engine."""
        self.index.close()
