"""
Tests for IndexStore.

Covers schema initialization with Alembic, the record-returning API,
transaction atomicity and the whole-transaction retry on SQLite lock
contention.
"""
import threading

import pytest
from unittest.mock import ANY, MagicMock, patch

from sqlalchemy import create_engine, inspect, select
from sqlalchemy.exc import IntegrityError, OperationalError

from momentum.core.exceptions import (
    ConflictError,
    NotFoundError,
    TransactionError,
    ValidationError,
)
from momentum.core.logging_manager import MomentumLogger
from momentum.database.manager import READ_ONLY, IndexStore, is_lock_error
from momentum.database.models import (
    Base,
    ChangeType,
    EntryDiff,
    EntryMetadata,
    EntryVersion,
)
from momentum.database.records import EntryRecord, VersionRecord


def _locked_error():
    return OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))


class TestSchemaInitialization:
    """Tests for Alembic-backed schema setup."""

    def test_fresh_database_is_stamped_at_head(self, index_store):
        history = index_store.get_migration_history()
        assert history["current_revision"] is not None
        assert history["current_revision"] == history["head_revision"]
        assert history["status"] == "up_to_date"

    def test_reopening_existing_database(self, index_store, test_db_path):
        entry = index_store.insert_entry("e1", "kept", "entries/e1.md")

        reopened = IndexStore(test_db_path)
        try:
            assert reopened.get_entry("e1") == entry
            assert reopened.get_migration_history()["status"] == "up_to_date"
        finally:
            reopened.close()

    def test_unstamped_tables_are_adopted(self, test_db_path):
        """Tables created without Alembic get stamped instead of re-created."""
        engine = create_engine(f"sqlite:///{test_db_path}")
        Base.metadata.create_all(engine)
        engine.dispose()

        store = IndexStore(test_db_path)
        try:
            assert store.get_migration_history()["status"] == "up_to_date"
        finally:
            store.close()

    def test_creates_parent_directory(self, tmp_dir):
        store = IndexStore(tmp_dir / "nested" / "dir" / "momentum.db")
        try:
            assert (tmp_dir / "nested" / "dir" / "momentum.db").exists()
        finally:
            store.close()

    def test_foreign_keys_enforced(self, index_store):
        with pytest.raises(IntegrityError):
            with index_store.session_scope() as session:
                session.add(
                    EntryVersion(
                        id="v1",
                        entry_id="missing",
                        sequence=1,
                        content="x",
                        change_type=ChangeType.CREATE,
                    )
                )
                session.flush()

    def test_context_manager_closes(self, test_db_path):
        with IndexStore(test_db_path) as store:
            store.insert_entry("e1", "x", "entries/e1.md")
        # Engine disposed; a fresh store still sees the committed row
        with IndexStore(test_db_path) as store:
            assert store.entry_exists("e1")

    def test_schema_tables(self, index_store):
        """Only the journal tables and Alembic's bookkeeping exist."""
        assert set(inspect(index_store.engine).get_table_names()) == {
            "alembic_version",
            "journal_entries",
            "entry_versions",
            "entry_metadata",
            "entry_diffs",
        }


class TestEntries:
    """Tests for entry rows."""

    def test_insert_and_get(self, index_store):
        record = index_store.insert_entry("e1", "# Title\nbody", "entries/e1.md")

        assert isinstance(record, EntryRecord)
        assert record.content == "# Title\nbody"
        assert record.created_at == record.updated_at
        assert record.created_at.tzinfo is not None
        assert index_store.get_entry("e1") == record

    def test_insert_duplicate_id(self, index_store):
        index_store.insert_entry("e1", "first", "entries/e1.md")

        with pytest.raises(ConflictError) as exc_info:
            index_store.insert_entry("e1", "second", "entries/other.md")
        assert exc_info.value.context["entry_id"] == "e1"
        assert index_store.get_entry("e1").content == "first"

    def test_insert_duplicate_file_path(self, index_store):
        index_store.insert_entry("e1", "first", "entries/shared.md")

        with pytest.raises(ConflictError):
            index_store.insert_entry("e2", "second", "entries/shared.md")
        assert not index_store.entry_exists("e2")

    def test_get_missing_entry(self, index_store):
        with pytest.raises(NotFoundError) as exc_info:
            index_store.get_entry("nope")
        assert exc_info.value.context["entry_id"] == "nope"

    def test_list_entry_ids(self, index_store):
        index_store.insert_entry("b", "x", "entries/b.md")
        index_store.insert_entry("a", "y", "entries/a.md")
        assert index_store.list_entry_ids() == ["a", "b"]


class TestVersions:
    """Tests for the append-only version log."""

    def test_append_to_missing_entry(self, index_store):
        with pytest.raises(NotFoundError):
            index_store.append_version("missing", "x", ChangeType.CREATE)

    def test_append_assigns_fresh_ids_and_sequence(self, index_store):
        index_store.insert_entry("e1", "v1", "entries/e1.md")
        first = index_store.append_version("e1", "v1", ChangeType.CREATE)
        second = index_store.append_version("e1", "v2", "update", diff="changed")

        assert isinstance(first, VersionRecord)
        assert first.id != second.id
        assert (first.sequence, second.sequence) == (1, 2)
        assert second.change_type is ChangeType.UPDATE
        assert second.diff == "changed"
        assert second.timestamp > first.timestamp

    def test_versions_ordering(self, index_store):
        index_store.insert_entry("e1", "a", "entries/e1.md")
        for content, change in (("a", "create"), ("b", "update"), ("c", "update")):
            index_store.append_version("e1", content, change)

        desc = index_store.get_versions_for_entry("e1")
        asc = index_store.get_versions_for_entry("e1", order="asc")

        assert [v.content for v in desc] == ["c", "b", "a"]
        assert [v.content for v in asc] == ["a", "b", "c"]

    def test_second_create_rejected(self, index_store):
        index_store.insert_entry("e1", "a", "entries/e1.md")
        index_store.append_version("e1", "a", ChangeType.CREATE)

        with pytest.raises(ValidationError):
            index_store.append_version("e1", "b", ChangeType.CREATE)

        [version] = index_store.get_versions_for_entry("e1")
        assert version.change_type is ChangeType.CREATE

    def test_update_on_fresh_entry_rejected(self, index_store):
        index_store.insert_entry("e1", "a", "entries/e1.md")

        with pytest.raises(ValidationError):
            index_store.append_version("e1", "a", ChangeType.UPDATE)

        assert index_store.get_versions_for_entry("e1") == []

    def test_versions_for_unknown_entry_is_empty(self, index_store):
        assert index_store.get_versions_for_entry("unknown") == []

    def test_invalid_order(self, index_store):
        with pytest.raises(ValueError):
            index_store.get_versions_for_entry("e1", order="sideways")

    def test_get_version(self, index_store):
        index_store.insert_entry("e1", "a", "entries/e1.md")
        version = index_store.append_version("e1", "a", ChangeType.CREATE)
        assert index_store.get_version(version.id) == version

    def test_get_missing_version(self, index_store):
        with pytest.raises(NotFoundError) as exc_info:
            index_store.get_version("nope")
        assert exc_info.value.context["version_id"] == "nope"

    def test_get_diffs_missing_version(self, index_store):
        with pytest.raises(NotFoundError):
            index_store.get_diffs("nope")


class TestMetadata:
    """Tests for derived metadata rows."""

    def test_upsert_last_write_wins(self, index_store):
        index_store.insert_entry("e1", "a", "entries/e1.md")
        index_store.upsert_metadata("e1", 10, ["b", "a"])
        index_store.upsert_metadata("e1", 400)

        metadata = index_store.get_metadata("e1")
        assert metadata.word_count == 400
        assert metadata.reading_time == 2.0
        assert metadata.tags == []
        assert metadata.last_accessed.tzinfo is not None

    def test_upsert_is_idempotent(self, index_store):
        index_store.insert_entry("e1", "a", "entries/e1.md")
        index_store.upsert_metadata("e1", 3, ["x"])
        index_store.upsert_metadata("e1", 3, ["x"])

        with index_store.session_scope() as session:
            rows = session.scalars(select(EntryMetadata)).all()
        assert len(rows) == 1

    def test_upsert_unknown_entry(self, index_store):
        with pytest.raises(NotFoundError):
            index_store.upsert_metadata("missing", 1)

    def test_missing_metadata(self, index_store):
        index_store.insert_entry("e1", "a", "entries/e1.md")
        with pytest.raises(NotFoundError):
            index_store.get_metadata("e1")


class TestListAndSearch:
    """Tests for the summary projection."""

    @pytest.fixture
    def populated(self, index_store):
        for entry_id, content in (
            ("e1", "# Alpha\nThe quick brown fox"),
            ("e2", "# Beta\nJumps over 100% of dogs"),
            ("e3", "# Gamma\nsnake_case and more"),
        ):
            index_store.insert_entry(entry_id, content, f"entries/{entry_id}.md")
            index_store.upsert_metadata(entry_id, len(content.split()))
        return index_store

    def test_list_most_recent_first(self, populated):
        ids = [s.id for s in populated.list_entries()]
        assert ids == ["e3", "e2", "e1"]

    def test_list_projection(self, populated):
        summary = next(s for s in populated.list_entries() if s.id == "e1")
        assert summary.content_preview == "# Alpha\nThe quick brown fox"
        assert summary.word_count == 6
        assert summary.title == "Alpha"
        assert not hasattr(summary, "content")

    def test_preview_is_bounded(self, test_db_path):
        store = IndexStore(test_db_path, preview_length=10)
        try:
            store.insert_entry("e1", "x" * 500, "entries/e1.md")
            summary = store.list_entries()[0]
            assert summary.content_preview == "x" * 10
            assert summary.word_count == 0
        finally:
            store.close()

    def test_search_is_case_insensitive_by_default(self, populated):
        assert [s.id for s in populated.search_entries("QUICK")] == ["e1"]

    def test_search_case_sensitive(self, populated):
        assert populated.search_entries("QUICK", case_sensitive=True) == []
        assert [s.id for s in populated.search_entries("quick", case_sensitive=True)] == ["e1"]

    def test_search_wildcards_are_literal(self, populated):
        assert [s.id for s in populated.search_entries("100%")] == ["e2"]
        assert [s.id for s in populated.search_entries("e_c")] == ["e3"]
        assert [s.id for s in populated.search_entries("_")] == ["e3"]

    def test_empty_query_matches_all(self, populated):
        assert len(populated.search_entries("")) == 3

    def test_search_covers_text_beyond_preview(self, test_db_path):
        store = IndexStore(test_db_path, preview_length=5)
        try:
            store.insert_entry("e1", "short start, needle at the end", "entries/e1.md")
            assert [s.id for s in store.search_entries("needle")] == ["e1"]
        finally:
            store.close()


class TestDeleteCascade:
    """Tests for cascade deletion."""

    def test_removes_everything(self, index_store):
        index_store.insert_entry("e1", "a", "entries/e1.md")
        index_store.append_version("e1", "a", ChangeType.CREATE)
        with index_store.transaction() as tx:
            tx.versions.append(
                "e1",
                "b",
                ChangeType.UPDATE,
                changes=[MagicMock(operation="replace", position=0, content="b", length=1)],
            )
        index_store.upsert_metadata("e1", 1)

        removed = index_store.delete_entry_cascade("e1")

        assert removed == 2
        assert not index_store.entry_exists("e1")
        assert index_store.get_versions_for_entry("e1") == []
        with index_store.session_scope() as session:
            assert session.scalars(select(EntryMetadata)).all() == []
            assert session.scalars(select(EntryDiff)).all() == []

    def test_missing_entry(self, index_store):
        with pytest.raises(NotFoundError):
            index_store.delete_entry_cascade("missing")

    def test_other_entries_untouched(self, index_store):
        for entry_id in ("keep", "drop"):
            index_store.insert_entry(entry_id, entry_id, f"entries/{entry_id}.md")
            index_store.append_version(entry_id, entry_id, ChangeType.CREATE)

        index_store.delete_entry_cascade("drop")

        assert len(index_store.get_versions_for_entry("keep")) == 1


class TestTransactions:
    """Tests for atomic units of work."""

    def test_failed_work_leaves_no_rows(self, index_store):
        def work(tx):
            tx.entries.insert("e1", "a", "entries/e1.md")
            tx.versions.append("e1", "a", ChangeType.CREATE)
            raise RuntimeError("crash between writes")

        with pytest.raises(RuntimeError):
            index_store.run_in_transaction("create_entry", work)

        assert not index_store.entry_exists("e1")
        assert index_store.get_versions_for_entry("e1") == []

    def test_retries_whole_transaction_on_lock(self, index_store):
        calls = []

        def work(tx):
            calls.append(1)
            tx.entries.insert(f"e{len(calls)}", "a", f"entries/e{len(calls)}.md")
            if len(calls) == 1:
                raise _locked_error()
            return "done"

        assert index_store.run_in_transaction("insert", work) == "done"
        assert len(calls) == 2
        # The first attempt was rolled back
        assert index_store.list_entry_ids() == ["e2"]

    def test_lock_retries_exhausted(self, test_db_path):
        store = IndexStore(test_db_path, max_retries=2, retry_delay=0.0)
        try:
            def work(tx):
                raise _locked_error()

            with pytest.raises(TransactionError) as exc_info:
                store.run_in_transaction("insert", work, entry_id="e1")
            assert exc_info.value.context["entry_id"] == "e1"
        finally:
            store.close()

    def test_other_operational_errors_not_retried(self, index_store):
        calls = []

        def work(tx):
            calls.append(1)
            raise OperationalError("SELECT", {}, Exception("no such table: nope"))

        with pytest.raises(TransactionError):
            index_store.run_in_transaction("select", work)
        assert len(calls) == 1

    def test_domain_errors_not_retried(self, index_store):
        calls = []

        def work(tx):
            calls.append(1)
            return tx.entries.get("missing")

        with pytest.raises(NotFoundError):
            index_store.run_in_transaction("get", work)
        assert len(calls) == 1

    def test_concurrent_appends_all_persist(self, index_store):
        """Concurrent writers to one entry serialize; no version is lost."""
        index_store.insert_entry("e1", "start", "entries/e1.md")
        index_store.append_version("e1", "start", ChangeType.CREATE)
        errors = []

        def writer(worker):
            try:
                for i in range(5):
                    index_store.append_version("e1", f"w{worker}-{i}", ChangeType.UPDATE)
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        versions = index_store.get_versions_for_entry("e1", order="asc")
        assert len(versions) == 21
        assert [v.sequence for v in versions] == list(range(1, 22))
        assert versions[0].change_type is ChangeType.CREATE
        timestamps = [v.timestamp for v in versions]
        assert timestamps == sorted(timestamps)
        assert len(set(timestamps)) == 21


class TestReadTransactions:
    """Reads use deferred transactions and do not wait for writers."""

    def test_reads_proceed_while_writer_holds_lock(self, index_store):
        index_store.insert_entry("e1", "committed", "entries/e1.md")

        with index_store.transaction() as tx:
            tx.entries.insert("e2", "pending", "entries/e2.md")
            tx.session.flush()

            assert index_store.get_entry("e1").content == "committed"
            assert [s.id for s in index_store.list_entries()] == ["e1"]
            assert index_store.entry_exists("e2") is False
            assert index_store.get_versions_for_entry("e1") == []

        assert index_store.entry_exists("e2")

    def test_read_engine_is_marked_read_only(self, index_store):
        read_bind = index_store.ReadSessionLocal.kw["bind"]
        assert read_bind.get_execution_options()[READ_ONLY] is True
        assert not index_store.engine.get_execution_options().get(READ_ONLY)


class TestSessionScope:
    """Tests for session lifecycle with a mocked session factory."""

    @pytest.fixture
    def store(self, index_store):
        index_store.logger = MagicMock(spec=MomentumLogger)
        return index_store

    def test_commit_on_success(self, store):
        mock_session = MagicMock()
        store.SessionLocal = MagicMock(return_value=mock_session)

        with store.session_scope():
            pass

        mock_session.commit.assert_called_once()
        mock_session.rollback.assert_not_called()
        mock_session.close.assert_called_once()

    def test_rollback_on_error(self, store):
        mock_session = MagicMock()
        store.SessionLocal = MagicMock(return_value=mock_session)

        with pytest.raises(ValueError):
            with store.session_scope():
                raise ValueError("boom")

        mock_session.rollback.assert_called_once()
        mock_session.commit.assert_not_called()
        mock_session.close.assert_called_once()
        store.logger.log_error.assert_called_once()

    def test_domain_error_rolls_back_quietly(self, store):
        mock_session = MagicMock()
        store.SessionLocal = MagicMock(return_value=mock_session)

        with pytest.raises(NotFoundError):
            with store.session_scope():
                raise NotFoundError("Entry not found", entry_id="e1")

        mock_session.rollback.assert_called_once()
        store.logger.log_error.assert_not_called()
        store.logger.log_debug.assert_any_call(
            "session_rollback",
            {"session_id": ANY, "error_type": "NotFoundError"},
        )

    def test_missing_entry_is_not_a_rollback_error(self, store):
        with pytest.raises(NotFoundError):
            store.get_entry("missing")

        for call in store.logger.log_error.call_args_list:
            context = call.args[1] if len(call.args) > 1 else {}
            assert context.get("operation") != "session_rollback"

    def test_read_transaction_never_commits(self, store):
        mock_session = MagicMock()
        store.ReadSessionLocal = MagicMock(return_value=mock_session)

        with store.read_transaction() as tx:
            assert tx.session is mock_session

        mock_session.commit.assert_not_called()
        mock_session.close.assert_called_once()

    @patch("momentum.database.manager.time.sleep", autospec=True)
    def test_backoff_is_exponential(self, mock_sleep, test_db_path):
        store = IndexStore(test_db_path, max_retries=3, retry_delay=0.1)

        def always_locked(tx):
            raise _locked_error()

        try:
            with pytest.raises(TransactionError):
                store.run_in_transaction("x", always_locked)
        finally:
            store.close()

        waits = [call.args[0] for call in mock_sleep.call_args_list]
        assert waits == [pytest.approx(0.1), pytest.approx(0.2)]


class TestIsLockError:
    def test_locked(self):
        assert is_lock_error(_locked_error())

    def test_busy(self):
        assert is_lock_error(OperationalError("x", {}, Exception("database is busy")))

    def test_wrapped_in_transaction_error(self):
        wrapped = TransactionError("Database operation failed")
        wrapped.__cause__ = _locked_error()
        assert is_lock_error(wrapped)

    def test_other_errors(self):
        assert not is_lock_error(OperationalError("x", {}, Exception("disk I/O error")))
        assert not is_lock_error(ValueError("locked"))
