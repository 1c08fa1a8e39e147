#!/usr/bin/env python3
"""
manager.py
--------------------
Relational index for the Momentum journal storage core.

Provides the IndexStore class: the durable, transactional mapping from
entry id to entry row, the append-only version log keyed by entry id, and
one metadata row per entry. It is the single source of truth of the
storage subsystem.

Handles:
    - Initialization of the database engine and sessionmaker
    - Writer serialization (write transactions are BEGIN IMMEDIATE)
    - Read-only transactions that never take the write lock
    - Transactions grouping several row changes into one atomic unit
    - Retry of whole transactions on SQLite lock contention
    - Schema creation and migration management via Alembic

Core Operations:
    Entries:
        - insert_entry: Insert a new entry row
        - get_entry: Retrieve an entry by id
        - list_entries: Preview projection ordered by updated_at
        - search_entries: Substring search with the same projection
        - delete_entry_cascade: Remove metadata, versions, then the entry

    Versions:
        - append_version: Append a snapshot to an entry's history
        - get_version: Retrieve a version by id
        - get_versions_for_entry: History of one entry
        - get_diffs: Stored change operations of a version

    Metadata:
        - upsert_metadata: Insert or overwrite derived statistics
        - get_metadata: Retrieve derived statistics

Notes
==============
- Every public read returns plain records from ``momentum.database.records``
- Single-operation methods each run in their own transaction; callers that
  need several row changes to commit together use ``transaction()``
- Reads use ``read_transaction()`` and proceed while a writer holds the lock
- All datetime fields are UTC-aware on the way out
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar, Union

# --- Third party ---
from sqlalchemy import Engine, create_engine, event, inspect
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

# --- Local imports ---
from momentum.core.exceptions import DatabaseError, MomentumError, TransactionError
from momentum.core.logging_manager import MomentumLogger, safe_logger
from momentum.core.paths import MIGRATIONS_DIR
from .decorators import handle_db_errors, log_database_operation
from .managers import EntryManager, MetadataManager, VersionManager
from .models import Base, ChangeType
from .records import DiffRecord, EntryRecord, EntrySummary, MetadataRecord, VersionRecord

T = TypeVar("T")

# Execution option marking connections that only read
READ_ONLY = "momentum_read_only"


def is_lock_error(error: BaseException) -> bool:
    """
    Whether an error is SQLite lock/busy contention.

    Looks through TransactionError wrappers to the OperationalError cause.
    """
    if isinstance(error, TransactionError) and error.__cause__ is not None:
        error = error.__cause__
    if not isinstance(error, OperationalError):
        return False
    error_msg = str(error).lower()
    return "locked" in error_msg or "busy" in error_msg


@dataclass
class IndexTransaction:
    """
    One atomic unit of work on the index.

    Bundles the session with managers bound to it, so every row change made
    through ``entries``, ``versions`` and ``metadata`` commits or rolls back
    together.
    """

    session: Session
    entries: EntryManager
    versions: VersionManager
    metadata: MetadataManager


# ----- Main Index Store -----
class IndexStore:
    """
    Relational index of entries, versions and metadata.

    Attributes:
        - db_path (Path): Filesystem path to the SQLite database file.
        - migrations_dir (Path): Alembic script location.
        - engine (Engine): SQLAlchemy engine instance.
        - SessionLocal (sessionmaker): SQLAlchemy session factory.
        - ReadSessionLocal (sessionmaker): Session factory for read-only work.
        - preview_length (int): Characters of content in list/search results.
        - search_case_sensitive (bool): Default search mode.

    Usage:
        index = IndexStore("~/journal/momentum.db")
        with index.transaction() as tx:
            tx.entries.insert(entry_id, content, file_path)
            tx.versions.append(entry_id, content, ChangeType.CREATE)
            tx.metadata.upsert(entry_id, word_count=2)
    """

    # ---- Initialization ----
    def __init__(
        self,
        db_path: Union[str, Path],
        migrations_dir: Optional[Union[str, Path]] = None,
        logger: Optional[MomentumLogger] = None,
        preview_length: int = 100,
        search_case_sensitive: bool = False,
        max_retries: int = 3,
        retry_delay: float = 0.1,
    ) -> None:
        """
        Initialize database engine, session factory and schema.

        Args:
            db_path: Path to the SQLite file.
            migrations_dir: Alembic script location (defaults to the
                package's bundled migrations).
            logger: Optional logger
            preview_length: Characters of content in list/search results
            search_case_sensitive: Default search mode
            max_retries: Attempts per transaction under lock contention
            retry_delay: Base delay between attempts (exponential backoff)
        """
        self.db_path = Path(db_path).expanduser().resolve()
        self.migrations_dir = Path(migrations_dir or MIGRATIONS_DIR).expanduser().resolve()
        self.logger = logger
        self.preview_length = preview_length
        self.search_case_sensitive = search_case_sensitive
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self._setup_engine()
        self.initialize_schema()

    def _setup_engine(self) -> None:
        """Initialize database engine and session factory."""
        try:
            safe_logger(self.logger).log_operation(
                "database_init_start",
                {
                    "db_path": str(self.db_path),
                    "migrations_dir": str(self.migrations_dir),
                },
            )

            self.db_path.parent.mkdir(parents=True, exist_ok=True)

            self.engine: Engine = create_engine(
                f"sqlite:///{self.db_path}",
                echo=False,
                pool_pre_ping=True,
                connect_args={"timeout": 30},
            )
            self._configure_sqlite(self.engine)

            self.SessionLocal: sessionmaker = sessionmaker(
                bind=self.engine,
                autoflush=True,
                expire_on_commit=False,
            )
            self.ReadSessionLocal: sessionmaker = sessionmaker(
                bind=self.engine.execution_options(**{READ_ONLY: True}),
                autoflush=False,
                expire_on_commit=False,
            )

            self.alembic_cfg: Config = self._setup_alembic()

        except Exception as e:
            safe_logger(self.logger).log_error(e, {"operation": "database_init"})
            raise DatabaseError(f"Database initialization failed: {e}") from e

    @staticmethod
    def _configure_sqlite(engine: Engine) -> None:
        """
        Enforce foreign keys and take the write lock at BEGIN for writers.

        pysqlite's own transaction handling is disabled so that SQLAlchemy
        emits BEGIN itself. Writers use BEGIN IMMEDIATE and serialize at the
        start of their transaction instead of failing at commit. Read-only
        connections use a deferred BEGIN and only take a shared lock.
        """

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys = ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn):
            if conn.get_execution_options().get(READ_ONLY):
                conn.exec_driver_sql("BEGIN")
            else:
                conn.exec_driver_sql("BEGIN IMMEDIATE")

    # ---- Session Management ----
    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around operations with logging.

        Commits on success, rolls back on any exception and always closes.
        """
        session = self.SessionLocal()
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        logger = safe_logger(self.logger)

        logger.log_debug("session_start", {"session_id": session_id})

        try:
            yield session
            session.commit()
            logger.log_debug("session_commit", {"session_id": session_id})

        except MomentumError as e:
            # Domain rejections are reported by whoever handles them
            session.rollback()
            logger.log_debug(
                "session_rollback",
                {"session_id": session_id, "error_type": type(e).__name__},
            )
            raise
        except Exception as e:
            session.rollback()
            logger.log_error(e, {"operation": "session_rollback", "session_id": session_id})
            raise
        finally:
            session.close()
            logger.log_debug("session_close", {"session_id": session_id})

    @contextmanager
    def transaction(self) -> Iterator[IndexTransaction]:
        """Context manager yielding managers that share one atomic unit of work."""
        with self.session_scope() as session:
            yield IndexTransaction(
                session=session,
                entries=EntryManager(session, self.logger),
                versions=VersionManager(session, self.logger),
                metadata=MetadataManager(session, self.logger),
            )

    @contextmanager
    def read_transaction(self) -> Iterator[IndexTransaction]:
        """
        Read-only counterpart of ``transaction()``.

        Starts with a deferred BEGIN and takes only a shared lock, so it does
        not wait for an open write transaction. Nothing is committed; the
        session is rolled back on close.
        """
        session = self.ReadSessionLocal()
        try:
            yield IndexTransaction(
                session=session,
                entries=EntryManager(session, self.logger),
                versions=VersionManager(session, self.logger),
                metadata=MetadataManager(session, self.logger),
            )
        finally:
            session.close()

    def run_in_transaction(
        self,
        operation_name: str,
        work: Callable[[IndexTransaction], T],
        **context: Any,
    ) -> T:
        """
        Run ``work`` inside one transaction, retrying it whole on lock errors.

        Args:
            operation_name: Name used in logs and error context
            work: Callable receiving the IndexTransaction
            **context: Extra error context (entry_id, version_id)

        Returns:
            Result of ``work`` (computed before commit)

        Raises:
            TransactionError: Database failure before commit (nothing persisted)
            MomentumError: Domain errors raised by ``work`` propagate unchanged
        """
        for attempt in range(self.max_retries):
            try:
                with self.transaction() as tx:
                    return work(tx)
            except (OperationalError, TransactionError) as e:
                if is_lock_error(e) and attempt < self.max_retries - 1:
                    wait_time = self.retry_delay * (2**attempt)  # Exponential backoff
                    safe_logger(self.logger).log_debug(
                        f"Database locked, retrying in {wait_time}s",
                        {
                            "operation": operation_name,
                            "attempt": attempt + 1,
                            "max_retries": self.max_retries,
                        },
                    )
                    time.sleep(wait_time)
                    continue
                if isinstance(e, TransactionError):
                    raise
                raise TransactionError(
                    f"Transaction failed: {e}", operation=operation_name, **context
                ) from e
            except SQLAlchemyError as e:
                raise TransactionError(
                    f"Transaction failed: {e}", operation=operation_name, **context
                ) from e

        raise TransactionError(
            f"Operation failed after {self.max_retries} attempts due to database lock/busy conditions.",
            operation=operation_name,
            **context,
        )

    # ---- Alembic setup ----
    def _setup_alembic(self) -> Config:
        """Setup Alembic configuration without an ini file."""
        alembic_cfg = Config()
        alembic_cfg.set_main_option("script_location", str(self.migrations_dir))
        alembic_cfg.set_main_option("sqlalchemy.url", f"sqlite:///{self.db_path}")
        alembic_cfg.set_main_option(
            "file_template",
            "%%(year)d%%(month).2d%%(day).2d_%%(hour).2d%%(minute).2d_%%(slug)s",
        )
        return alembic_cfg

    @handle_db_errors
    @log_database_operation("initialize_schema")
    def initialize_schema(self) -> None:
        """
        Create tables if needed and bring the schema to the Alembic head.

        Actions:
            Fresh or never-stamped database:
                creates all tables from the ORM models
                stamps the Alembic revision to head
            Stamped database:
                runs pending migrations
        """
        logger = safe_logger(self.logger)
        try:
            with self.engine.connect() as conn:
                table_names = inspect(conn).get_table_names()
                current_rev = MigrationContext.configure(conn).get_current_revision()

            if not table_names or current_rev is None:
                Base.metadata.create_all(bind=self.engine)
                try:
                    command.stamp(self.alembic_cfg, "head")
                    logger.log_operation(
                        "fresh_database_created",
                        {"tables_created": len(Base.metadata.tables)},
                    )
                except Exception as e:
                    logger.log_error(e, {"operation": "stamp_database"})
            elif current_rev != self._head_revision():
                self.upgrade_database()
                logger.log_operation(
                    "existing_database_migrated", {"from_revision": current_rev}
                )

        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(f"Could not initialize database: {e}") from e

    def _head_revision(self) -> Optional[str]:
        return ScriptDirectory.from_config(self.alembic_cfg).get_current_head()

    @log_database_operation("upgrade_database")
    def upgrade_database(self, revision: str = "head") -> None:
        """
        Upgrade the database schema to the specified Alembic revision.

        Args:
            revision: Target revision (defaults to 'head').
        """
        try:
            command.upgrade(self.alembic_cfg, revision)
        except Exception as e:
            raise DatabaseError(f"Database upgrade failed: {e}") from e

    def get_migration_history(self) -> Dict[str, Optional[str]]:
        """
        Get the current migration status of the database.

        Returns:
            Dictionary with keys:
                - 'current_revision': Current Alembic revision
                - 'head_revision': Latest bundled revision
                - 'status': 'up_to_date' or 'needs_migration'
        """
        with self.engine.connect() as conn:
            current_rev = MigrationContext.configure(conn).get_current_revision()
        head_rev = self._head_revision()

        return {
            "current_revision": current_rev,
            "head_revision": head_rev,
            "status": "up_to_date" if current_rev == head_rev else "needs_migration",
        }

    # ---- Entries ----
    @log_database_operation("insert_entry")
    def insert_entry(self, entry_id: str, content: str, file_path: str) -> EntryRecord:
        """
        Insert a new entry row in its own transaction.

        Raises:
            ConflictError: If the id already exists
        """
        return self.run_in_transaction(
            "insert_entry",
            lambda tx: EntryRecord.from_model(tx.entries.insert(entry_id, content, file_path)),
            entry_id=entry_id,
        )

    @handle_db_errors
    def get_entry(self, entry_id: str) -> EntryRecord:
        """
        Retrieve an entry.

        Raises:
            NotFoundError: If the entry does not exist
        """
        with self.read_transaction() as tx:
            return EntryRecord.from_model(tx.entries.get(entry_id))

    @handle_db_errors
    def entry_exists(self, entry_id: str) -> bool:
        with self.read_transaction() as tx:
            return tx.entries.exists(entry_id)

    @handle_db_errors
    def list_entries(self) -> List[EntrySummary]:
        """All entries ordered by updated_at descending, with bounded previews."""
        with self.read_transaction() as tx:
            return tx.entries.list_summaries(self.preview_length)

    @handle_db_errors
    def search_entries(
        self, query: str, case_sensitive: Optional[bool] = None
    ) -> List[EntrySummary]:
        """
        Substring search over full content; same projection as list_entries.

        Case-insensitive unless ``case_sensitive`` (or the store default)
        says otherwise.
        """
        if case_sensitive is None:
            case_sensitive = self.search_case_sensitive
        with self.read_transaction() as tx:
            return tx.entries.search_summaries(
                query, self.preview_length, case_sensitive=case_sensitive
            )

    @handle_db_errors
    def list_entry_ids(self) -> List[str]:
        with self.read_transaction() as tx:
            return tx.entries.all_ids()

    @log_database_operation("delete_entry_cascade")
    def delete_entry_cascade(self, entry_id: str) -> int:
        """
        Remove metadata, all versions (with their diffs), then the entry.

        Returns:
            Number of versions removed

        Raises:
            NotFoundError: If the entry does not exist
        """
        return self.run_in_transaction(
            "delete_entry_cascade",
            lambda tx: tx.entries.delete_cascade(entry_id),
            entry_id=entry_id,
        )

    # ---- Versions ----
    @log_database_operation("append_version")
    def append_version(
        self,
        entry_id: str,
        content: str,
        change_type: Union[ChangeType, str],
        diff: Optional[str] = None,
    ) -> VersionRecord:
        """
        Append a version in its own transaction.

        Raises:
            NotFoundError: If the entry does not exist
        """
        return self.run_in_transaction(
            "append_version",
            lambda tx: VersionRecord.from_model(
                tx.versions.append(entry_id, content, ChangeType(change_type), diff=diff)
            ),
            entry_id=entry_id,
        )

    @handle_db_errors
    def get_version(self, version_id: str) -> VersionRecord:
        """
        Retrieve a version.

        Raises:
            NotFoundError: If the version does not exist
        """
        with self.read_transaction() as tx:
            return VersionRecord.from_model(tx.versions.get(version_id))

    @handle_db_errors
    def get_versions_for_entry(self, entry_id: str, order: str = "desc") -> List[VersionRecord]:
        """Versions of an entry (empty for unknown entries), newest first by default."""
        with self.read_transaction() as tx:
            return [VersionRecord.from_model(v) for v in tx.versions.for_entry(entry_id, order)]

    @handle_db_errors
    def get_diffs(self, version_id: str) -> List[DiffRecord]:
        """
        Stored change operations of a version.

        Raises:
            NotFoundError: If the version does not exist
        """
        with self.read_transaction() as tx:
            return [DiffRecord.from_model(d) for d in tx.versions.diffs(version_id)]

    # ---- Metadata ----
    @log_database_operation("upsert_metadata")
    def upsert_metadata(
        self,
        entry_id: str,
        word_count: int,
        tags: Optional[List[str]] = None,
    ) -> MetadataRecord:
        """
        Insert or overwrite derived statistics (last write wins).

        Raises:
            NotFoundError: If the entry does not exist
        """
        return self.run_in_transaction(
            "upsert_metadata",
            lambda tx: MetadataRecord.from_model(tx.metadata.upsert(entry_id, word_count, tags)),
            entry_id=entry_id,
        )

    @handle_db_errors
    def get_metadata(self, entry_id: str) -> MetadataRecord:
        """
        Retrieve derived statistics.

        Raises:
            NotFoundError: If the entry has no metadata row
        """
        with self.read_transaction() as tx:
            return MetadataRecord.from_model(tx.metadata.get(entry_id))

    # ----- Teardown -----
    def close(self) -> None:
        """Dispose of the engine's pooled connections."""
        self.engine.dispose()
        safe_logger(self.logger).log_debug("database_closed", {"db_path": str(self.db_path)})

    def __enter__(self) -> "IndexStore":
        """Support for context manager usage."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Dispose of the engine on context manager exit."""
        del exc_type, exc_val, exc_tb
        self.close()
