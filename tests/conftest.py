"""
conftest.py
-----------
Shared pytest fixtures for Momentum tests.

Provides fixtures for:
- Temporary directories and sample entry content
- Index store (SQLite + Alembic) setup and teardown
- Content store and storage coordinator stacks
- Mock loggers for log assertions
"""
import pytest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock


# ----- Path Fixtures -----

@pytest.fixture
def tmp_dir():
    """Create a temporary directory for test file operations."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_db_path(tmp_dir):
    """Temporary test database path."""
    return tmp_dir / "test.db"


@pytest.fixture
def storage_root(tmp_dir):
    """Temporary root for mirrored files."""
    return tmp_dir / "storage"


# ----- Sample Content Fixtures -----

@pytest.fixture
def draft_content():
    """Small entry with a heading."""
    return "# Draft\nline one"


@pytest.fixture
def tagged_content():
    """Entry with a heading, hashtags and several paragraphs."""
    return """# Sunday Hike

Went up the ridge trail with #friends this morning. #Hiking is
slowly becoming a habit, and the #hiking group chat agrees.

Back home by noon to write.
"""


# ----- Logger Fixtures -----

@pytest.fixture
def mock_logger():
    """MagicMock constrained to the MomentumLogger interface."""
    from momentum.core.logging_manager import MomentumLogger
    return MagicMock(spec=MomentumLogger)


# ----- Storage Fixtures -----

@pytest.fixture
def index_store(test_db_path):
    """
    Create a test index with schema.

    Returns an IndexStore whose schema was created and stamped at head.
    The engine is disposed after the test.
    """
    from momentum.database.manager import IndexStore

    store = IndexStore(test_db_path, retry_delay=0.0)
    yield store
    store.close()


@pytest.fixture
def content_store(storage_root):
    """ContentStore rooted in the temporary directory."""
    from momentum.storage.content_store import ContentStore
    return ContentStore(storage_root)


@pytest.fixture
def coordinator(index_store, content_store):
    """StorageCoordinator over the test index and content store."""
    from momentum.storage.coordinator import StorageCoordinator
    return StorageCoordinator(index_store, content_store, mirror_retry_delay=0.0)


# ----- Manager Fixtures -----

@pytest.fixture
def db_session(index_store):
    """
    Create a database session for tests.

    Committed when the test finishes without error.
    """
    with index_store.session_scope() as session:
        yield session


@pytest.fixture
def entry_manager(db_session):
    """Create EntryManager instance for testing."""
    from momentum.database.managers import EntryManager
    return EntryManager(db_session)


@pytest.fixture
def version_manager(db_session):
    """Create VersionManager instance for testing."""
    from momentum.database.managers import VersionManager
    return VersionManager(db_session)


@pytest.fixture
def metadata_manager(db_session):
    """Create MetadataManager instance for testing."""
    from momentum.database.managers import MetadataManager
    return MetadataManager(db_session)
