"""
Momentum Journal Storage
========================

Versioned storage core of the Momentum journaling application.

Journal entries are persisted in a relational index (the source of truth)
and mirrored to one markdown file each. Every write appends an immutable
version, so any earlier state can be restored.

Main Components:
    - database: SQLAlchemy index store with managers and Alembic migrations
    - storage: Content store, version engine and the storage coordinator
    - assistant: Background dispatcher for AI writing prompts
    - core: Logging, configuration, paths, validation, exceptions
    - cli: Click command line interface

Example Usage:
    >>> from momentum.storage import get_storage
    >>> storage = get_storage()
    >>> entry_id = storage.create_entry("# Monday\\nFirst steps")
    >>> storage.get_versions(entry_id)[0].change_type.value
    'create'
"""

__version__ = "0.1.0"
