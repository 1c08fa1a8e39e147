"""
Momentum Storage Package
------------------------

Hybrid persistence for journal entries.

- content_store: Mirrored markdown files
- version_engine: Change descriptors between snapshots
- coordinator: StorageCoordinator, the transactional entry API

A process-wide coordinator is available through ``get_storage()``. It is
created lazily on first use and torn down explicitly with
``close_storage()``; components that can receive a coordinator by
injection should do so instead.
"""
# --- Standard library imports ---
import threading
from typing import Optional

# --- Local imports ---
from momentum.core.config import StorageConfig, load_config
from momentum.core.logging_manager import MomentumLogger
from .content_store import ContentStore
from .coordinator import StorageCoordinator, mirror_path
from .version_engine import Change, VersionEngine

_storage: Optional[StorageCoordinator] = None
_logger: Optional[MomentumLogger] = None
_lock = threading.Lock()


def get_storage(config: Optional[StorageConfig] = None) -> StorageCoordinator:
    """
    Return the process-wide coordinator, creating it on first call.

    Args:
        config: Used only when the instance is created (defaults to
            ``load_config()``)
    """
    global _storage, _logger

    with _lock:
        if _storage is None:
            config = config or load_config()
            if config.log_dir is not None:
                _logger = MomentumLogger(config.log_dir, component_name="storage")
            _storage = StorageCoordinator.from_config(config, logger=_logger)
        return _storage


def close_storage() -> None:
    """Dispose of the process-wide coordinator, if one was created."""
    global _storage, _logger

    with _lock:
        if _storage is not None:
            _storage.close()
            _storage = None
        if _logger is not None:
            _logger.close()
            _logger = None


__all__ = [
    "ContentStore",
    "VersionEngine",
    "Change",
    "StorageCoordinator",
    "mirror_path",
    "get_storage",
    "close_storage",
]
