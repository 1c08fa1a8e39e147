#!/usr/bin/env python3
"""
content_store.py
-------------------
File storage for the markdown mirror of each entry.

One file per entry under a root directory, addressed by a relative POSIX
path. The files are a readable/exportable copy of the content held in the
index, never the system of record.

Functions:
    ContentStore.write: Create parents and atomically replace the file
    ContentStore.read: Read a file (NotFoundError if missing)
    ContentStore.delete: Remove a file (no-op if already absent)
    ContentStore.exists: Check for a file
    ContentStore.file_hash: MD5 of a file for mirror change detection

Usage:
    store = ContentStore(Path("data/storage"))
    store.write("entries/0f1c.md", "# Monday\\n")
    text = store.read("entries/0f1c.md")
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import hashlib
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

# --- Local imports ---
from momentum.core.exceptions import ContentStoreError, NotFoundError
from momentum.core.logging_manager import MomentumLogger, safe_logger
from momentum.core.validators import DataValidator

ENCODING = "utf-8"


class ContentStore:
    """Relative-path file storage rooted at one directory."""

    def __init__(
        self, root: Union[str, Path], logger: Optional[MomentumLogger] = None
    ) -> None:
        self.root = Path(root).expanduser().resolve()
        self.logger = logger

    def full_path(self, path: str) -> Path:
        """
        Resolve a relative mirror path against the root.

        Raises:
            ValidationError: If the path is absolute or escapes the root
        """
        relative = DataValidator.validate_relative_path(path)
        return self.root.joinpath(*relative.parts)

    def write(self, path: str, data: Union[str, bytes]) -> Path:
        """
        Write a file, creating parent directories and overwriting any copy.

        The data goes to a temporary file in the target directory which
        then replaces the target, so readers see the old or the new body.

        Returns:
            Absolute path written

        Raises:
            ValidationError: Unsafe path
            ContentStoreError: Filesystem failure
        """
        target = self.full_path(path)
        payload = data.encode(ENCODING) if isinstance(data, str) else data

        tmp_name = None
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=target.parent
            )
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ContentStoreError(f"Could not write file: {e}", path=path) from e

        safe_logger(self.logger).log_debug(
            "content_written", {"path": path, "bytes": len(payload)}
        )
        return target

    def read_bytes(self, path: str) -> bytes:
        target = self.full_path(path)
        try:
            return target.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError("File not found", path=path) from e
        except IsADirectoryError as e:
            raise NotFoundError("File not found", path=path) from e
        except OSError as e:
            raise ContentStoreError(f"Could not read file: {e}", path=path) from e

    def read(self, path: str) -> str:
        """
        Read a mirrored file as text.

        Raises:
            NotFoundError: If the file does not exist
        """
        return self.read_bytes(path).decode(ENCODING)

    def delete(self, path: str) -> bool:
        """
        Remove a file; an already absent file is not an error.

        Returns:
            True if a file was removed
        """
        target = self.full_path(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise ContentStoreError(f"Could not delete file: {e}", path=path) from e

        safe_logger(self.logger).log_debug("content_deleted", {"path": path})
        return True

    def exists(self, path: str) -> bool:
        return self.full_path(path).is_file()

    def file_hash(self, path: str) -> Optional[str]:
        """
        MD5 of a file for change detection, or None if it does not exist.

        Note: MD5 is used for change detection only, not cryptographic security.
        """
        target = self.full_path(path)
        if not target.is_file():
            return None
        return hashlib.md5(target.read_bytes()).hexdigest()
