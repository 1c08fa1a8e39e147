#!/usr/bin/env python3
"""
validators.py
--------------------
Input validation and normalization utilities for storage operations.
"""
from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any

from .exceptions import ValidationError


class DataValidator:
    """Centralized data validation for index and mirror operations."""

    @staticmethod
    def validate_content(content: Any) -> str:
        """
        Ensure entry content is text.

        Empty strings are valid entries. Content must be encodable as UTF-8,
        the encoding of the index and of the mirrored files.

        Raises:
            ValidationError: If content is not a str or holds lone surrogates
        """
        if not isinstance(content, str):
            raise ValidationError(
                f"Entry content must be a string, got {type(content).__name__}"
            )
        try:
            content.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValidationError(
                f"Entry content is not valid UTF-8 text: {e.reason} at position {e.start}"
            ) from e
        return content

    @staticmethod
    def validate_identifier(value: Any, kind: str = "entry") -> str:
        """
        Ensure an entry/version identifier is a non-empty string.

        Raises:
            ValidationError: If value is empty or not a string
        """
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Invalid {kind} id: {value!r}")
        return value.strip()

    @staticmethod
    def validate_relative_path(path: Any) -> PurePosixPath:
        """
        Validate a mirror path relative to the storage root.

        Args:
            path: Relative path such as ``entries/<id>.md``

        Returns:
            Normalized PurePosixPath

        Raises:
            ValidationError: If the path is empty, absolute or escapes the root
        """
        if not isinstance(path, str) or not path.strip():
            raise ValidationError(f"Invalid storage path: {path!r}")

        posix = PurePosixPath(path.replace("\\", "/"))
        if posix.is_absolute() or ".." in posix.parts:
            raise ValidationError("Storage path must stay inside the storage root", path=path)
        return posix
