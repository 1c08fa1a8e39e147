#!/usr/bin/env python3
"""
version_engine.py
-------------------
Change descriptors between two full-text snapshots.

Versions store full snapshots, so restores never replay diffs; the change
operations computed here are stored alongside each version as a
description of what changed.

The diff policy is whole-document replacement: equal texts give no
operations, anything else gives one ``replace`` covering the old text.
``apply`` still handles arbitrary multi-operation sequences.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

# --- Local imports ---
from momentum.core.exceptions import ValidationError
from momentum.database.models import DiffOperation

PREVIEW_CHARS = 40


@dataclass(frozen=True)
class Change:
    """
    One change operation against a base text.

    Attributes:
        operation: insert, delete or replace
        position: Character offset in the base text
        content: Inserted/replacement text (insert, replace)
        length: Characters removed/replaced (delete, replace)
    """

    operation: DiffOperation
    position: int
    content: Optional[str] = None
    length: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "operation": self.operation.value,
            "position": self.position,
            "content": self.content,
            "length": self.length,
        }


class VersionEngine:
    """Computes and replays change operations between snapshots."""

    def diff(self, old_text: str, new_text: str) -> List[Change]:
        """
        Describe the change from ``old_text`` to ``new_text``.

        Returns:
            [] when the texts are equal, otherwise a single whole-document
            replace
        """
        if old_text == new_text:
            return []
        return [
            Change(
                operation=DiffOperation.REPLACE,
                position=0,
                content=new_text,
                length=len(old_text),
            )
        ]

    def apply(self, base_text: str, changes: Sequence[Change]) -> str:
        """
        Rebuild text by applying ``changes`` to ``base_text``.

        Operations are applied last to first so that the positions of
        earlier operations still refer to the base text.

        Raises:
            ValidationError: If an operation falls outside the text
        """
        text = base_text
        for change in reversed(list(changes)):
            operation = DiffOperation(change.operation)
            position = change.position
            length = change.length or 0
            content = change.content or ""

            if position < 0 or position > len(text):
                raise ValidationError(
                    f"Change position {position} outside text of length {len(text)}"
                )

            if operation == DiffOperation.INSERT:
                text = text[:position] + content + text[position:]
            elif operation == DiffOperation.DELETE:
                text = text[:position] + text[position + length:]
            else:
                text = text[:position] + content + text[position + length:]

        return text

    def describe(self, changes: Iterable[Change]) -> Optional[str]:
        """
        Human-readable summary stored on a version.

        Returns None when there are no operations.
        """
        lines = []
        for change in changes:
            operation = DiffOperation(change.operation)
            if operation == DiffOperation.INSERT:
                lines.append(
                    f"insert at {change.position}: {_preview(change.content)}"
                )
            elif operation == DiffOperation.DELETE:
                lines.append(f"delete {change.length or 0} chars at {change.position}")
            else:
                lines.append(
                    f"replace {change.length or 0} chars at {change.position} "
                    f"with {len(change.content or '')} chars: {_preview(change.content)}"
                )
        return "\n".join(lines) if lines else None


def _preview(content: Optional[str]) -> str:
    text = (content or "").replace("\n", " ")
    if len(text) > PREVIEW_CHARS:
        text = text[: PREVIEW_CHARS - 3] + "..."
    return repr(text)
