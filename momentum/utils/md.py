#!/usr/bin/env python3
"""
md.py
-------------------
Markdown-specific utilities for journal entries.

Provides the derivations computed from an entry body on every write and
for display:
- Display titles from the first non-empty line
- Word counts and reading time
- Inline #hashtag extraction
- Content hashing for mirror change detection
"""
from __future__ import annotations

# --- Standard library imports ---
import hashlib
import re
from typing import List

TITLE_MAX_LENGTH = 50
UNTITLED = "Untitled"
WORDS_PER_MINUTE = 200

_HEADING_MARKER = re.compile(r"^#{1,6}(?:\s+|$)")
_HASHTAG = re.compile(r"(?<![\w#&/])#([A-Za-z][\w-]*)")


# ----- Titles -----
def extract_title(content: str) -> str:
    """
    Derive a display title from entry content.

    Takes the first non-empty line, strips a leading markdown heading
    marker (``#`` through ``######`` plus following whitespace) and
    truncates to 50 characters with an ellipsis.

    Examples:
        >>> extract_title("# Hello World\\n\\nbody")
        'Hello World'
        >>> extract_title("")
        'Untitled'
    """
    first_line = next(
        (line.strip() for line in content.splitlines() if line.strip()), ""
    )
    title = _HEADING_MARKER.sub("", first_line).strip()
    if not title:
        return UNTITLED

    if len(title) > TITLE_MAX_LENGTH:
        return title[: TITLE_MAX_LENGTH - 3] + "..."
    return title


# ----- Statistics -----
def count_words(content: str) -> int:
    """Count whitespace-separated tokens (0 for blank text)."""
    return len(content.split())


def reading_time(word_count: int) -> float:
    """Estimated reading time in minutes, one decimal place."""
    return round(word_count / WORDS_PER_MINUTE, 1)


def extract_tags(content: str) -> List[str]:
    """
    Collect inline ``#hashtags`` from the body.

    Heading markers (``# Title``) are not tags because the marker is
    followed by whitespace. Tags are lower-cased, de-duplicated and sorted.

    Examples:
        >>> extract_tags("# Day\\nwent #Hiking with #friends, more #hiking")
        ['friends', 'hiking']
    """
    return sorted({match.lower() for match in _HASHTAG.findall(content)})


# ----- Content Hashing -----
def get_text_hash(text: str) -> str:
    """
    Compute MD5 hash of text content for change detection.

    Note: MD5 is used for change detection only, not cryptographic security.

    Examples:
        >>> get_text_hash("Hello, world!")
        '6cd3556deb0da54bca060b4c39479839'
    """
    return hashlib.md5(text.encode("utf-8")).hexdigest()
