"""Text processing helpers."""

from __future__ import annotations

import re


WHITESPACE_RE = re.compile(r"\s+")
NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def normalize(text: str) -> str:
    """Collapse whitespace and strip."""
    return WHITESPACE_RE.sub(" ", text).strip()


def collapse_newlines(text: str) -> str:
    """Replace every line break with a single space."""
    return NEWLINE_RE.sub(" ", text)
