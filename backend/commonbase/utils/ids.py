"""Entry identifiers."""

from __future__ import annotations

import uuid


def new_entry_id() -> str:
    """Canonical hyphenated UUID4, the id format clients already store in links."""
    return str(uuid.uuid4())
