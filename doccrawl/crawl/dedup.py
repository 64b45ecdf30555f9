"""Content-hash deduplication.

Hashing and the store/skip decision are kept apart from fetching so they
can be tested on their own.  The dedup key is the URL: an unseen URL is
always new, whatever its content.
"""

from __future__ import annotations

import hashlib
from enum import Enum
from typing import Optional

from doccrawl.scraper.models import PageResult


class Decision(str, Enum):
    NEW = "new"
    UPDATED = "updated"
    UNCHANGED = "unchanged"

    @property
    def needs_write(self) -> bool:
        return self is not Decision.UNCHANGED


def content_hash(page: PageResult) -> str:
    """SHA-256 hex digest of the page's normalised content."""
    return hashlib.sha256(page.content.encode("utf-8")).hexdigest()


def decide(stored_hash: Optional[str], new_hash: str) -> Decision:
    """Compare the stored hash for a URL with the freshly computed one."""
    if stored_hash is None:
        return Decision.NEW
    if stored_hash == new_hash:
        return Decision.UNCHANGED
    return Decision.UPDATED
