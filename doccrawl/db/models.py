"""Dataclass models representing DB rows.

These are plain Python objects – not ORM models.  The DB layer serialises /
deserialises to and from these types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

JOB_STATUSES = ("pending", "running", "completed", "failed")


@dataclass
class Source:
    id: str
    name: str
    url: str
    base_domain: str
    source_type: str
    priority: int
    last_scraped_at: Optional[int]
    created_at: int


@dataclass
class StoredContent:
    id: str
    source_id: Optional[str]
    url: str
    section_slug: Optional[str]
    title: str
    content_type: str
    content: str
    markdown: str
    code_snippets: list[dict[str, str]]
    word_count: int
    character_count: int
    keywords: list[str]
    topics: list[str]
    content_hash: str
    processed: bool
    created_at: int
    updated_at: int


@dataclass
class Job:
    id: str
    section_slug: str
    source_id: Optional[str]
    job_type: str
    status: str
    priority: int
    total_urls: int = 0
    urls_processed: int = 0
    urls_failed: int = 0
    progress_percentage: float = 0.0
    items_scraped: int = 0
    items_new: int = 0
    items_updated: int = 0
    items_unchanged: int = 0
    config: dict[str, Any] = field(default_factory=dict)
    error_message: Optional[str] = None
    created_at: int = 0
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
