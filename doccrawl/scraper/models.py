"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True)
class Section:
    """A named, URL-rooted subset of the documentation site."""

    title: str
    slug: str
    url: str
    category: str


@dataclass
class RawPage:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    status_code: int


@dataclass(frozen=True)
class CodeSnippet:
    language: str
    code: str


@dataclass(frozen=True)
class PageResult:
    """Normalised content extracted from one fetched URL.

    Produced once per URL and never mutated afterwards.  A failed fetch or
    parse is represented by :meth:`failure` rather than an exception.
    """

    success: bool
    url: str
    title: str = ""
    content: str = ""
    markdown: str = ""
    code_snippets: List[CodeSnippet] = field(default_factory=list)
    word_count: int = 0
    character_count: int = 0
    keywords: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(cls, url: str, error: str) -> PageResult:
        return cls(success=False, url=url, error=error)

    def snippets_as_dicts(self) -> list[dict[str, Any]]:
        """Serialise code snippets for JSON storage."""
        return [asdict(s) for s in self.code_snippets]
