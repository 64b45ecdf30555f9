"""Exception types shared across the crawl engine.

Per-page problems never escape the orchestrator as exceptions; they are
folded into :class:`~doccrawl.scraper.models.PageResult` failures and job
counters.  Only :class:`UnknownSectionError` is surfaced synchronously to
a trigger layer.
"""

from __future__ import annotations

from typing import Optional


class CrawlError(Exception):
    """Base class for all DocCrawl errors."""


class FetchError(CrawlError):
    """A single GET did not yield a usable document.

    ``retryable`` is ``True`` for transport errors, timeouts, HTTP 429 and
    5xx responses; other HTTP errors are permanent.
    """

    def __init__(
        self,
        url: str,
        reason: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(f"{reason} ({url})")
        self.url = url
        self.reason = reason
        self.status_code = status_code
        self.retryable = retryable


class UnknownSectionError(CrawlError, LookupError):
    """The requested section slug is not in the static catalog."""

    def __init__(self, slug: str) -> None:
        super().__init__(f"Section {slug!r} not found")
        self.slug = slug
