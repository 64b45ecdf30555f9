"""Static catalog of crawlable documentation sections."""

from __future__ import annotations

from typing import List

from doccrawl.errors import UnknownSectionError
from doccrawl.scraper.models import Section

SITE_BASE = "https://developer.mozilla.org"
SITE_NAME = "MDN Web Docs"
DOCS_PATH_PREFIX = "/en-US/docs/"

SECTIONS: tuple[Section, ...] = (
    Section("HTML", "html", f"{SITE_BASE}/en-US/docs/Web/HTML", "html"),
    Section("CSS", "css", f"{SITE_BASE}/en-US/docs/Web/CSS", "css"),
    Section("JavaScript", "javascript", f"{SITE_BASE}/en-US/docs/Web/JavaScript", "javascript"),
    Section("Web APIs", "web-apis", f"{SITE_BASE}/en-US/docs/Web/API", "web-apis"),
    Section("HTTP", "http", f"{SITE_BASE}/en-US/docs/Web/HTTP", "http"),
    Section("Web Guides", "guides", f"{SITE_BASE}/en-US/docs/Web/Guide", "guides"),
    Section("Developer Tools", "tools", f"{SITE_BASE}/en-US/docs/Tools", "tools"),
)


def list_sections() -> List[Section]:
    """Return every section in catalog order."""
    return list(SECTIONS)


def get_section(slug: str) -> Section:
    """Look up a section by slug.

    Raises:
        UnknownSectionError: If *slug* is not in the catalog.
    """
    for section in SECTIONS:
        if section.slug == slug:
            return section
    raise UnknownSectionError(slug)
