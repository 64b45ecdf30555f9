"""Scraper package — fetch, link discovery & page normalisation."""

from doccrawl.scraper.fetcher import fetch_url
from doccrawl.scraper.links import discover
from doccrawl.scraper.models import CodeSnippet, PageResult, RawPage, Section
from doccrawl.scraper.normalizer import normalize
from doccrawl.scraper.sections import get_section, list_sections

__all__ = [
    "fetch_url",
    "discover",
    "normalize",
    "list_sections",
    "get_section",
    "RawPage",
    "PageResult",
    "CodeSnippet",
    "Section",
]
