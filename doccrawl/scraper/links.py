"""Section link discovery.

``discover`` fetches a section's root page and returns the in-scope
documentation URLs it links to, seed first.  An unreachable root page is
not an error: discovery degrades to crawling the seed page alone.
"""

from __future__ import annotations

import logging
from typing import Callable, List
from urllib.parse import urldefrag, urljoin, urlsplit

from bs4 import BeautifulSoup

from doccrawl.errors import FetchError
from doccrawl.scraper.fetcher import fetch_url
from doccrawl.scraper.models import RawPage

logger = logging.getLogger(__name__)

DEFAULT_DISCOVERY_CAP = 100

_NON_WEB_SCHEMES = ("mailto:", "tel:", "javascript:", "data:")


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def extract_doc_links(html: str, base_url: str, path_prefix: str) -> List[str]:
    """Return absolute in-scope links from *html*, in document order.

    A link is in scope when it resolves to the same origin as *base_url* and
    its path starts with *path_prefix*.  Fragments are dropped, duplicates
    (exact string equality after resolution) keep their first position.
    """
    origin = _origin(base_url)
    soup = BeautifulSoup(html, "html.parser")

    seen: set[str] = set()
    links: List[str] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith(_NON_WEB_SCHEMES):
            continue

        absolute, _fragment = urldefrag(urljoin(base_url, href))
        if _origin(absolute) != origin:
            continue
        if not urlsplit(absolute).path.startswith(path_prefix):
            continue

        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)
    return links


def discover(
    root_url: str,
    path_prefix: str,
    cap: int = DEFAULT_DISCOVERY_CAP,
    fetcher: Callable[[str], RawPage] = fetch_url,
) -> List[str]:
    """Enumerate the pages of a section, starting from *root_url*.

    Args:
        root_url: Section root; always element 0 of the result.
        path_prefix: Site-relative documentation prefix, e.g. ``/en-US/docs/``.
        cap: Maximum number of URLs returned (root included).
        fetcher: Callable returning a :class:`RawPage` or raising
            :class:`FetchError`.

    Returns:
        Ordered, duplicate-free list of absolute URLs, at most *cap* long.
        ``[root_url]`` when the root page cannot be fetched.
    """
    try:
        raw = fetcher(root_url)
    except FetchError as exc:
        logger.warning("[DISCOVERY] Root page unreachable, crawling seed only: %s", exc)
        return [root_url]

    urls: List[str] = [root_url]
    for link in extract_doc_links(raw.html, root_url, path_prefix):
        if link != root_url:
            urls.append(link)

    if len(urls) > cap:
        logger.info("[DISCOVERY] %d links found under %s, capped at %d", len(urls), root_url, cap)
    return urls[: max(cap, 1)]
