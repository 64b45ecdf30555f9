"""Page normalisation: turns a :class:`RawPage` into a :class:`PageResult`.

Everything here is a pure function of the document text.  The public entry
point :func:`normalize` never raises; a parse failure comes back as a
failed :class:`PageResult`.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import List, Optional
from urllib.parse import urlsplit

import trafilatura
from bs4 import BeautifulSoup, Tag

from doccrawl.scraper.models import CodeSnippet, PageResult, RawPage

MAX_CONTENT_CHARS = 10_000
MAX_KEYWORDS = 10
MIN_KEYWORD_LENGTH = 4

UNTITLED = "Untitled"

# Primary content region, first non-empty wins.
_CONTENT_SELECTORS = (
    ".main-page-content, #main-content, main",
    "#content, .content",
    "article",
)

_LANGUAGE_CLASS = re.compile(r"^language-(\w+)$")
_LOCALE_SEGMENT = re.compile(r"^[a-z]{2}-[A-Za-z]{2,4}$")
_LANGUAGE_CODE = re.compile(r"^[a-z]{2}$")
_NON_WORD = re.compile(r"\W+")
_HEADINGS = ("h1", "h2", "h3", "h4", "h5", "h6")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _text(tag: Tag) -> str:
    # Inline markup may split a word; only collapse the whitespace already there.
    return " ".join(tag.get_text().split())


def _extract_title(soup: BeautifulSoup) -> str:
    """First ``<h1>``, then ``<title>``, then :data:`UNTITLED`."""
    h1 = soup.find("h1")
    if h1 is not None:
        text = _text(h1)
        if text:
            return text
    if soup.title is not None:
        text = soup.title.get_text(strip=True)
        if text:
            return text
    return UNTITLED


def _extract_content(soup: BeautifulSoup, html: str, url: str) -> str:
    for selector in _CONTENT_SELECTORS:
        region = soup.select_one(selector)
        if region is not None:
            text = _text(region)
            if text:
                return text

    # No recognised container: let trafilatura find the readable body.
    text: Optional[str] = trafilatura.extract(
        html,
        include_links=False,
        include_images=False,
        include_tables=True,
        url=url,
    )
    return (text or "").strip()


def infer_language(code: Tag) -> str:
    """Return the ``<name>`` of a ``language-<name>`` class, or ``""``."""
    for cls in code.get("class") or []:
        match = _LANGUAGE_CLASS.match(cls)
        if match:
            return match.group(1)
    return ""


def _code_blocks(soup: BeautifulSoup) -> List[CodeSnippet]:
    snippets: List[CodeSnippet] = []
    for code in soup.select("pre code"):
        text = code.get_text().strip()
        if text:
            snippets.append(CodeSnippet(language=infer_language(code), code=text))
    return snippets


def html_to_markdown(soup: BeautifulSoup) -> str:
    """Render headings, paragraphs and code blocks as simplified markdown.

    Blocks follow document order and are separated by blank lines.
    """
    blocks: List[str] = []
    for el in soup.find_all([*_HEADINGS, "p", "pre"]):
        if el.name in _HEADINGS:
            text = _text(el)
            if text:
                blocks.append("#" * int(el.name[1]) + " " + text)
        elif el.name == "p":
            if el.find_parent("pre") is not None:
                continue
            text = _text(el)
            if text:
                blocks.append(text)
        else:
            code = el.find("code")
            if code is None:
                continue
            text = code.get_text().strip()
            if text:
                blocks.append(f"```{infer_language(code)}\n{text}\n```")
    return "\n\n".join(blocks)


def extract_keywords(content: str, limit: int = MAX_KEYWORDS) -> List[str]:
    """Top *limit* tokens longer than three characters, most frequent first.

    Ties keep the order in which the tokens first appear.
    """
    words = [w for w in _NON_WORD.split(content.lower()) if len(w) >= MIN_KEYWORD_LENGTH]
    counts = Counter(words)
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [word for word, _count in ranked[:limit]]


def _is_locale(segments: List[str]) -> bool:
    first = segments[0]
    if _LOCALE_SEGMENT.match(first):
        return True
    return _LANGUAGE_CODE.match(first) is not None and segments[1:2] == ["docs"]


def extract_topics(url: str) -> List[str]:
    """URL path segments minus the leading locale and the ``docs`` segment.

    A first segment counts as a locale when it looks like ``en-US``, or when
    it is a bare language code (``en``) directly followed by ``docs``.
    """
    segments = [s for s in urlsplit(url).path.split("/") if s]
    if segments and _is_locale(segments):
        segments = segments[1:]
    return [s for s in segments if s != "docs"]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize_html(url: str, html: str) -> PageResult:
    """Normalise *html* fetched from *url*.  May raise on malformed input."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    title = _extract_title(soup)
    content = _extract_content(soup, html, url)[:MAX_CONTENT_CHARS]

    return PageResult(
        success=True,
        url=url,
        title=title,
        content=content,
        markdown=html_to_markdown(soup),
        code_snippets=_code_blocks(soup),
        word_count=len(content.split()),
        character_count=len(content),
        keywords=extract_keywords(content),
        topics=extract_topics(url),
    )


def normalize(url: str, raw: RawPage) -> PageResult:
    """Normalise a fetched page, converting any parse error into a failure."""
    try:
        return normalize_html(url, raw.html)
    except Exception as exc:  # noqa: BLE001
        return PageResult.failure(url, f"parse failed: {exc}")
