"""Content store adapter: sources and normalised pages.

Pages are keyed by URL.  ``content_hash`` is stored opaquely for change
detection; this module never interprets it.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from time import time
from typing import Optional
from urllib.parse import urlsplit

from doccrawl.db.models import Source, StoredContent
from doccrawl.scraper.models import PageResult


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_source(row: sqlite3.Row) -> Source:
    return Source(
        id=row["id"],
        name=row["name"],
        url=row["url"],
        base_domain=row["base_domain"],
        source_type=row["source_type"],
        priority=row["priority"],
        last_scraped_at=row["last_scraped_at"],
        created_at=row["created_at"],
    )


def _row_to_content(row: sqlite3.Row) -> StoredContent:
    return StoredContent(
        id=row["id"],
        source_id=row["source_id"],
        url=row["url"],
        section_slug=row["section_slug"],
        title=row["title"],
        content_type=row["content_type"],
        content=row["content"],
        markdown=row["markdown"],
        code_snippets=json.loads(row["code_snippets"] or "[]"),
        word_count=row["word_count"],
        character_count=row["character_count"],
        keywords=json.loads(row["keywords"] or "[]"),
        topics=json.loads(row["topics"] or "[]"),
        content_hash=row["content_hash"],
        processed=bool(row["processed"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

def get_source(conn: sqlite3.Connection, source_id: str) -> Optional[Source]:
    row = conn.execute("SELECT * FROM sources WHERE id = ?", (source_id,)).fetchone()
    return _row_to_source(row) if row else None


def get_or_create_source(
    conn: sqlite3.Connection,
    base_url: str,
    name: Optional[str] = None,
    priority: int = 5,
) -> str:
    """Return the id of the source registered for *base_url*, creating it if needed."""
    row = conn.execute("SELECT id FROM sources WHERE url = ?", (base_url,)).fetchone()
    if row:
        return row["id"]

    source_id = str(uuid.uuid4())
    domain = urlsplit(base_url).netloc
    with conn:
        conn.execute(
            """
            INSERT OR IGNORE INTO sources (id, name, url, base_domain, priority, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (source_id, name or domain, base_url, domain, priority, int(time())),
        )
    # Another writer may have won the insert race; read back the survivor.
    row = conn.execute("SELECT id FROM sources WHERE url = ?", (base_url,)).fetchone()
    return row["id"]


def mark_source_scraped(conn: sqlite3.Connection, source_id: str) -> None:
    """Stamp ``last_scraped_at`` on a source."""
    with conn:
        conn.execute(
            "UPDATE sources SET last_scraped_at = ? WHERE id = ?",
            (int(time()), source_id),
        )


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

def get_content_hash(conn: sqlite3.Connection, url: str) -> Optional[str]:
    """Return the stored hash for *url*, or ``None`` when the URL is unseen."""
    row = conn.execute(
        "SELECT content_hash FROM content WHERE url = ?", (url,)
    ).fetchone()
    return row["content_hash"] if row else None


def get_content(conn: sqlite3.Connection, url: str) -> Optional[StoredContent]:
    row = conn.execute("SELECT * FROM content WHERE url = ?", (url,)).fetchone()
    return _row_to_content(row) if row else None


def upsert_content(
    conn: sqlite3.Connection,
    page: PageResult,
    content_hash: str,
    source_id: Optional[str] = None,
    section_slug: Optional[str] = None,
) -> StoredContent:
    """Insert *page* or overwrite the existing row for its URL.

    ``processed`` is reset so downstream consumers pick the page up again.
    """
    now = int(time())
    with conn:
        conn.execute(
            """
            INSERT INTO content (id, source_id, url, section_slug, title, content,
                                 markdown, code_snippets, word_count, character_count,
                                 keywords, topics, content_hash, processed,
                                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
            ON CONFLICT(url) DO UPDATE SET
                source_id       = excluded.source_id,
                section_slug    = excluded.section_slug,
                title           = excluded.title,
                content         = excluded.content,
                markdown        = excluded.markdown,
                code_snippets   = excluded.code_snippets,
                word_count      = excluded.word_count,
                character_count = excluded.character_count,
                keywords        = excluded.keywords,
                topics          = excluded.topics,
                content_hash    = excluded.content_hash,
                processed       = 0,
                updated_at      = excluded.updated_at
            """,
            (
                str(uuid.uuid4()),
                source_id,
                page.url,
                section_slug,
                page.title,
                page.content,
                page.markdown,
                json.dumps(page.snippets_as_dicts()),
                page.word_count,
                page.character_count,
                json.dumps(page.keywords),
                json.dumps(page.topics),
                content_hash,
                now,
                now,
            ),
        )
    return get_content(conn, page.url)  # type: ignore[return-value]


def count_content(conn: sqlite3.Connection, section_slug: Optional[str] = None) -> int:
    if section_slug:
        row = conn.execute(
            "SELECT COUNT(*) FROM content WHERE section_slug = ?", (section_slug,)
        ).fetchone()
    else:
        row = conn.execute("SELECT COUNT(*) FROM content").fetchone()
    return row[0]
