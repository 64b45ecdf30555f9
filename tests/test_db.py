"""Database layer tests — job tracker and content store.

All tests use an in-memory SQLite database so they are:
- Fast (no disk I/O)
- Isolated (each fixture gets a fresh DB)
- Side-effect free (nothing written to ~/.doccrawl_data)
"""

from __future__ import annotations

import sqlite3
from typing import Generator

import pytest

from doccrawl.db.connection import get_connection
from doccrawl.db.content import (
    count_content,
    get_content,
    get_content_hash,
    get_or_create_source,
    get_source,
    mark_source_scraped,
    upsert_content,
)
from doccrawl.db.jobs import (
    completed_section_slugs,
    create_job,
    get_job,
    job_summary,
    list_jobs,
    update_job,
)
from doccrawl.db.migrations import current_version, init_db
from doccrawl.scraper.models import CodeSnippet, PageResult


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory connection with the schema initialised."""
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


def _page(url: str = "https://docs.example.com/en-US/docs/a", content: str = "alpha beta") -> PageResult:
    return PageResult(
        success=True,
        url=url,
        title="A",
        content=content,
        markdown="# A",
        code_snippets=[CodeSnippet(language="js", code="let a = 1;")],
        word_count=len(content.split()),
        character_count=len(content),
        keywords=["alpha", "beta"],
        topics=["a"],
    )


# ---------------------------------------------------------------------------
# connection / init
# ---------------------------------------------------------------------------

class TestInitDb:
    def test_tables_exist(self, conn: sqlite3.Connection) -> None:
        tables = {
            r[0]
            for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        }
        assert {"sources", "content", "jobs", "schema_version"} <= tables

    def test_idempotent(self, conn: sqlite3.Connection) -> None:
        init_db(conn)
        init_db(conn)
        assert current_version(conn) == 0

    def test_foreign_keys_enabled(self, conn: sqlite3.Connection) -> None:
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

class TestJobs:
    def test_create_job_is_pending_with_zero_counters(self, conn: sqlite3.Connection) -> None:
        job = create_job(conn, "css", priority=7, config={"concurrency": 3})

        assert job.status == "pending"
        assert job.section_slug == "css"
        assert job.priority == 7
        assert job.total_urls == job.urls_processed == job.urls_failed == job.items_scraped == 0
        assert job.progress_percentage == 0
        assert job.config == {"section_slug": "css", "concurrency": 3}
        assert job.started_at is None and job.completed_at is None
        assert len(job.id) == 36  # UUID format

    def test_update_job_fields(self, conn: sqlite3.Connection) -> None:
        job = create_job(conn, "css")
        updated = update_job(conn, job.id, status="running", total_urls=7, started_at=123)

        assert updated.status == "running"
        assert updated.total_urls == 7
        assert updated.started_at == 123
        assert get_job(conn, job.id).total_urls == 7

    def test_update_job_repeatable(self, conn: sqlite3.Connection) -> None:
        job = create_job(conn, "css")
        first = update_job(conn, job.id, urls_processed=2, progress_percentage=50.0)
        second = update_job(conn, job.id, urls_processed=2, progress_percentage=50.0)
        assert (first.urls_processed, first.progress_percentage) == (
            second.urls_processed,
            second.progress_percentage,
        )

    def test_update_unknown_job_raises(self, conn: sqlite3.Connection) -> None:
        with pytest.raises(ValueError, match="Job not found"):
            update_job(conn, "missing", status="running")

    def test_update_rejects_unknown_field(self, conn: sqlite3.Connection) -> None:
        job = create_job(conn, "css")
        with pytest.raises(ValueError, match="Cannot update field"):
            update_job(conn, job.id, section_slug="html")

    def test_update_rejects_unknown_status(self, conn: sqlite3.Connection) -> None:
        job = create_job(conn, "css")
        with pytest.raises(ValueError, match="Unknown job status"):
            update_job(conn, job.id, status="paused")

    def test_get_missing_job_returns_none(self, conn: sqlite3.Connection) -> None:
        assert get_job(conn, "nope") is None

    def test_list_jobs_most_recent_first(self, conn: sqlite3.Connection) -> None:
        first = create_job(conn, "css")
        second = create_job(conn, "html")
        third = create_job(conn, "http")

        assert [j.id for j in list_jobs(conn)] == [third.id, second.id, first.id]
        assert [j.id for j in list_jobs(conn, limit=2)] == [third.id, second.id]

    def test_list_jobs_filters_by_status(self, conn: sqlite3.Connection) -> None:
        done = create_job(conn, "css")
        create_job(conn, "html")
        update_job(conn, done.id, status="completed")

        assert [j.id for j in list_jobs(conn, status="completed")] == [done.id]

    def test_summary_and_completed_slugs(self, conn: sqlite3.Connection) -> None:
        a = create_job(conn, "css")
        b = create_job(conn, "html")
        create_job(conn, "http")
        update_job(conn, a.id, status="completed")
        update_job(conn, b.id, status="failed")

        assert job_summary(conn) == {
            "total": 3,
            "pending": 1,
            "running": 0,
            "completed": 1,
            "failed": 1,
        }
        assert completed_section_slugs(conn) == {"css"}


# ---------------------------------------------------------------------------
# Sources / content
# ---------------------------------------------------------------------------

class TestSources:
    def test_get_or_create_is_stable(self, conn: sqlite3.Connection) -> None:
        first = get_or_create_source(conn, "https://docs.example.com", name="Docs")
        second = get_or_create_source(conn, "https://docs.example.com")
        assert first == second

        source = get_source(conn, first)
        assert source.name == "Docs"
        assert source.base_domain == "docs.example.com"
        assert source.last_scraped_at is None

    def test_mark_scraped(self, conn: sqlite3.Connection) -> None:
        sid = get_or_create_source(conn, "https://docs.example.com")
        mark_source_scraped(conn, sid)
        assert get_source(conn, sid).last_scraped_at is not None


class TestContent:
    def test_hash_absent_for_unseen_url(self, conn: sqlite3.Connection) -> None:
        assert get_content_hash(conn, "https://docs.example.com/x") is None

    def test_upsert_inserts_then_updates(self, conn: sqlite3.Connection) -> None:
        sid = get_or_create_source(conn, "https://docs.example.com")
        page = _page()

        stored = upsert_content(conn, page, "h1", source_id=sid, section_slug="css")
        assert stored.content_hash == "h1"
        assert stored.code_snippets == [{"language": "js", "code": "let a = 1;"}]
        assert stored.keywords == ["alpha", "beta"]
        assert stored.section_slug == "css"

        changed = _page(content="alpha beta gamma")
        restored = upsert_content(conn, changed, "h2", source_id=sid, section_slug="css")

        assert restored.id == stored.id
        assert restored.content == "alpha beta gamma"
        assert get_content_hash(conn, page.url) == "h2"
        assert count_content(conn) == 1
        assert count_content(conn, section_slug="css") == 1

    def test_get_content_missing(self, conn: sqlite3.Connection) -> None:
        assert get_content(conn, "https://docs.example.com/none") is None
