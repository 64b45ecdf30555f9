"""Tests for the HTTP trigger layer (sections, crawl, jobs, content).

Each test gets its own in-memory SQLite database swapped in after the
TestClient lifespan has run.  ``start_crawl`` is replaced where a test only
cares about the endpoint contract, so no crawl threads or network calls
are started.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from doccrawl.api.app import create_app
from doccrawl.db.connection import get_connection
from doccrawl.db.content import upsert_content
from doccrawl.db.jobs import create_job, update_job
from doccrawl.db.migrations import init_db
from doccrawl.errors import UnknownSectionError
from doccrawl.scraper.models import CodeSnippet, PageResult


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def conn():
    connection = get_connection(db_path=":memory:")
    init_db(connection)
    yield connection
    connection.close()


@pytest.fixture()
def client(conn, tmp_path, monkeypatch):
    """TestClient backed by the in-memory ``conn`` fixture."""
    monkeypatch.setattr("doccrawl.config.settings.workspace_dir", tmp_path)
    app = create_app()

    with TestClient(app, raise_server_exceptions=True) as c:
        # Lifespan has run by this point; override its db with our in-memory one.
        c.app.state.db = conn
        yield c


# ---------------------------------------------------------------------------
# /sections
# ---------------------------------------------------------------------------

class TestSections:
    def test_lists_catalog(self, client):
        resp = client.get("/sections")
        assert resp.status_code == 200
        slugs = [s["slug"] for s in resp.json()]
        assert "css" in slugs
        assert all(s["scraped"] is False for s in resp.json())

    def test_marks_completed_sections(self, client, conn):
        job = create_job(conn, "css")
        update_job(conn, job.id, status="completed")

        by_slug = {s["slug"]: s for s in client.get("/sections").json()}
        assert by_slug["css"]["scraped"] is True
        assert by_slug["html"]["scraped"] is False


# ---------------------------------------------------------------------------
# /crawl
# ---------------------------------------------------------------------------

class TestStartCrawl:
    def test_returns_202_with_job_id(self, client, conn, monkeypatch):
        calls = []

        def fake_start(c, slug, priority=5):
            calls.append((slug, priority))
            return create_job(c, slug, priority=priority).id

        monkeypatch.setattr("doccrawl.api.routers.sections.start_crawl", fake_start)

        resp = client.post("/crawl", json={"section_slug": "css", "priority": 8})
        assert resp.status_code == 202
        data = resp.json()
        assert calls == [("css", 8)]
        assert "css" in data["message"]

        job = client.get(f"/jobs/{data['job_id']}").json()
        assert job["status"] == "pending"
        assert job["priority"] == 8

    def test_unknown_section_is_404(self, client, monkeypatch):
        def fake_start(c, slug, priority=5):
            raise UnknownSectionError(slug)

        monkeypatch.setattr("doccrawl.api.routers.sections.start_crawl", fake_start)

        resp = client.post("/crawl", json={"section_slug": "cobol"})
        assert resp.status_code == 404
        assert "cobol" in resp.json()["detail"]

    def test_unknown_section_creates_no_job(self, client, conn):
        resp = client.post("/crawl", json={"section_slug": "cobol"})
        assert resp.status_code == 404
        assert client.get("/jobs").json()["jobs"] == []

    def test_missing_slug_is_422(self, client):
        assert client.post("/crawl", json={}).status_code == 422
        assert client.post("/crawl", json={"section_slug": ""}).status_code == 422


# ---------------------------------------------------------------------------
# /jobs
# ---------------------------------------------------------------------------

class TestJobs:
    def test_empty(self, client):
        data = client.get("/jobs").json()
        assert data["jobs"] == []
        assert data["summary"]["total"] == 0

    def test_list_with_summary_and_filter(self, client, conn):
        a = create_job(conn, "css")
        create_job(conn, "html")
        update_job(conn, a.id, status="running", total_urls=4, urls_processed=2, progress_percentage=50.0)

        data = client.get("/jobs").json()
        assert len(data["jobs"]) == 2
        assert data["summary"] == {
            "total": 2,
            "pending": 1,
            "running": 1,
            "completed": 0,
            "failed": 0,
        }

        running = client.get("/jobs", params={"status": "running"}).json()["jobs"]
        assert [j["id"] for j in running] == [a.id]
        assert running[0]["progress_percentage"] == 50.0

    def test_rejects_bad_status_and_limit(self, client):
        assert client.get("/jobs", params={"status": "paused"}).status_code == 422
        assert client.get("/jobs", params={"limit": 0}).status_code == 422

    def test_get_job_not_found(self, client):
        resp = client.get("/jobs/does-not-exist")
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# /content
# ---------------------------------------------------------------------------

class TestContent:
    _URL = "https://developer.mozilla.org/en-US/docs/Web/CSS/color"

    def test_not_found(self, client):
        resp = client.get("/content", params={"url": self._URL})
        assert resp.status_code == 404

    def test_returns_stored_page(self, client, conn):
        page = PageResult(
            success=True,
            url=self._URL,
            title="color",
            content="The color property sets the foreground color.",
            markdown="# color",
            code_snippets=[CodeSnippet(language="css", code="color: red;")],
            word_count=7,
            character_count=45,
            keywords=["color"],
            topics=["Web", "CSS", "color"],
        )
        upsert_content(conn, page, "abc123", section_slug="css")

        data = client.get("/content", params={"url": self._URL}).json()
        assert data["title"] == "color"
        assert data["content_hash"] == "abc123"
        assert data["code_snippets"] == [{"language": "css", "code": "color: red;"}]
        assert data["topics"] == ["Web", "CSS", "color"]
