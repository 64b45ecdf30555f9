"""Tests for the CLI trigger layer."""

from __future__ import annotations

import httpx
import pytest
import respx
from typer.testing import CliRunner

from cli.main import app
from doccrawl.db import get_connection, init_db
from doccrawl.db.content import count_content
from doccrawl.db.jobs import create_job, list_jobs, update_job
from doccrawl.errors import FetchError
from doccrawl.scraper.models import RawPage

runner = CliRunner()

_ROOT = "https://developer.mozilla.org/en-US/docs/Web/CSS"


@pytest.fixture
def clean_db(tmp_path, monkeypatch):
    """Point the workspace at a fresh directory for each test."""
    monkeypatch.setattr("doccrawl.config.settings.workspace_dir", tmp_path)
    return tmp_path / "doccrawl.db"


def _fake_site(monkeypatch, pages: dict[str, str]) -> None:
    def fake_fetch(url, timeout=30.0, user_agent=None):
        if url not in pages:
            raise FetchError(url, "HTTP 404", status_code=404)
        return RawPage(url=url, html=pages[url], status_code=200)

    monkeypatch.setattr("doccrawl.crawl.orchestrator.fetch_url", fake_fetch)


def test_db_init(clean_db):
    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0
    assert clean_db.exists()


def test_sections_marks_scraped(clean_db):
    conn = get_connection()
    init_db(conn)
    job = create_job(conn, "css")
    update_job(conn, job.id, status="completed")
    conn.close()

    result = runner.invoke(app, ["sections"])
    assert result.exit_code == 0
    lines = {}
    for line in result.output.splitlines():
        tokens = line.split()
        if tokens:
            lines[tokens[1] if tokens[0] == "✓" else tokens[0]] = line
    assert "✓" in lines["css"]
    assert "✓" not in lines["html"]


def test_jobs_list_empty(clean_db):
    result = runner.invoke(app, ["jobs", "list"])
    assert result.exit_code == 0
    assert "No jobs found." in result.output


def test_jobs_list_and_show(clean_db):
    conn = get_connection()
    init_db(conn)
    job = create_job(conn, "http")
    update_job(conn, job.id, status="failed", error_message="boom")
    conn.close()

    listed = runner.invoke(app, ["jobs", "list", "--status", "failed"])
    assert listed.exit_code == 0
    assert job.id in listed.output
    assert "1 failed" in listed.output

    shown = runner.invoke(app, ["jobs", "show", job.id])
    assert shown.exit_code == 0
    assert "Status   : failed" in shown.output
    assert "Error    : boom" in shown.output


def test_jobs_show_missing(clean_db):
    result = runner.invoke(app, ["jobs", "show", "nope"])
    assert result.exit_code == 1
    assert "Job not found" in result.output


def test_crawl_runs_in_foreground(clean_db, monkeypatch):
    pages = {
        _ROOT: f'<main><h1>CSS</h1><p>Index</p><a href="{_ROOT}/color">c</a><a href="{_ROOT}/gone">g</a></main>',
        f"{_ROOT}/color": "<main><h1>color</h1><p>Sets the text color.</p></main>",
    }
    _fake_site(monkeypatch, pages)

    result = runner.invoke(app, ["crawl", "css", "--delay-ms", "0", "--max-retries", "0"])

    assert result.exit_code == 0, result.output
    assert "2/3 pages scraped, 1 failed" in result.output
    assert "new=2" in result.output

    conn = get_connection()
    try:
        [job] = list_jobs(conn)
        assert job.status == "completed"
        assert job.urls_processed == 3
        assert job.config["delay_ms"] == 0
        assert count_content(conn, section_slug="css") == 2
    finally:
        conn.close()


def test_crawl_unknown_section(clean_db):
    result = runner.invoke(app, ["crawl", "cobol"])
    assert result.exit_code == 1
    assert "cobol" in result.output


def test_start_waits_for_background_job(clean_db, monkeypatch):
    _fake_site(monkeypatch, {})

    result = runner.invoke(app, ["start", "html"])

    assert result.exit_code == 0, result.output
    assert "queued" in result.output
    assert "finished with status completed" in result.output


def test_start_unknown_section(clean_db):
    result = runner.invoke(app, ["start", "cobol"])
    assert result.exit_code == 1
    assert "cobol" in result.output


def test_scrape_prints_summary(clean_db):
    html = (
        "<main><h1>color</h1><p>Sets the foreground color of text.</p>"
        '<pre><code class="language-css">color: red;</code></pre></main>'
    )
    with respx.mock:
        respx.get(f"{_ROOT}/color").mock(return_value=httpx.Response(200, text=html))
        result = runner.invoke(app, ["scrape", f"{_ROOT}/color"])

    assert result.exit_code == 0, result.output
    assert "Title    : color" in result.output
    assert "Snippets : 1" in result.output
    assert "```css\ncolor: red;\n```" in result.output


def test_scrape_fetch_failure(clean_db):
    with respx.mock:
        respx.get(f"{_ROOT}/gone").mock(return_value=httpx.Response(404))
        result = runner.invoke(app, ["scrape", f"{_ROOT}/gone"])

    assert result.exit_code == 1
    assert "HTTP 404" in result.output


def test_start_unknown_section_shuts_down_worker_pool(clean_db, monkeypatch):
    from concurrent.futures import ThreadPoolExecutor

    pools = []

    class RecordingPool(ThreadPoolExecutor):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.shut_down = False
            pools.append(self)

        def shutdown(self, *args, **kwargs):
            self.shut_down = True
            super().shutdown(*args, **kwargs)

    monkeypatch.setattr("cli.main.ThreadPoolExecutor", RecordingPool)

    result = runner.invoke(app, ["start", "cobol"])

    assert result.exit_code == 1
    assert all(pool.shut_down for pool in pools)
