"""DocCrawl CLI — entry-point for crawl operations.

Usage:
    python cli/main.py --help

Command groups:
    db        → database setup
    sections  → static section catalog
    crawl     → crawl one section in the foreground
    start     → queue a crawl job and wait for it
    jobs      → inspect job progress
    scrape    → fetch and normalise a single page
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from doccrawl.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, replace
from typing import Optional

import typer

from cli.commands.jobs import jobs_app
from doccrawl.config import CrawlConfig, configure_logging, settings
from doccrawl.crawl.orchestrator import Crawler, start_crawl
from doccrawl.db import get_connection, init_db
from doccrawl.db.content import get_or_create_source
from doccrawl.db.jobs import completed_section_slugs, create_job, get_job
from doccrawl.errors import FetchError, UnknownSectionError
from doccrawl.scraper.sections import SITE_BASE, SITE_NAME, get_section, list_sections

app = typer.Typer(
    name="doccrawl",
    help="DocCrawl — sectioned documentation crawler.",
    no_args_is_help=True,
)
app.add_typer(jobs_app, name="jobs")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (default: $LOG_LEVEL or INFO)."),
) -> None:
    configure_logging(log_level)


def _config(concurrency: Optional[int], delay_ms: Optional[int], max_retries: Optional[int]) -> CrawlConfig:
    overrides = {
        "concurrency": concurrency,
        "delay_ms": delay_ms,
        "max_retries": max_retries,
    }
    return replace(
        CrawlConfig.from_settings(),
        **{k: v for k, v in overrides.items() if v is not None},
    )


# ---------------------------------------------------------------------------
# DB
# ---------------------------------------------------------------------------
db_app = typer.Typer(help="Database operations.", no_args_is_help=True)
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init() -> None:
    """Initialise the SQLite database (create tables if they do not exist)."""
    conn = get_connection()
    init_db(conn)
    conn.close()
    typer.echo(f"[db init] Database ready at {settings.db_path}")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------
@app.command("sections")
def sections() -> None:
    """List the crawlable sections."""
    conn = get_connection()
    init_db(conn)
    try:
        scraped = completed_section_slugs(conn)
    finally:
        conn.close()

    for s in list_sections():
        marker = "✓" if s.slug in scraped else " "
        typer.echo(f"  {marker} {s.slug:<12} {s.title:<16} {s.url}")


# ---------------------------------------------------------------------------
# Crawl
# ---------------------------------------------------------------------------
@app.command("crawl")
def crawl(
    slug: str = typer.Argument(..., help="Section slug (see `sections`)."),
    concurrency: Optional[int] = typer.Option(None, help="Pages fetched per batch."),
    delay_ms: Optional[int] = typer.Option(None, "--delay-ms", help="Pause between batches."),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", help="Retries per transient failure."),
) -> None:
    """Crawl one section in the foreground, showing progress."""
    try:
        section = get_section(slug)
    except UnknownSectionError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)

    config = _config(concurrency, delay_ms, max_retries)
    conn = get_connection()
    init_db(conn)

    try:
        source_id = get_or_create_source(conn, SITE_BASE, name=SITE_NAME)
        job = create_job(conn, section.slug, source_id=source_id, config=asdict(config))
        typer.echo(f"[crawl] Job {job.id}: {section.title} ({section.url})")

        crawler = Crawler(conn, config)
        with typer.progressbar(length=config.discovery_cap, label="Crawling") as bar:
            def _advance(processed: int, total: int) -> None:
                bar.length = total
                bar.update(processed - bar.pos)

            stats = crawler.run_job(job.id, section.slug, on_progress=_advance)

        final = get_job(conn, job.id)
    finally:
        conn.close()

    if stats is None:
        typer.echo(f"❌ Job failed: {final.error_message if final else 'unknown error'}")
        raise typer.Exit(code=1)

    typer.echo(
        f"✅ {stats.success}/{stats.total} pages scraped, {stats.failed} failed "
        f"(new={stats.new} updated={stats.updated} unchanged={stats.unchanged})"
    )


@app.command("start")
def start(
    slug: str = typer.Argument(..., help="Section slug (see `sections`)."),
    priority: int = typer.Option(5, help="Job priority."),
) -> None:
    """Queue a crawl job, print its id, then wait for the worker to finish."""
    conn = get_connection()
    init_db(conn)

    # Exiting the block waits for the queued crawl.
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="crawl") as executor:
        try:
            job_id = start_crawl(conn, slug, priority=priority, executor=executor)
        except UnknownSectionError as exc:
            typer.echo(f"❌ {exc}")
            raise typer.Exit(code=1)
        finally:
            conn.close()

        typer.echo(f"[start] Job {job_id} queued; poll with `jobs show {job_id}`.")

    conn = get_connection()
    try:
        job = get_job(conn, job_id)
    finally:
        conn.close()
    typer.echo(f"[start] Job {job_id} finished with status {job.status if job else 'unknown'}.")


# ---------------------------------------------------------------------------
# Single page
# ---------------------------------------------------------------------------
@app.command("scrape")
def scrape(
    url: str = typer.Argument(..., help="URL to scrape."),
) -> None:
    """Fetch one page and print its normalised summary and markdown."""
    from doccrawl.scraper import fetch_url, normalize

    config = CrawlConfig.from_settings()
    typer.echo(f"[scrape] Fetching {url!r} …")
    try:
        raw = fetch_url(url, timeout=config.timeout_s, user_agent=config.user_agent)
    except FetchError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=1)

    page = normalize(url, raw)
    if not page.success:
        typer.echo(f"❌ {page.error}")
        raise typer.Exit(code=1)

    typer.echo(f"[scrape] Title    : {page.title}")
    typer.echo(f"[scrape] Words    : {page.word_count}")
    typer.echo(f"[scrape] Snippets : {len(page.code_snippets)}")
    typer.echo(f"[scrape] Keywords : {', '.join(page.keywords)}")
    typer.echo(f"[scrape] Topics   : {' / '.join(page.topics)}")
    typer.echo("")
    typer.echo(page.markdown)


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
