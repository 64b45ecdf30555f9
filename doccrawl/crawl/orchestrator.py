"""Crawl orchestrator — drives one section end-to-end.

Flow for a single job::

    discover → [batch: fetch + normalise concurrently] → dedup + upsert
             → job progress update (per page) → inter-batch delay → ...
             → job finalisation

The orchestrator is the only writer of its job record while the job is
``running``.  Per-page failures become counters; anything else that
escapes the section run marks the job ``failed``.

``start_crawl`` is the entry point for trigger layers: it validates the
section, creates a ``pending`` job, queues the crawl on a worker thread and
returns the job id immediately.  Progress is observed by polling the job.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from concurrent.futures import Executor, ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass
from functools import partial
from typing import Any, Callable, List, Optional

from doccrawl.config import CrawlConfig
from doccrawl.crawl.dedup import Decision, content_hash, decide
from doccrawl.crawl.ratelimit import RateLimiter
from doccrawl.db.connection import get_connection
from doccrawl.db.content import (
    get_content_hash,
    get_or_create_source,
    mark_source_scraped,
    upsert_content,
)
from doccrawl.db.jobs import create_job, update_job
from doccrawl.db.migrations import init_db
from doccrawl.errors import FetchError
from doccrawl.scraper.fetcher import fetch_url
from doccrawl.scraper.links import discover
from doccrawl.scraper.models import PageResult, RawPage, Section
from doccrawl.scraper.normalizer import normalize
from doccrawl.scraper.sections import DOCS_PATH_PREFIX, SITE_BASE, SITE_NAME, get_section

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

# Background crawls share a small pool; each job still runs its batches
# sequentially on its own worker.
_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="crawl")


@dataclass
class CrawlStats:
    """Running counters for one job; mirrored into the job record."""

    total: int = 0
    success: int = 0
    failed: int = 0
    new: int = 0
    updated: int = 0
    unchanged: int = 0

    @property
    def processed(self) -> int:
        return self.success + self.failed

    @property
    def progress(self) -> float:
        if self.total == 0:
            return 0.0
        return min(100.0, self.processed / self.total * 100)

    def record(self, decision: Decision) -> None:
        self.success += 1
        if decision is Decision.NEW:
            self.new += 1
        elif decision is Decision.UPDATED:
            self.updated += 1
        else:
            self.unchanged += 1

    def job_fields(self) -> dict[str, Any]:
        return {
            "urls_processed": self.processed,
            "urls_failed": self.failed,
            "progress_percentage": self.progress,
            "items_scraped": self.success,
            "items_new": self.new,
            "items_updated": self.updated,
            "items_unchanged": self.unchanged,
        }


def _batches(urls: List[str], size: int) -> List[List[str]]:
    return [urls[i:i + size] for i in range(0, len(urls), size)]


class Crawler:
    """Crawl engine bound to one DB connection and one immutable config.

    Args:
        conn: Open, initialised DB connection.  Only the driving thread
            touches it; worker threads fetch and normalise.
        config: Crawl knobs; defaults to :class:`CrawlConfig()`.
        fetcher: ``url -> RawPage`` callable raising :class:`FetchError`.
            Defaults to :func:`fetch_url` with the config's timeout and
            user agent.
        sleep: Used for the inter-batch delay, retry backoff and rate
            limiting.
        rate_limiter: Overrides the limiter built from the config.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        config: Optional[CrawlConfig] = None,
        fetcher: Optional[Callable[[str], RawPage]] = None,
        sleep: Callable[[float], None] = time.sleep,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self.conn = conn
        self.config = config or CrawlConfig()
        self._fetcher = fetcher or partial(
            fetch_url,
            timeout=self.config.timeout_s,
            user_agent=self.config.user_agent,
        )
        self._sleep = sleep
        self._limiter = rate_limiter or RateLimiter(
            per_minute=self.config.rate_limit_per_minute,
            per_hour=self.config.rate_limit_per_hour,
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # Fetch / normalise
    # ------------------------------------------------------------------
    def _fetch(self, url: str) -> RawPage:
        self._limiter.acquire()
        return self._fetcher(url)

    def discover(self, section: Section) -> List[str]:
        """In-scope URLs for *section*, root first, capped."""
        return discover(
            section.url,
            DOCS_PATH_PREFIX,
            cap=self.config.discovery_cap,
            fetcher=self._fetch,
        )

    def scrape_page(self, url: str) -> PageResult:
        """Fetch and normalise *url*; never raises.

        Transient fetch failures are retried up to ``max_retries`` times with
        exponential backoff.
        """
        retries = self.config.max_retries
        for attempt in range(retries + 1):
            try:
                raw = self._fetch(url)
            except FetchError as exc:
                if exc.retryable and attempt < retries:
                    backoff = self.config.retry_backoff_ms / 1000.0 * (2 ** attempt)
                    logger.info(
                        "[CRAWL] %s failed (%s); retry %d/%d in %.1fs",
                        url, exc.reason, attempt + 1, retries, backoff,
                    )
                    self._sleep(backoff)
                    continue
                return PageResult.failure(url, str(exc))
            except Exception as exc:  # noqa: BLE001
                return PageResult.failure(url, f"fetch failed: {exc}")
            return normalize(url, raw)

        # Unreachable: the final attempt always returns.
        return PageResult.failure(url, "retries exhausted")

    def scrape_batch(self, urls: List[str]) -> List[PageResult]:
        """Scrape *urls* concurrently; results come back in submission order."""
        results: List[Optional[PageResult]] = [None] * len(urls)
        with ThreadPoolExecutor(max_workers=max(len(urls), 1)) as pool:
            future_to_index = {
                pool.submit(self.scrape_page, url): i for i, url in enumerate(urls)
            }
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        return results  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def store_page(
        self,
        page: PageResult,
        source_id: Optional[str],
        section_slug: Optional[str],
    ) -> Decision:
        """Write *page* unless the stored hash for its URL already matches."""
        new_hash = content_hash(page)
        decision = decide(get_content_hash(self.conn, page.url), new_hash)
        if decision.needs_write:
            upsert_content(
                self.conn,
                page,
                new_hash,
                source_id=source_id,
                section_slug=section_slug,
            )
        return decision

    def _update_job(self, job_id: str, **fields: Any) -> None:
        """Best-effort job update; a failed write is logged, not raised."""
        try:
            update_job(self.conn, job_id, **fields)
        except (sqlite3.Error, ValueError) as exc:
            logger.error("[JOB] Could not update job %s: %s", job_id, exc)

    # ------------------------------------------------------------------
    # Section run
    # ------------------------------------------------------------------
    def crawl_section(
        self,
        section: Section,
        job_id: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CrawlStats:
        """Crawl every discovered page of *section*, advancing job *job_id*.

        Raises:
            Exception: Structural errors (discovery blowing up, the job
                record unwritable at start) propagate to :meth:`run_job`.
        """
        logger.info("[CRAWL] Starting %s (job %s)", section.title, job_id)
        source_id = get_or_create_source(self.conn, SITE_BASE, name=SITE_NAME)

        urls = self.discover(section)
        stats = CrawlStats(total=len(urls))
        logger.info("[DISCOVERY] %d page(s) in %s", stats.total, section.title)

        # pending → running; this write must land or the job is unobservable.
        update_job(
            self.conn,
            job_id,
            status="running",
            total_urls=stats.total,
            started_at=int(time.time()),
            source_id=source_id,
        )

        batches = _batches(urls, self.config.concurrency)
        for number, batch in enumerate(batches, start=1):
            logger.info("[CRAWL] Batch %d/%d (%d url(s))", number, len(batches), len(batch))
            for page in self.scrape_batch(batch):
                if page.success:
                    try:
                        stats.record(self.store_page(page, source_id, section.slug))
                        logger.debug("[CRAWL] ✓ %s", page.url)
                    except sqlite3.Error as exc:
                        logger.error("[CRAWL] Could not store %s: %s", page.url, exc)
                        stats.failed += 1
                else:
                    logger.warning("[CRAWL] ✗ %s: %s", page.url, page.error)
                    stats.failed += 1

                self._update_job(job_id, **stats.job_fields())
                if on_progress is not None:
                    on_progress(stats.processed, stats.total)

            if number < len(batches):
                self._sleep(self.config.delay_s)

        self._update_job(job_id, status="completed", completed_at=int(time.time()))
        try:
            mark_source_scraped(self.conn, source_id)
        except sqlite3.Error as exc:
            logger.error("[CRAWL] Could not stamp source %s: %s", source_id, exc)

        logger.info(
            "[CRAWL] Finished %s: %d ok, %d failed, %d new, %d updated, %d unchanged",
            section.title, stats.success, stats.failed, stats.new, stats.updated, stats.unchanged,
        )
        return stats

    def run_job(
        self,
        job_id: str,
        section_slug: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Optional[CrawlStats]:
        """Run a job to completion, recording structural failure on the job.

        Returns the final stats, or ``None`` when the job failed.
        """
        try:
            section = get_section(section_slug)
            return self.crawl_section(section, job_id, on_progress=on_progress)
        except Exception as exc:  # noqa: BLE001
            logger.exception("[JOB] Job %s failed", job_id)
            self._update_job(
                job_id,
                status="failed",
                error_message=str(exc) or type(exc).__name__,
                completed_at=int(time.time()),
            )
            return None


# ---------------------------------------------------------------------------
# Trigger-layer entry point
# ---------------------------------------------------------------------------

def _run_in_background(
    job_id: str,
    section_slug: str,
    config: CrawlConfig,
    connect: Callable[[], sqlite3.Connection],
) -> None:
    """Worker-thread body: own connection, run the job, always close."""
    try:
        conn = connect()
    except sqlite3.Error:
        logger.exception("[JOB] Could not open a connection for job %s", job_id)
        return
    try:
        init_db(conn)
        Crawler(conn, config).run_job(job_id, section_slug)
    except Exception:  # noqa: BLE001
        logger.exception("[JOB] Background worker for job %s crashed", job_id)
    finally:
        conn.close()


def start_crawl(
    conn: sqlite3.Connection,
    section_slug: str,
    priority: int = 5,
    config: Optional[CrawlConfig] = None,
    executor: Optional[Executor] = None,
    connect: Callable[[], sqlite3.Connection] = get_connection,
) -> str:
    """Create a ``pending`` job for *section_slug* and crawl it in the background.

    Args:
        conn: Connection used to register the source and create the job.
        section_slug: Catalog slug of the section to crawl.
        priority: Stored on the source (when created) and the job.
        config: Crawl knobs; defaults to :meth:`CrawlConfig.from_settings`.
        executor: Where the crawl runs; defaults to the module pool.
        connect: Opens the worker's own DB connection.

    Returns:
        The new job id.

    Raises:
        UnknownSectionError: If *section_slug* is not in the catalog.
    """
    section = get_section(section_slug)
    crawl_config = config or CrawlConfig.from_settings()

    source_id = get_or_create_source(conn, SITE_BASE, name=SITE_NAME, priority=priority)
    job = create_job(
        conn,
        section.slug,
        source_id=source_id,
        priority=priority,
        config=asdict(crawl_config),
    )
    (executor or _executor).submit(
        _run_in_background, job.id, section.slug, crawl_config, connect
    )
    logger.info("[JOB] Queued job %s for section %s", job.id, section.slug)
    return job.id
