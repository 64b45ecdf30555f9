"""CRUD operations for the ``jobs`` table (the job tracker)."""

from __future__ import annotations

import json
import sqlite3
import uuid
from time import time
from typing import Any, Optional

from doccrawl.db.models import JOB_STATUSES, Job

# Columns a caller may change through :func:`update_job`.
UPDATABLE_FIELDS = frozenset(
    {
        "status",
        "total_urls",
        "urls_processed",
        "urls_failed",
        "progress_percentage",
        "items_scraped",
        "items_new",
        "items_updated",
        "items_unchanged",
        "error_message",
        "started_at",
        "completed_at",
        "source_id",
    }
)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row_to_job(row: sqlite3.Row) -> Job:
    return Job(
        id=row["id"],
        section_slug=row["section_slug"],
        source_id=row["source_id"],
        job_type=row["job_type"],
        status=row["status"],
        priority=row["priority"],
        total_urls=row["total_urls"],
        urls_processed=row["urls_processed"],
        urls_failed=row["urls_failed"],
        progress_percentage=row["progress_percentage"],
        items_scraped=row["items_scraped"],
        items_new=row["items_new"],
        items_updated=row["items_updated"],
        items_unchanged=row["items_unchanged"],
        config=json.loads(row["config"] or "{}"),
        error_message=row["error_message"],
        created_at=row["created_at"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
        updated_at=row["updated_at"],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def create_job(
    conn: sqlite3.Connection,
    section_slug: str,
    source_id: Optional[str] = None,
    priority: int = 5,
    config: Optional[dict[str, Any]] = None,
    job_type: str = "full_scrape",
) -> Job:
    """Insert a ``pending`` job with all counters at zero and return it."""
    job_id = str(uuid.uuid4())
    now = int(time())
    job_config = {"section_slug": section_slug, **(config or {})}

    with conn:
        conn.execute(
            """
            INSERT INTO jobs (id, section_slug, source_id, job_type, status, priority,
                              config, created_at, updated_at)
            VALUES (?, ?, ?, ?, 'pending', ?, ?, ?, ?)
            """,
            (job_id, section_slug, source_id, job_type, priority,
             json.dumps(job_config), now, now),
        )

    return get_job(conn, job_id)  # type: ignore[return-value]


def get_job(conn: sqlite3.Connection, job_id: str) -> Optional[Job]:
    """Fetch a single job by id.  Returns ``None`` if not found."""
    row = conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
    return _row_to_job(row) if row else None


def update_job(conn: sqlite3.Connection, job_id: str, **fields: Any) -> Job:
    """Set one or more fields on a job.  ``updated_at`` is always refreshed.

    Applying the same fields twice leaves the row unchanged, so callers may
    invoke this once per crawled page.

    Raises:
        ValueError: If ``job_id`` does not exist, a field is not in
            :data:`UPDATABLE_FIELDS`, or ``status`` is not a known state.
    """
    for key in fields:
        if key not in UPDATABLE_FIELDS:
            raise ValueError(f"Cannot update field {key!r}")
    if not fields:
        raise ValueError("No fields provided to update_job()")
    if "status" in fields and fields["status"] not in JOB_STATUSES:
        raise ValueError(f"Unknown job status {fields['status']!r}")

    updates = dict(fields)
    updates["updated_at"] = int(time())
    set_clause = ", ".join(f"{col} = ?" for col in updates)
    values = list(updates.values()) + [job_id]

    with conn:
        cursor = conn.execute(
            f"UPDATE jobs SET {set_clause} WHERE id = ?", values  # noqa: S608
        )
    if cursor.rowcount == 0:
        raise ValueError(f"Job not found: {job_id!r}")

    return get_job(conn, job_id)  # type: ignore[return-value]


def list_jobs(
    conn: sqlite3.Connection,
    status: Optional[str] = None,
    limit: int = 20,
    section_slug: Optional[str] = None,
) -> list[Job]:
    """Return jobs most-recent-first, optionally filtered."""
    clauses: list[str] = []
    params: list[Any] = []
    if status:
        clauses.append("status = ?")
        params.append(status)
    if section_slug:
        clauses.append("section_slug = ?")
        params.append(section_slug)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"SELECT * FROM jobs {where} ORDER BY created_at DESC, rowid DESC LIMIT ?",  # noqa: S608
        (*params, limit),
    ).fetchall()
    return [_row_to_job(r) for r in rows]


def job_summary(conn: sqlite3.Connection) -> dict[str, int]:
    """Count jobs per status: ``{"total": n, "pending": n, ...}``."""
    summary = {"total": 0, **{status: 0 for status in JOB_STATUSES}}
    for row in conn.execute("SELECT status, COUNT(*) AS n FROM jobs GROUP BY status"):
        summary[row["status"]] = row["n"]
        summary["total"] += row["n"]
    return summary


def completed_section_slugs(conn: sqlite3.Connection) -> set[str]:
    """Slugs of every section with at least one completed job."""
    rows = conn.execute(
        "SELECT DISTINCT section_slug FROM jobs WHERE status = 'completed'"
    ).fetchall()
    return {r["section_slug"] for r in rows}
