"""Job polling and stored-content endpoints.

Routes
------
GET /jobs             ?status=&limit=   → {"jobs": [...], "summary": {...}}
GET /jobs/{job_id}    Single job
GET /content          ?url=             Stored page for a URL
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Literal, Optional

from fastapi import APIRouter, HTTPException, Query, Request

from doccrawl.db.content import get_content
from doccrawl.db.jobs import get_job, job_summary, list_jobs

router = APIRouter()

JobStatus = Literal["pending", "running", "completed", "failed"]


@router.get("/jobs", response_model=dict[str, Any])
def list_jobs_endpoint(
    request: Request,
    status: Optional[JobStatus] = None,
    limit: int = Query(20, ge=1, le=500),
) -> dict[str, Any]:
    """Most recent jobs first, plus a per-status count over all jobs."""
    conn = request.app.state.db
    return {
        "jobs": [j.to_dict() for j in list_jobs(conn, status=status, limit=limit)],
        "summary": job_summary(conn),
    }


@router.get("/jobs/{job_id}", response_model=dict[str, Any])
def get_job_endpoint(job_id: str, request: Request) -> dict[str, Any]:
    conn = request.app.state.db
    job = get_job(conn, job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job '{job_id}' not found.")
    return job.to_dict()


@router.get("/content", response_model=dict[str, Any])
def get_content_endpoint(request: Request, url: str = Query(..., min_length=1)) -> dict[str, Any]:
    """Return the stored, normalised page for *url*."""
    conn = request.app.state.db
    stored = get_content(conn, url)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"No content stored for '{url}'.")
    return asdict(stored)
