"""Section catalog and crawl trigger endpoints.

Routes
------
GET  /sections   Static catalog, each entry flagged ``scraped``
POST /crawl      Body: {"section_slug": "css"}   → 202 {"job_id": ...}
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from doccrawl.crawl.orchestrator import start_crawl
from doccrawl.db.jobs import completed_section_slugs
from doccrawl.errors import UnknownSectionError
from doccrawl.scraper.sections import list_sections

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class CrawlRequest(BaseModel):
    section_slug: str = Field(..., min_length=1)
    priority: int = 5


class CrawlResponse(BaseModel):
    job_id: str
    message: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/sections", response_model=list[dict[str, Any]])
def list_sections_endpoint(request: Request) -> list[dict[str, Any]]:
    """Return every crawlable section, marking those already crawled."""
    conn = request.app.state.db
    scraped = completed_section_slugs(conn)
    return [
        {
            "title": s.title,
            "slug": s.slug,
            "url": s.url,
            "category": s.category,
            "scraped": s.slug in scraped,
        }
        for s in list_sections()
    ]


@router.post("/crawl", response_model=CrawlResponse, status_code=202)
def start_crawl_endpoint(body: CrawlRequest, request: Request) -> dict[str, Any]:
    """Queue a crawl of one section and return its job id without waiting."""
    conn = request.app.state.db
    try:
        job_id = start_crawl(conn, body.section_slug, priority=body.priority)
    except UnknownSectionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"job_id": job_id, "message": f"Crawl started for {body.section_slug}"}
