"""FastAPI application factory.

Lifespan
--------
On startup the app opens a single SQLite connection (shared across all
requests via ``request.app.state.db``) and initialises the schema.  On
shutdown it closes the connection cleanly.  Crawls themselves run on
worker threads with their own connections.

Routers
-------
    /sections  — section catalog
    /crawl     — start a crawl job
    /jobs      — job status polling
    /content   — stored page lookup
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from doccrawl import __version__
from doccrawl.config import configure_logging
from doccrawl.db import get_connection, init_db

from doccrawl.api.routers import jobs as jobs_router
from doccrawl.api.routers import sections as sections_router


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the DB on startup and close it on shutdown."""
    configure_logging()
    conn = get_connection()
    init_db(conn)
    app.state.db = conn
    try:
        yield
    finally:
        conn.close()


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    app = FastAPI(
        title="DocCrawl API",
        description=(
            "Trigger sectioned documentation crawls and poll their progress. "
            "Crawls run in the background; POST /crawl returns a job id "
            "immediately and GET /jobs/{id} reports granular progress."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(sections_router.router, tags=["sections"])
    app.include_router(jobs_router.router, tags=["jobs"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn doccrawl.api.app:app --reload
app = create_app()
