"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from doccrawl.api import app

    uvicorn doccrawl.api:app --reload
"""

from doccrawl.api.app import app

__all__ = ["app"]
