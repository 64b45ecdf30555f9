"""Database layer package.

Public re-exports so callers can write::

    from doccrawl.db import get_connection, init_db
    from doccrawl.db import jobs, content
"""

from doccrawl.db.connection import get_connection
from doccrawl.db.migrations import init_db
from doccrawl.db import content, jobs

__all__ = ["get_connection", "init_db", "content", "jobs"]
