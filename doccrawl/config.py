"""Centralised settings for the DocCrawl engine.

All runtime configuration is resolved here in one place.  Values can be
overridden via environment variables or a `.env` file in the project root
(loaded automatically when this module is imported).

Two layers live in this module:

* :class:`Settings` — process-wide, environment-driven values (workspace
  location, log level, crawl defaults).
* :class:`CrawlConfig` — an immutable value handed explicitly to each
  :class:`~doccrawl.crawl.orchestrator.Crawler`.  Build one from the
  environment with :meth:`CrawlConfig.from_settings`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env from the project root (two levels up from this file)
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)

DEFAULT_USER_AGENT = "DocCrawl-Scraper/1.0"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class Settings:
    # ------------------------------------------------------------------
    # Workspace / storage
    # ------------------------------------------------------------------
    workspace_dir: Path = field(
        default_factory=lambda: Path(
            os.environ.get("DOCCRAWL_WORKSPACE", Path.home() / ".doccrawl_data")
        )
    )

    @property
    def db_path(self) -> Path:
        """Absolute path to the SQLite database file."""
        return self.workspace_dir / "doccrawl.db"

    @property
    def schema_path(self) -> Path:
        """Absolute path to the schema SQL file bundled with the package."""
        return Path(__file__).resolve().parent / "db" / "schema.sql"

    # ------------------------------------------------------------------
    # Crawler
    # ------------------------------------------------------------------
    crawl_concurrency: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_CONCURRENCY", "3"))
    )
    crawl_delay_ms: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_DELAY_MS", "1000"))
    )
    crawl_timeout_ms: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_TIMEOUT_MS", "30000"))
    )
    crawl_max_retries: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_MAX_RETRIES", "3"))
    )
    crawl_retry_backoff_ms: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_RETRY_BACKOFF_MS", "500"))
    )
    crawl_rate_limit_per_minute: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_RATE_LIMIT_PER_MINUTE", "60"))
    )
    crawl_rate_limit_per_hour: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_RATE_LIMIT_PER_HOUR", "1000"))
    )
    crawl_discovery_cap: int = field(
        default_factory=lambda: int(os.environ.get("CRAWL_DISCOVERY_CAP", "100"))
    )
    crawl_user_agent: str = field(
        default_factory=lambda: os.environ.get("CRAWL_USER_AGENT", DEFAULT_USER_AGENT)
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = field(
        default_factory=lambda: os.environ.get("LOG_LEVEL", "INFO")
    )

    def ensure_workspace(self) -> None:
        """Create the workspace directory if it does not exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class CrawlConfig:
    """Immutable knobs for one crawl run.

    Defaults match the documented configuration surface.  A rate limit of
    ``0`` disables that window; ``max_retries=0`` disables per-page retry.
    """

    concurrency: int = 3
    delay_ms: int = 1000
    timeout_ms: int = 30000
    max_retries: int = 3
    retry_backoff_ms: int = 500
    rate_limit_per_minute: int = 60
    rate_limit_per_hour: int = 1000
    discovery_cap: int = 100
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.discovery_cap < 1:
            raise ValueError("discovery_cap must be at least 1")
        for name in (
            "delay_ms",
            "timeout_ms",
            "max_retries",
            "retry_backoff_ms",
            "rate_limit_per_minute",
            "rate_limit_per_hour",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def delay_s(self) -> float:
        return self.delay_ms / 1000.0

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> CrawlConfig:
        """Build a config from environment-driven :class:`Settings`."""
        s = source or settings
        return cls(
            concurrency=s.crawl_concurrency,
            delay_ms=s.crawl_delay_ms,
            timeout_ms=s.crawl_timeout_ms,
            max_retries=s.crawl_max_retries,
            retry_backoff_ms=s.crawl_retry_backoff_ms,
            rate_limit_per_minute=s.crawl_rate_limit_per_minute,
            rate_limit_per_hour=s.crawl_rate_limit_per_hour,
            discovery_cap=s.crawl_discovery_cap,
            user_agent=s.crawl_user_agent,
        )


def configure_logging(level: Optional[str] = None) -> None:
    """Install a console log handler at *level* (defaults to ``settings.log_level``)."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )


# Module-level singleton — import this everywhere:
#   from doccrawl.config import settings
settings = Settings()
