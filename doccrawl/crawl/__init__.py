"""Crawl package — orchestration, deduplication & rate limiting."""

from doccrawl.crawl.dedup import Decision, content_hash, decide
from doccrawl.crawl.orchestrator import CrawlStats, Crawler, start_crawl
from doccrawl.crawl.ratelimit import RateLimiter

__all__ = [
    "Crawler",
    "CrawlStats",
    "start_crawl",
    "Decision",
    "content_hash",
    "decide",
    "RateLimiter",
]
