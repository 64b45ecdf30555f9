"""HTTP fetcher for static documentation pages.

One GET per call, bounded by a timeout and sent with a fixed identifying
``User-Agent``.  No retry happens here; the orchestrator decides whether a
failed fetch is worth another attempt based on :attr:`FetchError.retryable`.
"""

from __future__ import annotations

import httpx

from doccrawl.config import DEFAULT_USER_AGENT
from doccrawl.errors import FetchError
from doccrawl.scraper.models import RawPage

DEFAULT_TIMEOUT_S = 30.0


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def fetch_url(
    url: str,
    timeout: float = DEFAULT_TIMEOUT_S,
    user_agent: str = DEFAULT_USER_AGENT,
) -> RawPage:
    """Fetch *url* and return a :class:`RawPage`.

    Args:
        url: Absolute URL to GET.
        timeout: Per-request timeout in seconds.
        user_agent: Value of the ``User-Agent`` header.

    Raises:
        FetchError: On any non-2xx response or transport failure.
    """
    try:
        with httpx.Client(
            headers={"User-Agent": user_agent},
            timeout=timeout,
            follow_redirects=True,
        ) as client:
            response = client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        raise FetchError(
            url,
            f"HTTP {status}",
            status_code=status,
            retryable=_is_retryable_status(status),
        ) from exc
    except (httpx.UnsupportedProtocol, httpx.InvalidURL) as exc:
        raise FetchError(url, f"invalid URL: {exc}") from exc
    except httpx.TimeoutException as exc:
        raise FetchError(url, f"timed out after {timeout:g}s", retryable=True) from exc
    except httpx.HTTPError as exc:
        raise FetchError(url, f"transport error: {exc}", retryable=True) from exc

    return RawPage(url=url, html=response.text, status_code=response.status_code)
