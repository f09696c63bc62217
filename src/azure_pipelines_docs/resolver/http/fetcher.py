"""HTTP document fetcher with a TTL cache and bounded retries.

Failure policy:
- 404 and timeouts fail immediately
- 429 waits for `Retry-After` (capped, or a scaled default) and retries
- any other failure retries with exponential backoff
- an exhausted attempt budget raises `RetryExhaustedError`

`timeout_seconds` is handed to `requests`, so it bounds the connect and each
socket read separately, not the whole transfer.
"""

from __future__ import annotations

import json
import logging
import math
import re
import time
from collections.abc import Callable
from typing import Any

import requests

from azure_pipelines_docs import __version__
from azure_pipelines_docs.resolver.errors import (
    FetchError,
    FetchTimeoutError,
    NotFoundError,
    RateLimitedError,
    RetryExhaustedError,
    TransientFetchError,
)
from azure_pipelines_docs.resolver.http.cache import DEFAULT_TTL_SECONDS, TTLCache

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0
# Upper bound on a server-advertised Retry-After delay.
MAX_RETRY_AFTER_SECONDS = 60.0

_MAX_ERROR_BODY_CHARS = 1000
_HTML_TITLE_RE = re.compile(r"<title>(.*?)</title>", re.IGNORECASE | re.DOTALL)


def _parse_retry_after(value: str | None) -> float | None:
    # Only the delta-seconds form is honoured; HTTP dates fall back to backoff.
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds


def summarize_error_body(body: str) -> str:
    """Reduce an error response body to something fit for an error message."""

    if "<!DOCTYPE html" in body or "<html" in body:
        match = _HTML_TITLE_RE.search(body)
        if match:
            return f"HTML Error: {match.group(1).strip()}"
        return "HTML Error (possibly 404 or authentication issue)"
    if len(body) > _MAX_ERROR_BODY_CHARS:
        return body[:_MAX_ERROR_BODY_CHARS] + "... (truncated)"
    return body


class DocumentFetcher:
    """Fetch text documents by URL, cache-aside, with classified retries.

    The cache and the HTTP session are injectable so tests can run against an
    isolated instance.
    """

    def __init__(
        self,
        *,
        cache: TTLCache | None = None,
        session: requests.Session | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        cache_ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self._cache = cache if cache is not None else TTLCache()
        self._session = session or requests.Session()
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._cache_ttl_seconds = cache_ttl_seconds
        self._sleep = sleep
        self._default_headers = {
            "Accept": "text/plain, application/json, */*",
            "User-Agent": f"azure-pipelines-docs/{__version__}",
        }

    @property
    def cache(self) -> TTLCache:
        return self._cache

    def fetch(
        self,
        url: str,
        *,
        skip_cache: bool = False,
        cache_ttl_seconds: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> str:
        """Return the body of `url`, from cache when possible."""

        if not skip_cache:
            cached = self._cache.get(url)
            if cached is not None:
                logger.debug("Cache hit", extra={"url": url})
                return str(cached)

        text = self._fetch_with_retry(url, headers=headers)

        ttl = self._cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds
        self._cache.set(url, text, ttl)
        return text

    def fetch_json(
        self,
        url: str,
        *,
        skip_cache: bool = False,
        cache_ttl_seconds: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        text = self.fetch(
            url, skip_cache=skip_cache, cache_ttl_seconds=cache_ttl_seconds, headers=headers
        )
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            self._cache.delete(url)
            raise TransientFetchError(f"Invalid JSON in response: {e}", url=url) from e

    def invalidate(self, url: str) -> None:
        self._cache.delete(url)

    def clear_cache(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        self._session.close()

    def _fetch_with_retry(self, url: str, *, headers: dict[str, str] | None) -> str:
        last_error: FetchError
        attempt = 1
        while True:
            try:
                return self._fetch_once(url, headers=headers)
            except (NotFoundError, FetchTimeoutError):
                raise
            except RateLimitedError as e:
                last_error = e
                if e.retry_after is not None:
                    delay = min(e.retry_after, MAX_RETRY_AFTER_SECONDS)
                else:
                    delay = self._retry_delay_seconds * 2**attempt
            except TransientFetchError as e:
                last_error = e
                delay = self._retry_delay_seconds * 2 ** (attempt - 1)

            if attempt >= self._max_attempts:
                raise RetryExhaustedError(url, attempt, last_error) from last_error

            logger.warning(
                "Fetch failed; retrying",
                extra={
                    "url": url,
                    "attempt": attempt,
                    "delay_seconds": delay,
                    "error": str(last_error),
                },
            )
            self._sleep(delay)
            attempt += 1

    def _fetch_once(self, url: str, *, headers: dict[str, str] | None) -> str:
        request_headers = {**self._default_headers, **(headers or {})}
        try:
            resp = self._session.get(url, headers=request_headers, timeout=self._timeout_seconds)
        except requests.Timeout as e:
            raise FetchTimeoutError(url, self._timeout_seconds) from e
        except requests.RequestException as e:
            raise TransientFetchError(f"Network error: {e}", url=url) from e

        status = resp.status_code
        if status == 404:
            raise NotFoundError(url)
        if status == 429:
            raise RateLimitedError(url, _parse_retry_after(resp.headers.get("Retry-After")))
        if not 200 <= status < 300:
            detail = summarize_error_body(resp.text or "")
            message = f"HTTP {status}: {resp.reason or ''}".rstrip()
            if detail:
                message = f"{message} - {detail}"
            raise TransientFetchError(message, url=url, status_code=status)

        return resp.text
