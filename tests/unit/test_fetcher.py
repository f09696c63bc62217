"""Unit tests for the document fetcher retry and cache policy."""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import Mock

import pytest
import requests

from azure_pipelines_docs.resolver.errors import (
    FetchTimeoutError,
    NotFoundError,
    RateLimitedError,
    RetryExhaustedError,
    TransientFetchError,
)
from azure_pipelines_docs.resolver.http.cache import TTLCache
from azure_pipelines_docs.resolver.http.fetcher import (
    MAX_RETRY_AFTER_SECONDS,
    DocumentFetcher,
    summarize_error_body,
)

URL = "https://docs.example.test/doc.md"


def test_fetch_returns_body_and_sends_default_headers(
    fetcher: DocumentFetcher, session: Mock, make_response: Callable[..., Mock]
) -> None:
    session.get.return_value = make_response(text="hello")

    assert fetcher.fetch(URL) == "hello"

    session.get.assert_called_once()
    _, kwargs = session.get.call_args
    assert kwargs["timeout"] == 5.0
    assert kwargs["headers"]["User-Agent"].startswith("azure-pipelines-docs/")
    assert "text/plain" in kwargs["headers"]["Accept"]


def test_extra_headers_are_merged(
    fetcher: DocumentFetcher, session: Mock, make_response: Callable[..., Mock]
) -> None:
    session.get.return_value = make_response(text="{}")

    fetcher.fetch(URL, headers={"Authorization": "Basic abc"})

    headers = session.get.call_args.kwargs["headers"]
    assert headers["Authorization"] == "Basic abc"
    assert "User-Agent" in headers


def test_second_fetch_is_served_from_cache(
    fetcher: DocumentFetcher, session: Mock, make_response: Callable[..., Mock]
) -> None:
    session.get.return_value = make_response(text="cached")

    assert fetcher.fetch(URL) == "cached"
    assert fetcher.fetch(URL) == "cached"
    assert session.get.call_count == 1


def test_skip_cache_refetches_and_refreshes_entry(
    fetcher: DocumentFetcher, session: Mock, make_response: Callable[..., Mock]
) -> None:
    session.get.side_effect = [make_response(text="v1"), make_response(text="v2")]

    fetcher.fetch(URL)
    assert fetcher.fetch(URL, skip_cache=True) == "v2"
    assert fetcher.fetch(URL) == "v2"
    assert session.get.call_count == 2


def test_cache_ttl_override_applies_to_entry(
    session: Mock, make_response: Callable[..., Mock]
) -> None:
    now = [0.0]
    cache = TTLCache(default_ttl_seconds=10, clock=lambda: now[0])
    fetcher = DocumentFetcher(cache=cache, session=session, cache_ttl_seconds=10, sleep=Mock())
    session.get.return_value = make_response(text="doc")

    fetcher.fetch(URL, cache_ttl_seconds=100)
    now[0] = 50.0
    fetcher.fetch(URL)

    assert session.get.call_count == 1


def test_invalidate_forces_refetch(
    fetcher: DocumentFetcher, session: Mock, make_response: Callable[..., Mock]
) -> None:
    session.get.return_value = make_response(text="doc")

    fetcher.fetch(URL)
    fetcher.invalidate(URL)
    fetcher.fetch(URL)

    assert session.get.call_count == 2


def test_not_found_fails_immediately(
    fetcher: DocumentFetcher,
    session: Mock,
    sleeps: list[float],
    make_response: Callable[..., Mock],
) -> None:
    session.get.return_value = make_response(status_code=404, reason="Not Found")

    with pytest.raises(NotFoundError) as exc:
        fetcher.fetch(URL)

    assert exc.value.url == URL
    assert session.get.call_count == 1
    assert sleeps == []


def test_timeout_fails_immediately(
    fetcher: DocumentFetcher, session: Mock, sleeps: list[float]
) -> None:
    session.get.side_effect = requests.Timeout("read timed out")

    with pytest.raises(FetchTimeoutError) as exc:
        fetcher.fetch(URL)

    assert exc.value.timeout_seconds == 5.0
    assert session.get.call_count == 1
    assert sleeps == []


def test_server_errors_retry_with_exponential_backoff(
    fetcher: DocumentFetcher,
    session: Mock,
    sleeps: list[float],
    make_response: Callable[..., Mock],
) -> None:
    session.get.return_value = make_response(status_code=503, text="busy", reason="Unavailable")

    with pytest.raises(RetryExhaustedError) as exc:
        fetcher.fetch(URL)

    assert session.get.call_count == 3
    assert sleeps == [1.0, 2.0]
    assert exc.value.attempts == 3
    assert isinstance(exc.value.last_error, TransientFetchError)
    assert exc.value.last_error.status_code == 503
    assert str(exc.value).startswith("Failed after 3 attempts: HTTP 503: Unavailable - busy")
    assert exc.value.__cause__ is exc.value.last_error


def test_failed_fetch_is_not_cached(
    fetcher: DocumentFetcher, session: Mock, make_response: Callable[..., Mock]
) -> None:
    session.get.return_value = make_response(status_code=500, reason="Server Error")

    with pytest.raises(RetryExhaustedError):
        fetcher.fetch(URL)

    assert fetcher.cache.get(URL) is None


def test_network_error_recovers_on_retry(
    fetcher: DocumentFetcher,
    session: Mock,
    sleeps: list[float],
    make_response: Callable[..., Mock],
) -> None:
    session.get.side_effect = [requests.ConnectionError("reset"), make_response(text="ok")]

    assert fetcher.fetch(URL) == "ok"
    assert sleeps == [1.0]


def test_rate_limit_honours_retry_after(
    fetcher: DocumentFetcher,
    session: Mock,
    sleeps: list[float],
    make_response: Callable[..., Mock],
) -> None:
    session.get.side_effect = [
        make_response(status_code=429, headers={"Retry-After": "7"}),
        make_response(text="ok"),
    ]

    assert fetcher.fetch(URL) == "ok"
    assert sleeps == [7.0]


def test_rate_limit_without_retry_after_uses_scaled_delay(
    fetcher: DocumentFetcher,
    session: Mock,
    sleeps: list[float],
    make_response: Callable[..., Mock],
) -> None:
    session.get.return_value = make_response(status_code=429)

    with pytest.raises(RetryExhaustedError) as exc:
        fetcher.fetch(URL)

    assert sleeps == [2.0, 4.0]
    assert isinstance(exc.value.last_error, RateLimitedError)
    assert exc.value.last_error.retry_after is None


def test_single_attempt_budget_does_not_sleep(
    session: Mock, make_response: Callable[..., Mock]
) -> None:
    sleep = Mock()
    fetcher = DocumentFetcher(session=session, max_attempts=1, sleep=sleep)
    session.get.return_value = make_response(status_code=502)

    with pytest.raises(RetryExhaustedError):
        fetcher.fetch(URL)

    sleep.assert_not_called()


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        DocumentFetcher(max_attempts=0, session=Mock(spec=requests.Session))


def test_fetch_json_parses_body(
    fetcher: DocumentFetcher, session: Mock, make_response: Callable[..., Mock]
) -> None:
    session.get.return_value = make_response(text='{"value": [1, 2]}')

    assert fetcher.fetch_json(URL) == {"value": [1, 2]}


def test_fetch_json_drops_invalid_body_from_cache(
    fetcher: DocumentFetcher, session: Mock, make_response: Callable[..., Mock]
) -> None:
    session.get.return_value = make_response(text="<html>sign in</html>")

    with pytest.raises(TransientFetchError, match="Invalid JSON"):
        fetcher.fetch_json(URL)

    assert fetcher.cache.get(URL) is None


def test_close_closes_session(fetcher: DocumentFetcher, session: Mock) -> None:
    fetcher.close()
    session.close.assert_called_once()


def test_summarize_error_body_uses_html_title() -> None:
    body = "<!DOCTYPE html><html><head><title> Sign in </title></head></html>"
    assert summarize_error_body(body) == "HTML Error: Sign in"


def test_summarize_error_body_html_without_title() -> None:
    assert summarize_error_body("<html><body>nope</body></html>") == (
        "HTML Error (possibly 404 or authentication issue)"
    )


def test_summarize_error_body_truncates_long_text() -> None:
    summary = summarize_error_body("x" * 1500)

    assert summary == "x" * 1000 + "... (truncated)"
    assert summarize_error_body("short") == "short"


@pytest.mark.parametrize("header", ["1e400", "inf", "nan", "-5", "Wed, 21 Oct 2015 07:28:00 GMT"])
def test_unusable_retry_after_falls_back_to_scaled_delay(
    header: str,
    fetcher: DocumentFetcher,
    session: Mock,
    sleeps: list[float],
    make_response: Callable[..., Mock],
) -> None:
    session.get.side_effect = [
        make_response(status_code=429, headers={"Retry-After": header}),
        make_response(text="ok"),
    ]

    assert fetcher.fetch(URL) == "ok"
    assert sleeps == [2.0]


def test_large_retry_after_is_capped(
    fetcher: DocumentFetcher,
    session: Mock,
    sleeps: list[float],
    make_response: Callable[..., Mock],
) -> None:
    session.get.side_effect = [
        make_response(status_code=429, headers={"Retry-After": "86400"}),
        make_response(text="ok"),
    ]

    assert fetcher.fetch(URL) == "ok"
    assert sleeps == [MAX_RETRY_AFTER_SECONDS]


def test_exhaustion_reports_attempts_actually_made(
    session: Mock, make_response: Callable[..., Mock]
) -> None:
    fetcher = DocumentFetcher(session=session, max_attempts=2, sleep=Mock())
    session.get.return_value = make_response(status_code=500, reason="Server Error")

    with pytest.raises(RetryExhaustedError) as exc:
        fetcher.fetch(URL)

    assert exc.value.attempts == 2
    assert session.get.call_count == 2
