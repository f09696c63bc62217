"""Test configuration and fixtures."""

from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import requests

from azure_pipelines_docs.resolver.http.cache import TTLCache
from azure_pipelines_docs.resolver.http.fetcher import DocumentFetcher

FIXTURES = Path(__file__).parent / "fixtures"

_SETTINGS_ENV_VARS = (
    "AZURE_DEVOPS_ORG",
    "AZURE_DEVOPS_PAT",
    "AZURE_DEVOPS_PROJECT",
    "AZURE_DEVOPS_BASE_URL",
    "TASK_INDEX_URL",
    "TASK_REFERENCE_BASE_URL",
    "HTTP_TIMEOUT_SECONDS",
    "HTTP_MAX_ATTEMPTS",
    "HTTP_RETRY_DELAY_SECONDS",
    "CACHE_TTL_SECONDS",
    "TASK_REFERENCE_CACHE_TTL_SECONDS",
    "LOG_LEVEL",
)


def read_fixture(name: str) -> str:
    return (FIXTURES / name).read_text(encoding="utf-8")


@pytest.fixture
def index_markdown() -> str:
    """Pinned copy of the task reference index format."""
    return read_fixture("task-index.md")


@pytest.fixture
def task_markdown() -> str:
    """Pinned copy of a full task document (DotNetCoreCLI@2)."""
    return read_fixture("dotnet-core-cli-v2.md")


@pytest.fixture
def minimal_task_markdown() -> str:
    """Task document whose regions are all present but empty."""
    return read_fixture("minimal-task.md")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Run without resolver env vars and without a stray `.env` file."""
    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def make_response() -> Callable[..., Mock]:
    """Build a fake `requests.Response`."""

    def _make(
        status_code: int = 200,
        text: str = "",
        headers: dict[str, str] | None = None,
        reason: str = "OK",
    ) -> Mock:
        resp = Mock(spec=requests.Response)
        resp.status_code = status_code
        resp.text = text
        resp.headers = headers or {}
        resp.reason = reason
        return resp

    return _make


@pytest.fixture
def session() -> Mock:
    return Mock(spec=requests.Session)


@pytest.fixture
def sleeps() -> list[float]:
    """Records the delays a fetcher would have slept for."""
    return []


@pytest.fixture
def fetcher(session: Mock, sleeps: list[float]) -> DocumentFetcher:
    """An isolated fetcher: private cache, fake session, no real sleeping."""
    return DocumentFetcher(
        cache=TTLCache(),
        session=session,
        timeout_seconds=5.0,
        max_attempts=3,
        retry_delay_seconds=1.0,
        sleep=sleeps.append,
    )


@pytest.fixture
def route_urls(session: Mock) -> Callable[[dict[str, Any]], None]:
    """Serve fixed responses per URL; unknown URLs fail the test."""

    def _route(responses: dict[str, Any]) -> None:
        def _get(url: str, **_kwargs: Any) -> Any:
            if url not in responses:
                raise AssertionError(f"Unexpected URL: {url}")
            outcome = responses[url]
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome

        session.get.side_effect = _get

    return _route
