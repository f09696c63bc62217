"""Error taxonomy for task resolution.

Fetch errors are classified so the fetcher can decide whether a retry makes
sense. The resolver turns exhausted lookups into `SourceExhaustedError`
with a reason callers can act on.
"""

from __future__ import annotations

from enum import Enum


class ResolverError(Exception):
    """Base class for every error raised by the resolver."""


class FetchError(ResolverError):
    """A document could not be fetched."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message)
        self.url = url


class NotFoundError(FetchError):
    """HTTP 404. Never retried."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Resource not found: {url}", url=url)


class RateLimitedError(FetchError):
    """HTTP 429, optionally carrying the server-advertised delay in seconds."""

    def __init__(self, url: str, retry_after: float | None = None) -> None:
        super().__init__(f"Rate limit exceeded for: {url}", url=url)
        self.retry_after = retry_after


class FetchTimeoutError(FetchError):
    """The request exceeded its deadline. Never retried."""

    def __init__(self, url: str, timeout_seconds: float) -> None:
        super().__init__(f"Request timeout after {timeout_seconds}s: {url}", url=url)
        self.timeout_seconds = timeout_seconds


class TransientFetchError(FetchError):
    """Server error, unexpected status or connection failure."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None) -> None:
        super().__init__(message, url=url)
        self.status_code = status_code


class RetryExhaustedError(FetchError):
    """Every attempt failed; wraps the last underlying error."""

    def __init__(self, url: str, attempts: int, last_error: FetchError) -> None:
        super().__init__(f"Failed after {attempts} attempts: {last_error}", url=url)
        self.attempts = attempts
        self.last_error = last_error


class AzureDevOpsConfigError(ResolverError):
    """Organization or personal access token is missing."""


class MalformedInputError(ResolverError):
    """A task identifier is not in `Name@MajorVersion` form."""

    def __init__(self, value: str) -> None:
        super().__init__(
            f"Invalid task format '{value}'. "
            "Expected format: TaskName@Version (e.g., DotNetCoreCLI@2)"
        )
        self.value = value


class SourceExhaustionReason(str, Enum):
    UNKNOWN_TASK = "unknown-task"
    DOCUMENTATION_UNAVAILABLE = "documentation-unavailable"
    INDEX_UNAVAILABLE = "index-unavailable"


_REASON_MESSAGES: dict[SourceExhaustionReason, str] = {
    SourceExhaustionReason.UNKNOWN_TASK: (
        "Task '{task}' not found. Use search_pipeline_tasks to find available tasks."
    ),
    SourceExhaustionReason.DOCUMENTATION_UNAVAILABLE: "Documentation for task '{task}' not found.",
    SourceExhaustionReason.INDEX_UNAVAILABLE: (
        "Task index not found. The documentation source may be unavailable."
    ),
}


class SourceExhaustedError(ResolverError):
    """No source yielded a usable record."""

    def __init__(
        self,
        reason: SourceExhaustionReason,
        *,
        task_name: str | None = None,
        url: str | None = None,
    ) -> None:
        super().__init__(_REASON_MESSAGES[reason].format(task=task_name or ""))
        self.reason = reason
        self.task_name = task_name
        self.url = url
