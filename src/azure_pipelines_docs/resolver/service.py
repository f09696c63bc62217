"""Resolve task lookups and searches across the inventory API and the public docs.

Source order:
- single-task lookup: inventory API first, then index + task document
- search: inventory listing first, then the public index

Failures on the inventory path are logged and absorbed; the public path is
always attempted afterwards.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from azure_pipelines_docs.resolver.azure.adapter import to_task_record
from azure_pipelines_docs.resolver.azure.client import AzureDevOpsClient, TaskDefinition
from azure_pipelines_docs.resolver.config import (
    PUBLIC_TASK_INDEX_URL,
    PUBLIC_TASK_REFERENCE_BASE_URL,
    ResolverSettings,
)
from azure_pipelines_docs.resolver.docs.index_parser import (
    find_task,
    parse_task_index,
    search_tasks,
)
from azure_pipelines_docs.resolver.docs.task_parser import parse_task_markdown
from azure_pipelines_docs.resolver.errors import (
    FetchError,
    MalformedInputError,
    ResolverError,
    SourceExhaustedError,
    SourceExhaustionReason,
)
from azure_pipelines_docs.resolver.http.cache import TTLCache
from azure_pipelines_docs.resolver.http.fetcher import DocumentFetcher
from azure_pipelines_docs.resolver.models import (
    SearchResult,
    TaskCategory,
    TaskRecord,
    TaskSource,
)

logger = logging.getLogger(__name__)

TASK_NAME_RE = re.compile(r"([A-Za-z0-9_-]+)@(\d+)", re.ASCII)

DEFAULT_TASK_REFERENCE_CACHE_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class TaskName:
    name: str
    version: str

    @property
    def full_name(self) -> str:
        return f"{self.name}@{self.version}"


def parse_task_name(value: str) -> TaskName:
    """Validate `Name@MajorVersion`.

    Raises:
        MalformedInputError: if `value` does not have that form.
    """

    match = TASK_NAME_RE.fullmatch(value)
    if not match:
        raise MalformedInputError(value)
    return TaskName(name=match.group(1), version=match.group(2))


def _pick_definition(
    definitions: list[TaskDefinition], wanted: TaskName
) -> TaskDefinition | None:
    name = wanted.name.lower()
    major = int(wanted.version)
    matches = [d for d in definitions if d.name.lower() == name and d.version.major == major]
    if not matches:
        return None
    # Released definitions win over test builds of the same major version.
    return max(matches, key=lambda d: (not d.version.is_test, d.version.minor, d.version.patch))


class TaskResolver:
    """Answer task reference lookups and searches."""

    def __init__(
        self,
        fetcher: DocumentFetcher,
        *,
        azure: AzureDevOpsClient | None = None,
        index_url: str = PUBLIC_TASK_INDEX_URL,
        reference_base_url: str = PUBLIC_TASK_REFERENCE_BASE_URL,
        reference_cache_ttl_seconds: float = DEFAULT_TASK_REFERENCE_CACHE_TTL_SECONDS,
    ) -> None:
        self._fetcher = fetcher
        self._azure = azure
        self._index_url = index_url
        self._reference_base_url = reference_base_url
        self._reference_cache_ttl_seconds = reference_cache_ttl_seconds

    @classmethod
    def from_settings(cls, settings: ResolverSettings) -> TaskResolver:
        fetcher = DocumentFetcher(
            cache=TTLCache(default_ttl_seconds=settings.cache_ttl_seconds),
            timeout_seconds=settings.http_timeout_seconds,
            max_attempts=settings.http_max_attempts,
            retry_delay_seconds=settings.http_retry_delay_seconds,
            cache_ttl_seconds=settings.cache_ttl_seconds,
        )

        azure: AzureDevOpsClient | None = None
        if settings.azure_devops_configured:
            try:
                azure = AzureDevOpsClient.from_settings(settings, fetcher=fetcher)
            except ResolverError as e:
                logger.warning(
                    "Azure DevOps client unavailable; using public docs only",
                    extra={"error": str(e)},
                )
        else:
            logger.debug("Azure DevOps credentials not configured; using public docs only")

        return cls(
            fetcher,
            azure=azure,
            index_url=settings.task_index_url,
            reference_base_url=settings.task_reference_base_url,
            reference_cache_ttl_seconds=settings.task_reference_cache_ttl_seconds,
        )

    @property
    def index_url(self) -> str:
        return self._index_url

    def documentation_url(self, stub: TaskRecord) -> str:
        path = stub.documentation_path
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._reference_base_url}{path.lstrip('/')}"

    def get_task_reference(self, task_name: str) -> TaskRecord:
        """Return the full record for `Name@MajorVersion`.

        Raises:
            MalformedInputError: before any source is consulted.
            SourceExhaustedError: when neither source yields a record.
        """

        wanted = parse_task_name(task_name)

        record = self._lookup_in_inventory(wanted)
        if record is not None:
            return record

        try:
            stubs = self._load_index()
        except FetchError as e:
            logger.warning(
                "Task index unavailable", extra={"url": self._index_url, "error": str(e)}
            )
            raise SourceExhaustedError(
                SourceExhaustionReason.INDEX_UNAVAILABLE,
                task_name=task_name,
                url=self._index_url,
            ) from e

        stub = find_task(stubs, wanted.full_name)
        if stub is None:
            raise SourceExhaustedError(SourceExhaustionReason.UNKNOWN_TASK, task_name=task_name)

        doc_url = self.documentation_url(stub)
        try:
            markdown = self._fetcher.fetch(
                doc_url, cache_ttl_seconds=self._reference_cache_ttl_seconds
            )
        except FetchError as e:
            logger.warning(
                "Task documentation unavailable",
                extra={"task": task_name, "url": doc_url, "error": str(e)},
            )
            raise SourceExhaustedError(
                SourceExhaustionReason.DOCUMENTATION_UNAVAILABLE,
                task_name=task_name,
                url=doc_url,
            ) from e

        return parse_task_markdown(markdown, wanted.name, wanted.version, stub=stub)

    def search(self, query: str, category: TaskCategory | None = None) -> SearchResult:
        """Search the inventory listing, falling back to the public index.

        Raises:
            SourceExhaustedError: when the public index cannot be fetched either.
        """

        tasks = self._list_inventory()
        source = TaskSource.API

        if tasks is None:
            source = TaskSource.PUBLIC_DOCS
            try:
                tasks = self._load_index()
            except FetchError as e:
                logger.warning(
                    "Task index unavailable", extra={"url": self._index_url, "error": str(e)}
                )
                raise SourceExhaustedError(
                    SourceExhaustionReason.INDEX_UNAVAILABLE, url=self._index_url
                ) from e

        matched = search_tasks(tasks, query, category)
        logger.info(
            "Search completed",
            extra={"query": query, "source": source.value, "matches": len(matched)},
        )
        return SearchResult(tasks=tuple(matched), query=query, category=category, source=source)

    def close(self) -> None:
        self._fetcher.close()

    def _load_index(self) -> list[TaskRecord]:
        return parse_task_index(self._fetcher.fetch(self._index_url))

    def _list_inventory(self) -> list[TaskRecord] | None:
        if self._azure is None:
            return None
        try:
            definitions = self._azure.list_task_definitions()
        except Exception as e:  # noqa: BLE001 (any inventory failure falls back to public docs)
            logger.info(
                "Task inventory unavailable; falling back to public docs",
                extra={"organization": self._azure.organization, "error": str(e)},
            )
            return None
        return [to_task_record(d) for d in definitions]

    def _lookup_in_inventory(self, wanted: TaskName) -> TaskRecord | None:
        if self._azure is None:
            return None
        try:
            definition = _pick_definition(self._azure.list_task_definitions(), wanted)
        except Exception as e:  # noqa: BLE001 (any inventory failure falls back to public docs)
            logger.info(
                "Task inventory unavailable; falling back to public docs",
                extra={"task": wanted.full_name, "error": str(e)},
            )
            return None

        if definition is None:
            logger.debug("Task not in inventory", extra={"task": wanted.full_name})
            return None
        return to_task_record(definition)
