"""Tool handlers returning JSON-serializable payloads.

Handlers never raise resolver errors; every failure becomes an error payload
of the form `{"error": ..., "reason": ..., "url": ...}` (absent keys omitted).
"""

from __future__ import annotations

import logging
from typing import Any

from azure_pipelines_docs.resolver.errors import (
    FetchError,
    ResolverError,
    SourceExhaustedError,
)
from azure_pipelines_docs.resolver.models import TaskCategory
from azure_pipelines_docs.resolver.service import TaskResolver

logger = logging.getLogger(__name__)

TASK_CATEGORY_VALUES: tuple[str, ...] = tuple(c.value for c in TaskCategory)


def error_payload(error: ResolverError) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": str(error)}
    if isinstance(error, SourceExhaustedError):
        payload["reason"] = error.reason.value
        if error.url:
            payload["url"] = error.url
    elif isinstance(error, FetchError):
        payload["url"] = error.url
    return payload


def is_error_payload(payload: dict[str, Any]) -> bool:
    return "error" in payload


def handle_get_task_reference(resolver: TaskResolver, task_name: str) -> dict[str, Any]:
    """Full reference for `TaskName@Version`: inputs, syntax, outputs, examples."""

    try:
        record = resolver.get_task_reference(task_name)
    except ResolverError as e:
        logger.info("Task reference lookup failed", extra={"task": task_name, "error": str(e)})
        return error_payload(e)
    return record.to_payload()


def handle_search_pipeline_tasks(
    resolver: TaskResolver, query: str, category: str | None = None
) -> dict[str, Any]:
    """Tasks matching `query` by name, display name, description or full name."""

    selected: TaskCategory | None = None
    if category:
        try:
            selected = TaskCategory(category.lower())
        except ValueError:
            return {
                "error": (
                    f"Invalid category '{category}'. "
                    f"Expected one of: {', '.join(TASK_CATEGORY_VALUES)}"
                )
            }

    try:
        result = resolver.search(query, selected)
    except ResolverError as e:
        logger.info("Task search failed", extra={"query": query, "error": str(e)})
        return error_payload(e)
    return result.to_payload()
