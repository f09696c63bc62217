"""Parse the task reference index into task stubs.

The index is a sequence of `## <Category> tasks` headings, each followed by a
table whose rows look like:

    | **Docker**<br>[Docker@2](docker-v2.md)<br>[Docker@1](docker-v1.md) | Build or push images. |

A row can reference several versions; each one becomes a stub that shares the
row's display name and description.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from types import MappingProxyType

from azure_pipelines_docs.resolver.models import (
    CATEGORY_NAMES,
    TaskCategory,
    TaskRecord,
    TaskSource,
    lookup_category,
)

_HEADING_RE = re.compile(r"^##\s+(.+?)\s*$")
_TASK_ROW_RE = re.compile(r"^\|\s*\*\*(.+?)\*\*.*?\|(.+?)\|$")
_TASK_LINK_RE = re.compile(r"\[([A-Za-z0-9_-]+)@(\d+)\]\(([^)]+)\)")


def parse_task_index(
    markdown: str,
    *,
    categories: MappingProxyType[str, TaskCategory] = CATEGORY_NAMES,
) -> list[TaskRecord]:
    """Return one stub per distinct `full_name` + category, in discovery order.

    Rows under unrecognised headings are ignored; text without headings or
    tables yields an empty list.
    """

    stubs: dict[tuple[str, TaskCategory], TaskRecord] = {}
    current: TaskCategory | None = None

    for raw_line in markdown.splitlines():
        line = raw_line.rstrip()

        heading = _HEADING_RE.match(line)
        if heading:
            current = lookup_category(heading.group(1), categories=categories)
            continue

        if current is None:
            continue

        row = _TASK_ROW_RE.match(line)
        if not row:
            continue

        display_name = row.group(1).strip()
        description = row.group(2).strip()

        for link in _TASK_LINK_RE.finditer(line):
            name, version, doc_path = link.groups()
            key = (f"{name}@{version}", current)
            if key in stubs:
                continue
            stubs[key] = TaskRecord(
                name=name,
                version=version,
                display_name=display_name,
                description=description,
                category=current,
                documentation_path=doc_path,
                source=TaskSource.PUBLIC_DOCS,
            )

    return list(stubs.values())


def search_tasks(
    tasks: Iterable[TaskRecord],
    query: str,
    category: TaskCategory | None = None,
) -> list[TaskRecord]:
    """Filter by category, then by case-insensitive substring match."""

    needle = query.lower()
    matched: list[TaskRecord] = []
    for task in tasks:
        if category is not None and task.category != category:
            continue
        haystacks = (task.name, task.display_name, task.description, task.full_name)
        if any(needle in value.lower() for value in haystacks):
            matched.append(task)
    return matched


def find_task(tasks: Iterable[TaskRecord], full_name: str) -> TaskRecord | None:
    """Case-insensitive lookup by `Name@Version`."""

    wanted = full_name.lower()
    return next((t for t in tasks if t.full_name.lower() == wanted), None)
