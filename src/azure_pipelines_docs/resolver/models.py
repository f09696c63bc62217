"""Records shared by the index parser, the task parser and the API adapter."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class TaskCategory(str, Enum):
    BUILD = "build"
    DEPLOY = "deploy"
    PACKAGE = "package"
    TEST = "test"
    TOOL = "tool"
    UTILITY = "utility"


class TaskSource(str, Enum):
    """Provenance of a resolved record or result set."""

    API = "api"
    PUBLIC_DOCS = "public-docs"


DEFAULT_CATEGORY = TaskCategory.UTILITY

# Lowercased heading / API category text -> category.
CATEGORY_NAMES: MappingProxyType[str, TaskCategory] = MappingProxyType(
    {
        "build tasks": TaskCategory.BUILD,
        "deploy tasks": TaskCategory.DEPLOY,
        "package tasks": TaskCategory.PACKAGE,
        "test tasks": TaskCategory.TEST,
        "tool tasks": TaskCategory.TOOL,
        "utility tasks": TaskCategory.UTILITY,
        "build": TaskCategory.BUILD,
        "deploy": TaskCategory.DEPLOY,
        "package": TaskCategory.PACKAGE,
        "test": TaskCategory.TEST,
        "tool": TaskCategory.TOOL,
        "utility": TaskCategory.UTILITY,
    }
)


def lookup_category(
    text: str | None,
    *,
    categories: MappingProxyType[str, TaskCategory] = CATEGORY_NAMES,
) -> TaskCategory | None:
    """Case-insensitive category lookup; None when the text is not a known category."""

    if not text:
        return None
    return categories.get(text.strip().lower())


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class TaskInput(_Record):
    """One configurable parameter of a task."""

    name: str
    label: str = ""
    type: str = "string"
    required: bool = False
    default_value: str | None = None
    allowed_values: tuple[str, ...] | None = None
    aliases: tuple[str, ...] | None = None
    help_text: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("label"):
            return {**data, "label": data.get("name", "")}
        return data


class TaskRecord(_Record):
    """Everything known about one task at one major version."""

    name: str
    version: str
    full_name: str = ""
    display_name: str = ""
    description: str = ""
    category: TaskCategory = DEFAULT_CATEGORY
    documentation_path: str = ""

    inputs: tuple[TaskInput, ...] = Field(default_factory=tuple)
    output_variables: tuple[str, ...] = Field(default_factory=tuple)
    syntax: str | None = None
    remarks: str | None = None
    examples: str | None = None

    source: TaskSource | None = None

    @model_validator(mode="before")
    @classmethod
    def _derive_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        name = data.get("name", "")
        version = data.get("version", "")
        derived = dict(data)
        if not (derived.get("full_name") or derived.get("fullName")):
            derived["full_name"] = f"{name}@{version}"
        if not (derived.get("display_name") or derived.get("displayName")):
            derived["display_name"] = name
        return derived

    def to_payload(self) -> dict[str, Any]:
        """Serialized form with camelCase keys and unset optional fields dropped."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def summary(self) -> dict[str, Any]:
        """Stub-level fields only, as listed by search results."""

        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            include={
                "name",
                "display_name",
                "version",
                "full_name",
                "description",
                "category",
                "documentation_path",
                "source",
            },
        )


class SearchResult(_Record):
    tasks: tuple[TaskRecord, ...]
    query: str
    category: TaskCategory | None = None
    source: TaskSource

    @property
    def total_count(self) -> int:
        return len(self.tasks)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "tasks": [task.summary() for task in self.tasks],
            "totalCount": self.total_count,
            "query": self.query,
            "source": self.source.value,
        }
        if self.category is not None:
            payload["category"] = self.category.value
        return payload
