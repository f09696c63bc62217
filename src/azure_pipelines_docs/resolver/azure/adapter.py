"""Convert Azure DevOps task definitions into `TaskRecord`s."""

from __future__ import annotations

import re
from types import MappingProxyType

from azure_pipelines_docs.resolver.azure.client import TaskDefinition, TaskDefinitionInput
from azure_pipelines_docs.resolver.models import (
    CATEGORY_NAMES,
    DEFAULT_CATEGORY,
    TaskCategory,
    TaskInput,
    TaskRecord,
    TaskSource,
    lookup_category,
)

LEARN_TASK_REFERENCE_URL = (
    "https://learn.microsoft.com/en-us/azure/devops/pipelines/tasks/reference/"
)

_ABSOLUTE_LINK_RE = re.compile(r"\[[^\]]*\]\((https?://[^)\s]+)\)")
_ACRONYM_BOUNDARY_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")


def kebab_case(name: str) -> str:
    """`DotNetCoreCLI` -> `dot-net-core-cli`, `VSTest` -> `vs-test`."""

    hyphenated = _ACRONYM_BOUNDARY_RE.sub(r"\1-\2", name)
    hyphenated = _WORD_BOUNDARY_RE.sub(r"\1-\2", hyphenated)
    return hyphenated.lower()


def documentation_link(definition: TaskDefinition) -> str:
    """Absolute link from the task help text, else the conventional Learn URL."""

    match = _ABSOLUTE_LINK_RE.search(definition.help_markdown)
    if match:
        return match.group(1)
    return f"{LEARN_TASK_REFERENCE_URL}{kebab_case(definition.name)}-v{definition.version.major}"


def _to_task_input(item: TaskDefinitionInput) -> TaskInput:
    return TaskInput(
        name=item.name,
        label=item.label or item.name,
        type=item.type or "string",
        required=item.required,
        default_value=item.default_value or None,
        allowed_values=tuple(item.options) or None,
        aliases=tuple(item.aliases) or None,
        help_text=item.help_markdown.strip() or None,
    )


def synthesize_syntax(definition: TaskDefinition) -> str:
    """Render a YAML usage snippet from the definition's inputs."""

    lines: list[str] = []
    if definition.friendly_name:
        lines.append(f"# {definition.friendly_name}")
    if definition.description:
        lines.append(f"# {definition.description}")
    lines.append(f"- task: {definition.name}@{definition.version.major}")

    if definition.inputs:
        lines.append("  inputs:")
        for item in definition.inputs:
            if item.default_value:
                value = f"'{item.default_value}'"
            else:
                value = f"<{item.type or 'string'}>"
            if item.required:
                lines.append(f"    {item.name}: {value}")
            else:
                lines.append(f"    #{item.name}: {value} # Optional.")

    return "\n".join(lines)


def to_task_record(
    definition: TaskDefinition,
    *,
    categories: MappingProxyType[str, TaskCategory] = CATEGORY_NAMES,
) -> TaskRecord:
    category = lookup_category(definition.category, categories=categories) or DEFAULT_CATEGORY
    return TaskRecord(
        name=definition.name,
        version=str(definition.version.major),
        display_name=definition.friendly_name or definition.name,
        description=definition.description,
        category=category,
        documentation_path=documentation_link(definition),
        inputs=tuple(_to_task_input(item) for item in definition.inputs),
        output_variables=(),
        syntax=synthesize_syntax(definition),
        source=TaskSource.API,
    )
