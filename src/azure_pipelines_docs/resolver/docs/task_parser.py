"""Parse a per-task reference document into a `TaskRecord`.

Task documents carry a private convention on top of markdown:

- an optional front matter block with a `description:` field
- regions delimited by `<!-- :::NAME::: -->` ... `<!-- :::NAME-end::: -->`
  (description, syntax, inputs, outputVariables, remarks, examples)
- version-conditional variants inside a region, delimited by
  `:::moniker range="..."` ... `:::moniker-end`, most current first
- item blocks opened by `<!-- :::item name="..."::: -->` inside the inputs and
  outputVariables regions
- free-form text inside `<!-- :::editable-content name="..."::: -->` blocks

Absent or malformed structure yields empty or None fields, never an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

from azure_pipelines_docs.resolver.models import TaskInput, TaskRecord, TaskSource

KNOWN_INPUT_TYPES: frozenset[str] = frozenset(
    {
        "string",
        "boolean",
        "int",
        "filePath",
        "multiLine",
        "secureFile",
        "identities",
        "radio",
        "pickList",
        "queryControl",
    }
)
DEFAULT_INPUT_TYPE = "string"

_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---", re.DOTALL | re.MULTILINE)
_FRONT_MATTER_DESCRIPTION_RE = re.compile(r"^description:[ \t]*(.+?)[ \t]*$", re.MULTILINE)

_VARIANT_RE = re.compile(
    r'^:::moniker\s+range="([^"]*)"[ \t]*$(.*?)^:::moniker-end[ \t]*$',
    re.DOTALL | re.MULTILINE,
)
_YAML_BLOCK_RE = re.compile(r"```yaml\s*\n(.*?)```", re.DOTALL)

_ITEM_NAME_RE = re.compile(r'<!-- :::item name="([^"]+)"::: -->')
_ITEM_SPLIT_RE = re.compile(r'(?=<!-- :::item name=")')

_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_REQUIRED_RE = re.compile(r"\.\s*Required\b")
_DEFAULT_VALUE_RE = re.compile(r"Default value:\s*`([^`]*)`")
_DEFAULT_INLINE_RE = re.compile(r"Default:\s*`?([^`.]+)`?\.")
_ALLOWED_VALUES_RE = re.compile(r"Allowed values:\s*`([^`]+(?:`\s*,\s*`[^`]+)*)`")
_PIPE_VALUES_RE = re.compile(r"`'([^']+)'(?:\s*\|\s*'([^']+)')+`")
_QUOTED_RE = re.compile(r"'([^']+)'")
_ALIAS_RE = re.compile(r"\[Input alias\].*?:\s*`([^`]+)`")

_EDITABLE_MARKER_RE = re.compile(r"<!-- :::editable-content[^>]*-->")
_MONIKER_LINE_RE = re.compile(r"^:::moniker.*$", re.MULTILINE)


def _region_re(name: str) -> re.Pattern[str]:
    return re.compile(rf"<!-- :::{name}::: -->(.*?)<!-- :::{name}-end::: -->", re.DOTALL)


def _editable_re(name: str) -> re.Pattern[str]:
    return re.compile(
        rf'<!-- :::editable-content name="{name}"::: -->\s*\n(.*?)\n\s*'
        r"<!-- :::editable-content-end::: -->",
        re.DOTALL,
    )


@lru_cache(maxsize=8)
def _type_token_re(input_types: frozenset[str]) -> re.Pattern[str]:
    # Longest first so a type never matches as a prefix of another.
    alternatives = "|".join(re.escape(t) for t in sorted(input_types, key=len, reverse=True))
    return re.compile(rf"`({alternatives})`")


_REGION_RES: dict[str, re.Pattern[str]] = {
    name: _region_re(name)
    for name in ("description", "syntax", "inputs", "outputVariables", "remarks", "examples")
}
_DESCRIPTION_EDITABLE_RE = _editable_re("description")
_HELP_EDITABLE_RE = _editable_re("helpMarkDown")


@dataclass(frozen=True, slots=True)
class TaskDocument:
    """Raw text of each recognised part of a task document.

    A field is None when the corresponding region is absent.
    """

    front_matter_description: str | None = None
    description: str | None = None
    syntax: str | None = None
    inputs: str | None = None
    output_variables: str | None = None
    remarks: str | None = None
    examples: str | None = None


@dataclass(frozen=True, slots=True)
class Variant:
    """One version-conditional block of a region."""

    moniker_range: str
    content: str


def _region(markdown: str, name: str) -> str | None:
    match = _REGION_RES[name].search(markdown)
    return match.group(1) if match else None


def _front_matter_description(markdown: str) -> str | None:
    block = _FRONT_MATTER_RE.match(markdown)
    if not block:
        return None
    field = _FRONT_MATTER_DESCRIPTION_RE.search(block.group(1))
    return field.group(1).strip() if field else None


def read_task_document(markdown: str) -> TaskDocument:
    """Split a task document into its regions."""

    return TaskDocument(
        front_matter_description=_front_matter_description(markdown),
        description=_region(markdown, "description"),
        syntax=_region(markdown, "syntax"),
        inputs=_region(markdown, "inputs"),
        output_variables=_region(markdown, "outputVariables"),
        remarks=_region(markdown, "remarks"),
        examples=_region(markdown, "examples"),
    )


def split_variants(region: str) -> list[Variant]:
    """Return the moniker variants of a region, most current first.

    A region without moniker markers is a single variant with an empty range.
    """

    variants = [
        Variant(moniker_range=m.group(1), content=m.group(2))
        for m in _VARIANT_RE.finditer(region)
    ]
    return variants or [Variant(moniker_range="", content=region)]


# Region-level extraction.


def _description_from(document: TaskDocument, markdown: str) -> str:
    if document.front_matter_description:
        return document.front_matter_description

    scope = document.description if document.description is not None else markdown
    editable = _DESCRIPTION_EDITABLE_RE.search(scope)
    if editable:
        return editable.group(1).strip()
    return ""


def _syntax_from(region: str | None) -> str | None:
    if region is None:
        return None
    first = split_variants(region)[0]
    block = _YAML_BLOCK_RE.search(first.content)
    if not block:
        return None
    return block.group(1).strip() or None


def _inputs_from(region: str | None) -> list[TaskInput]:
    if region is None:
        return []

    inputs: list[TaskInput] = []
    for block in _ITEM_SPLIT_RE.split(region):
        if ":::item name=" not in block:
            continue
        parsed = parse_input_block(block)
        if parsed is not None:
            inputs.append(parsed)
    return inputs


def _output_variables_from(region: str | None) -> list[str]:
    if region is None:
        return []
    return _ITEM_NAME_RE.findall(region)


def _editable_text_from(region: str | None, heading: str) -> str | None:
    if region is None:
        return None

    content = _MONIKER_LINE_RE.sub("", region)
    content = _EDITABLE_MARKER_RE.sub("", content).strip()
    content = re.sub(rf"^##\s*{heading}\s*\n*", "", content, flags=re.IGNORECASE).strip()
    return content or None


# Public parsers. Each accepts the whole document.


def parse_description(markdown: str) -> str:
    """Front matter description, else the description editable block, else ""."""

    return _description_from(read_task_document(markdown), markdown)


def parse_syntax(markdown: str) -> str | None:
    """First YAML block of the most current syntax variant."""

    return _syntax_from(_region(markdown, "syntax"))


def parse_input_block(
    block: str, *, input_types: frozenset[str] = KNOWN_INPUT_TYPES
) -> TaskInput | None:
    """Parse one `:::item` block of the inputs region.

    Returns None when the block carries no item name.
    """

    name_match = _ITEM_NAME_RE.search(block)
    if not name_match:
        return None
    name = name_match.group(1)

    label_match = re.search(rf"\*\*`{re.escape(name)}`\*\*\s*-\s*\*\*([^*]+)\*\*", block)
    label = label_match.group(1).strip() if label_match else name

    type_match = _type_token_re(input_types).search(block)
    input_type = type_match.group(1) if type_match else DEFAULT_INPUT_TYPE

    required = _REQUIRED_RE.search(block) is not None

    default_value: str | None = None
    explicit_default = _DEFAULT_VALUE_RE.search(block)
    if explicit_default:
        default_value = explicit_default.group(1)
    else:
        inline_default = _DEFAULT_INLINE_RE.search(block)
        if inline_default:
            default_value = inline_default.group(1).strip()

    allowed_values: tuple[str, ...] | None = None
    allowed = _ALLOWED_VALUES_RE.search(block)
    if allowed:
        allowed_values = tuple(_INLINE_CODE_RE.findall(allowed.group(0)))
    else:
        piped = _PIPE_VALUES_RE.search(block)
        if piped:
            allowed_values = tuple(_QUOTED_RE.findall(piped.group(0)))

    alias = _ALIAS_RE.search(block)
    aliases = (alias.group(1),) if alias else None

    help_text: str | None = None
    help_match = _HELP_EDITABLE_RE.search(block)
    if help_match:
        help_text = help_match.group(1).strip() or None

    return TaskInput(
        name=name,
        label=label,
        type=input_type,
        required=required,
        default_value=default_value,
        allowed_values=allowed_values or None,
        aliases=aliases,
        help_text=help_text,
    )


def parse_inputs(markdown: str) -> list[TaskInput]:
    return _inputs_from(_region(markdown, "inputs"))


def parse_output_variables(markdown: str) -> list[str]:
    return _output_variables_from(_region(markdown, "outputVariables"))


def parse_remarks(markdown: str) -> str | None:
    return _editable_text_from(_region(markdown, "remarks"), "Remarks")


def parse_examples(markdown: str) -> str | None:
    return _editable_text_from(_region(markdown, "examples"), "Examples")


def parse_task_markdown(
    markdown: str,
    name: str,
    version: str,
    *,
    stub: TaskRecord | None = None,
) -> TaskRecord:
    """Build the full record for `name@version` from its reference document.

    When `stub` (the index entry) is given, its display name, category and
    documentation path carry over to the record.
    """

    document = read_task_document(markdown)
    carried: dict[str, object] = {}
    if stub is not None:
        carried = {
            "display_name": stub.display_name,
            "category": stub.category,
            "documentation_path": stub.documentation_path,
        }

    return TaskRecord(
        name=name,
        version=version,
        description=_description_from(document, markdown),
        syntax=_syntax_from(document.syntax),
        inputs=tuple(_inputs_from(document.inputs)),
        output_variables=tuple(_output_variables_from(document.output_variables)),
        remarks=_editable_text_from(document.remarks, "Remarks"),
        examples=_editable_text_from(document.examples, "Examples"),
        source=TaskSource.PUBLIC_DOCS,
        **carried,
    )
