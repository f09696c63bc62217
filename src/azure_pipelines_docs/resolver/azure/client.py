"""Azure DevOps REST client for the task inventory.

GET requests go through the shared `DocumentFetcher`, so they are cached and
retried like any other document.
"""

from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from azure_pipelines_docs.resolver.config import ResolverSettings
from azure_pipelines_docs.resolver.errors import AzureDevOpsConfigError, TransientFetchError
from azure_pipelines_docs.resolver.http.fetcher import DocumentFetcher

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://dev.azure.com"
DEFAULT_API_VERSION = "7.1"
TASK_DEFINITIONS_ENDPOINT = "_apis/distributedtask/tasks"

_API_VERSION_RE = re.compile(r"[?&]api-version=")


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


@dataclass(frozen=True, slots=True)
class TaskVersion:
    major: int
    minor: int = 0
    patch: int = 0
    is_test: bool = False

    @classmethod
    def from_api(cls, data: Any) -> TaskVersion:
        if not isinstance(data, dict):
            return cls(major=0)
        return cls(
            major=_int(data.get("major")),
            minor=_int(data.get("minor")),
            patch=_int(data.get("patch")),
            is_test=bool(data.get("isTest", False)),
        )


@dataclass(frozen=True, slots=True)
class TaskDefinitionInput:
    """One input as described by the task inventory."""

    name: str
    label: str = ""
    type: str = ""
    required: bool = False
    default_value: str = ""
    help_markdown: str = ""
    options: dict[str, str] = field(default_factory=dict)
    aliases: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TaskDefinitionInput:
        raw_options = data.get("options")
        options = (
            {str(k): str(v) for k, v in raw_options.items()}
            if isinstance(raw_options, dict)
            else {}
        )
        raw_aliases = data.get("aliases")
        aliases = (
            [a for a in raw_aliases if isinstance(a, str)] if isinstance(raw_aliases, list) else []
        )
        default = data.get("defaultValue")
        return cls(
            name=_str(data.get("name")),
            label=_str(data.get("label")),
            type=_str(data.get("type")),
            required=bool(data.get("required", False)),
            default_value="" if default is None else str(default),
            help_markdown=_str(data.get("helpMarkDown")),
            options=options,
            aliases=aliases,
        )


@dataclass(frozen=True, slots=True)
class TaskDefinition:
    """Minimal task definition metadata returned by the inventory endpoint."""

    id: str
    name: str
    friendly_name: str
    description: str
    category: str
    version: TaskVersion
    help_markdown: str = ""
    inputs: list[TaskDefinitionInput] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TaskDefinition:
        raw_inputs = data.get("inputs")
        inputs = (
            [
                TaskDefinitionInput.from_api(item)
                for item in raw_inputs
                if isinstance(item, dict) and _str(item.get("name"))
            ]
            if isinstance(raw_inputs, list)
            else []
        )
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")),
            friendly_name=_str(data.get("friendlyName")),
            description=_str(data.get("description")),
            category=_str(data.get("category")),
            version=TaskVersion.from_api(data.get("version")),
            help_markdown=_str(data.get("helpMarkDown")),
            inputs=inputs,
        )


class AzureDevOpsClient:
    """Small wrapper around the Azure DevOps REST API for the calls we need."""

    def __init__(
        self,
        *,
        org: str,
        pat: str,
        project: str | None = None,
        fetcher: DocumentFetcher | None = None,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
    ) -> None:
        if not org.strip() or not pat.strip():
            raise AzureDevOpsConfigError(
                "Azure DevOps organization and personal access token must be provided "
                "via options or environment variables."
            )

        self._org = org.strip().strip("/")
        self._pat = pat
        self._project = (project or "").strip().strip("/") or None
        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher or DocumentFetcher()
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version

    @classmethod
    def from_settings(
        cls, settings: ResolverSettings, *, fetcher: DocumentFetcher | None = None
    ) -> AzureDevOpsClient:
        return cls(
            org=settings.azure_devops_org,
            pat=settings.azure_devops_pat,
            project=settings.azure_devops_project or None,
            fetcher=fetcher,
            base_url=settings.azure_devops_base_url,
        )

    @property
    def organization(self) -> str:
        return self._org

    @property
    def project(self) -> str | None:
        return self._project

    def build_url(
        self, endpoint: str, project: str | None = None, *, org_scoped: bool = False
    ) -> str:
        """Return the absolute URL for `endpoint`, with `api-version` appended."""

        normalized = endpoint.strip().lstrip("/")
        proj = None if org_scoped else (project or self._project)

        if proj:
            url = f"{self._base_url}/{self._org}/{proj}/{normalized}"
        else:
            url = f"{self._base_url}/{self._org}/{normalized}"

        if _API_VERSION_RE.search(url):
            return url

        separator = "&" if "?" in url else "?"
        return f"{url}{separator}api-version={self._api_version}"

    def _headers(self) -> dict[str, str]:
        token = base64.b64encode(f":{self._pat}".encode()).decode("ascii")
        return {
            "Authorization": f"Basic {token}",
            "Content-Type": "application/json",
        }

    def get_json(
        self, endpoint: str, *, project: str | None = None, org_scoped: bool = False
    ) -> Any:
        """GET `endpoint` as JSON, through the shared fetcher and its cache."""

        url = self.build_url(endpoint, project, org_scoped=org_scoped)
        return self._fetcher.fetch_json(url, headers=self._headers())

    def list_task_definitions(self) -> list[TaskDefinition]:
        """Return every task definition installed in the organization."""

        data = self.get_json(TASK_DEFINITIONS_ENDPOINT, org_scoped=True)
        if not isinstance(data, dict) or not isinstance(data.get("value"), list):
            raise TransientFetchError(
                "Unexpected task definitions response: missing value",
                url=self.build_url(TASK_DEFINITIONS_ENDPOINT, org_scoped=True),
            )

        definitions = [
            TaskDefinition.from_api(item)
            for item in data["value"]
            if isinstance(item, dict) and _str(item.get("name"))
        ]
        logger.debug(
            "Listed task definitions",
            extra={"organization": self._org, "count": len(definitions)},
        )
        return definitions

    def close(self) -> None:
        if self._owns_fetcher:
            self._fetcher.close()
