"""Configuration for the task resolver.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Azure DevOps credentials are optional. Without them the resolver only consults
the public task reference.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PUBLIC_TASK_REFERENCE_BASE_URL = (
    "https://raw.githubusercontent.com/MicrosoftDocs/azure-devops-yaml-schema/main/task-reference/"
)
PUBLIC_TASK_INDEX_URL = f"{PUBLIC_TASK_REFERENCE_BASE_URL}index.md"


class ResolverSettings(BaseSettings):
    """Settings for the resolver and its fetch layer.

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `ResolverSettings(_env_file=path_to_env)`.
    """

    azure_devops_org: str = Field(
        default="",
        validation_alias="AZURE_DEVOPS_ORG",
        description="Azure DevOps organization whose task inventory is queried",
    )
    azure_devops_pat: str = Field(
        default="",
        validation_alias="AZURE_DEVOPS_PAT",
        description="Personal access token used for Basic authentication",
    )
    azure_devops_project: str = Field(
        default="",
        validation_alias="AZURE_DEVOPS_PROJECT",
        description="Default project for project-scoped endpoints",
    )
    azure_devops_base_url: str = Field(
        default="https://dev.azure.com",
        validation_alias="AZURE_DEVOPS_BASE_URL",
        description="Azure DevOps REST base URL",
    )

    task_index_url: str = Field(
        default=PUBLIC_TASK_INDEX_URL,
        validation_alias="TASK_INDEX_URL",
        description="Markdown index of the public task reference",
    )
    task_reference_base_url: str = Field(
        default=PUBLIC_TASK_REFERENCE_BASE_URL,
        validation_alias="TASK_REFERENCE_BASE_URL",
        description="Base URL that index documentation paths are resolved against",
    )

    http_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias="HTTP_TIMEOUT_SECONDS",
        description="Deadline for a single HTTP attempt",
    )
    http_max_attempts: int = Field(
        default=3,
        ge=1,
        validation_alias="HTTP_MAX_ATTEMPTS",
        description="Attempt budget for retryable failures",
    )
    http_retry_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        validation_alias="HTTP_RETRY_DELAY_SECONDS",
        description="Base delay for exponential backoff",
    )
    cache_ttl_seconds: float = Field(
        default=3600.0,
        ge=0,
        validation_alias="CACHE_TTL_SECONDS",
        description="Default lifetime of cached documents",
    )
    task_reference_cache_ttl_seconds: float = Field(
        default=86400.0,
        ge=0,
        validation_alias="TASK_REFERENCE_CACHE_TTL_SECONDS",
        description="Lifetime of cached per-task documents (they change rarely)",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @property
    def azure_devops_configured(self) -> bool:
        """True when both organization and token are present."""

        return bool(self.azure_devops_org.strip() and self.azure_devops_pat.strip())
