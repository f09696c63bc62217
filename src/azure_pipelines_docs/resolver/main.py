"""CLI entrypoint for task reference lookups.

Payloads are printed as JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from azure_pipelines_docs import __version__
from azure_pipelines_docs.resolver.config import ResolverSettings
from azure_pipelines_docs.resolver.logging import configure_logging
from azure_pipelines_docs.resolver.service import TaskResolver
from azure_pipelines_docs.resolver.tools import (
    TASK_CATEGORY_VALUES,
    handle_get_task_reference,
    handle_search_pipeline_tasks,
    is_error_payload,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="azure-pipelines-docs",
        description="Look up Azure Pipelines task references",
    )
    parser.add_argument(
        "--version", action="version", version=f"azure-pipelines-docs {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser(
        "search",
        help="Search tasks by name, display name or description",
    )
    search.add_argument("query", help="Case-insensitive search text")
    search.add_argument(
        "--category",
        choices=TASK_CATEGORY_VALUES,
        default=None,
        help="Only return tasks of this category",
    )

    reference = subparsers.add_parser(
        "reference",
        help="Show inputs, syntax, output variables and examples of one task",
    )
    reference.add_argument(
        "task_name",
        help="Task name with version, e.g. DotNetCoreCLI@2",
    )

    return parser


def _emit(payload: dict[str, Any]) -> int:
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 1 if is_error_payload(payload) else 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = ResolverSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    resolver = TaskResolver.from_settings(settings)
    try:
        if args.command == "search":
            return _emit(handle_search_pipeline_tasks(resolver, args.query, args.category))

        if args.command == "reference":
            return _emit(handle_get_task_reference(resolver, args.task_name))

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1

    finally:
        resolver.close()


if __name__ == "__main__":
    raise SystemExit(main())
