#!/usr/bin/env python3
"""Programmatic task lookup example.

This demonstrates using the resolver components directly:

* load settings from `.env` (Azure DevOps credentials are optional)
* search the task catalogue
* print the inputs of one task

The task to describe is passed as an argument.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from azure_pipelines_docs.resolver.config import ResolverSettings
from azure_pipelines_docs.resolver.errors import ResolverError
from azure_pipelines_docs.resolver.logging import configure_logging
from azure_pipelines_docs.resolver.service import TaskResolver


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Describe an Azure Pipelines task.")
    parser.add_argument("--task", required=True, help='Task in the form "Name@Major"')
    parser.add_argument("--search", default="", help="Optional search text to run first")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = ResolverSettings()
    configure_logging(settings.log_level)

    resolver = TaskResolver.from_settings(settings)
    try:
        if args.search:
            result = resolver.search(args.search)
            print(f"{result.total_count} task(s) match {args.search!r} ({result.source.value}):")
            for task in result.tasks:
                print(f"  {task.full_name:<32} {task.display_name}")

        try:
            record = resolver.get_task_reference(args.task)
        except ResolverError as exc:
            print(str(exc))
            return 1

        print(f"{record.full_name}: {record.description}")
        for item in record.inputs:
            marker = "*" if item.required else " "
            default = f" (default: {item.default_value})" if item.default_value else ""
            print(f" {marker} {item.name} [{item.type}]{default}")
        if record.output_variables:
            print(f"Outputs: {', '.join(record.output_variables)}")
        return 0
    finally:
        resolver.close()


if __name__ == "__main__":
    raise SystemExit(main())
