"""Unit tests for the command line entrypoint."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import Mock

import pytest

from azure_pipelines_docs.resolver import main as cli
from azure_pipelines_docs.resolver.errors import SourceExhaustedError, SourceExhaustionReason
from azure_pipelines_docs.resolver.models import SearchResult, TaskRecord, TaskSource
from azure_pipelines_docs.resolver.service import TaskResolver


@pytest.fixture
def resolver(clean_env: Path, monkeypatch: pytest.MonkeyPatch) -> Mock:
    fake = Mock(spec=TaskResolver)
    monkeypatch.setattr(cli.TaskResolver, "from_settings", Mock(return_value=fake))
    monkeypatch.setattr(cli, "configure_logging", Mock())
    return fake


def test_reference_prints_payload(resolver: Mock, capsys: pytest.CaptureFixture[str]) -> None:
    resolver.get_task_reference.return_value = TaskRecord(
        name="Docker", version="2", source=TaskSource.PUBLIC_DOCS
    )

    code = cli.main(["reference", "Docker@2"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["fullName"] == "Docker@2"
    resolver.get_task_reference.assert_called_once_with("Docker@2")
    resolver.close.assert_called_once()


def test_reference_error_payload_exits_1(
    resolver: Mock, capsys: pytest.CaptureFixture[str]
) -> None:
    resolver.get_task_reference.side_effect = SourceExhaustedError(
        SourceExhaustionReason.UNKNOWN_TASK, task_name="Nope@1"
    )

    code = cli.main(["reference", "Nope@1"])

    assert code == 1
    payload = json.loads(capsys.readouterr().out)
    assert payload["reason"] == "unknown-task"


def test_search_with_category(resolver: Mock, capsys: pytest.CaptureFixture[str]) -> None:
    resolver.search.return_value = SearchResult(tasks=(), query="docker", source=TaskSource.API)

    code = cli.main(["search", "docker", "--category", "build"])

    assert code == 0
    assert json.loads(capsys.readouterr().out)["totalCount"] == 0
    args = resolver.search.call_args.args
    assert args[0] == "docker"
    assert args[1].value == "build"


def test_unexpected_failure_exits_1_and_closes(resolver: Mock) -> None:
    resolver.search.side_effect = RuntimeError("boom")

    assert cli.main(["search", "docker"]) == 1
    resolver.close.assert_called_once()


def test_invalid_settings_exit_2(
    resolver: Mock, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("HTTP_MAX_ATTEMPTS", "0")

    assert cli.main(["search", "docker"]) == 2
    assert "Configuration error" in capsys.readouterr().err
    cli.TaskResolver.from_settings.assert_not_called()


def test_invalid_category_is_a_usage_error(resolver: Mock) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["search", "docker", "--category", "nonsense"])

    assert exc.value.code == 2


def test_subcommand_is_required(resolver: Mock) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main([])

    assert exc.value.code == 2
