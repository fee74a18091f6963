"""Tests for the command line, settings and logging setup."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest
from rich.logging import RichHandler

from agentboard.cli import build_parser, main
from agentboard.logging import configure_logging, format_component, should_use_rich
from agentboard.server import Services
from agentboard.settings import Settings


class TestParser:
    def test_discover_arguments(self) -> None:
        args = build_parser().parse_args(["discover", "run a shell command", "--limit", "3"])

        assert args.command == "discover"
        assert args.query == "run a shell command"
        assert args.limit == 3

    def test_reindex_arguments(self) -> None:
        args = build_parser().parse_args(["reindex", "--collection", "adr", "--skip-tools"])

        assert (args.collection, args.skip_tools) == ("adr", True)


class TestMain:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 1
        assert "usage: agentboard" in capsys.readouterr().out

    def test_discover(self, services: Services, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("agentboard.cli.build_services", return_value=services):
            assert main(["reindex"]) == 0
            capsys.readouterr()
            assert main(["discover", "create a human task", "--limit", "2"]) == 0

        results = json.loads(capsys.readouterr().out)
        assert len(results) == 2
        assert results[0]["name"] == "coordinator_create_human_task"

    def test_reindex_reports_counts(self, services: Services, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("agentboard.cli.build_services", return_value=services):
            assert main(["reindex"]) == 0

        report = json.loads(capsys.readouterr().out)
        assert report["tools"]["indexed"] == len(services.registry)
        assert report["knowledge"]["indexed"] == 0

    def test_configuration_errors_exit_nonzero(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("agentboard.cli.settings", Settings(supabase_url=None, supabase_service_role_key=None)):
            assert main(["discover", "anything"]) == 2

        assert "BackendUnavailableError" in capsys.readouterr().err


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.max_prompt_notes_length == 5000
        assert (settings.discover_default_limit, settings.discover_max_limit) == (5, 20)
        assert (settings.knowledge_default_limit, settings.knowledge_max_limit) == (5, 50)

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EMBEDDING_BACKEND", "tei")
        monkeypatch.setenv("DISCOVER_MAX_LIMIT", "10")

        settings = Settings(_env_file=None)

        assert settings.embedding_backend == "tei"
        assert settings.discover_max_limit == 10


class TestLogging:
    def test_plain_handler_when_not_rich(self) -> None:
        configure_logging("debug", force_rich=False)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0], RichHandler)

    def test_rich_handler_when_forced(self) -> None:
        configure_logging(logging.INFO, force_rich=True)

        assert isinstance(logging.getLogger().handlers[0], RichHandler)
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_env_toggle(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AGENTBOARD_RICH_LOGS", "0")
        assert should_use_rich() is False

        monkeypatch.setenv("AGENTBOARD_RICH_LOGS", "1")
        assert should_use_rich() is True

    def test_format_component(self) -> None:
        assert format_component("task") == "[cyan][task][/cyan]"
        assert format_component("unknown") == "[white][unknown][/white]"
