"""Tests for the admin CLI."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from cli import cli
from modules.events.sweeps import SweepKind, SweepResult


class TestStudioCommands:
    def test_add_rejects_bad_offset(self):
        result = CliRunner().invoke(
            cli, ["studio", "add", "--name", "North", "--time-zone", "UTC+3", "--chat-id", "-1"]
        )
        assert result.exit_code != 0
        assert "time-zone" in result.output

    def test_add_saves_studio(self, documents):
        with (
            patch("cli._documents", return_value=documents),
            patch("shared.database.dispose_engine", new=AsyncMock()),
        ):
            result = CliRunner().invoke(
                cli,
                ["studio", "add", "--name", "North", "--time-zone", "+5", "--chat-id", "-100"],
            )

        assert result.exit_code == 0, result.output
        assert "Saved studio: North" in result.output
        assert any(str(path) == "studios/North" for path in documents.docs)

    def test_remove_missing_exits_nonzero(self, documents):
        with (
            patch("cli._documents", return_value=documents),
            patch("shared.database.dispose_engine", new=AsyncMock()),
        ):
            result = CliRunner().invoke(cli, ["studio", "remove", "--name", "Ghost"])

        assert result.exit_code == 1
        assert "Studio not found" in result.output


class TestSweepCommand:
    def test_runs_requested_kind(self, events_ctx):
        run = AsyncMock(return_value=SweepResult(kind=SweepKind.REMINDER, scanned=3, sent=1))
        with (
            patch("modules.events.context.build_context", new=AsyncMock(return_value=events_ctx)),
            patch("modules.events.context.close_context", new=AsyncMock()) as close,
            patch("modules.events.sweeps.run_sweep", new=run),
        ):
            result = CliRunner().invoke(cli, ["sweep", "run", "reminder"])

        assert result.exit_code == 0, result.output
        run.assert_awaited_once_with(events_ctx, SweepKind.REMINDER)
        close.assert_awaited_once()
        assert "scanned 3, sent 1" in result.output

    def test_unknown_kind(self):
        result = CliRunner().invoke(cli, ["sweep", "run", "weekly"])
        assert result.exit_code != 0
