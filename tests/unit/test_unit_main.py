# tests/unit/test_unit_main.py - v1
"""Tests for main.py - CLI parsing and commands."""

from __future__ import annotations

import pytest

from visionnarrate import main as cli
from visionnarrate.core.models import LogLevel
from visionnarrate.pipeline.forensics import FALLBACK_ANALYSIS
from visionnarrate.tracking.logbook import LogBook


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    monkeypatch.setattr(cli, "_setup_logging", lambda verbose: None)


class TestParser:
    def test_run_arguments(self, tmp_path):
        args = cli._build_parser().parse_args(
            ["run", str(tmp_path / "c.json"), "--strategy", "per_chapter", "--resume-run", "run_1", "--download"]
        )
        assert args.command == "run"
        assert args.strategy == "per_chapter"
        assert args.resume_run == "run_1"
        assert args.download is True

    def test_rejects_unknown_strategy(self):
        with pytest.raises(SystemExit):
            cli._build_parser().parse_args(["run", "c.json", "--strategy", "parallel"])


class TestCommands:
    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 1
        assert "visionnarrate" in capsys.readouterr().out

    def test_tiers(self, capsys, monkeypatch):
        monkeypatch.delenv("MODEL_TIERS", raising=False)
        assert cli.main(["tiers"]) == 0
        out = capsys.readouterr().out
        assert "TIER_0" in out
        assert "gemini-3-pro-preview" in out

    def test_run_missing_config(self, tmp_path):
        assert cli.main(["run", str(tmp_path / "absent.json")]) == 1

    def test_forensics_missing_log(self, tmp_path):
        assert cli.main(["forensics", str(tmp_path / "absent.jsonl")]) == 1

    def test_forensics_prints_analysis(self, tmp_path, capsys, monkeypatch):
        book = LogBook()
        book.error("CRITICAL: quota", "ORCHESTRATOR")
        path = tmp_path / "logs.jsonl"
        path.write_text(book.to_jsonl(), encoding="utf-8")

        seen = {}

        async def fake_analysis(entries, settings=None, orchestrator=None):
            seen["levels"] = [e.level for e in entries]
            return FALLBACK_ANALYSIS

        monkeypatch.setattr("visionnarrate.api.facade.forensic_analysis", fake_analysis)

        assert cli.main(["forensics", str(path)]) == 0
        assert seen["levels"] == [LogLevel.ERROR]
        assert FALLBACK_ANALYSIS in capsys.readouterr().out
