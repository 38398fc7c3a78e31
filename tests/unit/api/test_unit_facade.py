# tests/unit/api/test_unit_facade.py - v1
"""Tests for api/facade.py - public entry points."""

from __future__ import annotations

import json

import pytest

from visionnarrate.api.facade import forensic_analysis, load_config, run_pipeline
from visionnarrate.core.models import VideoCategory
from visionnarrate.pipeline.forensics import FALLBACK_ANALYSIS


class StubOrchestrator:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    async def run(self, config, on_progress=None, resume_run_id=None, strategy=None):
        self.calls.append({"config": config, "resume_run_id": resume_run_id, "strategy": strategy})
        return "result"

    async def forensic_analysis(self, logs):
        return FALLBACK_ANALYSIS if not logs else "diagnosis"


class TestRunPipeline:
    @pytest.mark.asyncio
    async def test_delegates_to_orchestrator(self, pipeline_config):
        stub = StubOrchestrator()
        result = await run_pipeline(
            pipeline_config, resume_run_id="run_x", strategy="per_chapter", orchestrator=stub,
        )
        assert result == "result"
        assert stub.calls == [
            {"config": pipeline_config, "resume_run_id": "run_x", "strategy": "per_chapter"},
        ]

    @pytest.mark.asyncio
    async def test_forensics_delegates(self):
        assert await forensic_analysis([], orchestrator=StubOrchestrator()) == FALLBACK_ANALYSIS


class TestLoadConfig:
    def _write(self, tmp_path, data: dict):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    def test_minimal(self, tmp_path):
        path = self._write(tmp_path, {
            "product": {"name": "Acme Pulse"},
            "goal": {"category": "Product Deep-Dive", "duration_minutes": 2},
            "recordings": ["a.mp4"],
        })
        config = load_config(path)
        assert config.product.name == "Acme Pulse"
        assert config.goal.category is VideoCategory.DEMO
        assert config.target_duration_s == 120
        assert config.manual_grounding is None

    def test_grounding_file_relative_to_config(self, tmp_path):
        (tmp_path / "grounding.json").write_text('[{"visual_event": "Login"}]', encoding="utf-8")
        path = self._write(tmp_path, {
            "product": {"name": "Acme Pulse"},
            "manual_grounding_file": "grounding.json",
        })
        config = load_config(path)
        assert "Login" in config.manual_grounding

    def test_inline_grounding_wins(self, tmp_path):
        path = self._write(tmp_path, {
            "product": {"name": "Acme Pulse"},
            "manual_grounding": "[]",
            "manual_grounding_file": "missing.json",
        })
        assert load_config(path).manual_grounding == "[]"
