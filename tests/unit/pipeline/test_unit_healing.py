# tests/unit/pipeline/test_unit_healing.py - v1
"""Tests for pipeline/healing.py - prompt self-heal."""

from __future__ import annotations

import pytest

from visionnarrate.llm.errors import ErrorKind, ProviderError
from visionnarrate.llm.router import ModelFallbackRouter
from visionnarrate.pipeline.healing import PromptHealer


@pytest.fixture
def healer_with(tiers, logbook, sleep, fake_llm):
    def _make(**client_kwargs):
        client = fake_llm("model-pro", **client_kwargs)
        router = ModelFallbackRouter(tiers[:1], logbook, clients={"model-pro": client}, sleep=sleep)
        return PromptHealer(router, logbook), client

    return _make


class TestPromptHealer:
    @pytest.mark.asyncio
    async def test_revises_prompt_from_recent_errors(self, healer_with, logbook, chapters):
        healer, client = healer_with(default="  Calmer wide shot of the dashboard.  ")
        for i in range(7):
            logbook.error(f"fault {i}", "VEO_EXECUTOR")
        logbook.info("noise", "VEO_EXECUTOR")

        revised = await healer.revise(chapters[0], "original prompt", logbook.entries)

        assert revised == "Calmer wide shot of the dashboard."
        request = client.prompts[0]
        assert "original prompt" in request
        assert "fault 6" in request and "fault 2" in request
        assert "fault 1" not in request
        assert "noise" not in request
        assert logbook.recoveries == 1

    @pytest.mark.asyncio
    async def test_router_failure_keeps_prompt(self, healer_with, logbook, chapters):
        healer, _ = healer_with(default=ProviderError("down", ErrorKind.SERVER))
        assert await healer.revise(chapters[0], "original", logbook.entries) == "original"
        assert logbook.recoveries == 0

    @pytest.mark.asyncio
    async def test_empty_answer_keeps_prompt(self, healer_with, logbook, chapters):
        healer, _ = healer_with(default="   ")
        assert await healer.revise(chapters[0], "original", []) == "original"
