# tests/unit/pipeline/test_unit_planner.py - v2
"""Tests for pipeline/planner.py - chapter planning and fallback plan."""

from __future__ import annotations

import pytest

from visionnarrate.config.settings import Settings
from visionnarrate.core.models import ChapterStatus, LogLevel, VideoGoal
from visionnarrate.llm.errors import ErrorKind, ProviderError
from visionnarrate.llm.router import ModelFallbackRouter, TiersExhaustedError
from visionnarrate.pipeline.plan_schema import PlannedChapter
from visionnarrate.pipeline.planner import ChapterPlanner, fallback_plan, link_chapters


@pytest.fixture
def make_planner(tiers, logbook, sleep, fake_llm):
    def _make(*responses, default="[]"):
        client = fake_llm("model-pro", responses=list(responses), default=default)
        router = ModelFallbackRouter(
            tiers[:1], logbook,
            settings=Settings(_env_file=None, backoff_initial_delay_s=0.0, backoff_max_jitter_s=0.0),
            clients={"model-pro": client},
            sleep=sleep,
        )
        return ChapterPlanner(router, logbook), client

    return _make


class TestChapterPlanner:
    @pytest.mark.asyncio
    async def test_plans_from_fenced_json(self, make_planner, product, grounding, plan_json):
        planner, client = make_planner(plan_json)
        chapters = await planner.plan(product, VideoGoal(), grounding, 60)

        assert [c.title for c in chapters] == ["The Problem", "The Fix", "The Payoff"]
        assert [c.index for c in chapters] == [0, 1, 2]
        assert all(c.status is ChapterStatus.QUEUED and c.retry_count == 0 for c in chapters)
        # Grounding linked by position, wrapping around.
        assert [c.grounding.scene_id for c in chapters] == ["sc_1", "sc_2", "sc_1"]
        assert "Acme Pulse" in client.prompts[0]
        assert "60" in client.prompts[0]

    @pytest.mark.asyncio
    async def test_container_shape(self, make_planner, product, grounding):
        planner, _ = make_planner(
            'Plan: {"chapters": [{"title": "Solo", "durationSeconds": 60, "visualIntent": "x"}]}'
        )
        chapters = await planner.plan(product, VideoGoal(), grounding, 60)
        assert [c.title for c in chapters] == ["Solo"]

    @pytest.mark.asyncio
    async def test_garbage_uses_fallback(self, make_planner, product, grounding, logbook):
        planner, _ = make_planner("I'm sorry, I cannot help with that.")
        chapters = await planner.plan(product, VideoGoal(), grounding, 90)

        assert len(chapters) == 1
        assert chapters[0].title == "Acme Pulse: Overview"
        assert chapters[0].duration_s == 90
        assert logbook.recoveries == 1
        assert any(e.level is LogLevel.WARN and e.source == "NARRATIVE_ARCH" for e in logbook.entries)

    @pytest.mark.asyncio
    async def test_empty_plan_uses_fallback(self, make_planner, product, grounding):
        planner, _ = make_planner('{"chapters": []}')
        chapters = await planner.plan(product, VideoGoal(), grounding, 60)
        assert chapters[0].title == "Acme Pulse: Overview"

    @pytest.mark.asyncio
    async def test_tier_exhaustion_propagates(self, make_planner, product, grounding):
        planner, _ = make_planner(default=ProviderError("down", ErrorKind.SERVER))
        with pytest.raises(TiersExhaustedError):
            await planner.plan(product, VideoGoal(), grounding, 60)

    @pytest.mark.asyncio
    async def test_requires_grounding(self, make_planner, product):
        planner, _ = make_planner()
        with pytest.raises(ValueError):
            await planner.plan(product, VideoGoal(), [], 60)

    @pytest.mark.parametrize("target,expected", [(10, 1), (60, 2), (300, 7), (3600, 12)])
    def test_chapter_count(self, make_planner, target, expected):
        planner, _ = make_planner()
        assert planner.chapter_count(target) == expected


class TestFallbackPlan:
    def test_derived_from_product(self, product, grounding):
        [chapter] = fallback_plan(product, grounding, 45)
        assert "Dashboard Init" in chapter.visual_intent
        assert "Config Action" in chapter.visual_intent
        assert "on-call SRE teams" in chapter.narration_script
        assert chapter.grounding == grounding[0]


class TestLinkChapters:
    def _planned(self, *scene_ids):
        return [
            PlannedChapter(title=f"C{i}", duration_s=10, visual_intent="v", scene_id=sid)
            for i, sid in enumerate(scene_ids)
        ]

    def test_links_by_scene_id(self, grounding):
        chapters = link_chapters(self._planned("sc_2", "sc_1"), grounding)
        assert [c.grounding.scene_id for c in chapters] == ["sc_2", "sc_1"]

    def test_unknown_or_missing_scene_falls_back_to_position(self, grounding):
        chapters = link_chapters(self._planned("sc_404", None, None), grounding)
        assert [c.grounding.scene_id for c in chapters] == ["sc_1", "sc_2", "sc_1"]
