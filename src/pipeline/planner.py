# src/pipeline/planner.py - v2
"""Chapter planner: one planning call turned into an ordered chapter list.

Parse failures never fail the run; they yield a deterministic
single-chapter plan built from the product facts and grounding records.
Router failures (all tiers exhausted) do propagate.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path

from visionnarrate.core.models import (
    Chapter,
    GroundingRecord,
    ProductContext,
    VideoGoal,
)
from visionnarrate.llm.router import ModelFallbackRouter
from visionnarrate.pipeline.normalizer import extract_structured_payload
from visionnarrate.pipeline.plan_schema import PlannedChapter, PlanParseError, parse_plan
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent / "prompts" / "planner.txt"
_SOURCE = "NARRATIVE_ARCH"
OPERATION = "planner"


class ChapterPlanner:
    """Plan chapters through the model fallback router."""

    def __init__(
        self,
        router: ModelFallbackRouter,
        logbook: LogBook,
        seconds_per_chapter: int = 45,
        max_chapters: int = 12,
    ) -> None:
        self._router = router
        self._logbook = logbook
        self._seconds_per_chapter = seconds_per_chapter
        self._max_chapters = max_chapters
        self._prompt_template: str | None = None

    def _load_prompt(self) -> str:
        if self._prompt_template is None:
            self._prompt_template = _PROMPT_PATH.read_text(encoding="utf-8")
        return self._prompt_template

    def chapter_count(self, target_duration_s: float) -> int:
        """Suggested number of chapters for a duration target."""
        count = math.ceil(target_duration_s / self._seconds_per_chapter)
        return max(1, min(self._max_chapters, count))

    def build_prompt(
        self,
        product: ProductContext,
        goal: VideoGoal,
        grounding: list[GroundingRecord],
        target_duration_s: float,
    ) -> str:
        grounding_json = json.dumps(
            [r.model_dump(mode="json") for r in grounding], indent=2
        )
        return self._load_prompt().format(
            category=goal.category.value,
            tone=goal.tone.value,
            audience=goal.audience or "general",
            name=product.name,
            target_users=product.target_users or "(unspecified)",
            core_problem=product.core_problem or "(unspecified)",
            differentiators=product.differentiators or "(unspecified)",
            constraints=product.constraints or "(none)",
            grounding=grounding_json,
            target_seconds=int(target_duration_s),
            chapter_count=self.chapter_count(target_duration_s),
        )

    async def plan(
        self,
        product: ProductContext,
        goal: VideoGoal,
        grounding: list[GroundingRecord],
        target_duration_s: float,
    ) -> list[Chapter]:
        """Return an ordered, non-empty chapter list (all QUEUED).

        Raises:
            ValueError: If ``grounding`` is empty.
            TiersExhaustedError: If no model tier could answer.
        """
        if not grounding:
            raise ValueError("Chapter planning requires at least one grounding record")

        prompt = self.build_prompt(product, goal, grounding, target_duration_s)
        raw = await self._router.execute(OPERATION, prompt, json_output=True)

        try:
            shape, planned = parse_plan(extract_structured_payload(raw))
        except PlanParseError as e:
            self._logbook.warn(
                f"Planner output unusable ({e}); using single-chapter fallback plan.",
                _SOURCE,
                recovery=True,
            )
            return fallback_plan(product, grounding, target_duration_s)

        chapters = link_chapters(planned, grounding)
        self._logbook.info(
            f"Planned {len(chapters)} chapters ({shape} shape), "
            f"{sum(c.duration_s for c in chapters)}s total",
            _SOURCE,
        )
        return chapters


def link_chapters(planned: list[PlannedChapter], grounding: list[GroundingRecord]) -> list[Chapter]:
    """Materialize planned chapters.

    Each chapter links the grounding record named by its ``scene_id``; an
    unknown or missing id falls back to position (wrapping).
    """
    by_scene = {r.scene_id: r for r in grounding}
    return [
        Chapter(
            index=i,
            title=p.title,
            duration_s=p.duration_s,
            visual_intent=p.visual_intent,
            narration_script=p.narration_script,
            grounding=by_scene.get(p.scene_id or "", grounding[i % len(grounding)]),
        )
        for i, p in enumerate(planned)
    ]


def fallback_plan(
    product: ProductContext,
    grounding: list[GroundingRecord],
    target_duration_s: float,
) -> list[Chapter]:
    """Deterministic one-chapter plan derived from product facts."""
    events = "; ".join(r.visual_event for r in grounding)
    narration = " ".join(
        part
        for part in (
            f"{product.name} is built for {product.target_users}." if product.target_users else f"Meet {product.name}.",
            f"It solves {product.core_problem}." if product.core_problem else "",
            product.differentiators,
        )
        if part
    )
    return [
        Chapter(
            index=0,
            title=f"{product.name}: Overview",
            duration_s=max(1, int(target_duration_s)),
            visual_intent=f"Clean product walkthrough of {product.name} showing: {events}",
            narration_script=narration,
            grounding=grounding[0],
        )
    ]
