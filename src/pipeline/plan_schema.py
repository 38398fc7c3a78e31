# src/pipeline/plan_schema.py - v2
"""Accepted planner response shapes, declared as data.

A planner answer is accepted if it matches one of ACCEPTED_SHAPES (tried
in order) and validates as a non-empty list of PlannedChapter.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


class PlanParseError(ValueError):
    """Planner output did not match any accepted shape."""


class PlannedChapter(BaseModel):
    """One chapter descriptor as returned by the planning model."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    duration_s: int = Field(
        gt=0,
        validation_alias=AliasChoices("durationSeconds", "duration_seconds", "duration_s"),
    )
    visual_intent: str = Field(
        min_length=1,
        validation_alias=AliasChoices("visualIntent", "visual_intent"),
    )
    narration_script: str = Field(
        default="",
        validation_alias=AliasChoices("narrationScript", "narration_script", "narration"),
    )
    scene_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sceneId", "scene_id"),
    )

    @field_validator("duration_s", mode="before")
    @classmethod
    def _round_fractional(cls, v: Any) -> Any:
        if isinstance(v, float) and v > 0:
            return max(1, round(v))
        return v

    @field_validator("scene_id", mode="before")
    @classmethod
    def _scene_id_as_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


@dataclass(frozen=True)
class PlanShape:
    """A top-level JSON shape. ``container_key=None`` means a bare array."""

    name: str
    container_key: str | None = None

    def extract(self, data: Any) -> Any:
        if self.container_key is None:
            return data if isinstance(data, list) else None
        if isinstance(data, dict):
            return data.get(self.container_key)
        return None


ACCEPTED_SHAPES: tuple[PlanShape, ...] = (
    PlanShape("array"),
    PlanShape("chapters", "chapters"),
    PlanShape("plan", "plan"),
    PlanShape("segments", "segments"),
    PlanShape("items", "items"),
)

_CHAPTER_LIST = TypeAdapter(list[PlannedChapter])


def match_plan(
    data: Any,
    shapes: tuple[PlanShape, ...] = ACCEPTED_SHAPES,
) -> tuple[str, list[PlannedChapter]] | None:
    """Return (shape name, chapters) for the first shape that validates."""
    for shape in shapes:
        candidate = shape.extract(data)
        if not candidate:
            continue
        try:
            chapters = _CHAPTER_LIST.validate_python(candidate)
        except ValidationError:
            continue
        if chapters:
            return shape.name, chapters
    return None


def parse_plan(payload: str) -> tuple[str, list[PlannedChapter]]:
    """Parse a normalized planner payload.

    Raises:
        PlanParseError: On malformed JSON, unknown shape or empty plan.
    """
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise PlanParseError(f"Planner output is not valid JSON: {e}") from e

    matched = match_plan(data)
    if matched is None:
        raise PlanParseError(
            "Planner output matched no accepted shape "
            f"({', '.join(s.name for s in ACCEPTED_SHAPES)})"
        )
    return matched
