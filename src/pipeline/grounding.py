# src/pipeline/grounding.py - v1
"""Grounding stage: scene records that tie the narrative to real footage.

Uses the manually supplied grounding payload when it parses; otherwise
synthesizes placeholder records from the recording list. Always returns
at least one record.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from visionnarrate.core.models import GroundingRecord, PipelineConfig
from visionnarrate.pipeline.normalizer import extract_structured_payload
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)

_SOURCE = "GROUNDING"

PLACEHOLDER_EVENTS: tuple[str, ...] = (
    "Dashboard Init & Telemetry",
    "User Configuration Action",
    "System Recovery Logic",
    "AI Decision Confirmation",
)

_CONTAINER_KEYS = ("scenes", "records", "insights", "grounding")


class GroundingParseError(ValueError):
    """Manual grounding payload could not be used."""


class _ManualScene(BaseModel):
    model_config = ConfigDict(extra="ignore")

    scene_id: str = Field(validation_alias=AliasChoices("id", "sceneId", "scene_id"))
    visual_event: str = Field(
        min_length=1,
        validation_alias=AliasChoices("visualEvent", "visual_event", "description", "event"),
    )
    importance: float = Field(
        default=0.5,
        validation_alias=AliasChoices("importanceScore", "importance", "confidence"),
    )
    source_recording: str = Field(
        default="manual",
        validation_alias=AliasChoices("sourceRecording", "source_recording", "recording", "source"),
    )
    timestamp: str | None = None
    meaningful_change: bool = Field(
        default=True,
        validation_alias=AliasChoices("meaningfulChange", "meaningful_change"),
    )


_SCENES = TypeAdapter(list[_ManualScene])


def parse_manual_grounding(raw: str) -> list[GroundingRecord]:
    """Parse a manually supplied grounding payload.

    Accepts a bare array of scenes or an object holding one under a
    ``scenes``/``records``/``insights``/``grounding`` key. Importance
    values outside [0, 1] are clamped.

    Raises:
        GroundingParseError: If nothing usable can be extracted.
    """
    try:
        data: Any = json.loads(extract_structured_payload(raw))
    except ValueError as e:
        raise GroundingParseError(f"Manual grounding is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = next((data[k] for k in _CONTAINER_KEYS if k in data), [data])
    if not isinstance(data, list) or not data:
        raise GroundingParseError("Manual grounding contains no scenes")

    try:
        scenes = _SCENES.validate_python(data)
    except ValidationError as e:
        raise GroundingParseError(f"Manual grounding scenes are invalid: {e.error_count()} errors") from e

    return [
        GroundingRecord(
            scene_id=s.scene_id,
            visual_event=s.visual_event,
            importance=min(1.0, max(0.0, s.importance)),
            source_recording=s.source_recording,
            timestamp=s.timestamp,
            meaningful_change=s.meaningful_change,
        )
        for s in scenes
    ]


def synthesize_grounding(recordings: list[str]) -> list[GroundingRecord]:
    """Build placeholder records, one per recording (one default if none)."""
    if not recordings:
        return [
            GroundingRecord(
                scene_id="sc_default",
                visual_event="Product Overview",
                importance=0.5,
                source_recording="synthetic",
                timestamp="00:00",
            )
        ]

    records = []
    for i, recording in enumerate(recordings):
        records.append(
            GroundingRecord(
                scene_id=f"sc_{i + 1}",
                visual_event=PLACEHOLDER_EVENTS[i % len(PLACEHOLDER_EVENTS)],
                importance=round(max(0.5, 0.95 - 0.05 * i), 2),
                source_recording=recording,
                timestamp=f"{(i * 45) // 60:02d}:{(i * 45) % 60:02d}",
            )
        )
    return records


def resolve_grounding(config: PipelineConfig, logbook: LogBook) -> list[GroundingRecord]:
    """Return grounding records for a run (never empty)."""
    if config.manual_grounding and config.manual_grounding.strip():
        try:
            records = parse_manual_grounding(config.manual_grounding)
        except GroundingParseError as e:
            logbook.warn(
                f"Manual grounding rejected ({e}); synthesizing from recordings.",
                _SOURCE,
                recovery=True,
            )
        else:
            logbook.info(f"Using {len(records)} manually supplied grounding records.", _SOURCE)
            return records

    records = synthesize_grounding(config.recordings)
    logbook.info(
        f"Synthesized {len(records)} grounding records from {len(config.recordings)} recordings.",
        _SOURCE,
    )
    return records
