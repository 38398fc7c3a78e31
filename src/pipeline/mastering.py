# src/pipeline/mastering.py - v1
"""Narration & mastering: one speech call over the narrated chapters.

Only a prefix of the chapters proportional to the footage actually
produced is narrated. Missing audio never fails the run.
"""

from __future__ import annotations

import base64
import logging
import math

from pydantic import BaseModel, Field

from visionnarrate.core.models import Chapter
from visionnarrate.llm.models import SpeechResult
from visionnarrate.llm.router import ModelFallbackRouter
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)

_SOURCE = "MEDIA_STITCHER"


class MasteringResult(BaseModel):
    """Audio reference (if any) plus the transcript that was narrated."""

    audio_uri: str | None = None
    transcript: str = ""
    narrated_chapters: int = 0
    audio_duration_s: float = Field(default=0.0, ge=0.0)


def select_narration(chapters: list[Chapter], accumulated_s: float, target_s: float) -> list[Chapter]:
    """Leading chapters whose share matches the produced footage.

    ``ceil(len * min(1, accumulated / target))``, at least one chapter
    when any exist.
    """
    if not chapters:
        return []
    ratio = 1.0 if target_s <= 0 else min(1.0, max(0.0, accumulated_s / target_s))
    count = math.ceil(len(chapters) * ratio)
    return chapters[: max(1, min(len(chapters), count))]


def encode_audio(result: SpeechResult) -> str:
    """Inline data URI for raw PCM audio."""
    payload = base64.b64encode(result.audio).decode("ascii")
    return f"data:{result.mime_type};rate={result.sample_rate_hz};base64,{payload}"


class NarrationMaster:
    """Build the narration transcript and request its audio track."""

    def __init__(self, router: ModelFallbackRouter, logbook: LogBook) -> None:
        self._router = router
        self._logbook = logbook

    async def master(
        self,
        chapters: list[Chapter],
        accumulated_s: float,
        target_s: float,
    ) -> MasteringResult:
        narrated = select_narration(chapters, accumulated_s, target_s)
        transcript = " ".join(c.narration_script.strip() for c in narrated if c.narration_script.strip())
        if len(narrated) < len(chapters):
            self._logbook.info(
                f"Narrating {len(narrated)}/{len(chapters)} chapters to match "
                f"{accumulated_s:.0f}s of {target_s:.0f}s footage.",
                _SOURCE,
            )

        speech = await self._router.generate_speech(transcript)
        if speech is None:
            self._logbook.warn("Mastering without narration audio track.", _SOURCE, recovery=True)
            return MasteringResult(transcript=transcript, narrated_chapters=len(narrated))

        self._logbook.info(f"Narration track ready ({speech.duration_s:.1f}s).", _SOURCE)
        return MasteringResult(
            audio_uri=encode_audio(speech),
            transcript=transcript,
            narrated_chapters=len(narrated),
            audio_duration_s=speech.duration_s,
        )
