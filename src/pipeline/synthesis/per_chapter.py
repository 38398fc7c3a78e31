# src/pipeline/synthesis/per_chapter.py - v1
"""Independent per-chapter synthesis.

Trades visual continuity for fault isolation: every chapter is generated
on its own, a failing prompt is revised by the self-heal step, and a
chapter that still fails falls back to a still image. Only a run with no
usable chapter at all is fatal.
"""

from __future__ import annotations

import asyncio
import logging

from visionnarrate.core.models import Chapter, ChapterStatus, PipelineStage, VideoArtifact
from visionnarrate.llm.errors import ProviderError
from visionnarrate.llm.retry import DEFAULT_BACKOFF, BackoffConfig, RetryExhausted, SleepFn, with_backoff
from visionnarrate.media.base_clients import BaseImageClient, BaseVideoClient, VideoOptions
from visionnarrate.pipeline.errors import SynthesisFatalError
from visionnarrate.pipeline.healing import PromptHealer
from visionnarrate.pipeline.progress import ProgressReporter
from visionnarrate.pipeline.synthesis.base import (
    SOURCE,
    BaseSynthesisStrategy,
    ChainTuning,
    SynthesisOutcome,
    initial_prompt,
)
from visionnarrate.pipeline.synthesis.state import ChainCheckpoint, LoopState
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)


class PerChapterSynthesis(BaseSynthesisStrategy):
    """Synthesize each chapter independently with heal and still fallbacks."""

    name = "per_chapter"

    def __init__(
        self,
        video_client: BaseVideoClient,
        logbook: LogBook,
        reporter: ProgressReporter | None = None,
        tuning: ChainTuning | None = None,
        options: VideoOptions | None = None,
        backoff: BackoffConfig = DEFAULT_BACKOFF,
        healer: PromptHealer | None = None,
        image_client: BaseImageClient | None = None,
        max_retries: int = 1,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(video_client, logbook, reporter, tuning, options, backoff, sleep)
        self._healer = healer
        self._image_client = image_client
        self._max_retries = max(0, max_retries)

    async def run(
        self,
        chapters: list[Chapter],
        target_s: float,
        resume: ChainCheckpoint | None = None,
    ) -> SynthesisOutcome:
        if not chapters:
            raise ValueError("Segment synthesis requires at least one chapter")
        if resume is not None:
            self._logbook.warn(
                "Checkpoint resume applies to the chain strategy only; synthesizing all chapters.",
                SOURCE,
            )

        produced: list[tuple[Chapter, VideoArtifact]] = []
        for i, chapter in enumerate(chapters):
            artifact = await self._synthesize_chapter(chapter, i, len(chapters))
            if artifact is not None:
                produced.append((chapter, artifact))

        if not produced:
            raise SynthesisFatalError(
                f"All {len(chapters)} chapters failed to synthesize", LoopState.FATAL, 0.0,
            )

        accumulated = float(sum(c.duration_s for c, _ in produced))
        if accumulated >= target_s:
            loop_state = LoopState.TARGET_REACHED
        elif accumulated >= self._tuning.safety_cap_s:
            loop_state = LoopState.SAFETY_CAP_REACHED
        else:
            loop_state = LoopState.PLAN_EXHAUSTED
        return SynthesisOutcome(
            strategy=self.name,
            final_artifact=produced[-1][1],
            accumulated_s=min(accumulated, self._tuning.safety_cap_s),
            target_s=target_s,
            loop_state=loop_state,
            steps_completed=len(produced),
        )

    async def _synthesize_chapter(self, chapter: Chapter, i: int, total: int) -> VideoArtifact | None:
        chapter.status = ChapterStatus.PROCESSING
        prompt = initial_prompt(chapter)

        for attempt in range(self._max_retries + 1):
            self._report(f"SYNTHESIS: Chapter {i + 1}/{total} (Attempt {attempt + 1})", i / total)
            op = await self._attempt(prompt, seed=None)
            if op.succeeded and op.artifact is not None:
                chapter.status = ChapterStatus.COMPLETED
                chapter.video_uri = op.artifact.uri
                self._logbook.debug(f"Chapter '{chapter.title}' synthesized: {op.artifact.uri}", SOURCE)
                return op.artifact

            chapter.retry_count += 1
            entry = self._logbook.error(
                f"Synthesis fault on '{chapter.title}' (attempt {attempt + 1}): {op.error}",
                SOURCE,
            )
            if attempt < self._max_retries and self._healer is not None:
                if self._reporter is not None:
                    self._reporter.report(
                        PipelineStage.HEALING,
                        "SENTINEL: revising prompt after synthesis fault",
                        self._reporter.last_percent,
                        entry,
                    )
                prompt = await self._healer.revise(chapter, prompt, self._logbook.entries)

        return await self._still_fallback(chapter)

    async def _still_fallback(self, chapter: Chapter) -> VideoArtifact | None:
        if self._image_client is None:
            chapter.status = ChapterStatus.FAILED
            self._logbook.error(f"Chapter '{chapter.title}' failed; no still-image fallback.", SOURCE)
            return None

        try:
            artifact = await with_backoff(
                self._image_client.generate,
                initial_prompt(chapter),
                operation="image.generate",
                config=self._backoff,
                on_retry=self._on_retry,
                sleep=self._sleep,
            )
        except (ProviderError, RetryExhausted) as e:
            chapter.status = ChapterStatus.FAILED
            self._logbook.error(f"Still-image fallback failed for '{chapter.title}': {e}", SOURCE)
            return None

        chapter.status = ChapterStatus.COMPLETED
        chapter.video_uri = artifact.uri
        chapter.is_still_fallback = True
        self._logbook.warn(
            f"Chapter '{chapter.title}' rendered as still image after video synthesis failed.",
            SOURCE,
            recovery=True,
        )
        return artifact
