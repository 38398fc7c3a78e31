# src/pipeline/synthesis/base.py - v1
"""Shared pieces of the synthesis strategies: tuning, outcome, attempts."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable

from pydantic import BaseModel

from visionnarrate.config.settings import Settings
from visionnarrate.core.models import (
    Chapter,
    PipelineStage,
    SynthesisOperation,
    VideoArtifact,
)
from visionnarrate.llm.errors import ErrorKind, ProviderError, error_kind
from visionnarrate.llm.retry import DEFAULT_BACKOFF, BackoffConfig, RetryExhausted, SleepFn, with_backoff
from visionnarrate.media.base_clients import BaseVideoClient, VideoOptions
from visionnarrate.pipeline.progress import ProgressReporter
from visionnarrate.pipeline.synthesis.polling import poll_until_done
from visionnarrate.pipeline.synthesis.state import AttemptState, ChainCheckpoint, ChainState, LoopState
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)

SOURCE = "VEO_EXECUTOR"

CheckpointFn = Callable[[ChainState, list[Chapter]], Awaitable[None]]

# Progress window (percent) owned by the generation stage.
PROGRESS_START = 45
PROGRESS_SPAN = 45


@dataclass(frozen=True)
class ChainTuning:
    """Timing and ceiling constants for segment synthesis."""

    poll_interval_s: float = 8.0
    poll_timeout_s: float | None = None
    initial_increment_s: float = 5.0
    extension_increment_s: float = 7.0
    safety_cap_s: float = 1800.0
    stabilization_delay_s: float = 10.0
    stabilization_backoff_s: float = 20.0
    max_stabilization_delay_s: float = 90.0
    max_seed_not_ready_streak: int = 6
    max_error_streak: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> ChainTuning:
        return cls(
            poll_interval_s=settings.poll_interval_s,
            poll_timeout_s=settings.poll_timeout_s,
            initial_increment_s=settings.initial_increment_s,
            extension_increment_s=settings.extension_increment_s,
            safety_cap_s=settings.safety_cap_s,
            stabilization_delay_s=settings.stabilization_delay_s,
            stabilization_backoff_s=settings.stabilization_backoff_s,
            max_stabilization_delay_s=settings.max_stabilization_delay_s,
            max_seed_not_ready_streak=settings.max_seed_not_ready_streak,
            max_error_streak=settings.max_error_streak,
        )

    def stabilization_delay(self, error_streak: int) -> float:
        """Wait before reusing a fresh artifact; grows with the error streak."""
        delay = self.stabilization_delay_s + error_streak * self.stabilization_backoff_s
        return min(delay, self.max_stabilization_delay_s)


class SynthesisOutcome(BaseModel):
    """What a strategy hands to mastering."""

    strategy: str
    final_artifact: VideoArtifact
    accumulated_s: float
    target_s: float
    loop_state: LoopState
    steps_completed: int

    @property
    def target_reached(self) -> bool:
        return self.loop_state is LoopState.TARGET_REACHED


def initial_prompt(chapter: Chapter) -> str:
    return (
        f"{chapter.visual_intent}. Grounded in the real product scene "
        f"'{chapter.grounding.visual_event}'. Cinematic, photorealistic product "
        "footage, steady camera, no on-screen text."
    )


def extension_prompt(chapter: Chapter) -> str:
    return (
        "Continue the previous shot seamlessly, keeping lighting, style and "
        f"framing consistent. Next: {chapter.visual_intent} "
        f"(scene: {chapter.grounding.visual_event})."
    )


class BaseSynthesisStrategy(ABC):
    """Common plumbing for submitting and polling one segment."""

    name: str = "base"

    def __init__(
        self,
        video_client: BaseVideoClient,
        logbook: LogBook,
        reporter: ProgressReporter | None = None,
        tuning: ChainTuning | None = None,
        options: VideoOptions | None = None,
        backoff: BackoffConfig = DEFAULT_BACKOFF,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._client = video_client
        self._logbook = logbook
        self._reporter = reporter
        self._tuning = tuning or ChainTuning()
        self._options = options or VideoOptions()
        self._backoff = backoff
        self._sleep = sleep
        self.attempt_state = AttemptState.IDLE

    @abstractmethod
    async def run(
        self,
        chapters: list[Chapter],
        target_s: float,
        resume: ChainCheckpoint | None = None,
    ) -> SynthesisOutcome:
        """Produce footage for the planned chapters.

        Raises:
            SynthesisFatalError: If no usable footage can be produced.
        """

    async def _attempt(self, prompt: str, seed: VideoArtifact | None) -> SynthesisOperation:
        """Submit and poll one generation call.

        Provider failures come back as a done operation carrying an
        error kind rather than as exceptions.
        """
        self.attempt_state = AttemptState.SUBMITTED
        try:
            op = await with_backoff(
                self._client.submit,
                prompt,
                seed,
                self._options,
                operation="video.submit",
                config=self._backoff,
                on_retry=self._on_retry,
                sleep=self._sleep,
            )
            self.attempt_state = AttemptState.POLLING
            op = await poll_until_done(
                self._client,
                op,
                interval_s=self._tuning.poll_interval_s,
                timeout_s=self._tuning.poll_timeout_s,
                backoff=self._backoff,
                on_retry=self._on_retry,
                sleep=self._sleep,
            )
        except RetryExhausted as e:
            op = SynthesisOperation(done=True, error=str(e), error_kind=error_kind(e.last_error))
        except ProviderError as e:
            op = SynthesisOperation(done=True, error=str(e), error_kind=e.kind)

        if op.succeeded and op.artifact is None:
            op = op.model_copy(update={"error": "Synthesis returned no artifact", "error_kind": ErrorKind.NULL_RESPONSE})
        self.attempt_state = AttemptState.DONE if op.succeeded else AttemptState.FAILED
        return op

    def _on_retry(self, attempt: int, delay: float, error: BaseException) -> None:
        self._logbook.warn(
            f"Video service rate limited (attempt {attempt + 1}); backing off {delay:.1f}s",
            "BACKOFF",
        )

    def _report(self, message: str, fraction: float, stage: PipelineStage = PipelineStage.GENERATION) -> None:
        if self._reporter is None:
            return
        percent = PROGRESS_START + int(PROGRESS_SPAN * max(0.0, min(1.0, fraction)))
        self._reporter.report(stage, message, percent)
