# src/pipeline/synthesis/chain.py - v2
"""Segment synthesis chain: one continuous video built by repeated extension.

Each call after the first is seeded with the previous call's continuation
handle, so the steps form a strict linear chain and never run in parallel.
The loop always terminates: on the duration target, on the safety cap,
or on an error-streak ceiling (fatal).
"""

from __future__ import annotations

import asyncio
import logging

from visionnarrate.core.models import Chapter, ChapterStatus, SynthesisOperation
from visionnarrate.llm.errors import ErrorKind
from visionnarrate.llm.retry import DEFAULT_BACKOFF, BackoffConfig, SleepFn
from visionnarrate.media.base_clients import BaseVideoClient, VideoOptions
from visionnarrate.pipeline.errors import SynthesisFatalError
from visionnarrate.pipeline.progress import ProgressReporter
from visionnarrate.pipeline.synthesis.base import (
    SOURCE,
    BaseSynthesisStrategy,
    ChainTuning,
    CheckpointFn,
    SynthesisOutcome,
    extension_prompt,
    initial_prompt,
)
from visionnarrate.pipeline.synthesis.state import ChainCheckpoint, ChainState, LoopState
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)


class SegmentSynthesisChain(BaseSynthesisStrategy):
    """Drive INIT then EXTENDING steps until the duration target is met.

    Args:
        video_client: Segment video service.
        logbook: Run log book.
        reporter: Progress reporter (optional).
        tuning: Timing and ceiling constants.
        options: Render options sent with every request.
        backoff: Backoff for rate-limited submit/poll calls.
        checkpoint: Awaitable hook called after every successful step.
        sleep: Awaitable sleep (injected in tests).
    """

    name = "chain"

    def __init__(
        self,
        video_client: BaseVideoClient,
        logbook: LogBook,
        reporter: ProgressReporter | None = None,
        tuning: ChainTuning | None = None,
        options: VideoOptions | None = None,
        backoff: BackoffConfig = DEFAULT_BACKOFF,
        checkpoint: CheckpointFn | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        super().__init__(video_client, logbook, reporter, tuning, options, backoff, sleep)
        self._checkpoint = checkpoint
        self.state: ChainState | None = None

    async def run(
        self,
        chapters: list[Chapter],
        target_s: float,
        resume: ChainCheckpoint | None = None,
    ) -> SynthesisOutcome:
        if not chapters:
            raise ValueError("Segment synthesis requires at least one chapter")

        state = ChainState(target_s=target_s)
        self.state = state

        if resume is not None:
            state.restore(resume)
            self._logbook.info(
                f"Resuming chain at {state.accumulated_s:.0f}s from checkpoint "
                f"({state.steps_completed} steps done).",
                SOURCE,
            )
        else:
            await self._initialize(chapters, state)

        while state.loop is LoopState.EXTENDING:
            if state.accumulated_s >= target_s:
                state.transition(LoopState.TARGET_REACHED)
                break
            if state.accumulated_s >= self._tuning.safety_cap_s:
                state.transition(LoopState.SAFETY_CAP_REACHED)
                self._logbook.warn(
                    f"Safety cap of {self._tuning.safety_cap_s:.0f}s reached before the "
                    f"{target_s:.0f}s target; finishing with accumulated footage.",
                    SOURCE,
                )
                break
            await self._extend_once(chapters, state)

        self._logbook.info(
            f"Chain finished in {state.loop.value}: {state.accumulated_s:.0f}s over "
            f"{state.steps_completed} steps.",
            SOURCE,
        )
        final = state.previous.artifact if state.previous else None
        if final is None:
            raise SynthesisFatalError("Chain ended without a final artifact", state.loop, state.accumulated_s)
        return SynthesisOutcome(
            strategy=self.name,
            final_artifact=final,
            accumulated_s=state.accumulated_s,
            target_s=target_s,
            loop_state=state.loop,
            steps_completed=state.steps_completed,
        )

    # ------------------------------------------------------------------
    # INIT
    # ------------------------------------------------------------------

    async def _initialize(self, chapters: list[Chapter], state: ChainState) -> None:
        chapter = chapters[0]
        chapter.status = ChapterStatus.PROCESSING
        self._report(f"SYNTHESIS: initial segment '{chapter.title}'", 0.0)
        self._logbook.info(f"Submitting initial segment for '{chapter.title}'", SOURCE)

        op = await self._attempt(initial_prompt(chapter), seed=None)
        if not op.succeeded:
            self._fail(
                state, chapter,
                f"Initial segment failed ({_kind(op)}): {op.error}. Nothing to extend.",
            )
        if op.continuation is None:
            self._fail(state, chapter, "Initial segment produced no continuation handle.")

        state.advance(op, self._tuning.initial_increment_s)
        state.transition(LoopState.EXTENDING)
        self._complete(chapter, op)
        self._logbook.info(
            f"Initial segment ready ({state.accumulated_s:.0f}s): {op.artifact.uri}", SOURCE,
        )
        await self._save(state, chapters)

    # ------------------------------------------------------------------
    # EXTENDING
    # ------------------------------------------------------------------

    async def _extend_once(self, chapters: list[Chapter], state: ChainState) -> None:
        chapter = chapters[state.chapter_cursor % len(chapters)]
        await self._sleep(self._tuning.stabilization_delay(state.error_streak))

        chapter.status = ChapterStatus.PROCESSING
        self._report(
            f"SYNTHESIS: extending with '{chapter.title}' "
            f"({state.accumulated_s:.0f}s / {state.target_s:.0f}s)",
            state.accumulated_s / state.target_s if state.target_s else 1.0,
        )
        op = await self._attempt(extension_prompt(chapter), seed=state.continuation)

        if op.succeeded:
            if op.continuation is None:
                self._fail(state, chapter, "Continuation handle lost: extension returned no seed.")
            recovered_after = state.error_streak
            state.advance(op, self._tuning.extension_increment_s)
            self._complete(chapter, op)
            if recovered_after:
                self._logbook.info(
                    f"Extension recovered after {recovered_after} failed attempts.",
                    SOURCE,
                    recovery=True,
                )
            self._logbook.debug(
                f"Extension {state.steps_completed - 1} ok, {state.accumulated_s:.0f}s accumulated",
                SOURCE,
            )
            await self._save(state, chapters)
            return

        state.error_streak += 1
        chapter.retry_count += 1
        kind = op.error_kind or ErrorKind.UNKNOWN

        if kind is ErrorKind.SEED_NOT_READY:
            if state.error_streak > self._tuning.max_seed_not_ready_streak:
                self._fail(
                    state, chapter,
                    f"Backend desynchronization: seed artifact still not ready after "
                    f"{state.error_streak} attempts.",
                )
            self._logbook.warn(
                f"Seed artifact not yet processed (streak {state.error_streak}); "
                f"waiting {self._tuning.stabilization_delay(state.error_streak):.0f}s before retry.",
                SOURCE,
            )
            return

        if state.error_streak > self._tuning.max_error_streak:
            self._fail(
                state, chapter,
                f"Extension failed {state.error_streak} consecutive times; last error "
                f"({kind.value}): {op.error}",
            )
        self._logbook.error(
            f"Extension failed ({kind.value}, streak {state.error_streak}): {op.error}",
            SOURCE,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _complete(self, chapter: Chapter, op: SynthesisOperation) -> None:
        chapter.status = ChapterStatus.COMPLETED
        chapter.video_uri = op.artifact.uri if op.artifact else None

    def _fail(self, state: ChainState, chapter: Chapter, message: str) -> None:
        chapter.status = ChapterStatus.FAILED
        state.transition(LoopState.FATAL)
        self._logbook.error(message, SOURCE)
        raise SynthesisFatalError(message, LoopState.FATAL, state.accumulated_s)

    async def _save(self, state: ChainState, chapters: list[Chapter]) -> None:
        if self._checkpoint is None:
            return
        try:
            await self._checkpoint(state, chapters)
        except OSError as e:
            self._logbook.warn(
                f"Checkpoint not saved at {state.accumulated_s:.0f}s ({e}); continuing without it.",
                SOURCE,
                recovery=True,
            )


def _kind(op: SynthesisOperation) -> str:
    return op.error_kind.value if op.error_kind else ErrorKind.UNKNOWN.value
