# src/pipeline/synthesis/state.py - v2
"""Explicit state for the segment synthesis chain.

Per attempt:  SUBMITTED -> POLLING -> {DONE | FAILED}
Global loop:  INIT -> EXTENDING -> {TARGET_REACHED | SAFETY_CAP_REACHED | FATAL}
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from visionnarrate.core.models import (
    Chapter,
    GroundingRecord,
    SynthesisOperation,
    VideoArtifact,
)


class AttemptState(str, Enum):
    IDLE = "IDLE"
    SUBMITTED = "SUBMITTED"
    POLLING = "POLLING"
    DONE = "DONE"
    FAILED = "FAILED"


class LoopState(str, Enum):
    INIT = "INIT"
    EXTENDING = "EXTENDING"
    TARGET_REACHED = "TARGET_REACHED"
    SAFETY_CAP_REACHED = "SAFETY_CAP_REACHED"
    # Per-chapter strategy only: every chapter processed, target not met.
    PLAN_EXHAUSTED = "PLAN_EXHAUSTED"
    FATAL = "FATAL"

    @property
    def terminal(self) -> bool:
        return self not in (LoopState.INIT, LoopState.EXTENDING)


class ChainCheckpoint(BaseModel):
    """Persisted snapshot taken after every successful chain step."""

    run_id: str
    product_name: str = ""
    target_s: float
    continuation: VideoArtifact
    final_artifact: VideoArtifact
    accumulated_s: float
    chapter_cursor: int
    steps_completed: int
    chapters: list[Chapter] = Field(default_factory=list)
    grounding: list[GroundingRecord] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ChainState(BaseModel):
    """Mutable loop state. Only the latest operation handle is retained."""

    model_config = {"arbitrary_types_allowed": True}

    target_s: float
    loop: LoopState = LoopState.INIT
    attempt: AttemptState = AttemptState.IDLE
    previous: SynthesisOperation | None = None
    accumulated_s: float = 0.0
    chapter_cursor: int = 0
    error_streak: int = 0
    steps_completed: int = 0
    history: list[LoopState] = Field(default_factory=lambda: [LoopState.INIT])

    def transition(self, new_state: LoopState) -> None:
        if self.loop.terminal:
            raise RuntimeError(f"Chain already terminated in {self.loop.value}")
        self.loop = new_state
        self.history.append(new_state)

    def advance(self, operation: SynthesisOperation, increment_s: float) -> None:
        """Record a successful step: new handle, more footage, next chapter."""
        if operation.continuation is None:
            raise ValueError("advance() requires an operation with a continuation")
        self.previous = operation
        self.accumulated_s += increment_s
        self.chapter_cursor += 1
        self.error_streak = 0
        self.steps_completed += 1

    @property
    def continuation(self) -> VideoArtifact | None:
        return self.previous.continuation if self.previous else None

    def restore(self, checkpoint: ChainCheckpoint) -> None:
        """Resume from a checkpoint, skipping INIT."""
        self.previous = SynthesisOperation(
            name="restored",
            done=True,
            artifact=checkpoint.final_artifact,
            continuation=checkpoint.continuation,
        )
        self.accumulated_s = checkpoint.accumulated_s
        self.chapter_cursor = checkpoint.chapter_cursor
        self.steps_completed = checkpoint.steps_completed
        self.error_streak = 0
        self.transition(LoopState.EXTENDING)

    def to_checkpoint(
        self,
        run_id: str,
        chapters: list[Chapter],
        grounding: list[GroundingRecord],
        product_name: str = "",
    ) -> ChainCheckpoint:
        if self.previous is None or self.previous.continuation is None:
            raise ValueError("Nothing to checkpoint before the first segment")
        return ChainCheckpoint(
            run_id=run_id,
            product_name=product_name,
            target_s=self.target_s,
            continuation=self.previous.continuation,
            final_artifact=self.previous.artifact or self.previous.continuation,
            accumulated_s=self.accumulated_s,
            chapter_cursor=self.chapter_cursor,
            steps_completed=self.steps_completed,
            chapters=[c.model_copy(deep=True) for c in chapters],
            grounding=list(grounding),
        )
