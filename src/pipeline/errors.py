# src/pipeline/errors.py - v1
"""Terminal pipeline errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from visionnarrate.core.models import LogEntry
    from visionnarrate.pipeline.synthesis.state import LoopState


class SynthesisFatalError(Exception):
    """Segment synthesis cannot make forward progress."""

    def __init__(self, message: str, loop_state: LoopState | None = None, accumulated_s: float = 0.0):
        self.loop_state = loop_state
        self.accumulated_s = accumulated_s
        super().__init__(message)


class PipelineRunError(Exception):
    """A run failed. Carries the full log trail for forensic tooling."""

    def __init__(self, message: str, run_id: str, logs: list[LogEntry], cause: BaseException | None = None):
        self.run_id = run_id
        self.logs = logs
        self.cause = cause
        super().__init__(message)
