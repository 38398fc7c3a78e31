# src/pipeline/progress.py - v1
"""Progress reporting towards the surrounding application."""

from __future__ import annotations

import logging
from typing import Callable

from visionnarrate.core.models import LogEntry, PipelineStage

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PipelineStage, str, int, "LogEntry | None"], None]


class ProgressReporter:
    """Invokes the caller's progress callback synchronously.

    A failing callback is logged and ignored: a consumer that stopped
    listening must not abort a long-running job.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self.last_stage = PipelineStage.IDLE
        self.last_percent = 0

    def report(
        self,
        stage: PipelineStage,
        message: str,
        percent: int,
        entry: LogEntry | None = None,
    ) -> None:
        percent = max(0, min(100, int(percent)))
        self.last_stage = stage
        self.last_percent = percent
        if self._callback is None:
            return
        try:
            self._callback(stage, message, percent, entry)
        except Exception:
            logger.exception("Progress callback failed at %s (%d%%)", stage.value, percent)
