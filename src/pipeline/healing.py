# src/pipeline/healing.py - v1
"""Prompt self-heal: ask the planning model to rewrite a failing prompt."""

from __future__ import annotations

import logging
from pathlib import Path

from visionnarrate.core.models import Chapter, LogEntry, LogLevel
from visionnarrate.llm.router import ModelFallbackRouter, TiersExhaustedError
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent / "prompts" / "healing.txt"
_SOURCE = "SENTINEL_ENGINE"
OPERATION = "self_heal"


class PromptHealer:
    """Revise a segment prompt from the most recent warnings and errors."""

    def __init__(self, router: ModelFallbackRouter, logbook: LogBook, error_window: int = 5) -> None:
        self._router = router
        self._logbook = logbook
        self._error_window = error_window

    async def revise(self, chapter: Chapter, prompt: str, logs: list[LogEntry]) -> str:
        """Return a revised prompt, or ``prompt`` unchanged if healing fails."""
        errors = [e.message for e in logs if e.level in (LogLevel.WARN, LogLevel.ERROR)]
        request = _PROMPT_PATH.read_text(encoding="utf-8").format(
            title=chapter.title,
            visual_event=chapter.grounding.visual_event,
            prompt=prompt,
            errors="\n".join(errors[-self._error_window:]) or "(none recorded)",
        )
        try:
            revised = (await self._router.execute(OPERATION, request)).strip()
        except TiersExhaustedError as e:
            self._logbook.warn(f"Self-heal unavailable for '{chapter.title}': {e}", _SOURCE)
            return prompt

        if not revised:
            return prompt
        self._logbook.info(
            f"Prompt patch applied to '{chapter.title}'; retrying synthesis.",
            _SOURCE,
            recovery=True,
        )
        return revised
