# src/pipeline/forensics.py - v1
"""Forensic analysis: a diagnostic narrative over a run's log history."""

from __future__ import annotations

import logging
from pathlib import Path

from visionnarrate.core.models import LogEntry
from visionnarrate.llm.router import ModelFallbackRouter

logger = logging.getLogger(__name__)

_PROMPT_PATH = Path(__file__).parent / "prompts" / "forensics.txt"
OPERATION = "forensics"
FALLBACK_ANALYSIS = "Forensic analysis inconclusive. Check model tier quotas and retry the run."

# Tail of the log history sent to the model.
MAX_ENTRIES = 200


def format_logs(logs: list[LogEntry], limit: int = MAX_ENTRIES) -> str:
    lines = []
    for entry in logs[-limit:]:
        tier = f" {entry.model_tier}" if entry.model_tier else ""
        lines.append(
            f"{entry.timestamp.isoformat()} [{entry.level.value}] [{entry.source}]{tier} {entry.message}"
        )
    return "\n".join(lines)


async def forensic_analysis(router: ModelFallbackRouter, logs: list[LogEntry]) -> str:
    """Summarize ``logs`` through the router. Never raises."""
    if not logs:
        return FALLBACK_ANALYSIS
    prompt = _PROMPT_PATH.read_text(encoding="utf-8").format(logs=format_logs(logs))
    try:
        text = await router.execute(OPERATION, prompt)
    except Exception as e:
        logger.warning("Forensic analysis failed: %s", e)
        return FALLBACK_ANALYSIS
    return text.strip() or FALLBACK_ANALYSIS
