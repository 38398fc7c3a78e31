# src/api/facade.py - v2
"""Public API facade: the two entry points offered to host applications.

Usage:
    from visionnarrate.api.facade import run_pipeline
    result = await run_pipeline(config, on_progress=print_progress)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from visionnarrate.config.settings import Settings, load_settings
from visionnarrate.core.models import GenerationResult, LogEntry, PipelineConfig
from visionnarrate.pipeline.orchestrator import PipelineOrchestrator
from visionnarrate.pipeline.progress import ProgressCallback

logger = logging.getLogger(__name__)


async def run_pipeline(
    config: PipelineConfig,
    on_progress: ProgressCallback | None = None,
    settings: Settings | None = None,
    resume_run_id: str | None = None,
    strategy: str | None = None,
    orchestrator: PipelineOrchestrator | None = None,
) -> GenerationResult:
    """Run one video job end to end.

    Args:
        config: Product facts, goal, recordings and optional grounding.
        on_progress: ``(stage, message, percent, entry)`` callback.
        settings: Loaded from .env / environment if None.
        resume_run_id: Continue a chain run from its checkpoint.
        strategy: Override ``synthesis_strategy`` for this run.
        orchestrator: Pre-built orchestrator (custom clients, tests).

    Returns:
        GenerationResult with chapters, media references and the log trail.

    Raises:
        PipelineRunError: On terminal failure; ``.logs`` holds the trail.
    """
    orchestrator = orchestrator or PipelineOrchestrator(settings or load_settings())
    logger.info(
        "Starting run for '%s' (%s, %.0fs target)",
        config.product.name, config.goal.category.value, config.target_duration_s,
    )
    return await orchestrator.run(
        config, on_progress=on_progress, resume_run_id=resume_run_id, strategy=strategy,
    )


async def forensic_analysis(
    logs: list[LogEntry],
    settings: Settings | None = None,
    orchestrator: PipelineOrchestrator | None = None,
) -> str:
    """Diagnostic narrative over a log history. Returns a fallback string on failure."""
    orchestrator = orchestrator or PipelineOrchestrator(settings or load_settings())
    return await orchestrator.forensic_analysis(logs)


def load_config(path: Path) -> PipelineConfig:
    """Read a PipelineConfig from a JSON file.

    ``manual_grounding`` may be given inline as a string, or as a path
    under ``manual_grounding_file`` relative to the config file.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    grounding_file = data.pop("manual_grounding_file", None)
    if grounding_file and not data.get("manual_grounding"):
        data["manual_grounding"] = (path.parent / grounding_file).read_text(encoding="utf-8")
    return PipelineConfig.model_validate(data)
