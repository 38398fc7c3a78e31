# src/pipeline/synthesis/checkpoint.py - v2
"""Chain checkpoint persistence through an output writer.

Layout: ``<run_root>/<run_id>/chain_checkpoint.json``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from visionnarrate.core.models import Chapter, GroundingRecord
from visionnarrate.pipeline.synthesis.state import ChainCheckpoint, ChainState
from visionnarrate.storage.base_output_writer import BaseOutputWriter

logger = logging.getLogger(__name__)

CHECKPOINT_FILE = "chain_checkpoint.json"


class CheckpointStore:
    """Save and load chain checkpoints for a run root directory."""

    def __init__(self, writer: BaseOutputWriter, run_root: Path) -> None:
        self._writer = writer
        self._root = run_root

    def path_for(self, run_id: str) -> Path:
        return self._root / run_id / CHECKPOINT_FILE

    async def save(self, checkpoint: ChainCheckpoint) -> None:
        await self._writer.write(
            str(self.path_for(checkpoint.run_id)),
            checkpoint.model_dump_json(indent=2),
        )
        logger.debug(
            "Checkpoint saved for %s at %.0fs", checkpoint.run_id, checkpoint.accumulated_s,
        )

    async def load(self, run_id: str) -> ChainCheckpoint | None:
        """Return the run's checkpoint, or None if absent or unreadable."""
        path = str(self.path_for(run_id))
        if not await self._writer.exists(path):
            return None
        raw = await self._writer.read(path)
        try:
            return ChainCheckpoint.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("Ignoring corrupt checkpoint %s: %s", path, e)
            return None

    def bind(self, run_id: str, grounding: list[GroundingRecord], product_name: str = ""):
        """Return a checkpoint hook for SegmentSynthesisChain."""

        async def hook(state: ChainState, chapters: list[Chapter]) -> None:
            await self.save(state.to_checkpoint(run_id, chapters, grounding, product_name))

        return hook
