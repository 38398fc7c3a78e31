# src/pipeline/orchestrator.py - v3
"""Pipeline orchestrator: the five-stage video job.

  Stage 1: Ingestion + grounding (manual override or synthesized records)
  Stage 2: Planning (chapter planner through the model fallback router)
  Stage 3: Segment synthesis (chain by default, per-chapter alternative)
  Stage 4: Narration & mastering
  Stage 5: Result assembly

Every run builds its own LogBook and router, so runs sharing a process
never share a tier cursor. Any failure is logged once more as CRITICAL
and re-raised as PipelineRunError carrying the full log trail.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path

from visionnarrate.config.settings import Settings
from visionnarrate.core.models import (
    Chapter,
    GenerationResult,
    GroundingRecord,
    LogEntry,
    PipelineConfig,
    PipelineStage,
    VideoArtifact,
)
from visionnarrate.llm.base_client import BaseLLMClient
from visionnarrate.llm.client_factory import create_llm_client
from visionnarrate.llm.config import resolve_tiers
from visionnarrate.llm.retry import SleepFn
from visionnarrate.llm.router import ClientFactory, ModelFallbackRouter, backoff_from
from visionnarrate.logging.context import run_context, set_stage
from visionnarrate.media.base_clients import BaseImageClient, BaseSpeechClient, BaseVideoClient
from visionnarrate.media.factory import (
    create_image_client,
    create_speech_client,
    create_video_client,
    video_options,
)
from visionnarrate.pipeline.errors import PipelineRunError
from visionnarrate.pipeline.forensics import forensic_analysis
from visionnarrate.pipeline.grounding import resolve_grounding
from visionnarrate.pipeline.healing import PromptHealer
from visionnarrate.pipeline.mastering import NarrationMaster
from visionnarrate.pipeline.planner import ChapterPlanner
from visionnarrate.pipeline.progress import ProgressCallback, ProgressReporter
from visionnarrate.pipeline.synthesis.base import BaseSynthesisStrategy, ChainTuning
from visionnarrate.pipeline.synthesis.chain import SegmentSynthesisChain
from visionnarrate.pipeline.synthesis.checkpoint import CheckpointStore
from visionnarrate.pipeline.synthesis.per_chapter import PerChapterSynthesis
from visionnarrate.pipeline.synthesis.state import ChainCheckpoint
from visionnarrate.storage.base_output_writer import BaseOutputWriter
from visionnarrate.storage.local_writer import LocalWriter
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)

_SOURCE = "ORCHESTRATOR"
LOG_FILE = "logs.jsonl"
VIDEO_FILE = "final.mp4"


def new_run_id() -> str:
    return f"run_{uuid.uuid4().hex[:12]}"


class PipelineOrchestrator:
    """Top-level driver for one or more pipeline runs.

    Args:
        settings: Application settings.
        video_client: Segment video service (built from settings if None).
        speech_client: Speech service (built from settings if None).
        image_client: Still-image service for the per-chapter fallback.
        llm_clients: Pre-built text clients keyed by model_id.
        client_factory: Builds text clients for tiers without one.
        writer: Output writer for checkpoints, logs and downloads.
        sleep: Awaitable sleep shared by every wait in the run.
    """

    def __init__(
        self,
        settings: Settings,
        video_client: BaseVideoClient | None = None,
        speech_client: BaseSpeechClient | None = None,
        image_client: BaseImageClient | None = None,
        llm_clients: dict[str, BaseLLMClient] | None = None,
        client_factory: ClientFactory = create_llm_client,
        writer: BaseOutputWriter | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._video = video_client or create_video_client(settings)
        self._speech = speech_client or create_speech_client(settings)
        self._image = image_client
        if self._image is None and settings.still_fallback_enabled:
            self._image = create_image_client(settings)
        self._llm_clients = dict(llm_clients or {})
        self._client_factory = client_factory
        self._writer = writer or LocalWriter()
        self._sleep = sleep
        self._tiers = resolve_tiers(settings)
        self._checkpoints = CheckpointStore(self._writer, settings.run_root)

    @property
    def checkpoints(self) -> CheckpointStore:
        return self._checkpoints

    def build_router(self, logbook: LogBook) -> ModelFallbackRouter:
        """Fresh router (cursor at TIER_0) bound to one run's log book."""
        return ModelFallbackRouter(
            self._tiers,
            logbook,
            settings=self._settings,
            clients=self._llm_clients,
            speech_client=self._speech,
            client_factory=self._client_factory,
            sleep=self._sleep,
        )

    async def run(
        self,
        config: PipelineConfig,
        on_progress: ProgressCallback | None = None,
        resume_run_id: str | None = None,
        strategy: str | None = None,
    ) -> GenerationResult:
        """Execute one run end to end.

        Args:
            config: Product, goal and recordings for this run.
            on_progress: Called synchronously at each milestone.
            resume_run_id: Continue a chain run from its last checkpoint.
            strategy: "chain" or "per_chapter" (defaults to settings).

        Raises:
            PipelineRunError: On any terminal failure, with the log trail.
        """
        run_id = resume_run_id or new_run_id()
        logbook = LogBook(trace_id=run_id)
        reporter = ProgressReporter(on_progress)
        router = self.build_router(logbook)
        strategy_name = strategy or self._settings.synthesis_strategy
        started = time.monotonic()

        with run_context(run_id):
            try:
                result = await self._run_stages(
                    run_id, config, logbook, reporter, router, strategy_name, resume_run_id,
                )
            except Exception as e:
                entry = logbook.error(f"CRITICAL: {e}", _SOURCE)
                reporter.report(PipelineStage.ERROR, f"Pipeline failed: {e}", reporter.last_percent, entry)
                logger.exception("Run %s failed after %.1fs", run_id, time.monotonic() - started)
                await self._persist_logs(run_id, logbook)
                raise PipelineRunError(str(e), run_id, logbook.entries, cause=e) from e

        await self._persist_logs(run_id, logbook)
        logger.info(
            "Run %s complete: %.0fs footage, %d recoveries in %.1fs",
            run_id, result.total_duration_s, result.recoveries_applied, time.monotonic() - started,
        )
        return result

    async def forensic_analysis(self, logs: list[LogEntry]) -> str:
        """Diagnostic narrative over a log history (best-effort)."""
        return await forensic_analysis(self.build_router(LogBook()), logs)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _run_stages(
        self,
        run_id: str,
        config: PipelineConfig,
        logbook: LogBook,
        reporter: ProgressReporter,
        router: ModelFallbackRouter,
        strategy_name: str,
        resume_run_id: str | None,
    ) -> GenerationResult:
        target_s = config.target_duration_s

        set_stage(PipelineStage.INGESTION.value, "INGEST_SERVICE")
        entry = logbook.info(
            f"Ingesting {len(config.recordings)} recordings for '{config.product.name}' "
            f"(target {target_s:.0f}s, {strategy_name} strategy).",
            "INGEST_SERVICE",
        )
        reporter.report(PipelineStage.INGESTION, "Ingesting source recordings", 5, entry)

        resume = await self._load_resume(resume_run_id, strategy_name, config, logbook)
        if resume is not None:
            grounding = resume.grounding
            chapters = resume.chapters
            entry = logbook.info(
                f"Restored {len(grounding)} grounding records and {len(chapters)} chapters from checkpoint.",
                _SOURCE,
            )
            reporter.report(PipelineStage.PLANNING, "Plan restored from checkpoint", 30, entry)
        else:
            set_stage(PipelineStage.ANALYSIS.value, "ML_CORE")
            grounding = resolve_grounding(config, logbook)
            reporter.report(
                PipelineStage.ANALYSIS, f"Grounded {len(grounding)} scenes", 15, logbook.entries[-1],
            )

            set_stage(PipelineStage.PLANNING.value, "NARRATIVE_ARCH")
            reporter.report(PipelineStage.PLANNING, "Drafting chapter plan", 30)
            chapters = await self._planner(router, logbook).plan(
                config.product, config.goal, grounding, target_s,
            )
            reporter.report(
                PipelineStage.PLANNING, f"Planned {len(chapters)} chapters", 30, logbook.entries[-1],
            )

        set_stage(PipelineStage.GENERATION.value, "VEO_EXECUTOR")
        reporter.report(PipelineStage.GENERATION, "Starting segment synthesis", 45)
        synthesizer = self._strategy(
            strategy_name, run_id, config.product.name, grounding, router, logbook, reporter,
        )
        outcome = await synthesizer.run(chapters, target_s, resume=resume)

        set_stage(PipelineStage.ASSEMBLY.value, "MEDIA_STITCHER")
        reporter.report(PipelineStage.ASSEMBLY, "Mastering narration track", 95)
        mastering = await NarrationMaster(router, logbook).master(chapters, outcome.accumulated_s, target_s)
        final_uri = await self._deliver(run_id, outcome.final_artifact, logbook)

        entry = logbook.info(
            f"Run complete: {outcome.accumulated_s:.0f}s of {target_s:.0f}s "
            f"({outcome.loop_state.value}), {logbook.recoveries} recoveries applied.",
            _SOURCE,
        )
        set_stage(PipelineStage.SUCCESS.value)
        reporter.report(PipelineStage.SUCCESS, "Video ready", 100, entry)

        return GenerationResult(
            run_id=run_id,
            product_name=config.product.name,
            chapters=chapters,
            final_video_uri=final_uri,
            final_audio_uri=mastering.audio_uri,
            transcript=mastering.transcript,
            total_duration_s=outcome.accumulated_s,
            logs=logbook.entries,
            recoveries_applied=logbook.recoveries,
            active_tier=router.current_tier.label,
            grounding=grounding,
            target_reached=outcome.target_reached,
            strategy=outcome.strategy,
        )

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def _planner(self, router: ModelFallbackRouter, logbook: LogBook) -> ChapterPlanner:
        return ChapterPlanner(
            router,
            logbook,
            seconds_per_chapter=self._settings.planner_seconds_per_chapter,
            max_chapters=self._settings.planner_max_chapters,
        )

    def _strategy(
        self,
        name: str,
        run_id: str,
        product_name: str,
        grounding: list[GroundingRecord],
        router: ModelFallbackRouter,
        logbook: LogBook,
        reporter: ProgressReporter,
    ) -> BaseSynthesisStrategy:
        tuning = ChainTuning.from_settings(self._settings)
        options = video_options(self._settings)
        backoff = backoff_from(self._settings)

        if name == "chain":
            hook = (
                self._checkpoints.bind(run_id, grounding, product_name)
                if self._settings.checkpoint_enabled
                else None
            )
            return SegmentSynthesisChain(
                self._video, logbook, reporter, tuning, options, backoff,
                checkpoint=hook, sleep=self._sleep,
            )
        if name == "per_chapter":
            return PerChapterSynthesis(
                self._video, logbook, reporter, tuning, options, backoff,
                healer=PromptHealer(router, logbook),
                image_client=self._image if self._settings.still_fallback_enabled else None,
                max_retries=self._settings.chapter_max_retries,
                sleep=self._sleep,
            )
        raise ValueError(f"Unknown synthesis strategy: {name!r}")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def _load_resume(
        self,
        resume_run_id: str | None,
        strategy_name: str,
        config: PipelineConfig,
        logbook: LogBook,
    ) -> ChainCheckpoint | None:
        if resume_run_id is None:
            return None
        if strategy_name != "chain":
            logbook.warn("Resume is only supported for the chain strategy; starting fresh.", _SOURCE)
            return None
        checkpoint = await self._checkpoints.load(resume_run_id)
        if checkpoint is None or not checkpoint.chapters or not checkpoint.grounding:
            logbook.warn(f"No usable checkpoint for {resume_run_id}; starting fresh.", _SOURCE)
            return None
        if checkpoint.product_name != config.product.name or checkpoint.target_s != config.target_duration_s:
            logbook.warn(
                f"Checkpoint for {resume_run_id} was taken for '{checkpoint.product_name}' "
                f"({checkpoint.target_s:.0f}s target), not '{config.product.name}' "
                f"({config.target_duration_s:.0f}s); starting fresh.",
                _SOURCE,
            )
            return None
        return checkpoint

    async def _deliver(self, run_id: str, artifact: VideoArtifact, logbook: LogBook) -> str:
        """Return the final video reference, downloading it when enabled."""
        if not self._settings.download_artifacts:
            return artifact.uri
        path = self._run_dir(run_id) / VIDEO_FILE
        try:
            content = await self._video.fetch(artifact)
            await self._writer.write(str(path), content)
        except Exception as e:
            logbook.warn(f"Final video download failed ({e}); keeping remote reference.", "MEDIA_STITCHER")
            return artifact.uri
        logbook.info(f"Final video saved to {path} ({len(content)} bytes).", "MEDIA_STITCHER")
        return str(path)

    async def _persist_logs(self, run_id: str, logbook: LogBook) -> None:
        path = self._run_dir(run_id) / LOG_FILE
        try:
            await self._writer.write(str(path), logbook.to_jsonl())
        except OSError as e:
            logger.warning("Could not save log book to %s: %s", path, e)

    def _run_dir(self, run_id: str) -> Path:
        return self._settings.run_root / run_id


def chapter_summary(chapters: list[Chapter]) -> str:
    """One line per chapter, used by the CLI report."""
    return "\n".join(
        f"  {c.index + 1:>2}. [{c.status.value}] {c.title} ({c.duration_s}s)"
        + (" [still]" if c.is_still_fallback else "")
        for c in chapters
    )
