# src/core/models.py - v1
"""Core domain models shared by every pipeline stage.

Inputs (ProductContext, VideoGoal, PipelineConfig), grounding records,
planned chapters, synthesis handles, model tiers, log entries and the
final GenerationResult.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from visionnarrate.llm.errors import ErrorKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# === INPUTS ===


class VideoCategory(str, Enum):
    HACKATHON = "Hackathon Explanation"
    DEMO = "Product Deep-Dive"
    MARKETING = "Investor / Marketing"


class VideoTone(str, Enum):
    TECHNICAL = "Highly Technical"
    STORYTELLING = "Narrative Storytelling"
    PROFESSIONAL = "Corporate / Investor"


class ProductContext(BaseModel):
    """Product facts the narrative must stay faithful to."""

    model_config = ConfigDict(frozen=True)

    name: str
    target_users: str = ""
    core_problem: str = ""
    differentiators: str = ""
    constraints: str = ""


class VideoGoal(BaseModel):
    """What kind of video to produce and for whom."""

    model_config = ConfigDict(frozen=True)

    category: VideoCategory = VideoCategory.DEMO
    duration_minutes: float = Field(default=1.0, gt=0)
    tone: VideoTone = VideoTone.PROFESSIONAL
    audience: str = ""


class PipelineConfig(BaseModel):
    """Immutable input for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    product: ProductContext
    goal: VideoGoal = Field(default_factory=VideoGoal)
    recordings: list[str] = Field(default_factory=list)
    manual_grounding: str | None = None

    @property
    def target_duration_s(self) -> float:
        return self.goal.duration_minutes * 60


# === GROUNDING ===


class GroundingRecord(BaseModel):
    """One analyzed scene from a source recording."""

    model_config = ConfigDict(frozen=True)

    scene_id: str
    visual_event: str
    importance: float = Field(ge=0.0, le=1.0)
    source_recording: str
    timestamp: str | None = None
    meaningful_change: bool = True


# === PLANNING ===


class ChapterStatus(str, Enum):
    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Chapter(BaseModel):
    """A planned narrative unit, mutated in place during synthesis."""

    index: int
    title: str
    duration_s: int
    visual_intent: str
    narration_script: str
    grounding: GroundingRecord
    status: ChapterStatus = ChapterStatus.QUEUED
    retry_count: int = 0
    video_uri: str | None = None
    is_still_fallback: bool = False


# === SYNTHESIS ===


class VideoArtifact(BaseModel):
    """Reference to a produced visual artifact (also used as continuation seed)."""

    model_config = ConfigDict(frozen=True)

    uri: str
    mime_type: str = "video/mp4"


class SynthesisOperation(BaseModel):
    """Handle for one in-flight or completed generation call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(default_factory=lambda: f"op_{uuid.uuid4().hex[:12]}")
    done: bool = False
    error: str | None = None
    error_kind: ErrorKind | None = None
    artifact: VideoArtifact | None = None
    continuation: VideoArtifact | None = None
    raw: Any = Field(default=None, exclude=True)

    @property
    def succeeded(self) -> bool:
        return self.done and self.error is None


# === MODEL TIERS ===


class ModelTier(BaseModel):
    """Static catalogue entry for one fallback level."""

    model_config = ConfigDict(frozen=True)

    model_id: str
    display_name: str
    rank: int = Field(ge=0)
    context_window: int = 0
    provider: str = "google"

    @property
    def label(self) -> str:
        return f"TIER_{self.rank}"


# === OBSERVABILITY ===


class LogLevel(str, Enum):
    INFO = "INFO"
    DEBUG = "DEBUG"
    WARN = "WARN"
    ERROR = "ERROR"


class Artifact(BaseModel):
    """Captured prompt/response payload attached to a log entry."""

    model_config = ConfigDict(frozen=True)

    artifact_id: str = Field(default_factory=lambda: f"art_{uuid.uuid4().hex[:10]}")
    stage: str
    payload_type: str
    payload: Any = None
    timestamp: datetime = Field(default_factory=_utcnow)


class LogEntry(BaseModel):
    """Append-only observability record."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)
    level: LogLevel
    message: str
    source: str
    model_tier: str | None = None
    model_name: str | None = None
    artifact: Artifact | None = None
    trace_id: str | None = None


class PipelineStage(str, Enum):
    """Coarse state tag carried by progress events."""

    IDLE = "IDLE"
    INGESTION = "INGESTION"
    ANALYSIS = "ANALYSIS"
    PLANNING = "PLANNING"
    GENERATION = "GENERATION"
    HEALING = "HEALING"
    ASSEMBLY = "ASSEMBLY"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


# === RESULT ===


class GenerationResult(BaseModel):
    """Final output of a successful run."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    created_at: datetime = Field(default_factory=_utcnow)
    product_name: str
    chapters: list[Chapter]
    final_video_uri: str
    final_audio_uri: str | None = None
    transcript: str = ""
    total_duration_s: float
    logs: list[LogEntry] = Field(default_factory=list)
    recoveries_applied: int = 0
    active_tier: str | None = None
    grounding: list[GroundingRecord] = Field(default_factory=list)
    target_reached: bool = False
    strategy: str = "chain"

    @field_validator("chapters")
    @classmethod
    def _require_chapters(cls, v: list[Chapter]) -> list[Chapter]:
        if not v:
            raise ValueError("GenerationResult requires at least one chapter")
        return v
