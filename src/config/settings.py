# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for provider keys, model catalogue overrides,
retry/backoff tuning and the segment synthesis chain constants.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === PROVIDERS ===
    google_api_key: str = ""
    openai_api_key: str = ""

    # Comma-separated "provider:model" list, most capable first.
    # Empty = built-in Gemini catalogue.
    model_tiers: str = ""

    # === MEDIA MODELS ===
    video_model: str = "veo-3.1-fast-generate-preview"
    video_resolution: Literal["720p", "1080p"] = "720p"
    video_aspect_ratio: Literal["16:9", "9:16"] = "16:9"
    speech_model: str = "gemini-2.5-flash-preview-tts"
    speech_voice: str = "Charon"
    speech_sample_rate_hz: int = 24000
    image_model: str = "imagen-4.0-generate-001"

    # === BACKOFF ===
    backoff_initial_delay_s: float = 2.0
    backoff_max_attempts: int = 3
    backoff_max_jitter_s: float = 1.0

    # === SEGMENT SYNTHESIS ===
    synthesis_strategy: Literal["chain", "per_chapter"] = "chain"
    poll_interval_s: float = 8.0
    poll_timeout_s: float | None = None
    initial_increment_s: float = 5.0
    extension_increment_s: float = 7.0
    safety_cap_s: float = 1800.0
    stabilization_delay_s: float = 10.0
    stabilization_backoff_s: float = 20.0
    max_stabilization_delay_s: float = 90.0
    max_seed_not_ready_streak: int = 6
    max_error_streak: int = 3

    # Per-chapter strategy
    chapter_max_retries: int = 1
    still_fallback_enabled: bool = True

    # === PLANNING ===
    planner_seconds_per_chapter: int = 45
    planner_max_chapters: int = 12

    # === OUTPUT ===
    output_root: Path = Path("~/.visionnarrate/runs")
    checkpoint_enabled: bool = True
    download_artifacts: bool = False

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 10

    # --- Validators ---

    @field_validator(
        "poll_interval_s",
        "stabilization_delay_s",
        "stabilization_backoff_s",
        "backoff_initial_delay_s",
        "backoff_max_jitter_s",
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("delays must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.initial_increment_s <= 0 or self.extension_increment_s <= 0:
            errors.append("INITIAL_INCREMENT_S and EXTENSION_INCREMENT_S must be > 0")

        if self.safety_cap_s < self.initial_increment_s:
            errors.append("SAFETY_CAP_S must be >= INITIAL_INCREMENT_S")

        if self.backoff_max_attempts < 1:
            errors.append("BACKOFF_MAX_ATTEMPTS must be >= 1")

        if self.max_error_streak < 0 or self.max_seed_not_ready_streak < 0:
            errors.append("error streak ceilings must be >= 0")

        if self.poll_timeout_s is not None and self.poll_timeout_s <= 0:
            errors.append("POLL_TIMEOUT_S must be > 0 when set")

        if self.max_stabilization_delay_s < self.stabilization_delay_s:
            errors.append("MAX_STABILIZATION_DELAY_S must be >= STABILIZATION_DELAY_S")

        if self.planner_max_chapters < 1 or self.planner_seconds_per_chapter < 1:
            errors.append("planner chapter limits must be >= 1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def model_tiers_list(self) -> list[str]:
        """Parse comma-separated tier overrides."""
        return [t.strip() for t in self.model_tiers.split(",") if t.strip()]

    @property
    def run_root(self) -> Path:
        return self.output_root.expanduser()


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
