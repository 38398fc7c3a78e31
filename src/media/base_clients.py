# src/media/base_clients.py - v1
"""Abstract media service interfaces: video segments, speech, still images.

Implementations raise ProviderError (never raw SDK exceptions).
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from visionnarrate.core.models import SynthesisOperation, VideoArtifact
from visionnarrate.llm.models import SpeechResult


class VideoOptions(BaseModel):
    """Render options passed with every segment request."""

    resolution: str = "720p"
    aspect_ratio: str = "16:9"
    number_of_videos: int = 1


class BaseVideoClient(ABC):
    """Asynchronous long-running video segment generator."""

    @abstractmethod
    async def submit(
        self,
        prompt: str,
        seed: VideoArtifact | None = None,
        options: VideoOptions | None = None,
    ) -> SynthesisOperation:
        """Start a generation call, optionally seeded with a continuation."""

    @abstractmethod
    async def poll(self, operation: SynthesisOperation) -> SynthesisOperation:
        """Refresh an operation handle. Returns a new handle."""

    @abstractmethod
    async def fetch(self, artifact: VideoArtifact) -> bytes:
        """Download the bytes behind an artifact reference."""


class BaseSpeechClient(ABC):
    """Text-to-speech service."""

    @abstractmethod
    async def synthesize(self, text: str) -> SpeechResult:
        """Return inline encoded audio for the given narration."""


class BaseImageClient(ABC):
    """Still-image generator used as a per-chapter fallback."""

    @abstractmethod
    async def generate(self, prompt: str) -> VideoArtifact:
        """Return a reference to one generated still frame."""
