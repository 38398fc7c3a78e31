# src/llm/models.py - v2
"""LLM-specific types: Message, LLMResponse, SpeechResult."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class LLMResponse(BaseModel):
    """Normalized response from any text model provider."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str
    provider: str
    latency_ms: int = 0
    raw_response: Any = None


class SpeechResult(BaseModel):
    """Inline audio returned by a speech synthesis service."""

    audio: bytes
    mime_type: str = "audio/pcm"
    sample_rate_hz: int = 24000
    voice: str = ""

    @property
    def duration_s(self) -> float:
        # 16-bit mono PCM
        return len(self.audio) / (2 * self.sample_rate_hz) if self.sample_rate_hz else 0.0
