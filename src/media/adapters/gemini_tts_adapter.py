# src/media/adapters/gemini_tts_adapter.py - v1
"""Gemini text-to-speech adapter (google-genai SDK). Returns raw PCM."""

from __future__ import annotations

from typing import Any

from visionnarrate.llm.errors import ErrorKind, ProviderError, translate_error
from visionnarrate.llm.models import SpeechResult
from visionnarrate.media.base_clients import BaseSpeechClient


class GeminiTTSAdapter(BaseSpeechClient):
    """Prebuilt-voice Gemini speech synthesis."""

    def __init__(
        self,
        model: str = "gemini-2.5-flash-preview-tts",
        api_key: str = "",
        voice: str = "Charon",
        sample_rate_hz: int = 24000,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._voice = voice
        self._sample_rate_hz = sample_rate_hz

    async def synthesize(self, text: str) -> SpeechResult:
        from google import genai
        from google.genai import types

        client = genai.Client(api_key=self._api_key)
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self._voice),
                ),
            ),
        )
        try:
            resp = await client.aio.models.generate_content(
                model=self._model, contents=text, config=config,
            )
        except Exception as e:
            raise translate_error(e, "google") from e

        data = None
        candidates = getattr(resp, "candidates", None) or []
        if candidates and candidates[0].content and candidates[0].content.parts:
            inline = candidates[0].content.parts[0].inline_data
            data = inline.data if inline is not None else None
        if not data:
            raise ProviderError("TTS returned no audio", ErrorKind.NULL_RESPONSE, "google")

        return SpeechResult(
            audio=data,
            mime_type="audio/pcm",
            sample_rate_hz=self._sample_rate_hz,
            voice=self._voice,
        )
