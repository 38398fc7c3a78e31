# src/media/factory.py - v1
"""Factories: build media clients from settings."""

from __future__ import annotations

from visionnarrate.config.settings import Settings
from visionnarrate.media.base_clients import (
    BaseImageClient,
    BaseSpeechClient,
    BaseVideoClient,
    VideoOptions,
)


def create_video_client(settings: Settings) -> BaseVideoClient:
    from visionnarrate.media.adapters.veo_adapter import VeoAdapter

    return VeoAdapter(model=settings.video_model, api_key=settings.google_api_key)


def create_speech_client(settings: Settings) -> BaseSpeechClient:
    from visionnarrate.media.adapters.gemini_tts_adapter import GeminiTTSAdapter

    return GeminiTTSAdapter(
        model=settings.speech_model,
        api_key=settings.google_api_key,
        voice=settings.speech_voice,
        sample_rate_hz=settings.speech_sample_rate_hz,
    )


def create_image_client(settings: Settings) -> BaseImageClient:
    from visionnarrate.media.adapters.imagen_adapter import ImagenAdapter

    return ImagenAdapter(
        model=settings.image_model,
        api_key=settings.google_api_key,
        aspect_ratio=settings.video_aspect_ratio,
    )


def video_options(settings: Settings) -> VideoOptions:
    return VideoOptions(
        resolution=settings.video_resolution,
        aspect_ratio=settings.video_aspect_ratio,
    )
