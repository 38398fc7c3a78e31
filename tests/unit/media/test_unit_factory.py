# tests/unit/media/test_unit_factory.py - v1
"""Tests for media/factory.py - media client construction from settings."""

from __future__ import annotations

from visionnarrate.config.settings import Settings
from visionnarrate.media.adapters.gemini_tts_adapter import GeminiTTSAdapter
from visionnarrate.media.adapters.imagen_adapter import ImagenAdapter
from visionnarrate.media.adapters.veo_adapter import VeoAdapter
from visionnarrate.media.factory import (
    create_image_client,
    create_speech_client,
    create_video_client,
    video_options,
)


class TestMediaFactory:
    def test_builds_google_adapters(self):
        s = Settings(_env_file=None, google_api_key="k")
        assert isinstance(create_video_client(s), VeoAdapter)
        assert isinstance(create_speech_client(s), GeminiTTSAdapter)
        assert isinstance(create_image_client(s), ImagenAdapter)

    def test_video_options(self):
        opts = video_options(Settings(_env_file=None, video_resolution="1080p", video_aspect_ratio="9:16"))
        assert opts.resolution == "1080p"
        assert opts.aspect_ratio == "9:16"
        assert opts.number_of_videos == 1
