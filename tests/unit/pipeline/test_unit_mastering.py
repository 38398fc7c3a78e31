# tests/unit/pipeline/test_unit_mastering.py - v1
"""Tests for pipeline/mastering.py - proportional narration and audio."""

from __future__ import annotations

import base64

import pytest

from visionnarrate.llm.models import SpeechResult
from visionnarrate.llm.router import ModelFallbackRouter
from visionnarrate.pipeline.mastering import NarrationMaster, encode_audio, select_narration


class TestSelectNarration:
    @pytest.mark.parametrize(
        "accumulated,target,expected",
        [
            (60, 60, 3),
            (120, 60, 3),
            (36, 60, 2),   # 60% of 3 chapters -> ceil(1.8)
            (12, 60, 1),
            (0, 60, 1),    # never below one chapter
            (30, 0, 3),
        ],
    )
    def test_proportion(self, chapters, accumulated, target, expected):
        assert len(select_narration(chapters, accumulated, target)) == expected

    def test_prefix_order(self, chapters):
        assert select_narration(chapters, 30, 60) == chapters[:2]

    def test_no_chapters(self):
        assert select_narration([], 10, 60) == []


class TestEncodeAudio:
    def test_data_uri(self):
        uri = encode_audio(SpeechResult(audio=b"\x01\x02", sample_rate_hz=24000))
        prefix, payload = uri.split("base64,")
        assert prefix == "data:audio/pcm;rate=24000;"
        assert base64.b64decode(payload) == b"\x01\x02"


class TestNarrationMaster:
    @pytest.mark.asyncio
    async def test_master_with_audio(self, tiers, logbook, sleep, chapters, speech_client):
        router = ModelFallbackRouter(tiers, logbook, speech_client=speech_client, sleep=sleep)
        result = await NarrationMaster(router, logbook).master(chapters, 36, 60)

        assert result.narrated_chapters == 2
        assert result.transcript == "Line 1. Line 2."
        assert speech_client.texts == ["Line 1. Line 2."]
        assert result.audio_uri.startswith("data:audio/pcm;rate=24000;base64,")
        assert result.audio_duration_s == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_speech_failure_omits_audio(self, tiers, logbook, sleep, chapters, fake_speech):
        router = ModelFallbackRouter(tiers, logbook, speech_client=fake_speech(fail=True), sleep=sleep)
        result = await NarrationMaster(router, logbook).master(chapters, 60, 60)

        assert result.audio_uri is None
        assert result.transcript == "Line 1. Line 2. Line 3."
        assert logbook.recoveries == 1
