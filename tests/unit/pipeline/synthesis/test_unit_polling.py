# tests/unit/pipeline/synthesis/test_unit_polling.py - v1
"""Tests for pipeline/synthesis/polling.py - cooperative long-poll."""

from __future__ import annotations

import pytest

from visionnarrate.core.models import SynthesisOperation, VideoArtifact
from visionnarrate.llm.errors import ErrorKind, ProviderError
from visionnarrate.media.base_clients import BaseVideoClient
from visionnarrate.pipeline.synthesis.polling import poll_until_done


class _SlowClient(BaseVideoClient):
    def __init__(self, polls_until_done: int | None):
        self.remaining = polls_until_done
        self.polls = 0

    async def submit(self, prompt, seed=None, options=None):
        return SynthesisOperation(name="slow")

    async def poll(self, operation):
        self.polls += 1
        if self.remaining is not None:
            self.remaining -= 1
            if self.remaining <= 0:
                return SynthesisOperation(name="slow", done=True, artifact=VideoArtifact(uri="v"))
        return operation

    async def fetch(self, artifact):
        return b""


class _Clock:
    def __init__(self, step: float):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


class TestPollUntilDone:
    @pytest.mark.asyncio
    async def test_waits_interval_between_checks(self, sleep):
        client = _SlowClient(polls_until_done=3)
        op = await poll_until_done(client, SynthesisOperation(name="slow"), interval_s=8.0, sleep=sleep)
        assert op.done
        assert client.polls == 3
        assert sleep.delays == [8.0, 8.0, 8.0]

    @pytest.mark.asyncio
    async def test_already_done(self, sleep):
        client = _SlowClient(polls_until_done=1)
        done = SynthesisOperation(name="x", done=True)
        assert await poll_until_done(client, done, interval_s=8.0, sleep=sleep) is done
        assert client.polls == 0

    @pytest.mark.asyncio
    async def test_optional_timeout(self, sleep):
        client = _SlowClient(polls_until_done=None)
        with pytest.raises(ProviderError) as exc_info:
            await poll_until_done(
                client, SynthesisOperation(name="slow"), interval_s=8.0, sleep=sleep,
                timeout_s=30.0, clock=_Clock(step=8.0),
            )
        assert exc_info.value.kind is ErrorKind.TIMEOUT
