# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides scripted in-memory provider clients (text, video, speech, image),
sample configs and chapters, and zero-delay settings. No network I/O.
"""

from __future__ import annotations

from typing import Any, Union

import pytest

from visionnarrate.config.settings import Settings
from visionnarrate.core.models import (
    Chapter,
    GroundingRecord,
    ModelTier,
    PipelineConfig,
    ProductContext,
    SynthesisOperation,
    VideoArtifact,
    VideoCategory,
    VideoGoal,
    VideoTone,
)
from visionnarrate.llm.base_client import BaseLLMClient
from visionnarrate.llm.errors import ErrorKind, ProviderError
from visionnarrate.llm.models import LLMResponse, Message, SpeechResult
from visionnarrate.media.base_clients import (
    BaseImageClient,
    BaseSpeechClient,
    BaseVideoClient,
    VideoOptions,
)
from visionnarrate.tracking.logbook import LogBook


PLAN_JSON = """```json
[
  {"title": "The Problem", "durationSeconds": 20, "visualIntent": "Cluttered dashboard", "narrationScript": "Teams drown in alerts."},
  {"title": "The Fix", "durationSeconds": 20, "visualIntent": "Clean configuration flow", "narrationScript": "Acme routes what matters."},
  {"title": "The Payoff", "durationSeconds": 20, "visualIntent": "Confident operator", "narrationScript": "Sleep through the night."}
]
```"""


# === FAKE CLIENTS ===


class FakeLLMClient(BaseLLMClient):
    """Replays scripted responses; exceptions in the script are raised."""

    def __init__(self, model: str = "fake-model", responses: list[Any] | None = None, default: Any = "ok"):
        self._model = model
        self._responses = list(responses or [])
        self._default = default
        self.prompts: list[str] = []

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 8192,
        temperature: float = 0.4,
        json_output: bool = False,
    ) -> LLMResponse:
        self.prompts.append(messages[-1].content)
        item = self._responses.pop(0) if self._responses else self._default
        if isinstance(item, BaseException):
            raise item
        return LLMResponse(content=item, model=self._model, provider="fake")

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return self._model


VideoStep = Union[str, ErrorKind, BaseException]


class FakeVideoClient(BaseVideoClient):
    """Scripted segment generator.

    Each submit consumes one script step:
      "ok"       -> success with artifact and continuation
      "no_seed"  -> success without a continuation handle
      ErrorKind  -> operation finishes with that error kind
      exception  -> raised from submit
    Operations report done on their first poll.
    """

    def __init__(self, script: list[VideoStep] | None = None, default: VideoStep = "ok"):
        self._script = list(script or [])
        self._default = default
        self._pending: dict[str, VideoStep] = {}
        self.submissions: list[tuple[str, VideoArtifact | None]] = []
        self.polls = 0
        self.fetched: list[str] = []

    async def submit(
        self,
        prompt: str,
        seed: VideoArtifact | None = None,
        options: VideoOptions | None = None,
    ) -> SynthesisOperation:
        step = self._script.pop(0) if self._script else self._default
        self.submissions.append((prompt, seed))
        if isinstance(step, BaseException):
            raise step
        op = SynthesisOperation(name=f"op_{len(self.submissions)}")
        self._pending[op.name] = step
        return op

    async def poll(self, operation: SynthesisOperation) -> SynthesisOperation:
        self.polls += 1
        step = self._pending.pop(operation.name)
        n = operation.name.split("_")[-1]
        if step == "ok":
            return SynthesisOperation(
                name=operation.name,
                done=True,
                artifact=VideoArtifact(uri=f"fake://video/{n}"),
                continuation=VideoArtifact(uri=f"fake://seed/{n}"),
            )
        if step == "no_seed":
            return SynthesisOperation(
                name=operation.name, done=True, artifact=VideoArtifact(uri=f"fake://video/{n}"),
            )
        return SynthesisOperation(
            name=operation.name, done=True, error=f"scripted {step.value}", error_kind=step,
        )

    async def fetch(self, artifact: VideoArtifact) -> bytes:
        self.fetched.append(artifact.uri)
        return b"\x00\x00\x00\x18ftypmp42"


class FakeSpeechClient(BaseSpeechClient):
    def __init__(self, fail: bool = False):
        self._fail = fail
        self.texts: list[str] = []

    async def synthesize(self, text: str) -> SpeechResult:
        self.texts.append(text)
        if self._fail:
            raise ProviderError("TTS backend unavailable", ErrorKind.SERVER, "fake")
        return SpeechResult(audio=b"\x01\x00" * 24000, sample_rate_hz=24000, voice="Charon")


class FakeImageClient(BaseImageClient):
    def __init__(self, fail: bool = False):
        self._fail = fail
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> VideoArtifact:
        self.prompts.append(prompt)
        if self._fail:
            raise ProviderError("image blocked by safety filter", ErrorKind.SAFETY, "fake")
        return VideoArtifact(uri=f"fake://still/{len(self.prompts)}", mime_type="image/png")


class SleepRecorder:
    """Awaitable no-op sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


# === FIXTURES: Sample data ===


@pytest.fixture
def product() -> ProductContext:
    return ProductContext(
        name="Acme Pulse",
        target_users="on-call SRE teams",
        core_problem="alert fatigue",
        differentiators="AI triage that explains every page",
        constraints="no customer data on screen",
    )


@pytest.fixture
def pipeline_config(product: ProductContext) -> PipelineConfig:
    """Three recordings, one-minute target."""
    return PipelineConfig(
        product=product,
        goal=VideoGoal(
            category=VideoCategory.DEMO,
            duration_minutes=1,
            tone=VideoTone.PROFESSIONAL,
            audience="engineering leads",
        ),
        recordings=["rec_dashboard.mp4", "rec_settings.mp4", "rec_incident.mp4"],
    )


@pytest.fixture
def grounding() -> list[GroundingRecord]:
    return [
        GroundingRecord(scene_id="sc_1", visual_event="Dashboard Init", importance=0.9, source_recording="rec_1"),
        GroundingRecord(scene_id="sc_2", visual_event="Config Action", importance=0.8, source_recording="rec_2"),
    ]


@pytest.fixture
def chapters(grounding: list[GroundingRecord]) -> list[Chapter]:
    return [
        Chapter(
            index=i,
            title=f"Chapter {i + 1}",
            duration_s=20,
            visual_intent=f"Shot {i + 1}",
            narration_script=f"Line {i + 1}.",
            grounding=grounding[i % len(grounding)],
        )
        for i in range(3)
    ]


@pytest.fixture
def tiers() -> list[ModelTier]:
    return [
        ModelTier(model_id="model-pro", display_name="Pro", rank=0),
        ModelTier(model_id="model-flash", display_name="Flash", rank=1),
        ModelTier(model_id="model-lite", display_name="Lite", rank=2),
    ]


# === FIXTURES: Infrastructure ===


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Defaults with no .env, outputs under tmp_path and tiny backoff."""
    return Settings(
        _env_file=None,
        google_api_key="test-key",
        output_root=tmp_path / "runs",
        backoff_initial_delay_s=0.01,
        backoff_max_jitter_s=0.0,
    )


@pytest.fixture
def logbook() -> LogBook:
    return LogBook(trace_id="trace_test")


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def video_client() -> FakeVideoClient:
    return FakeVideoClient()


@pytest.fixture
def speech_client() -> FakeSpeechClient:
    return FakeSpeechClient()


@pytest.fixture
def image_client() -> FakeImageClient:
    return FakeImageClient()


@pytest.fixture
def fake_llm():
    """Factory: ``fake_llm(model, responses=[...], default=...)``."""
    return FakeLLMClient


@pytest.fixture
def fake_video():
    """Factory: ``fake_video(script=[...], default=...)``."""
    return FakeVideoClient


@pytest.fixture
def fake_speech():
    return FakeSpeechClient


@pytest.fixture
def fake_image():
    return FakeImageClient


@pytest.fixture
def plan_json() -> str:
    return PLAN_JSON
