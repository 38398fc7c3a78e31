# src/media/adapters/veo_adapter.py - v1
"""Veo video segment adapter using the google-genai SDK.

A seeded request extends the seed video; the returned video reference is
the continuation handle for the next request.
"""

from __future__ import annotations

import logging
from typing import Any

from visionnarrate.core.models import SynthesisOperation, VideoArtifact
from visionnarrate.llm.errors import ErrorKind, classify_failure, translate_error
from visionnarrate.media.base_clients import BaseVideoClient, VideoOptions

logger = logging.getLogger(__name__)


class VeoAdapter(BaseVideoClient):
    """Google Veo adapter."""

    def __init__(self, model: str = "veo-3.1-fast-generate-preview", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def submit(
        self,
        prompt: str,
        seed: VideoArtifact | None = None,
        options: VideoOptions | None = None,
    ) -> SynthesisOperation:
        from google.genai import types

        opts = options or VideoOptions()
        client = self._get_client()
        kwargs: dict[str, Any] = {
            "model": self._model,
            "prompt": prompt,
            "config": types.GenerateVideosConfig(
                number_of_videos=opts.number_of_videos,
                resolution=opts.resolution,
                aspect_ratio=opts.aspect_ratio,
            ),
        }
        if seed is not None:
            kwargs["video"] = types.Video(uri=seed.uri, mime_type=seed.mime_type)

        try:
            raw = await client.aio.models.generate_videos(**kwargs)
        except Exception as e:
            raise translate_error(e, "google") from e
        return _to_operation(raw)

    async def poll(self, operation: SynthesisOperation) -> SynthesisOperation:
        client = self._get_client()
        try:
            raw = await client.aio.operations.get(operation.raw)
        except Exception as e:
            raise translate_error(e, "google") from e
        return _to_operation(raw)

    async def fetch(self, artifact: VideoArtifact) -> bytes:
        from google.genai import types

        client = self._get_client()
        try:
            return await client.aio.files.download(
                file=types.Video(uri=artifact.uri, mime_type=artifact.mime_type)
            )
        except Exception as e:
            raise translate_error(e, "google") from e


def _to_operation(raw: Any) -> SynthesisOperation:
    """Convert a google-genai GenerateVideosOperation into a SynthesisOperation."""
    name = getattr(raw, "name", None) or "veo_operation"
    if not getattr(raw, "done", False):
        return SynthesisOperation(name=name, done=False, raw=raw)

    error = getattr(raw, "error", None)
    if error:
        message = str(error.get("message", error)) if isinstance(error, dict) else str(error)
        code = error.get("code") if isinstance(error, dict) else None
        return SynthesisOperation(
            name=name,
            done=True,
            error=message,
            error_kind=classify_failure(message, code),
            raw=raw,
        )

    response = getattr(raw, "response", None)
    videos = getattr(response, "generated_videos", None) or []
    video = getattr(videos[0], "video", None) if videos else None
    if video is None or not getattr(video, "uri", None):
        return SynthesisOperation(
            name=name,
            done=True,
            error="Veo returned no video",
            error_kind=ErrorKind.NULL_RESPONSE,
            raw=raw,
        )

    artifact = VideoArtifact(uri=video.uri, mime_type=getattr(video, "mime_type", None) or "video/mp4")
    return SynthesisOperation(name=name, done=True, artifact=artifact, continuation=artifact, raw=raw)
