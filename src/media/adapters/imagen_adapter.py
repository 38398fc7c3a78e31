# src/media/adapters/imagen_adapter.py - v1
"""Imagen still-image adapter (google-genai SDK)."""

from __future__ import annotations

import base64
from typing import Any

from visionnarrate.core.models import VideoArtifact
from visionnarrate.llm.errors import ErrorKind, ProviderError, translate_error
from visionnarrate.media.base_clients import BaseImageClient


class ImagenAdapter(BaseImageClient):
    """Generates a single 16:9 still frame."""

    def __init__(self, model: str = "imagen-4.0-generate-001", api_key: str = "", aspect_ratio: str = "16:9", **kwargs: Any):
        self._model = model
        self._api_key = api_key
        self._aspect_ratio = aspect_ratio

    async def generate(self, prompt: str) -> VideoArtifact:
        from google import genai
        from google.genai import types

        client = genai.Client(api_key=self._api_key)
        try:
            resp = await client.aio.models.generate_images(
                model=self._model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1, aspect_ratio=self._aspect_ratio,
                ),
            )
        except Exception as e:
            raise translate_error(e, "google") from e

        images = getattr(resp, "generated_images", None) or []
        image = images[0].image if images else None
        if image is None:
            raise ProviderError("Imagen returned no image", ErrorKind.NULL_RESPONSE, "google")
        if getattr(image, "gcs_uri", None):
            return VideoArtifact(uri=image.gcs_uri, mime_type=image.mime_type or "image/png")

        mime = image.mime_type or "image/png"
        encoded = base64.b64encode(image.image_bytes).decode("ascii")
        return VideoArtifact(uri=f"data:{mime};base64,{encoded}", mime_type=mime)
