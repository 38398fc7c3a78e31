# tests/unit/llm/test_unit_client_factory.py - v1
"""Tests for llm/client_factory.py - provider registry."""

from __future__ import annotations

import pytest

from visionnarrate.config.settings import Settings
from visionnarrate.llm.adapters.google_adapter import GoogleAdapter
from visionnarrate.llm.adapters.openai_adapter import OpenAIAdapter
from visionnarrate.llm.client_factory import (
    UnsupportedProviderError,
    create_llm_client,
    register_provider,
)


class TestCreateLLMClient:
    def test_google(self):
        client = create_llm_client("google", "gemini-2.5-flash", Settings(_env_file=None, google_api_key="g"))
        assert isinstance(client, GoogleAdapter)
        assert client.model == "gemini-2.5-flash"
        assert client.provider_name == "google"

    def test_openai(self):
        client = create_llm_client("openai", "gpt-4o", Settings(_env_file=None, openai_api_key="o"))
        assert isinstance(client, OpenAIAdapter)
        assert client.model == "gpt-4o"

    def test_unknown_provider(self):
        with pytest.raises(UnsupportedProviderError, match="Available"):
            create_llm_client("nope", "model")

    def test_register_custom_provider(self):
        register_provider("custom", "visionnarrate.llm.adapters.google_adapter.GoogleAdapter")
        client = create_llm_client("custom", "any-model")
        assert isinstance(client, GoogleAdapter)
