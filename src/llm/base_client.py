# src/llm/base_client.py - v2
"""Abstract text-model client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from visionnarrate.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all text model providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 8192,
        temperature: float = 0.4,
        json_output: bool = False,
    ) -> LLMResponse:
        """Text completion.

        Implementations raise ProviderError (never raw SDK exceptions).
        """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (google, openai)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier this client targets."""
