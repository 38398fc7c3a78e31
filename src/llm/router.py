# src/llm/router.py - v1
"""Model fallback router: two-level resilience for text-model calls.

Within a tier, rate-limit failures are retried by the backoff executor.
When a tier gives up, the router escalates to the next (cheaper) tier and
stays there: the cursor is sticky and only moves forward. One router
instance belongs to one pipeline run, so concurrent runs never share a
cursor.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from visionnarrate.config.settings import Settings
from visionnarrate.core.models import Artifact, ModelTier
from visionnarrate.llm.base_client import BaseLLMClient
from visionnarrate.llm.client_factory import create_llm_client
from visionnarrate.llm.errors import is_rate_limited
from visionnarrate.llm.models import Message, SpeechResult
from visionnarrate.llm.retry import DEFAULT_BACKOFF, BackoffConfig, SleepFn, with_backoff
from visionnarrate.media.base_clients import BaseSpeechClient
from visionnarrate.tracking.logbook import LogBook

logger = logging.getLogger(__name__)

_SOURCE = "MODEL_ROUTER"

ClientFactory = Callable[..., BaseLLMClient]


class TiersExhaustedError(Exception):
    """Every model tier failed for one operation."""

    def __init__(self, operation: str, failures: list[tuple[ModelTier, BaseException]]):
        self.operation = operation
        self.failures = failures
        detail = "; ".join(
            f"{tier.label} {tier.model_id}: {error}" for tier, error in failures
        )
        super().__init__(f"All model tiers exhausted for '{operation}': {detail}")


class ModelFallbackRouter:
    """Executes prompts against an ordered list of model tiers.

    Args:
        tiers: Tier catalogue, most capable first.
        logbook: Run log book receiving INFO/WARN entries.
        settings: Used to build clients and backoff parameters.
        clients: Pre-built clients keyed by model_id (skips the factory).
        speech_client: Text-to-speech service for generate_speech().
        client_factory: Override for create_llm_client.
        sleep: Awaitable sleep used between retries.
    """

    def __init__(
        self,
        tiers: list[ModelTier],
        logbook: LogBook,
        settings: Settings | None = None,
        clients: dict[str, BaseLLMClient] | None = None,
        speech_client: BaseSpeechClient | None = None,
        client_factory: ClientFactory = create_llm_client,
        is_retryable: Callable[[BaseException], bool] = is_rate_limited,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        if not tiers:
            raise ValueError("ModelFallbackRouter requires at least one tier")
        self._tiers = sorted(tiers, key=lambda t: t.rank)
        self._logbook = logbook
        self._settings = settings
        self._clients: dict[str, BaseLLMClient] = dict(clients or {})
        self._speech = speech_client
        self._client_factory = client_factory
        self._is_retryable = is_retryable
        self._sleep = sleep
        self._backoff = backoff_from(settings)
        self._index = 0
        self._logbook.set_active_tier(self.current_tier)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def tiers(self) -> list[ModelTier]:
        return list(self._tiers)

    @property
    def tier_index(self) -> int:
        return self._index

    @property
    def current_tier(self) -> ModelTier:
        return self._tiers[self._index]

    def reset(self) -> None:
        """Return the cursor to the most capable tier."""
        self._index = 0
        self._logbook.set_active_tier(self.current_tier)

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    async def execute(
        self,
        operation_name: str,
        prompt: str,
        system: str | None = None,
        json_output: bool = False,
    ) -> str:
        """Run a prompt, escalating across tiers until one succeeds.

        Raises:
            TiersExhaustedError: If every remaining tier failed.
        """
        failures: list[tuple[ModelTier, BaseException]] = []
        messages = [Message(role="user", content=prompt)]

        while self._index < len(self._tiers):
            tier = self._tiers[self._index]
            self._logbook.set_active_tier(tier)
            try:
                client = self._client_for(tier)
                response = await with_backoff(
                    client.complete,
                    messages,
                    system=system,
                    json_output=json_output,
                    operation=f"{operation_name}@{tier.model_id}",
                    is_retryable=self._is_retryable,
                    config=self._backoff,
                    on_retry=self._retry_hook(tier),
                    sleep=self._sleep,
                )
            except Exception as e:
                failures.append((tier, e))
                has_next = self._index + 1 < len(self._tiers)
                self._logbook.warn(
                    f"{tier.label} ({tier.display_name}) exhausted for '{operation_name}': {e}"
                    + (". Escalating to next tier." if has_next else ". No tiers left."),
                    _SOURCE,
                    recovery=has_next,
                )
                self._index += 1
                continue

            self._logbook.info(
                f"'{operation_name}' completed on {tier.label} ({tier.display_name})",
                _SOURCE,
                artifact=Artifact(
                    stage=operation_name,
                    payload_type="prompt_response",
                    payload={
                        "model": tier.model_id,
                        "prompt": prompt,
                        "response": response.content,
                    },
                ),
            )
            return response.content

        # Clamp so later best-effort calls can still reach the last tier.
        self._index = len(self._tiers) - 1
        self._logbook.set_active_tier(self.current_tier)
        raise TiersExhaustedError(operation_name, failures)

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    async def generate_speech(self, text: str) -> SpeechResult | None:
        """Best-effort text-to-speech. Returns None instead of raising."""
        if self._speech is None:
            self._logbook.warn("No speech client configured; skipping narration audio.", _SOURCE)
            return None
        if not text.strip():
            self._logbook.warn("Empty narration text; skipping speech synthesis.", _SOURCE)
            return None

        try:
            result = await with_backoff(
                self._speech.synthesize,
                text,
                operation="speech",
                is_retryable=self._is_retryable,
                config=self._backoff,
                on_retry=self._retry_hook(None),
                sleep=self._sleep,
            )
        except Exception as e:
            self._logbook.warn(f"Speech synthesis failed: {e}", _SOURCE)
            return None

        self._logbook.info(
            f"Speech synthesized ({len(result.audio)} bytes, {result.sample_rate_hz} Hz)",
            _SOURCE,
        )
        return result

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _client_for(self, tier: ModelTier) -> BaseLLMClient:
        client = self._clients.get(tier.model_id)
        if client is None:
            client = self._client_factory(tier.provider, tier.model_id, self._settings)
            self._clients[tier.model_id] = client
        return client

    def _retry_hook(self, tier: ModelTier | None) -> Callable[[int, float, BaseException], None]:
        target = f"{tier.label} ({tier.display_name})" if tier else "speech"

        def hook(attempt: int, delay: float, error: BaseException) -> None:
            self._logbook.warn(
                f"Rate limited on {target} (attempt {attempt + 1}); backing off {delay:.1f}s",
                "BACKOFF",
            )

        return hook


def backoff_from(settings: Settings | None) -> BackoffConfig:
    if settings is None:
        return DEFAULT_BACKOFF
    return BackoffConfig(
        initial_delay_s=settings.backoff_initial_delay_s,
        max_attempts=settings.backoff_max_attempts,
        max_jitter_s=settings.backoff_max_jitter_s,
    )
