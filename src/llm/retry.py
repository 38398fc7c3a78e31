# src/llm/retry.py - v2
"""Retry with exponential backoff for any fallible async operation.

Delay for attempt i (0-based) is ``initial_delay_s * 2**i`` plus a uniform
jitter in ``[0, max_jitter_s]``. Only errors accepted by the ``is_retryable``
classifier are retried; anything else propagates unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from visionnarrate.llm.errors import is_rate_limited

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]
RetryHook = Callable[[int, float, BaseException], None]


class RetryExhausted(Exception):
    """All attempts failed with retryable errors."""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"'{operation}' failed after {attempts} attempts: {last_error}"
        )


@dataclass(frozen=True)
class BackoffConfig:
    """Backoff parameters."""

    initial_delay_s: float = 2.0
    max_attempts: int = 3
    max_jitter_s: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_s < 0 or self.max_jitter_s < 0:
            raise ValueError("delays must be non-negative")


DEFAULT_BACKOFF = BackoffConfig()


def compute_delay(config: BackoffConfig, attempt: int) -> float:
    """Compute delay before retrying after the given attempt (0-based)."""
    jitter = random.uniform(0.0, config.max_jitter_s) if config.max_jitter_s else 0.0  # noqa: S311
    return config.initial_delay_s * (2 ** attempt) + jitter


async def with_backoff(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    operation: str = "unknown",
    is_retryable: Callable[[BaseException], bool] = is_rate_limited,
    config: BackoffConfig = DEFAULT_BACKOFF,
    on_retry: RetryHook | None = None,
    sleep: SleepFn = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Execute an async function, retrying retryable failures.

    Raises:
        RetryExhausted: If every attempt failed with a retryable error.
        Exception: The original error when it is not retryable.
    """
    attempt = 0
    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            if not is_retryable(e):
                raise
            if attempt + 1 >= config.max_attempts:
                raise RetryExhausted(operation, attempt + 1, e) from e

            delay = compute_delay(config, attempt)
            logger.warning(
                "'%s' retryable failure (attempt %d/%d), retrying in %.1fs: %s",
                operation, attempt + 1, config.max_attempts, delay, e,
            )
            if on_retry is not None:
                on_retry(attempt, delay, e)
            await sleep(delay)
            attempt += 1
