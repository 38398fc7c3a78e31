# src/pipeline/synthesis/polling.py - v1
"""Cooperative long-poll of a synthesis operation."""

from __future__ import annotations

import time
from typing import Callable

from visionnarrate.core.models import SynthesisOperation
from visionnarrate.llm.errors import ErrorKind, ProviderError
from visionnarrate.llm.retry import DEFAULT_BACKOFF, BackoffConfig, RetryHook, SleepFn, with_backoff
from visionnarrate.media.base_clients import BaseVideoClient


async def poll_until_done(
    client: BaseVideoClient,
    operation: SynthesisOperation,
    *,
    interval_s: float,
    sleep: SleepFn,
    timeout_s: float | None = None,
    backoff: BackoffConfig = DEFAULT_BACKOFF,
    on_retry: RetryHook | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> SynthesisOperation:
    """Wait ``interval_s`` between checks until the operation is done.

    With ``timeout_s=None`` there is no wall-clock bound.

    Raises:
        ProviderError: TIMEOUT kind when ``timeout_s`` elapses, or any
            non-retryable error from the poll call itself.
    """
    started = clock()
    op = operation
    while not op.done:
        if timeout_s is not None and clock() - started >= timeout_s:
            raise ProviderError(
                f"Operation {op.name} still running after {timeout_s:.0f}s",
                ErrorKind.TIMEOUT,
            )
        await sleep(interval_s)
        op = await with_backoff(
            client.poll,
            op,
            operation=f"poll:{op.name}",
            config=backoff,
            on_retry=on_retry,
            sleep=sleep,
        )
    return op
