# src/llm/errors.py - v1
"""Typed provider errors.

Adapters translate SDK exceptions into ProviderError with an ErrorKind,
so retry and escalation policies never inspect provider message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Provider-neutral failure categories."""

    RATE_LIMIT = "rate_limit"
    SEED_NOT_READY = "seed_not_ready"
    TIMEOUT = "timeout"
    SERVER = "server_error"
    SAFETY = "safety_block"
    INVALID_REQUEST = "invalid_request"
    NULL_RESPONSE = "null_response"
    UNKNOWN = "unknown"


class ProviderError(Exception):
    """Failure reported by an external model/media service."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.UNKNOWN, provider: str = ""):
        self.kind = kind
        self.provider = provider
        super().__init__(message)


def classify_failure(message: str, code: object = None, name: str = "") -> ErrorKind:
    """Classify a provider failure from its message, status code and type name."""
    msg = message.lower()
    name = name.lower()

    if code == 429 or "429" in msg or "resource_exhausted" in msg or "quota" in msg:
        return ErrorKind.RATE_LIMIT
    if "rate" in msg and "limit" in msg:
        return ErrorKind.RATE_LIMIT
    # Veo rejects a seed video that has not finished server-side processing.
    if "processed" in msg or "not ready" in msg or "still processing" in msg:
        return ErrorKind.SEED_NOT_READY
    if "timeout" in name or "timeout" in msg or "deadline" in msg:
        return ErrorKind.TIMEOUT
    if isinstance(code, int) and code >= 500:
        return ErrorKind.SERVER
    if any(c in msg for c in ("500", "502", "503", "504", "unavailable", "internal")):
        return ErrorKind.SERVER
    if "safety" in msg or "blocked" in msg:
        return ErrorKind.SAFETY
    if isinstance(code, int) and 400 <= code < 500:
        return ErrorKind.INVALID_REQUEST
    return ErrorKind.UNKNOWN


def translate_error(error: BaseException, provider: str) -> ProviderError:
    """Map an SDK exception onto a ProviderError.

    Only adapters call this; it is the single place where provider
    message text is inspected.
    """
    if isinstance(error, ProviderError):
        return error
    code = getattr(error, "code", None) or getattr(error, "status_code", None)
    kind = classify_failure(str(error), code, type(error).__name__)
    return ProviderError(str(error) or type(error).__name__, kind, provider)


def error_kind(error: BaseException) -> ErrorKind:
    """Return the ErrorKind of an exception (UNKNOWN for untyped errors)."""
    if isinstance(error, ProviderError):
        return error.kind
    if isinstance(error, TimeoutError):
        return ErrorKind.TIMEOUT
    return ErrorKind.UNKNOWN


def is_rate_limited(error: BaseException) -> bool:
    """Default retry classifier for the backoff executor."""
    return error_kind(error) is ErrorKind.RATE_LIMIT
