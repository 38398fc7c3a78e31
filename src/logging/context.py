# src/logging/context.py - v2
"""Run-scoped logging context: run_id, stage and component on every record."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Iterator

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar("stage", default=None)
_component: contextvars.ContextVar[str | None] = contextvars.ContextVar("component", default=None)


@dataclass(frozen=True)
class LogContext:
    """Snapshot of the current context variables."""

    run_id: str | None = None
    stage: str | None = None
    component: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


def get_context() -> LogContext:
    return LogContext(run_id=_run_id.get(), stage=_stage.get(), component=_component.get())


def set_stage(stage: str | None, component: str | None = None) -> None:
    """Tag subsequent records with a pipeline stage (and optionally a component)."""
    _stage.set(stage)
    _component.set(component)


@contextmanager
def run_context(run_id: str) -> Iterator[LogContext]:
    """Bind ``run_id`` for the duration of a pipeline run.

    Each asyncio task gets its own copy of the variables, so concurrent
    runs keep their own tags.
    """
    tokens = (_run_id.set(run_id), _stage.set(None), _component.set(None))
    try:
        yield get_context()
    finally:
        _component.reset(tokens[2])
        _stage.reset(tokens[1])
        _run_id.reset(tokens[0])
