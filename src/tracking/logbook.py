# src/tracking/logbook.py - v1
"""Append-only run log book.

Every LogEntry is tagged with the model tier active at emission time and
mirrored into python logging. The book also counts recoveries: faults
that were absorbed without failing the run.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any

from visionnarrate.core.models import Artifact, LogEntry, LogLevel, ModelTier

logger = logging.getLogger(__name__)

_PY_LEVELS: dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


class LogBook:
    """Accumulates LogEntry records during a pipeline run."""

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or f"trace_{uuid.uuid4().hex[:8]}"
        self._entries: list[LogEntry] = []
        self._active_tier: ModelTier | None = None
        self._recoveries = 0

    def set_active_tier(self, tier: ModelTier | None) -> None:
        self._active_tier = tier

    def add(
        self,
        level: LogLevel,
        message: str,
        source: str,
        artifact: Artifact | None = None,
        recovery: bool = False,
    ) -> LogEntry:
        """Append an entry; ``recovery=True`` also bumps the recovery count."""
        tier = self._active_tier
        entry = LogEntry(
            level=level,
            message=message,
            source=source,
            model_tier=tier.label if tier else None,
            model_name=tier.model_id if tier else None,
            artifact=artifact,
            trace_id=self.trace_id,
        )
        self._entries.append(entry)
        if recovery:
            self._recoveries += 1

        logger.log(
            _PY_LEVELS[level],
            "[%s] %s", source, message,
            extra={"data": {"trace_id": self.trace_id, "tier": entry.model_tier}},
        )
        return entry

    def debug(self, message: str, source: str, **kwargs: Any) -> LogEntry:
        return self.add(LogLevel.DEBUG, message, source, **kwargs)

    def info(self, message: str, source: str, **kwargs: Any) -> LogEntry:
        return self.add(LogLevel.INFO, message, source, **kwargs)

    def warn(self, message: str, source: str, **kwargs: Any) -> LogEntry:
        return self.add(LogLevel.WARN, message, source, **kwargs)

    def error(self, message: str, source: str, **kwargs: Any) -> LogEntry:
        return self.add(LogLevel.ERROR, message, source, **kwargs)

    @property
    def entries(self) -> list[LogEntry]:
        """Snapshot of all entries, oldest first."""
        return list(self._entries)

    @property
    def recoveries(self) -> int:
        return self._recoveries

    def __len__(self) -> int:
        return len(self._entries)

    def to_jsonl(self) -> str:
        return "".join(e.model_dump_json() + "\n" for e in self._entries)


def load_entries(path: Path) -> list[LogEntry]:
    """Read a JSON Lines log export back into LogEntry objects."""
    entries: list[LogEntry] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if line.strip():
            entries.append(LogEntry.model_validate(json.loads(line)))
    return entries
