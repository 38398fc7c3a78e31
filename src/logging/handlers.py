# src/logging/handlers.py - v2
"""Size-based rotating file handler for the process log."""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_UNITS = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size: str) -> int:
    """'10MB' -> bytes. Accepts KB, MB and GB, case-insensitive."""
    match = re.fullmatch(r"\s*(\d+)\s*(KB|MB|GB)\s*", size, re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid size {size!r}; expected e.g. '10MB'")
    return int(match.group(1)) * _UNITS[match.group(2).upper()]


def create_rotating_handler(log_file: str | Path, rotation: str = "10MB", retention: int = 10) -> RotatingFileHandler:
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )
