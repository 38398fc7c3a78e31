# src/pipeline/normalizer.py - v1
"""Extract a structured (JSON-like) payload from free-form model output.

Models wrap JSON in code fences or surround it with prose. Strategy:
fenced content first, then the outermost balanced bracket/brace region,
then the stripped text. Never raises; callers validate the result.
"""

from __future__ import annotations

import json
import re

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\n?(.*?)```", re.DOTALL)
_OPENERS = {"[": "]", "{": "}"}


def extract_structured_payload(text: str | None) -> str:
    """Return the best-effort structured payload contained in ``text``.

    Idempotent: feeding the result back in returns it unchanged.
    """
    if not text:
        return ""

    candidate = text.strip()
    fenced = _FENCE_RE.search(candidate)
    if fenced and fenced.group(1).strip():
        candidate = fenced.group(1).strip()

    region = _outermost_region(candidate)
    return region if region is not None else candidate


def _outermost_region(text: str) -> str | None:
    """Find the first balanced region that parses as JSON.

    Falls back to the first balanced region at all when none parses.
    """
    first_balanced: str | None = None
    pos = 0
    while pos < len(text):
        start = _next_opener(text, pos)
        if start < 0:
            break
        end = _match_close(text, start)
        if end < 0:
            pos = start + 1
            continue
        region = text[start:end + 1]
        if _parses(region):
            return region
        if first_balanced is None:
            first_balanced = region
        pos = start + 1
    return first_balanced


def _next_opener(text: str, pos: int) -> int:
    hits = [i for i in (text.find("[", pos), text.find("{", pos)) if i >= 0]
    return min(hits) if hits else -1


def _match_close(text: str, start: int) -> int:
    """Index of the bracket closing ``text[start]``, or -1 if unbalanced."""
    stack = [_OPENERS[text[start]]]
    in_string = False
    escaped = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif ch in ("]", "}"):
            if ch != stack[-1]:
                return -1
            stack.pop()
            if not stack:
                return i
    return -1


def _parses(region: str) -> bool:
    try:
        json.loads(region)
    except ValueError:
        return False
    return True
