# src/llm/config.py - v2
"""Model tier catalogue and resolution.

Resolution order:
  1. MODEL_TIERS override ("google:gemini-2.5-pro,openai:gpt-4o")
  2. Built-in Gemini catalogue (DEFAULT_TIERS)
"""

from __future__ import annotations

from visionnarrate.config.settings import Settings
from visionnarrate.core.models import ModelTier

DEFAULT_TIERS: tuple[ModelTier, ...] = (
    ModelTier(
        model_id="gemini-3-pro-preview",
        display_name="Gemini 3 Pro",
        rank=0,
        context_window=1_048_576,
        provider="google",
    ),
    ModelTier(
        model_id="gemini-2.5-pro",
        display_name="Gemini 2.5 Pro",
        rank=1,
        context_window=1_048_576,
        provider="google",
    ),
    ModelTier(
        model_id="gemini-2.5-flash",
        display_name="Gemini 2.5 Flash",
        rank=2,
        context_window=1_048_576,
        provider="google",
    ),
    ModelTier(
        model_id="gemini-2.5-flash-lite",
        display_name="Gemini 2.5 Flash Lite",
        rank=3,
        context_window=1_048_576,
        provider="google",
    ),
)

_CONTEXT_WINDOWS: dict[str, int] = {
    tier.model_id: tier.context_window for tier in DEFAULT_TIERS
}
_CONTEXT_WINDOWS.update({"gpt-4o": 128_000, "gpt-4o-mini": 128_000})


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if malformed."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    provider, model = provider.strip(), model.strip()
    if not provider or not model:
        return None
    return (provider, model)


def resolve_tiers(settings: Settings | None = None) -> list[ModelTier]:
    """Resolve the ordered tier list (most capable first).

    Malformed override entries are skipped; if none survive, the
    built-in catalogue is used.
    """
    overrides = settings.model_tiers_list if settings is not None else []
    tiers: list[ModelTier] = []
    for value in overrides:
        parsed = _parse_assignment(value)
        if parsed is None:
            continue
        provider, model = parsed
        tiers.append(
            ModelTier(
                model_id=model,
                display_name=model,
                rank=len(tiers),
                context_window=_CONTEXT_WINDOWS.get(model, 0),
                provider=provider,
            )
        )
    return tiers or list(DEFAULT_TIERS)
