# tests/unit/llm/test_unit_config.py - v1
"""Tests for llm/config.py - tier catalogue resolution."""

from __future__ import annotations

from visionnarrate.config.settings import Settings
from visionnarrate.llm.config import DEFAULT_TIERS, resolve_tiers


class TestResolveTiers:
    def test_default_catalogue(self):
        tiers = resolve_tiers(Settings(_env_file=None))
        assert tiers == list(DEFAULT_TIERS)
        assert tiers[0].model_id == "gemini-3-pro-preview"
        assert [t.rank for t in tiers] == list(range(len(tiers)))

    def test_no_settings(self):
        assert resolve_tiers() == list(DEFAULT_TIERS)

    def test_override_order_and_ranks(self):
        s = Settings(_env_file=None, model_tiers="google:gemini-2.5-pro, openai:gpt-4o")
        tiers = resolve_tiers(s)
        assert [(t.provider, t.model_id, t.label) for t in tiers] == [
            ("google", "gemini-2.5-pro", "TIER_0"),
            ("openai", "gpt-4o", "TIER_1"),
        ]
        assert tiers[1].context_window == 128_000

    def test_malformed_entries_skipped(self):
        s = Settings(_env_file=None, model_tiers="nonsense,:x,openai:gpt-4o-mini")
        tiers = resolve_tiers(s)
        assert [t.model_id for t in tiers] == ["gpt-4o-mini"]
        assert tiers[0].rank == 0

    def test_all_malformed_falls_back(self):
        s = Settings(_env_file=None, model_tiers="garbage")
        assert resolve_tiers(s) == list(DEFAULT_TIERS)
