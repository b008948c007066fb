"""Tests for the provider registry."""

import pytest

from council.core.errors import ConfigurationError
from council.core.models import Tier
from council.core.registry import PROVIDER_CATALOG, ProviderRegistry, sandbox_provider


class TestFromEnv:
    def test_defaults(self):
        registry = ProviderRegistry.from_env({})
        strategy = registry.get(Tier.PAID, "STRATEGY")
        assert strategy.provider_id == "openai/gpt-4o"
        assert strategy.cost_per_call == 0.5
        assert registry.get(Tier.FAST_OPS, "RAPID_ENGINEER").cost_per_call == 0.02

    def test_env_override(self):
        registry = ProviderRegistry.from_env({"DEEPSEEK_MODEL": "deepseek/other:free"})
        assert registry.get(Tier.ELITE_RESERVE, "REASONING").provider_id == "deepseek/other:free"

    def test_every_catalog_entry_present(self):
        registry = ProviderRegistry.from_env({})
        for tier, entries in PROVIDER_CATALOG.items():
            assert list(registry.tier(tier)) == list(entries)

    def test_missing_paid_id_fails_fast(self):
        with pytest.raises(ConfigurationError, match="CLAUDE_MODEL"):
            ProviderRegistry.from_env({"CLAUDE_MODEL": ""})

    def test_missing_paid_id_tolerated_when_not_required(self):
        registry = ProviderRegistry.from_env({"CLAUDE_MODEL": ""}, require_paid=False)
        assert not registry.get(Tier.PAID, "ARCHITECT").is_configured


class TestFirstAvailable:
    def test_declaration_order(self):
        registry = ProviderRegistry.from_env({})
        assert registry.first_available(Tier.ELITE_RESERVE).key == "REASONING"

    def test_skips_unconfigured(self):
        registry = ProviderRegistry.from_env({"DEEPSEEK_MODEL": ""})
        assert registry.first_available(Tier.ELITE_RESERVE).key == "GENERAL_INTELLIGENCE"

    def test_empty_tier_returns_none(self):
        registry = ProviderRegistry.from_env(
            {"GEMINI_FLASH_FREE": "", "O4_ENGINEER_MODEL": "", "DEVSTRAL_MODEL": ""}
        )
        assert registry.first_available(Tier.FAST_OPS) is None


class TestLookups:
    def test_all_providers_hides_unconfigured(self):
        registry = ProviderRegistry.from_env({})
        keys = [p.key for p in registry.all_providers()]
        assert "OPEN_STRATEGY" not in keys
        assert "OPEN_STRATEGY" in [p.key for p in registry.all_providers(configured_only=False)]

    def test_find_by_capability(self):
        registry = ProviderRegistry.from_env({})
        assert registry.find_by_capability("coding").key == "DEVELOPER"
        assert registry.find_by_capability("coding", prefer_free=True).key == "CODE_BACKUP"
        assert registry.find_by_capability("telepathy") is None

    def test_registry_is_read_only(self):
        registry = ProviderRegistry.from_env({})
        with pytest.raises(TypeError):
            registry.tier(Tier.PAID)["NEW"] = sandbox_provider()


def test_sandbox_provider_is_free():
    provider = sandbox_provider("auditor")
    assert provider.provider_id == "sandbox/mock-auditor"
    assert provider.tier is Tier.SANDBOX
    assert provider.cost_per_call == 0
    assert provider.is_configured
