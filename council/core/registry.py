"""Provider catalog grouped by cost tier.

Provides:
- PROVIDER_CATALOG: declaration-ordered catalog entries per tier
- ProviderRegistry: read-only, tier-keyed view built once at startup
- sandbox_provider(): synthetic zero-cost descriptor for mock execution

Model ids are read from env vars so deployments can swap models without
code changes. A free-tier entry whose id resolves empty stays in the
catalog but is invisible to selection; a paid-tier entry that resolves
empty is a configuration error.
"""

import logging
import os
from collections.abc import Mapping
from types import MappingProxyType

from .errors import ConfigurationError
from .models import ProviderDescriptor, Tier

logger = logging.getLogger(__name__)


# Each entry: key → (display name, env var, default id, cost per call, capabilities)
# Declaration order is the scan order for first_available().
PROVIDER_CATALOG: dict[Tier, dict[str, tuple]] = {
    Tier.PAID: {
        "STRATEGY": (
            "GPT-4o",
            "GPT_MODEL",
            "openai/gpt-4o",
            0.5,
            ("strategy", "planning", "analysis"),
        ),
        "ARCHITECT": (
            "Claude 3.5 Sonnet",
            "CLAUDE_MODEL",
            "anthropic/claude-3.5-sonnet",
            0.3,
            ("architecture", "code-review", "documentation"),
        ),
        "AUDITOR": (
            "Gemini 2.0 Flash",
            "GEMINI_MODEL",
            "google/gemini-2.0-flash-exp",
            0.1,
            ("audit", "verification", "security"),
        ),
        "DEVELOPER": (
            "GPT-4o",
            "CODEX_MODEL",
            "openai/gpt-4o",
            0.5,
            ("coding", "debugging", "optimization"),
        ),
    },
    Tier.ELITE_RESERVE: {
        "REASONING": (
            "DeepSeek R1",
            "DEEPSEEK_MODEL",
            "deepseek/deepseek-r1:free",
            0.0,
            ("reasoning", "analysis", "problem-solving"),
        ),
        "GENERAL_INTELLIGENCE": (
            "LLaMA 3.3 70B",
            "LLAMA_MODEL",
            "meta-llama/llama-3.3-70b-instruct:free",
            0.0,
            ("general", "conversation", "knowledge"),
        ),
        "CRITICAL_REVIEW": (
            "Hermes 3 405B",
            "HERMES_MODEL",
            "nousresearch/hermes-3-llama-3.1-405b:free",
            0.0,
            ("review", "critique", "improvement"),
        ),
        "CODE_BACKUP": (
            "Qwen 2.5 72B",
            "QWEN_MODEL",
            "qwen/qwen-2.5-72b-instruct:free",
            0.0,
            ("coding", "multilingual", "math"),
        ),
        "OPEN_STRATEGY": (
            "GPT-OSS",
            "GPT_OSS_FREE",
            "",
            0.0,
            ("strategy", "planning"),
        ),
    },
    Tier.FAST_OPS: {
        "QUICK_AUDIT": (
            "Gemini Flash",
            "GEMINI_FLASH_FREE",
            "google/gemini-2.0-flash-exp:free",
            0.0,
            ("quick-check", "validation"),
        ),
        "RAPID_ENGINEER": (
            "GPT-4o Mini",
            "O4_ENGINEER_MODEL",
            "openai/gpt-4o-mini",
            0.02,
            ("quick-code", "fixes", "snippets"),
        ),
        "DATA_SPECIALIST": (
            "Mistral Small",
            "DEVSTRAL_MODEL",
            "mistralai/mistral-small-3.1-24b-instruct:free",
            0.0,
            ("data-processing", "formatting", "extraction"),
        ),
    },
}

_TIER_ORDER = (Tier.PAID, Tier.ELITE_RESERVE, Tier.FAST_OPS)
_FREE_FIRST_ORDER = (Tier.ELITE_RESERVE, Tier.FAST_OPS, Tier.PAID)

SANDBOX_PROVIDER_PREFIX = "sandbox/"


def sandbox_provider(role: str = "primary") -> ProviderDescriptor:
    """Synthetic provider used for mock execution. Always free."""
    return ProviderDescriptor(
        name=f"Sandbox {role.capitalize()}",
        provider_id=f"{SANDBOX_PROVIDER_PREFIX}mock-{role}",
        tier=Tier.SANDBOX,
        cost_per_call=0.0,
        key=f"SANDBOX_{role.upper()}",
    )


class ProviderRegistry:
    """Immutable tier → {key → ProviderDescriptor} catalog.

    Read-only after construction, so it needs no locking.
    """

    def __init__(self, tiers: Mapping[Tier, Mapping[str, ProviderDescriptor]]) -> None:
        self._tiers: Mapping[Tier, Mapping[str, ProviderDescriptor]] = MappingProxyType(
            {tier: MappingProxyType(dict(tiers.get(tier, {}))) for tier in _TIER_ORDER}
        )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        require_paid: bool = True,
    ) -> "ProviderRegistry":
        """Build the registry from PROVIDER_CATALOG and env overrides.

        Args:
            environ: Env mapping to read model ids from (defaults to os.environ)
            require_paid: Fail if a paid-tier id resolves empty (live mode)

        Raises:
            ConfigurationError: If a required paid-tier provider is unset
        """
        env = os.environ if environ is None else environ
        tiers: dict[Tier, dict[str, ProviderDescriptor]] = {}
        missing_paid: list[str] = []

        for tier, entries in PROVIDER_CATALOG.items():
            tiers[tier] = {}
            for key, (name, env_var, default, cost, capabilities) in entries.items():
                provider_id = env.get(env_var, default)
                provider_id = (provider_id or "").strip()
                if not provider_id:
                    if tier is Tier.PAID:
                        missing_paid.append(env_var)
                    else:
                        logger.debug(f"[registry] {tier.value}.{key} unset ({env_var}), treating as absent")
                tiers[tier][key] = ProviderDescriptor(
                    name=name,
                    provider_id=provider_id,
                    tier=tier,
                    cost_per_call=cost,
                    key=key,
                    capabilities=capabilities,
                )

        if missing_paid and require_paid:
            raise ConfigurationError(
                f"Missing model id for paid-tier provider(s): {', '.join(missing_paid)}"
            )
        return cls(tiers)

    def tier(self, tier: Tier) -> Mapping[str, ProviderDescriptor]:
        """All descriptors in a tier, configured or not, in declaration order."""
        return self._tiers.get(tier, MappingProxyType({}))

    def get(self, tier: Tier, key: str) -> ProviderDescriptor | None:
        return self.tier(tier).get(key)

    def first_available(self, tier: Tier) -> ProviderDescriptor | None:
        """First configured descriptor in the tier, or None."""
        for provider in self.tier(tier).values():
            if provider.is_configured:
                return provider
        return None

    def all_providers(self, configured_only: bool = True) -> list[ProviderDescriptor]:
        providers = []
        for tier in _TIER_ORDER:
            for provider in self._tiers[tier].values():
                if provider.is_configured or not configured_only:
                    providers.append(provider)
        return providers

    def find_by_capability(
        self, capability: str, prefer_free: bool = False
    ) -> ProviderDescriptor | None:
        """First configured provider advertising a capability.

        Scans paid tier first, or free tiers first when prefer_free is set.
        """
        order = _FREE_FIRST_ORDER if prefer_free else _TIER_ORDER
        for tier in order:
            for provider in self._tiers[tier].values():
                if provider.is_configured and capability in provider.capabilities:
                    return provider
        return None
