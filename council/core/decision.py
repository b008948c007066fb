"""Decision engine: pick providers for a task under the current budget.

One decision per call. The only state consulted is the registry (fixed)
and the ledger's cost signal (live), which is what closes the loop with
the executor: every recorded call can tip the next decision into free
routing.
"""

import logging

from .ledger import Ledger
from .models import (
    DecisionMeta,
    ProviderDescriptor,
    RoutingDecision,
    TaskType,
)
from .policy import AUDITOR_FALLBACK_TIER, FALLBACK_CHAIN, policy_for
from .registry import ProviderRegistry, sandbox_provider

logger = logging.getLogger(__name__)


def _usable(provider: ProviderDescriptor | None) -> bool:
    return provider is not None and provider.is_configured


class DecisionEngine:
    """Routes tasks to providers using the policy table and cost signal.

    Args:
        registry: Provider catalog
        ledger: Ledger whose cost signal drives free/paid branching
        sandbox_mode: Route everything to synthetic sandbox providers
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        ledger: Ledger,
        *,
        sandbox_mode: bool = False,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._sandbox_mode = sandbox_mode

    @property
    def sandbox_mode(self) -> bool:
        return self._sandbox_mode

    def decide(
        self,
        task_type: TaskType | str,
        domain: str = "",
        requires_audit: bool = False,
        prefer_free: bool = False,
    ) -> RoutingDecision:
        """Select a primary (and optionally an auditor) provider.

        Never raises and never returns a decision without a primary.
        """
        parsed = TaskType.parse(task_type)
        task_label = parsed.value if parsed else str(task_type)
        if parsed is None:
            logger.warning(f"[council] Unknown task type {task_type!r}, using default routing")

        if self._sandbox_mode:
            return self._sandbox_decision(task_label, domain, requires_audit)

        should_use_free = self._ledger.get_cost_signal().is_low_balance or prefer_free

        primary = policy_for(parsed).rule(should_use_free).select(self._registry)
        if not _usable(primary):
            primary = self._fallback_primary(task_label)

        auditor = None
        if requires_audit and parsed is not TaskType.AUDIT:
            auditor = self._select_auditor(should_use_free)

        # Re-read: the balance may have moved while we were selecting
        signal = self._ledger.get_cost_signal()
        logger.info(
            f"[council] {task_label} for {domain or '-'} → {primary.name} ({primary.tier.value})"
            + (f", auditor {auditor.name}" if auditor else "")
            + (" [low balance]" if signal.is_low_balance else "")
        )
        return RoutingDecision(
            domain=domain,
            task_type=task_label,
            primary=primary,
            auditor=auditor,
            meta=DecisionMeta(
                low_balance=signal.is_low_balance,
                tier=primary.tier,
                sandbox_mode=False,
            ),
        )

    def _fallback_primary(self, task_label: str) -> ProviderDescriptor:
        for tier in FALLBACK_CHAIN:
            candidate = self._registry.first_available(tier)
            if _usable(candidate):
                logger.warning(
                    f"[council] Preferred provider for {task_label} unavailable, "
                    f"falling back to {candidate.name} ({tier.value})"
                )
                return candidate
        logger.error(f"[council] No configured providers for {task_label}, using sandbox")
        return sandbox_provider("primary")

    def _select_auditor(self, should_use_free: bool) -> ProviderDescriptor | None:
        auditor = policy_for(TaskType.AUDIT).rule(should_use_free).select(self._registry)
        if _usable(auditor):
            return auditor
        auditor = self._registry.first_available(AUDITOR_FALLBACK_TIER)
        if not _usable(auditor):
            logger.warning("[council] No auditor available")
            return None
        return auditor

    def _sandbox_decision(
        self, task_label: str, domain: str, requires_audit: bool
    ) -> RoutingDecision:
        primary = sandbox_provider("primary")
        return RoutingDecision(
            domain=domain,
            task_type=task_label,
            primary=primary,
            auditor=sandbox_provider("auditor") if requires_audit else None,
            meta=DecisionMeta(
                low_balance=self._ledger.get_cost_signal().is_low_balance,
                tier=primary.tier,
                sandbox_mode=True,
            ),
        )
