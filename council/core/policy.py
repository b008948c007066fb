"""Per-task-type routing policy.

Each task type maps to a pair of selection rules: one used while the
budget allows paid calls, one used under budget pressure (or when the
caller prefers free providers). Task types that ignore the budget use
the same rule on both sides.
"""

from dataclasses import dataclass

from .models import ProviderDescriptor, TaskType, Tier
from .registry import ProviderRegistry


@dataclass(frozen=True)
class Fixed:
    """A specific catalog entry."""

    tier: Tier
    key: str

    def select(self, registry: ProviderRegistry) -> ProviderDescriptor | None:
        return registry.get(self.tier, self.key)


@dataclass(frozen=True)
class FirstAvailable:
    """The first configured entry of a tier."""

    tier: Tier

    def select(self, registry: ProviderRegistry) -> ProviderDescriptor | None:
        return registry.first_available(self.tier)


SelectionRule = Fixed | FirstAvailable


@dataclass(frozen=True)
class TaskPolicy:
    paid: SelectionRule
    free: SelectionRule

    def rule(self, use_free: bool) -> SelectionRule:
        return self.free if use_free else self.paid


def _budget_blind(rule: SelectionRule) -> TaskPolicy:
    return TaskPolicy(paid=rule, free=rule)


POLICY_TABLE: dict[TaskType, TaskPolicy] = {
    TaskType.STRATEGY: TaskPolicy(
        paid=Fixed(Tier.PAID, "STRATEGY"),
        free=FirstAvailable(Tier.ELITE_RESERVE),
    ),
    TaskType.ARCHITECTURE: TaskPolicy(
        paid=Fixed(Tier.PAID, "ARCHITECT"),
        free=FirstAvailable(Tier.ELITE_RESERVE),
    ),
    TaskType.DEVELOPMENT: TaskPolicy(
        paid=Fixed(Tier.PAID, "DEVELOPER"),
        free=Fixed(Tier.ELITE_RESERVE, "CODE_BACKUP"),
    ),
    TaskType.OPERATION: TaskPolicy(
        paid=Fixed(Tier.PAID, "DEVELOPER"),
        free=FirstAvailable(Tier.ELITE_RESERVE),
    ),
    TaskType.AUDIT: TaskPolicy(
        paid=Fixed(Tier.PAID, "AUDITOR"),
        free=Fixed(Tier.FAST_OPS, "QUICK_AUDIT"),
    ),
    TaskType.FAST: _budget_blind(FirstAvailable(Tier.FAST_OPS)),
    TaskType.REASONING: _budget_blind(Fixed(Tier.ELITE_RESERVE, "REASONING")),
    TaskType.DATA: _budget_blind(Fixed(Tier.FAST_OPS, "DATA_SPECIALIST")),
}

# Unrecognized task types
DEFAULT_POLICY = _budget_blind(FirstAvailable(Tier.ELITE_RESERVE))

# Tiers consulted, in order, when the policy's pick is absent
FALLBACK_CHAIN: tuple[Tier, ...] = (Tier.ELITE_RESERVE, Tier.FAST_OPS, Tier.PAID)

# Auditor safety net when the audit policy's pick is absent
AUDITOR_FALLBACK_TIER = Tier.ELITE_RESERVE


def policy_for(task_type: TaskType | None) -> TaskPolicy:
    if task_type is None:
        return DEFAULT_POLICY
    return POLICY_TABLE.get(task_type, DEFAULT_POLICY)
