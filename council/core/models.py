"""Value types shared by the registry, ledger, decision engine and executor.

Descriptors, decisions, ledger entries and reports are frozen pydantic
models. Only the ledger holds mutable state, and it never hands out
references to it.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Tier(str, Enum):
    """Cost/quality group a provider belongs to."""

    PAID = "PAID"
    ELITE_RESERVE = "ELITE_RESERVE"
    FAST_OPS = "FAST_OPS"
    SANDBOX = "SANDBOX"


# Tiers whose providers cost nothing to call
FREE_TIERS = frozenset({Tier.ELITE_RESERVE, Tier.FAST_OPS, Tier.SANDBOX})


class TaskType(str, Enum):
    """Closed set of work categories that drive routing policy."""

    STRATEGY = "STRATEGY"
    ARCHITECTURE = "ARCHITECTURE"
    DEVELOPMENT = "DEVELOPMENT"
    OPERATION = "OPERATION"
    AUDIT = "AUDIT"
    FAST = "FAST"
    REASONING = "REASONING"
    DATA = "DATA"

    @classmethod
    def parse(cls, value: "TaskType | str | None") -> "TaskType | None":
        """Resolve a task type from a member or case-insensitive name.

        Returns None for anything unrecognized instead of raising.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class Role(str, Enum):
    """Why a provider call was made."""

    PRIMARY = "primary"
    AUDITOR = "auditor"
    FALLBACK = "fallback"


class ProviderDescriptor(BaseModel):
    """An inference provider as the router sees it.

    An empty ``provider_id`` means the provider is not configured; it is
    never selected and the executor refuses to call it.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    provider_id: str = ""
    tier: Tier
    cost_per_call: float = Field(default=0.0, ge=0.0)
    key: str = ""
    capabilities: tuple[str, ...] = ()

    @property
    def is_configured(self) -> bool:
        return bool(self.provider_id and self.provider_id.strip())

    @property
    def is_sandbox(self) -> bool:
        return self.tier is Tier.SANDBOX

    @property
    def is_free(self) -> bool:
        return self.tier in FREE_TIERS or self.cost_per_call == 0


class TokenUsage(BaseModel):
    """Token counts reported for a single provider call."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def coerce(cls, value: Any) -> "TokenUsage":
        """Normalize whatever a provider (or caller) handed us.

        Accepts a TokenUsage, a dict in the provider wire format, an SDK
        usage object, or None. Anything malformed counts as zero.
        """
        if isinstance(value, TokenUsage):
            return value
        if value is None:
            return cls()

        def _read(name: str) -> int:
            raw = value.get(name) if isinstance(value, dict) else getattr(value, name, 0)
            try:
                count = int(raw or 0)
            except (TypeError, ValueError):
                return 0
            return max(count, 0)

        prompt = _read("prompt_tokens")
        completion = _read("completion_tokens")
        total = _read("total_tokens") or prompt + completion
        return cls(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=total,
        )


class CostSignal(BaseModel):
    """Budget pressure as read from the ledger at a point in time."""

    model_config = ConfigDict(frozen=True)

    is_low_balance: bool
    remaining_balance: float
    total_spent: float
    total_tokens: int = 0
    transaction_count: int = 0


class TransactionEntry(BaseModel):
    """One recorded provider call."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str
    session_id: str
    domain: str
    role: str
    provider_name: str
    provider_id: str
    tier: str
    tokens: TokenUsage
    cost: float
    balance_after: float


class GroupTotals(BaseModel):
    """Rollup of transactions sharing a domain or tier."""

    count: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0


class ReportSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str
    started_at: str
    ended_at: str
    duration_ms: int
    total_tokens: int
    total_cost: float
    final_balance: float
    transaction_count: int
    average_tokens_per_transaction: int


class LedgerReport(BaseModel):
    """End-of-run snapshot of the ledger."""

    model_config = ConfigDict(frozen=True)

    summary: ReportSummary
    logs: tuple[TransactionEntry, ...]
    by_domain: dict[str, GroupTotals]
    by_tier: dict[str, GroupTotals]


class DecisionMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    low_balance: bool
    tier: Tier
    sandbox_mode: bool = False


class RoutingDecision(BaseModel):
    """Providers chosen for one task."""

    model_config = ConfigDict(frozen=True)

    domain: str
    task_type: str
    primary: ProviderDescriptor
    auditor: ProviderDescriptor | None = None
    meta: DecisionMeta


class ExecutionMeta(BaseModel):
    provider_id: str | None = None
    provider_name: str | None = None
    tier: Tier | None = None
    role: Role = Role.PRIMARY
    domain: str = ""
    attempt: int = 0
    retries: int = 0
    sandbox_mode: bool = False
    error_type: str | None = None
    status_code: int | None = None
    primary_error: str | None = None


class ExecutionResult(BaseModel):
    """Outcome of an executor call. Failures are data, never exceptions."""

    ok: bool
    content: str = ""
    usage: TokenUsage = Field(default_factory=TokenUsage)
    error: str | None = None
    meta: ExecutionMeta = Field(default_factory=ExecutionMeta)
