"""Spend ledger and cost signal.

The ledger is the single source of truth for balance and spend. The
executor records every completed call into it; the decision engine reads
its cost signal before routing the next one.

Thread-safe: every read and write takes the same lock, so concurrent
executions never lose a decrement and a signal is never computed from a
half-applied write.
"""

import logging
import secrets
import threading
import time
from datetime import datetime, timezone
from typing import Any

from .models import (
    CostSignal,
    GroupTotals,
    LedgerReport,
    ProviderDescriptor,
    ReportSummary,
    Role,
    TokenUsage,
    TransactionEntry,
)

logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _safe_cost(provider: Any) -> float:
    """Per-call cost of a provider, or 0 for anything unusable."""
    try:
        cost = float(getattr(provider, "cost_per_call", 0) or 0)
    except (TypeError, ValueError):
        return 0.0
    return cost if cost > 0 else 0.0


class Ledger:
    """Balance, cumulative spend and an append-only transaction log.

    Construct one per process (or per test) and inject it into the decision
    engine and executor.
    """

    def __init__(self, initial_balance: float = 100.0, threshold: float = 20.0) -> None:
        self._initial_balance = float(initial_balance)
        self._balance = float(initial_balance)
        self._threshold = float(threshold)
        self._total_tokens = 0
        self._estimated_cost = 0.0
        self._logs: list[TransactionEntry] = []
        self._lock = threading.Lock()
        self._session_id = _new_session_id()
        self._started_at = _now_iso()
        self._started_monotonic = time.monotonic()

    @classmethod
    def from_config(cls, config) -> "Ledger":
        return cls(
            initial_balance=config.ledger.initial_balance,
            threshold=config.ledger.low_balance_threshold,
        )

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def threshold(self) -> float:
        return self._threshold

    def record_transaction(
        self,
        provider: ProviderDescriptor | None,
        usage: TokenUsage | dict | None = None,
        domain: str = "",
        role: Role | str = Role.PRIMARY,
    ) -> TransactionEntry:
        """Record a completed provider call and charge its cost.

        Never raises: a missing usage or cost counts as zero.

        Returns:
            The appended TransactionEntry
        """
        tokens = TokenUsage.coerce(usage)
        cost = _safe_cost(provider)
        role_value = role.value if isinstance(role, Role) else str(role or Role.PRIMARY.value)
        tier = getattr(provider, "tier", None)

        with self._lock:
            self._total_tokens += tokens.total_tokens
            self._estimated_cost += cost
            self._balance -= cost

            entry = TransactionEntry(
                id=f"tx_{int(time.time() * 1000)}_{secrets.token_hex(3)}",
                timestamp=_now_iso(),
                session_id=self._session_id,
                domain=domain or "",
                role=role_value,
                provider_name=getattr(provider, "name", None) or "unknown",
                provider_id=getattr(provider, "provider_id", None) or "unknown",
                tier=getattr(tier, "value", None) or "unknown",
                tokens=tokens,
                cost=cost,
                balance_after=self._balance,
            )
            self._logs.append(entry)
            balance = self._balance

        logger.info(
            f"[ledger] {entry.provider_name} ({role_value}) for {entry.domain or '-'} | "
            f"cost {cost:.4f} | balance {balance:.2f}"
        )
        return entry

    def update_balance(self, amount: float) -> float:
        """Credit (positive) or debit (negative) the balance outside a call.

        Returns:
            The new balance
        """
        with self._lock:
            self._balance += float(amount)
            balance = self._balance
        logger.info(f"[ledger] balance adjusted by {amount:+.2f} | balance {balance:.2f}")
        return balance

    def get_cost_signal(self) -> CostSignal:
        """Current budget pressure. Pure read."""
        with self._lock:
            return CostSignal(
                is_low_balance=self._balance <= self._threshold,
                remaining_balance=self._balance,
                total_spent=self._estimated_cost,
                total_tokens=self._total_tokens,
                transaction_count=len(self._logs),
            )

    def generate_final_report(self) -> LedgerReport:
        """Snapshot of totals, the full log and per-domain/per-tier rollups."""
        with self._lock:
            logs = tuple(self._logs)
            total_tokens = self._total_tokens
            total_cost = self._estimated_cost
            balance = self._balance

        count = len(logs)
        summary = ReportSummary(
            session_id=self._session_id,
            started_at=self._started_at,
            ended_at=_now_iso(),
            duration_ms=int((time.monotonic() - self._started_monotonic) * 1000),
            total_tokens=total_tokens,
            total_cost=total_cost,
            final_balance=balance,
            transaction_count=count,
            average_tokens_per_transaction=round(total_tokens / count) if count else 0,
        )
        return LedgerReport(
            summary=summary,
            logs=logs,
            by_domain=_group(logs, "domain"),
            by_tier=_group(logs, "tier"),
        )

    def summary_line(self) -> str | None:
        """One-line spend summary for CLI footer.

        Returns:
            Formatted string like "$0.60 spent · $99.40 left · 3 calls · 1.2k tokens",
            or None if no calls were recorded.
        """
        signal = self.get_cost_signal()
        if signal.transaction_count == 0:
            return None

        calls = signal.transaction_count
        parts = [
            f"${signal.total_spent:.2f} spent",
            f"${signal.remaining_balance:.2f} left",
            f"{calls} call{'s' if calls != 1 else ''}",
            f"{_format_tokens(signal.total_tokens)} tokens",
        ]
        if signal.is_low_balance:
            parts.append("LOW BALANCE")
        return " · ".join(parts)


def _group(logs: tuple[TransactionEntry, ...], attr: str) -> dict[str, GroupTotals]:
    grouped: dict[str, GroupTotals] = {}
    for entry in logs:
        key = getattr(entry, attr) or "unknown"
        totals = grouped.setdefault(key, GroupTotals())
        totals.count += 1
        totals.total_tokens += entry.tokens.total_tokens
        totals.total_cost += entry.cost
    return grouped


def _format_tokens(n: int) -> str:
    """Format token count for display (e.g., 87k, 1.5M)."""
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    elif n >= 1_000:
        return f"{n / 1_000:.1f}k"
    return str(n)
