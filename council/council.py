"""Council facade: the public routing, execution and accounting operations.

Wires one registry, one ledger, one decision engine and one executor
together. The execution strategy (live or sandbox) is chosen once here
and never re-checked per call.

Examples:
    council = Council.from_config(CouncilConfig(sandbox=True))
    decision = council.council_decision("DEVELOPMENT", domain="tec.pi")
    result = await council.execute_model(
        decision.primary,
        [{"role": "user", "content": "Write a health check"}],
        domain="tec.pi",
    )
    report = council.generate_final_report()
"""

import logging
from typing import Any

from .config import CouncilConfig, get_api_key, get_config
from .core.decision import DecisionEngine
from .core.executor import Executor
from .core.history import record_report
from .core.ledger import Ledger
from .core.models import (
    CostSignal,
    ExecutionResult,
    LedgerReport,
    ProviderDescriptor,
    Role,
    RoutingDecision,
    TaskType,
    TokenUsage,
    TransactionEntry,
)
from .core.registry import ProviderRegistry
from .core.strategies import ExecutionStrategy, LiveStrategy, SandboxStrategy

logger = logging.getLogger(__name__)


class Council:
    """Decision engine + ledger + executor sharing one feedback loop."""

    def __init__(
        self,
        registry: ProviderRegistry,
        ledger: Ledger,
        strategy: ExecutionStrategy,
        config: CouncilConfig | None = None,
    ) -> None:
        self.config = config or CouncilConfig()
        self.registry = registry
        self.ledger = ledger
        self._strategy = strategy
        self._engine = DecisionEngine(registry, ledger, sandbox_mode=strategy.sandbox_mode)
        self._executor = Executor.from_config(self.config, ledger, strategy)

    @classmethod
    def from_config(cls, config: CouncilConfig | None = None) -> "Council":
        """Build a council from configuration.

        Raises:
            ConfigurationError: Live mode with a missing API key or paid-tier model id
        """
        config = config or get_config()
        api_key = get_api_key()  # also loads .env before model ids are read
        sandbox = config.resolve_sandbox_mode()
        registry = ProviderRegistry.from_env(require_paid=not sandbox)
        if sandbox:
            strategy: ExecutionStrategy = SandboxStrategy()
        else:
            strategy = LiveStrategy.from_config(config, api_key)
        logger.info(f"[council] Started in {'SANDBOX' if sandbox else 'PRODUCTION'} mode")
        return cls(registry, Ledger.from_config(config), strategy, config)

    @property
    def sandbox_mode(self) -> bool:
        return self._strategy.sandbox_mode

    def council_decision(
        self,
        task_type: TaskType | str,
        domain: str = "",
        requires_audit: bool = False,
        prefer_free: bool = False,
    ) -> RoutingDecision:
        return self._engine.decide(task_type, domain, requires_audit, prefer_free)

    async def execute_model(
        self,
        provider: ProviderDescriptor | None,
        messages: list[dict[str, Any]],
        *,
        domain: str = "",
        role: Role | str = Role.PRIMARY,
        temperature: float | None = None,
        max_tokens: int | None = None,
        record_usage: bool = True,
        timeout: float | None = None,
    ) -> ExecutionResult:
        return await self._executor.execute_model(
            provider,
            messages,
            domain=domain,
            role=role,
            temperature=temperature,
            max_tokens=max_tokens,
            record_usage=record_usage,
            timeout=timeout,
        )

    async def execute_with_fallback(
        self,
        primary_provider: ProviderDescriptor | None,
        fallback_provider: ProviderDescriptor | None,
        messages: list[dict[str, Any]],
        *,
        domain: str = "",
        temperature: float | None = None,
        max_tokens: int | None = None,
        record_usage: bool = True,
        timeout: float | None = None,
    ) -> ExecutionResult:
        return await self._executor.execute_with_fallback(
            primary_provider,
            fallback_provider,
            messages,
            domain=domain,
            temperature=temperature,
            max_tokens=max_tokens,
            record_usage=record_usage,
            timeout=timeout,
        )

    def record_transaction(
        self,
        provider: ProviderDescriptor | None,
        usage: TokenUsage | dict | None,
        domain: str = "",
        role: Role | str = Role.PRIMARY,
    ) -> TransactionEntry:
        return self.ledger.record_transaction(provider, usage, domain, role)

    def get_cost_signal(self) -> CostSignal:
        return self.ledger.get_cost_signal()

    def generate_final_report(self) -> LedgerReport:
        return self.ledger.generate_final_report()

    def persist_report(self, label: str = "") -> LedgerReport:
        """Generate the final report and append it to the spend history."""
        report = self.generate_final_report()
        record_report(report, label=label, sandbox=self.sandbox_mode)
        return report

    async def close(self) -> None:
        await self._strategy.close()
