"""Cost-aware routing of inference tasks across tiered providers.

A decision engine picks a provider per task from the live budget, a
resilient executor performs the call, and a ledger records the spend that
steers the next decision.
"""

__version__ = "0.1.0"

from .config import CouncilConfig, configure, get_config  # noqa: E402
from .core.models import (  # noqa: E402
    CostSignal,
    ExecutionResult,
    ProviderDescriptor,
    Role,
    RoutingDecision,
    TaskType,
    Tier,
    TokenUsage,
    TransactionEntry,
)
from .council import Council  # noqa: E402
from .service import DomainService, audited_service, fast_service  # noqa: E402

__all__ = [
    "__version__",
    "Council",
    "CouncilConfig",
    "configure",
    "get_config",
    "CostSignal",
    "ExecutionResult",
    "ProviderDescriptor",
    "Role",
    "RoutingDecision",
    "TaskType",
    "Tier",
    "TokenUsage",
    "TransactionEntry",
    "DomainService",
    "audited_service",
    "fast_service",
]
