"""Routing, accounting and execution internals.

- registry: provider catalog by tier
- ledger: balance, spend and the cost signal
- decision: per-task provider selection
- executor: timeouts, retry and fallback around one provider call
"""

from .decision import DecisionEngine
from .errors import (
    ConfigurationError,
    CouncilError,
    ProviderError,
    ProviderTimeoutError,
    TransientProviderError,
)
from .executor import Executor, is_timeout_error
from .ledger import Ledger
from .registry import ProviderRegistry, sandbox_provider
from .strategies import ExecutionStrategy, LiveStrategy, SandboxStrategy

__all__ = [
    "DecisionEngine",
    "Executor",
    "is_timeout_error",
    "Ledger",
    "ProviderRegistry",
    "sandbox_provider",
    "ExecutionStrategy",
    "LiveStrategy",
    "SandboxStrategy",
    "ConfigurationError",
    "CouncilError",
    "ProviderError",
    "ProviderTimeoutError",
    "TransientProviderError",
]
