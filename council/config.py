"""Configuration management for the council.

Config resolution order (highest priority first):
1. Programmatic (CouncilConfig constructed in code)
2. Environment variables (COUNCIL_*, OPENROUTER_*)
3. Config file (~/.config/council/config.json, managed by `council config`)
4. Hardcoded defaults

API keys are ALWAYS read from env vars and never stored in the config file.
Provider model ids are resolved from env vars by the registry, see
council.core.registry.
"""

import json
import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)


# =============================================================================
# Config file location
# =============================================================================

CONFIG_DIR = Path.home() / ".config" / "council"
CONFIG_FILE = CONFIG_DIR / "config.json"

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
API_KEY_ENV = "OPENROUTER_API_KEY"

_SANDBOX_ENVIRONMENTS = {"development", "test"}
_TRUTHY = {"1", "true", "yes", "on"}


# =============================================================================
# Config dataclasses
# =============================================================================


@dataclass
class LedgerConfig:
    """Budget the ledger starts from."""

    initial_balance: float = 100.0
    low_balance_threshold: float = 20.0


@dataclass
class ExecutorConfig:
    """Outbound call tuning.

    - timeout_seconds: per-attempt deadline
    - fast_timeout_seconds: per-attempt deadline for FAST tasks
    - max_retries: retries after the first attempt (linear backoff)
    """

    timeout_seconds: float = 60.0
    fast_timeout_seconds: float = 15.0
    max_retries: int = 2
    retry_delay_seconds: float = 1.0
    temperature: float = 0.2
    log_requests: bool = False


@dataclass
class EndpointConfig:
    """Provider endpoint and the identifying headers sent with each call."""

    base_url: str = OPENROUTER_BASE_URL
    referer: str = "sovereign-council"
    title: str = "Sovereign AI Agent"


@dataclass
class CouncilConfig:
    """Top-level council configuration.

    Examples:
        # Package use, no files needed
        config = CouncilConfig(sandbox=True, ledger=LedgerConfig(initial_balance=50))

        # CLI use, loads from ~/.config/council/config.json + env
        config = CouncilConfig.load()
    """

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    endpoint: EndpointConfig = field(default_factory=EndpointConfig)
    environment: str = "production"
    sandbox: bool | None = None  # None = decide from environment + API key

    @classmethod
    def load(cls) -> "CouncilConfig":
        """Load config from file + env vars.

        Priority: env var values > config.json values > defaults.
        """
        config = cls()

        # Layer 1: config file
        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = json.load(f)
                _apply_dict(config, data)
            except (json.JSONDecodeError, OSError) as exc:
                logger.warning("Failed to load config from %s: %s", CONFIG_FILE, exc)

        # Layer 2: env var overrides
        _ensure_dotenv()
        if val := os.environ.get("COUNCIL_ENV"):
            config.environment = val.strip().lower()
        if val := os.environ.get("COUNCIL_SANDBOX"):
            config.sandbox = val.strip().lower() in _TRUTHY
        if val := os.environ.get("COUNCIL_LOG_REQUESTS"):
            config.executor.log_requests = val.strip().lower() in _TRUTHY
        if val := os.environ.get("OPENROUTER_BASE_URL"):
            config.endpoint.base_url = val
        if val := os.environ.get("COUNCIL_REFERER"):
            config.endpoint.referer = val
        if val := os.environ.get("COUNCIL_TITLE"):
            config.endpoint.title = val

        _apply_number_env(config.ledger, "initial_balance", "COUNCIL_INITIAL_BALANCE", float)
        _apply_number_env(
            config.ledger, "low_balance_threshold", "COUNCIL_LOW_BALANCE_THRESHOLD", float
        )
        _apply_number_env(config.executor, "timeout_seconds", "COUNCIL_TIMEOUT_SECONDS", float)
        _apply_number_env(
            config.executor, "fast_timeout_seconds", "COUNCIL_FAST_TIMEOUT_SECONDS", float
        )
        _apply_number_env(config.executor, "max_retries", "COUNCIL_MAX_RETRIES", int)
        _apply_number_env(
            config.executor, "retry_delay_seconds", "COUNCIL_RETRY_DELAY_SECONDS", float
        )
        _apply_number_env(config.executor, "temperature", "COUNCIL_TEMPERATURE", float)

        return config

    def save(self) -> None:
        """Save config to ~/.config/council/config.json."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(CONFIG_FILE, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for display."""
        return {
            "ledger": asdict(self.ledger),
            "executor": asdict(self.executor),
            "endpoint": asdict(self.endpoint),
            "environment": self.environment,
            "sandbox": self.sandbox,
        }

    def resolve_sandbox_mode(self) -> bool:
        """Decide, once, whether calls go to the network.

        An explicit flag wins; otherwise development/test environments and a
        missing API key both mean sandbox.
        """
        if self.sandbox is not None:
            return self.sandbox
        if self.environment in _SANDBOX_ENVIRONMENTS:
            return True
        return not get_api_key()


# =============================================================================
# Config dict application
# =============================================================================


def _apply_dict(config: CouncilConfig, data: dict) -> None:
    """Apply a dict of values onto a CouncilConfig."""
    for section in ("ledger", "executor", "endpoint"):
        values = data.get(section)
        if not isinstance(values, dict):
            continue
        target = getattr(config, section)
        for k, v in values.items():
            if hasattr(target, k):
                setattr(target, k, v)
    if isinstance(data.get("environment"), str):
        config.environment = data["environment"].strip().lower()
    if isinstance(data.get("sandbox"), bool):
        config.sandbox = data["sandbox"]


def _apply_number_env(target: Any, attr: str, env_var: str, cast: type) -> None:
    """Override a numeric field from the environment, ignoring junk."""
    val = os.environ.get(env_var)
    if not val:
        return
    try:
        setattr(target, attr, cast(val))
    except ValueError:
        logger.warning("Invalid %s=%r, ignoring", env_var, val)


# =============================================================================
# API key resolution
# =============================================================================

_dotenv_loaded = False


def _ensure_dotenv() -> None:
    """Load .env file into os.environ if not already loaded."""
    global _dotenv_loaded
    if not _dotenv_loaded:
        _dotenv_loaded = True
        from dotenv import find_dotenv, load_dotenv

        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path=dotenv_path, override=False)


def get_api_key() -> str:
    """Get the provider API key. Returns empty string if not set."""
    _ensure_dotenv()
    return os.environ.get(API_KEY_ENV, "").strip()


# =============================================================================
# Global config singleton
# =============================================================================

_config: CouncilConfig | None = None


def get_config() -> CouncilConfig:
    """Get the global CouncilConfig instance.

    First call loads from file + env vars. Subsequent calls return cached instance.
    Use configure() to replace the global config programmatically.
    """
    global _config
    if _config is None:
        _config = CouncilConfig.load()
    return _config


def configure(config: CouncilConfig) -> None:
    """Set the global CouncilConfig programmatically."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global config (forces reload on next get_config())."""
    global _config
    _config = None
