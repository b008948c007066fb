"""Resilient executor: turn a provider + messages into an ExecutionResult.

Responsibilities:
- Reject unconfigured providers and empty payloads without a network call
- Short-circuit sandbox providers to a mock completion
- Per-attempt timeout, linear-backoff retry of transient failures
- Record consumed cost into the ledger on success
- One-shot fallback to a second provider

Every failure is returned as ``ExecutionResult(ok=False, ...)``; nothing
raised by a provider call escapes this module.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from .errors import ProviderError, ProviderTimeoutError, TransientProviderError
from .ledger import Ledger
from .models import ExecutionMeta, ExecutionResult, ProviderDescriptor, Role
from .strategies import CompletionRequest, ExecutionStrategy, SandboxStrategy

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_TEMPERATURE = 0.2

_TIMEOUT_CODES = {"ETIMEDOUT", "ECONNABORTED", "ABORT_ERR"}
_TIMEOUT_MARKERS = ("timeout", "timed out", "abort")


def is_timeout_error(error: BaseException) -> bool:
    """Whether a failure was a deadline/abort, which is never retried."""
    if isinstance(error, (ProviderTimeoutError, asyncio.TimeoutError)):
        return True
    if isinstance(error, TransientProviderError):
        return False
    if type(error).__name__ in ("APITimeoutError", "AbortError"):
        return True
    if str(getattr(error, "code", "") or "").upper() in _TIMEOUT_CODES:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


class Executor:
    """Executes provider calls through an injected strategy.

    Args:
        ledger: Ledger to record consumption into
        strategy: Live or sandbox strategy, fixed at construction
        timeout: Default per-attempt deadline in seconds
        max_retries: Retries after the first attempt
        retry_delay: Linear backoff base; retry n waits retry_delay * n
        temperature: Default sampling temperature
    """

    def __init__(
        self,
        ledger: Ledger,
        strategy: ExecutionStrategy,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        self._ledger = ledger
        self._strategy = strategy
        self._sandbox = strategy if strategy.sandbox_mode else SandboxStrategy()
        self._timeout = timeout
        self._max_retries = max(0, max_retries)
        self._retry_delay = retry_delay
        self._temperature = temperature

    @classmethod
    def from_config(cls, config, ledger: Ledger, strategy: ExecutionStrategy) -> "Executor":
        return cls(
            ledger,
            strategy,
            timeout=config.executor.timeout_seconds,
            max_retries=config.executor.max_retries,
            retry_delay=config.executor.retry_delay_seconds,
            temperature=config.executor.temperature,
        )

    @property
    def sandbox_mode(self) -> bool:
        return self._strategy.sandbox_mode

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
        """Run one request, retrying transient failures.

        ``role`` may be a Role or its string value ("primary", "auditor",
        "fallback").

        Returns:
            ExecutionResult with ok=True and meta.attempt on success, or
            ok=False with the last error and meta.retries on failure
        """
        try:
            role = Role(role)
        except ValueError:
            return ExecutionResult(
                ok=False,
                error=f"invalid role: {role!r}",
                meta=ExecutionMeta(domain=domain, error_type="configuration"),
            )

        if provider is None or not provider.is_configured:
            logger.error(f"[executor] Invalid provider configuration for {domain or '-'}")
            return ExecutionResult(
                ok=False,
                error="invalid provider configuration",
                meta=ExecutionMeta(
                    provider_name=getattr(provider, "name", None),
                    role=role,
                    domain=domain,
                    error_type="configuration",
                ),
            )

        if not isinstance(messages, list) or not messages:
            return ExecutionResult(
                ok=False,
                error="messages must be a non-empty list",
                meta=self._meta(provider, role, domain, error_type="configuration"),
            )
        if not all(isinstance(message, Mapping) for message in messages):
            return ExecutionResult(
                ok=False,
                error="each message must be a mapping",
                meta=self._meta(provider, role, domain, error_type="configuration"),
            )

        request = CompletionRequest(
            messages=messages,
            temperature=self._temperature if temperature is None else temperature,
            max_tokens=max_tokens,
            domain=domain,
        )
        deadline = self._timeout if timeout is None else timeout

        if self._strategy.sandbox_mode or provider.is_sandbox:
            completion = await self._sandbox.complete(provider, request, deadline)
            if record_usage:
                self._ledger.record_transaction(provider, completion.usage, domain, role)
            return ExecutionResult(
                ok=True,
                content=completion.content,
                usage=completion.usage,
                meta=self._meta(provider, role, domain, attempt=1, sandbox_mode=True),
            )

        max_attempts = self._max_retries + 1
        last_error: BaseException | None = None
        attempt = 0

        for attempt in range(1, max_attempts + 1):
            logger.info(
                f"[executor] Calling {provider.provider_id} for {domain or '-'} "
                f"({role.value}, attempt {attempt}/{max_attempts})"
            )
            try:
                completion = await self._strategy.complete(provider, request, deadline)
            except Exception as e:
                last_error = e
                if is_timeout_error(e):
                    logger.error(f"[executor] {provider.provider_id} aborted: {e}")
                    return self._failure(provider, role, domain, e, attempt, "timeout")
                if attempt == max_attempts:
                    break
                wait = self._retry_delay * attempt
                logger.warning(
                    f"[executor] Transient error ({attempt}/{max_attempts}) from "
                    f"{provider.provider_id}: {type(e).__name__}: {e}. "
                    f"Retrying in {wait:.1f}s"
                )
                await asyncio.sleep(wait)
                continue

            if record_usage:
                self._ledger.record_transaction(provider, completion.usage, domain, role)
            logger.info(
                f"[executor] Success: {provider.provider_id} | tokens {completion.usage.total_tokens}"
            )
            return ExecutionResult(
                ok=True,
                content=completion.content,
                usage=completion.usage,
                meta=self._meta(provider, role, domain, attempt=attempt),
            )

        logger.error(
            f"[executor] {provider.provider_id} failed after {attempt} attempts: {last_error}"
        )
        return self._failure(provider, role, domain, last_error, attempt, "transient")

    async def execute_with_fallback(
        self,
        primary: ProviderDescriptor | None,
        fallback: ProviderDescriptor | None,
        messages: list[dict[str, Any]],
        *,
        domain: str = "",
        temperature: float | None = None,
        max_tokens: int | None = None,
        record_usage: bool = True,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """Run against primary; on failure try fallback once as role=fallback.

        If there is no fallback the primary's failure is returned unchanged.
        """
        kwargs = dict(
            domain=domain,
            temperature=temperature,
            max_tokens=max_tokens,
            record_usage=record_usage,
            timeout=timeout,
        )
        result = await self.execute_model(primary, messages, role=Role.PRIMARY, **kwargs)
        if result.ok or fallback is None:
            return result

        logger.warning(
            f"[executor] Primary {getattr(primary, 'provider_id', None)} failed "
            f"({result.error}); trying fallback {fallback.provider_id or fallback.name}"
        )
        fallback_result = await self.execute_model(
            fallback, messages, role=Role.FALLBACK, **kwargs
        )
        meta = fallback_result.meta.model_copy(update={"primary_error": result.error})
        if not fallback_result.ok:
            meta = meta.model_copy(update={"error_type": "exhausted_fallback"})
        return fallback_result.model_copy(update={"meta": meta})

    def _meta(
        self,
        provider: ProviderDescriptor,
        role: Role,
        domain: str,
        **extra: Any,
    ) -> ExecutionMeta:
        return ExecutionMeta(
            provider_id=provider.provider_id,
            provider_name=provider.name,
            tier=provider.tier,
            role=role,
            domain=domain,
            **extra,
        )

    def _failure(
        self,
        provider: ProviderDescriptor,
        role: Role,
        domain: str,
        error: BaseException | None,
        attempt: int,
        error_type: str,
    ) -> ExecutionResult:
        status_code = error.status_code if isinstance(error, ProviderError) else None
        return ExecutionResult(
            ok=False,
            error=str(error) if error is not None else "unknown error",
            meta=self._meta(
                provider,
                role,
                domain,
                attempt=attempt,
                retries=max(attempt - 1, 0),
                error_type=error_type,
                status_code=status_code,
            ),
        )
