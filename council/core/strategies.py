"""Execution strategies: how a single attempt reaches a provider.

- LiveStrategy: OpenAI-compatible Chat Completions call against OpenRouter
- SandboxStrategy: deterministic mock completion, no network

The strategy is chosen once when the council is built. The executor owns
validation, retry and ledger writes; a strategy only performs one attempt
and raises ProviderError subclasses on failure.
"""

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import openai
from openai import AsyncOpenAI

from ..config import OPENROUTER_BASE_URL
from .errors import ConfigurationError, ProviderTimeoutError, TransientProviderError
from .models import ProviderDescriptor, TokenUsage
from .request_log import log_request_response

logger = logging.getLogger(__name__)

SANDBOX_PREVIEW_CHARS = 100


@dataclass
class CompletionRequest:
    """Provider-agnostic request for one chat completion."""

    messages: list[dict[str, Any]]
    temperature: float = 0.2
    max_tokens: int | None = None
    domain: str = ""


@dataclass
class Completion:
    content: str
    usage: TokenUsage = field(default_factory=TokenUsage)


def estimate_tokens(text: str) -> int:
    """Rough token estimate (~4 chars per token)."""
    return math.ceil(len(text) / 4) if text else 0


def build_payload(provider: ProviderDescriptor, request: CompletionRequest) -> dict:
    """Build Chat Completions request body."""
    payload: dict = {
        "model": provider.provider_id,
        "messages": request.messages,
        "temperature": request.temperature,
    }
    if request.max_tokens is not None:
        payload["max_tokens"] = request.max_tokens
    return payload


class ExecutionStrategy(ABC):
    """One attempt against one provider."""

    # Sandbox strategies never touch the network and are never retried
    sandbox_mode: bool = False

    @abstractmethod
    async def complete(
        self,
        provider: ProviderDescriptor,
        request: CompletionRequest,
        timeout: float,
    ) -> Completion:
        """Perform one call.

        Raises:
            ProviderTimeoutError: The deadline passed and the call was aborted
            TransientProviderError: Any other failure
        """
        ...

    async def close(self) -> None:
        """Release any held connections."""
        return None


class SandboxStrategy(ExecutionStrategy):
    """Deterministic mock completions echoing the prompt."""

    sandbox_mode = True

    async def complete(
        self,
        provider: ProviderDescriptor,
        request: CompletionRequest,
        timeout: float,
    ) -> Completion:
        prompt = "\n".join(
            str(message.get("content", "")) for message in request.messages if message
        )
        preview = prompt[:SANDBOX_PREVIEW_CHARS]
        if len(prompt) > SANDBOX_PREVIEW_CHARS:
            preview += "..."
        content = (
            f"[SANDBOX] {provider.name} response for {request.domain or 'unknown'}: {preview}"
        )
        prompt_tokens = estimate_tokens(prompt)
        completion_tokens = estimate_tokens(content)
        return Completion(
            content=content,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )


class LiveStrategy(ExecutionStrategy):
    """Calls an OpenAI-compatible endpoint (OpenRouter by default).

    SDK-level retries are disabled; the executor decides what to retry.
    """

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str = OPENROUTER_BASE_URL,
        referer: str = "sovereign-council",
        title: str = "Sovereign AI Agent",
        log_requests: bool = False,
    ) -> None:
        if not api_key:
            raise ConfigurationError(
                "API key not found for openrouter. Set OPENROUTER_API_KEY as an environment variable."
            )
        self._api_key = api_key
        self._base_url = base_url
        self._referer = referer
        self._title = title
        self._log_requests = log_requests
        self._cached_async_client: AsyncOpenAI | None = None

    @classmethod
    def from_config(cls, config, api_key: str) -> "LiveStrategy":
        return cls(
            api_key,
            base_url=config.endpoint.base_url,
            referer=config.endpoint.referer,
            title=config.endpoint.title,
            log_requests=config.executor.log_requests,
        )

    def _get_async_client(self) -> AsyncOpenAI:
        if self._cached_async_client is None:
            self._cached_async_client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                max_retries=0,
                default_headers={"X-Title": self._title},
            )
        return self._cached_async_client

    @staticmethod
    def _extract_text(response) -> str:
        choice = response.choices[0]
        return getattr(choice.message, "content", None) or ""

    async def complete(
        self,
        provider: ProviderDescriptor,
        request: CompletionRequest,
        timeout: float,
    ) -> Completion:
        client = self._get_async_client()
        params = build_payload(provider, request)
        headers = {"HTTP-Referer": request.domain or self._referer}

        api_start = time.time()
        try:
            # wait_for cancels the in-flight request when the deadline fires
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    **params, extra_headers=headers, timeout=timeout
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError) as e:
            raise ProviderTimeoutError(f"Request timeout after {timeout:g}s") from e
        except openai.APIStatusError as e:
            body = _status_body(e)
            raise TransientProviderError(
                f"[openrouter:{provider.provider_id}] {e.status_code} {body}",
                status_code=e.status_code,
                body=body,
            ) from e
        except openai.APIConnectionError as e:
            raise TransientProviderError(
                f"[openrouter:{provider.provider_id}] connection error: {e}"
            ) from e

        latency = time.time() - api_start
        logger.debug(f"[openrouter] {provider.provider_id} responded in {latency:.2f}s")

        if self._log_requests:
            log_request_response(
                request=params,
                response=response,
                provider_id=provider.provider_id,
                domain=request.domain,
                latency_s=latency,
            )

        if not getattr(response, "choices", None):
            raise TransientProviderError("invalid response structure: no choices")

        return Completion(
            content=self._extract_text(response),
            usage=TokenUsage.coerce(getattr(response, "usage", None)),
        )

    async def close(self) -> None:
        """Close the cached async client to release connections cleanly."""
        if self._cached_async_client is not None:
            await self._cached_async_client.close()
            self._cached_async_client = None


def _status_body(error: "openai.APIStatusError") -> str:
    response = getattr(error, "response", None)
    text = getattr(response, "text", None)
    if isinstance(text, str) and text:
        return text
    return str(error.body if error.body is not None else error.message)
