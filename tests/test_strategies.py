"""LiveStrategy tests with a mocked AsyncOpenAI client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from council.core.errors import ConfigurationError, ProviderTimeoutError, TransientProviderError
from council.core.models import ProviderDescriptor, Tier
from council.core.strategies import (
    CompletionRequest,
    LiveStrategy,
    build_payload,
    estimate_tokens,
)

PROVIDER = ProviderDescriptor(
    name="GPT-4o", provider_id="openai/gpt-4o", tier=Tier.PAID, cost_per_call=0.5
)
REQUEST = CompletionRequest(
    messages=[{"role": "user", "content": "hello"}], temperature=0.2, domain="tec.pi"
)
_HTTP_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _make_response(text="hi there", prompt_tokens=12, completion_tokens=8):
    message = MagicMock()
    message.content = text

    choice = MagicMock()
    choice.message = message

    usage = MagicMock()
    usage.prompt_tokens = prompt_tokens
    usage.completion_tokens = completion_tokens
    usage.total_tokens = prompt_tokens + completion_tokens

    response = MagicMock()
    response.choices = [choice]
    response.usage = usage
    return response


def _strategy_with(create: AsyncMock) -> LiveStrategy:
    strategy = LiveStrategy("test-key")
    client = MagicMock()
    client.chat.completions.create = create
    strategy._cached_async_client = client
    return strategy


class TestLiveStrategy:
    def test_requires_api_key(self):
        with pytest.raises(ConfigurationError, match="OPENROUTER_API_KEY"):
            LiveStrategy("")

    def test_success(self):
        create = AsyncMock(return_value=_make_response())
        strategy = _strategy_with(create)

        completion = asyncio.run(strategy.complete(PROVIDER, REQUEST, 60))

        assert completion.content == "hi there"
        assert completion.usage.total_tokens == 20
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o"
        assert kwargs["temperature"] == 0.2
        assert kwargs["extra_headers"] == {"HTTP-Referer": "tec.pi"}
        assert kwargs["timeout"] == 60
        assert "max_tokens" not in kwargs

    def test_referer_default_without_domain(self):
        create = AsyncMock(return_value=_make_response())
        strategy = _strategy_with(create)
        request = CompletionRequest(messages=REQUEST.messages)
        asyncio.run(strategy.complete(PROVIDER, request, 60))
        assert create.await_args.kwargs["extra_headers"] == {"HTTP-Referer": "sovereign-council"}

    def test_status_error_is_transient(self):
        response = httpx.Response(503, request=_HTTP_REQUEST, text="overloaded")
        error = openai.APIStatusError("overloaded", response=response, body=None)
        strategy = _strategy_with(AsyncMock(side_effect=error))

        with pytest.raises(TransientProviderError) as exc_info:
            asyncio.run(strategy.complete(PROVIDER, REQUEST, 60))

        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "[openrouter:openai/gpt-4o] 503 overloaded"

    def test_sdk_timeout_maps_to_timeout(self):
        error = openai.APITimeoutError(request=_HTTP_REQUEST)
        strategy = _strategy_with(AsyncMock(side_effect=error))
        with pytest.raises(ProviderTimeoutError, match="Request timeout after 60s"):
            asyncio.run(strategy.complete(PROVIDER, REQUEST, 60))

    def test_deadline_cancels_call(self):
        async def _hang(**kwargs):
            await asyncio.sleep(10)

        strategy = _strategy_with(AsyncMock(side_effect=_hang))
        with pytest.raises(ProviderTimeoutError, match="0.01s"):
            asyncio.run(strategy.complete(PROVIDER, REQUEST, 0.01))

    def test_connection_error_is_transient(self):
        error = openai.APIConnectionError(request=_HTTP_REQUEST)
        strategy = _strategy_with(AsyncMock(side_effect=error))
        with pytest.raises(TransientProviderError):
            asyncio.run(strategy.complete(PROVIDER, REQUEST, 60))

    def test_no_choices(self):
        response = _make_response()
        response.choices = []
        strategy = _strategy_with(AsyncMock(return_value=response))
        with pytest.raises(TransientProviderError, match="no choices"):
            asyncio.run(strategy.complete(PROVIDER, REQUEST, 60))

    def test_request_logging(self):
        strategy = _strategy_with(AsyncMock(return_value=_make_response()))
        strategy._log_requests = True
        with patch("council.core.strategies.log_request_response") as log:
            asyncio.run(strategy.complete(PROVIDER, REQUEST, 60))
        assert log.call_args.kwargs["provider_id"] == "openai/gpt-4o"

    def test_close_releases_client(self):
        strategy = LiveStrategy("test-key")
        client = MagicMock()
        client.close = AsyncMock()
        strategy._cached_async_client = client
        asyncio.run(strategy.close())
        client.close.assert_awaited_once()
        assert strategy._cached_async_client is None


def test_build_payload_includes_max_tokens():
    request = CompletionRequest(messages=REQUEST.messages, max_tokens=100)
    assert build_payload(PROVIDER, request)["max_tokens"] == 100


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcde") == 2
