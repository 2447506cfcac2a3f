"""Tests for the LLM gateway with a mocked OpenAI client."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from formchat.core.errors import ProtocolError, ProviderError
from formchat.core.llm import LLMGateway
from formchat.core.rate_limiter import RequestThrottle
from formchat.core.schemas_settings import LLMProfile, LLMSettings

from tests.fakes.fake_backend import completion

MESSAGES = [{"role": "user", "content": "Hello"}]


def _client(return_value=None, side_effect=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=return_value, side_effect=side_effect)
    return client


def _gateway(client, settings=None, timeout=5.0):
    return LLMGateway(
        client,
        settings or LLMSettings(),
        timeout=timeout,
        throttle=RequestThrottle(min_interval=0.0),
    )


@pytest.mark.asyncio
async def test_chat_returns_content_and_usage():
    client = _client(completion("Hi there"))
    gateway = _gateway(client)

    result = await gateway.chat(MESSAGES, LLMProfile.CHAT)

    assert result.content == "Hi there"
    assert result.model == "gpt-4o-mini"
    assert result.usage.total_tokens == 17
    assert result.finish_reason == "stop"


@pytest.mark.asyncio
async def test_profile_parameters_are_resolved():
    settings = LLMSettings(
        models={"VALIDATION": "gpt-4o"},
        max_tokens={"VALIDATION": 300},
        temperatures={"VALIDATION": 0.3},
    )
    client = _client(completion("VALID"))
    gateway = _gateway(client, settings)

    await gateway.chat(MESSAGES, LLMProfile.VALIDATION)

    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["max_tokens"] == 300
    assert kwargs["temperature"] == 0.3
    assert kwargs["messages"] == MESSAGES


@pytest.mark.asyncio
async def test_missing_profile_falls_back_to_defaults():
    client = _client(completion("ok"))
    gateway = _gateway(client, LLMSettings(models={"CHAT": "gpt-4o"}))

    await gateway.chat(MESSAGES, LLMProfile.OUTPUT)

    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 1000
    assert kwargs["temperature"] == 0.7


@pytest.mark.asyncio
async def test_zero_temperature_is_kept():
    client = _client(completion("ok"))
    gateway = _gateway(client, LLMSettings(temperatures={"VALIDATION": 0.0}))

    await gateway.chat(MESSAGES, LLMProfile.VALIDATION)

    assert client.chat.completions.create.await_args.kwargs["temperature"] == 0.0


@pytest.mark.asyncio
async def test_no_choices_is_protocol_error():
    empty = completion("x")
    empty.choices = []
    gateway = _gateway(_client(empty))

    with pytest.raises(ProtocolError):
        await gateway.chat(MESSAGES)


@pytest.mark.asyncio
async def test_missing_content_is_protocol_error():
    gateway = _gateway(_client(completion(None)))

    with pytest.raises(ProtocolError):
        await gateway.chat(MESSAGES)


@pytest.mark.asyncio
async def test_status_error_is_provider_error_and_not_retried():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(429, request=request)
    error = APIStatusError("rate limited", response=response, body=None)
    client = _client(side_effect=error)
    gateway = _gateway(client)

    with pytest.raises(ProviderError) as exc_info:
        await gateway.chat(MESSAGES)

    assert exc_info.value.status_code == 429
    assert client.chat.completions.create.await_count == 1


@pytest.mark.asyncio
async def test_connection_error_is_provider_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    gateway = _gateway(_client(side_effect=APIConnectionError(request=request)))

    with pytest.raises(ProviderError) as exc_info:
        await gateway.chat(MESSAGES)

    assert exc_info.value.error_type == "APIConnectionError"


@pytest.mark.asyncio
async def test_timeout_is_provider_error():
    async def slow(**kwargs):
        await asyncio.sleep(1)
        return completion("late")

    client = MagicMock()
    client.chat.completions.create = slow
    gateway = _gateway(client, timeout=0.05)

    with pytest.raises(ProviderError) as exc_info:
        await gateway.chat(MESSAGES)

    assert exc_info.value.error_type == "timeout"


def test_reconfigure_rebuilds_throttle_when_rate_changes():
    gateway = LLMGateway(MagicMock(), LLMSettings(max_requests_per_minute=20))
    original = gateway.throttle

    gateway.reconfigure(LLMSettings(max_requests_per_minute=20, models={"CHAT": "gpt-4o"}))
    assert gateway.throttle is original
    assert gateway.settings.resolve(LLMProfile.CHAT).model == "gpt-4o"

    gateway.reconfigure(LLMSettings(max_requests_per_minute=60))
    assert gateway.throttle is not original
    assert gateway.throttle.min_interval == pytest.approx(1.0)
