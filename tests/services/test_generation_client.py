"""
Tests for GenerationClient - error classification, retry and JSON parsing.

The OpenAI client is an AsyncMock and the backoff sleep is injected,
so tests run instantly without API access.

Run with: pytest tests/services/test_generation_client.py -v
"""

import json
from unittest.mock import AsyncMock, MagicMock, call

import httpx
import openai
import pytest

from advertly.core.errors import (
    ParseError,
    UpstreamAuthFailed,
    UpstreamRateLimited,
    UpstreamTransient,
)
from advertly.services.generation_client import (
    GenerationClient,
    PromptSpec,
    classify_openai_error,
    extract_array,
)

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content):
    """Build a chat completion response with the given message content."""
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


def _quota_error():
    return openai.RateLimitError(
        "You exceeded your current quota",
        response=httpx.Response(429, request=OPENAI_REQUEST),
        body={"code": "insufficient_quota", "message": "You exceeded your current quota"},
    )


def _auth_error():
    return openai.AuthenticationError(
        "Incorrect API key provided",
        response=httpx.Response(401, request=OPENAI_REQUEST),
        body={"code": "invalid_api_key", "message": "Incorrect API key provided"},
    )


def _connection_error():
    return openai.APIConnectionError(request=OPENAI_REQUEST)


def _make_client(side_effect, max_attempts=3, retry_delay_ms=1000):
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(side_effect=side_effect)
    sleep = AsyncMock()
    client = GenerationClient(
        model="gpt-4o",
        max_attempts=max_attempts,
        retry_delay_ms=retry_delay_ms,
        client=openai_client,
        sleep=sleep,
    )
    return client, openai_client.chat.completions.create, sleep


@pytest.fixture
def spec():
    return PromptSpec(system="You are a marketer.", user="Analyze roofing.")


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class TestClassifyOpenAIError:
    def test_quota_is_rate_limited(self):
        error = classify_openai_error(_quota_error())
        assert isinstance(error, UpstreamRateLimited)
        assert isinstance(error, UpstreamAuthFailed)

    def test_invalid_key_is_auth_failed(self):
        error = classify_openai_error(_auth_error())
        assert isinstance(error, UpstreamAuthFailed)
        assert not isinstance(error, UpstreamRateLimited)

    def test_rate_limit_without_quota_code_is_transient(self):
        error = openai.RateLimitError(
            "Slow down",
            response=httpx.Response(429, request=OPENAI_REQUEST),
            body={"code": "rate_limit_exceeded"},
        )
        assert isinstance(classify_openai_error(error), UpstreamTransient)

    def test_connection_error_is_transient(self):
        assert isinstance(classify_openai_error(_connection_error()), UpstreamTransient)


# ---------------------------------------------------------------------------
# Retry behaviour
# ---------------------------------------------------------------------------

class TestRetry:
    @pytest.mark.asyncio
    async def test_success_first_attempt(self, spec):
        client, create, sleep = _make_client([_completion('{"competitors": []}')])

        result = await client.generate(spec)

        assert result == {"competitors": []}
        assert create.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_quota_error_not_retried(self, spec):
        client, create, sleep = _make_client(_quota_error())

        with pytest.raises(UpstreamRateLimited):
            await client.generate(spec)

        assert create.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self, spec):
        client, create, _ = _make_client(_auth_error())

        with pytest.raises(UpstreamAuthFailed):
            await client.generate(spec)

        assert create.await_count == 1

    @pytest.mark.asyncio
    async def test_transient_error_retried_with_linear_backoff(self, spec):
        client, create, sleep = _make_client(_connection_error())

        with pytest.raises(UpstreamTransient):
            await client.generate(spec)

        assert create.await_count == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, spec):
        client, create, sleep = _make_client([
            _connection_error(),
            _completion('{"ok": true}'),
        ])

        assert await client.generate(spec) == {"ok": True}
        assert create.await_count == 2
        assert sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_invalid_json_retried_then_parse_error(self, spec):
        client, create, _ = _make_client(lambda **kwargs: _completion("not json"))

        with pytest.raises(ParseError):
            await client.generate(spec)

        assert create.await_count == 3

    @pytest.mark.asyncio
    async def test_empty_content_is_parse_error(self, spec):
        client, _, _ = _make_client(lambda **kwargs: _completion(""), max_attempts=1)

        with pytest.raises(ParseError):
            await client.generate(spec)


# ---------------------------------------------------------------------------
# Request shape and array payloads
# ---------------------------------------------------------------------------

class TestRequest:
    @pytest.mark.asyncio
    async def test_requests_json_object(self, spec):
        client, create, _ = _make_client([_completion("{}")])

        await client.generate(spec)

        kwargs = create.await_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"][0] == {"role": "system", "content": "You are a marketer."}

    @pytest.mark.asyncio
    async def test_model_override(self):
        client, create, _ = _make_client([_completion("{}")])

        await client.generate(PromptSpec(system="s", user="u", model="gpt-4o-mini"))

        assert create.await_args.kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_expect_array_unwraps_first_list(self):
        payload = json.dumps({"ads": [{"headline": "A"}, {"headline": "B"}]})
        client, _, _ = _make_client([_completion(payload)])

        result = await client.generate(PromptSpec(system="s", user="u", expect_array=True))

        assert result == [{"headline": "A"}, {"headline": "B"}]

    def test_extract_array_without_list(self):
        with pytest.raises(ParseError):
            extract_array({"headline": "A"})

    def test_extract_array_bare_list(self):
        assert extract_array([1, 2]) == [1, 2]
