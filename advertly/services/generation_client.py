"""
GenerationClient - one structured OpenAI call with retry.

Every request asks for a JSON object (``response_format={"type": "json_object"}``).
Failures are classified into the upstream error taxonomy:

- invalid credential -> UpstreamAuthFailed, raised immediately
- exhausted quota    -> UpstreamRateLimited, raised immediately
- anything else      -> UpstreamTransient / ParseError, retried

Retries wait ``retry_delay_ms * attempt`` between attempts (linear backoff).
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

import openai
from openai import AsyncOpenAI
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

from ..core.config import Config
from ..core.errors import (
    ParseError,
    UpstreamAuthFailed,
    UpstreamRateLimited,
    UpstreamTransient,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIAL_CODES = {"invalid_api_key"}
QUOTA_CODES = {"insufficient_quota", "quota_exceeded"}


@dataclass
class PromptSpec:
    """
    One generation request.

    Attributes:
        system: System instruction
        user: User instruction
        temperature: Sampling temperature
        expect_array: Payload is a bare array. The model must wrap it in an
            object, the client unwraps the first array-valued field.
        max_tokens: Completion token cap
        model: Model override (defaults to the client's model)
    """

    system: str
    user: str
    temperature: float = 0.7
    expect_array: bool = False
    max_tokens: int = 2000
    model: Optional[str] = None


def classify_openai_error(error: Exception) -> Exception:
    """Translate an OpenAI SDK error into the upstream error taxonomy."""
    code = getattr(error, "code", None)

    if isinstance(error, openai.AuthenticationError) or code in INVALID_CREDENTIAL_CODES:
        return UpstreamAuthFailed(f"OpenAI rejected the API key: {error}", code=code)

    if code in QUOTA_CODES:
        return UpstreamRateLimited(f"OpenAI quota exceeded: {error}", code=code)

    return UpstreamTransient(f"OpenAI request failed: {error}", code=code)


def extract_array(payload: Any) -> list:
    """Return the payload if it is a list, else its first list-valued field."""
    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        for value in payload.values():
            if isinstance(value, list):
                return value

    raise ParseError("Expected an array in the response, but none was found")


class GenerationClient:
    """
    Async OpenAI wrapper used by every generation stage.

    Args:
        api_key: OpenAI API key (defaults to Config.OPENAI_API_KEY)
        model: Default model (defaults to Config.OPENAI_MODEL)
        max_attempts: Total attempts per call (defaults to Config.AI_MAX_RETRIES)
        retry_delay_ms: Base backoff delay (defaults to Config.AI_RETRY_DELAY_MS)
        client: Preconfigured AsyncOpenAI client
        sleep: Coroutine used to wait between attempts
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_attempts: Optional[int] = None,
        retry_delay_ms: Optional[int] = None,
        client: Optional[AsyncOpenAI] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.model = model or Config.OPENAI_MODEL
        self.max_attempts = max_attempts or Config.AI_MAX_RETRIES
        self.retry_delay_ms = Config.AI_RETRY_DELAY_MS if retry_delay_ms is None else retry_delay_ms
        self._sleep = sleep

        if client is not None:
            self._client = client
        else:
            api_key = api_key or Config.OPENAI_API_KEY
            if not api_key:
                logger.warning("OPENAI_API_KEY not set. Generation calls will fail.")
            # The SDK has its own retry loop; ours is the only one.
            self._client = AsyncOpenAI(api_key=api_key or "missing", max_retries=0)

    async def _complete(self, spec: PromptSpec) -> Any:
        """Single attempt: call the API and parse the JSON payload."""
        try:
            response = await self._client.chat.completions.create(
                model=spec.model or self.model,
                messages=[
                    {"role": "system", "content": spec.system},
                    {"role": "user", "content": spec.user},
                ],
                temperature=spec.temperature,
                max_tokens=spec.max_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            raise classify_openai_error(e) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ParseError("OpenAI returned an empty response")

        try:
            payload = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(f"OpenAI returned invalid JSON: {e}") from e

        if spec.expect_array:
            return extract_array(payload)
        return payload

    async def generate(self, spec: PromptSpec) -> Any:
        """
        Run a generation request with retry.

        Args:
            spec: Prompt and sampling parameters

        Returns:
            Parsed JSON payload (a list when spec.expect_array is set)

        Raises:
            UpstreamAuthFailed: Invalid credential or exhausted quota (no retry)
            UpstreamTransient: Last error after all attempts failed
        """
        base_delay = self.retry_delay_ms / 1000

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_incrementing(start=base_delay, increment=base_delay),
            retry=retry_if_exception_type(UpstreamTransient),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                return await self._complete(spec)

    def _log_retry(self, retry_state) -> None:
        error = retry_state.outcome.exception()
        logger.warning(
            f"OpenAI attempt {retry_state.attempt_number}/{self.max_attempts} failed: {error}. "
            f"Retrying in {retry_state.next_action.sleep:.1f}s"
        )
