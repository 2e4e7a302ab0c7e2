"""
StrategyClient - calls the strategy API with streamed progress.

The client prefers the SSE stream. If the stream cannot be opened (the
server is unreachable or answers non-2xx before sending any record), it
retries once through the unary endpoint, which runs the same pipeline.
A 429 from either endpoint is raised as RateLimitExceeded and never falls
back, since the unary endpoint shares the stream's rate limit window.
Once a record has arrived the client is committed to the stream.

The whole attempt, fallback included, is bounded by ``timeout``.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from ..api.progress_stream import SSEDecoder
from ..core.config import Config
from ..core.errors import PipelineTimeout, RateLimitExceeded, StrategyGenerationFailed
from ..services.models import ProgressEvent, Strategy

logger = logging.getLogger(__name__)

STREAM_PATH = "/api/strategies/generate-stream"
UNARY_PATH = "/api/strategies/generate"


class StreamUnavailable(Exception):
    """The stream failed before delivering any record."""


class StrategyClient:
    """
    Client for strategy generation.

    Args:
        base_url: API root (defaults to Config.API_BASE_URL)
        timeout: Seconds allowed for the whole attempt
            (defaults to Config.STRATEGY_TIMEOUT_SECONDS)
        client: Optional shared httpx.AsyncClient. A client is created per
            call when omitted.
        user_id: Sent as X-User-Id, used by the server for rate limiting

    Example:
        >>> client = StrategyClient("http://localhost:8000")
        >>> strategy = await client.generate(
        ...     answers,
        ...     on_progress=lambda e: print(f"{e.progress}% {e.message}"),
        ... )
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        user_id: Optional[str] = None,
    ):
        self.base_url = (base_url or Config.API_BASE_URL).rstrip("/")
        self.timeout = Config.STRATEGY_TIMEOUT_SECONDS if timeout is None else timeout
        self.user_id = user_id
        self._client = client

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "text/event-stream, application/json"}
        if self.user_id:
            headers["X-User-Id"] = self.user_id
        return headers

    async def generate(
        self,
        onboarding_data: Mapping[str, Any],
        on_progress: Optional[Callable[[ProgressEvent], None]] = None,
        profile_id: Optional[str] = None,
    ) -> Strategy:
        """
        Generate a strategy.

        Raises:
            PipelineTimeout: The attempt did not finish within ``timeout``
            StrategyGenerationFailed: The server reported a failed run
            RateLimitExceeded: The server rejected the request with a 429
        """
        body: Dict[str, Any] = {"onboardingData": dict(onboarding_data)}
        if profile_id is not None:
            body["profileId"] = profile_id

        try:
            return await asyncio.wait_for(self._attempt(body, on_progress), self.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Strategy request timed out after {self.timeout}s")
            raise PipelineTimeout(self.timeout) from e

    async def _attempt(
        self,
        body: Dict[str, Any],
        on_progress: Optional[Callable[[ProgressEvent], None]],
    ) -> Strategy:
        if self._client is not None:
            return await self._stream_or_fallback(self._client, body, on_progress)

        async with httpx.AsyncClient(timeout=httpx.Timeout(None)) as client:
            return await self._stream_or_fallback(client, body, on_progress)

    async def _stream_or_fallback(
        self,
        client: httpx.AsyncClient,
        body: Dict[str, Any],
        on_progress: Optional[Callable[[ProgressEvent], None]],
    ) -> Strategy:
        try:
            return await self._stream(client, body, on_progress)
        except StreamUnavailable as e:
            logger.warning(f"Progress stream unavailable ({e}), falling back to unary request")
            return await self._unary(client, body)

    async def _stream(
        self,
        client: httpx.AsyncClient,
        body: Dict[str, Any],
        on_progress: Optional[Callable[[ProgressEvent], None]],
    ) -> Strategy:
        decoder = SSEDecoder()
        received = False

        try:
            async with client.stream(
                "POST",
                f"{self.base_url}{STREAM_PATH}",
                json=body,
                headers=self._headers(),
            ) as response:
                if response.status_code == 429:
                    raise _rate_limited(response)
                if response.status_code >= 300:
                    raise StreamUnavailable(f"HTTP {response.status_code}")

                async for chunk in response.aiter_text():
                    records = decoder.feed(chunk)
                    for record in records:
                        received = True
                        if record.type == "progress":
                            if on_progress:
                                on_progress(ProgressEvent(
                                    step=record.step,
                                    progress=record.progress,
                                    message=record.message,
                                ))
                        elif record.type == "complete":
                            return record.data
                        else:
                            raise StrategyGenerationFailed(
                                record.error,
                                cause=record.cause,
                                category=record.category,
                            )

                for record in decoder.flush():
                    if record.type == "complete":
                        return record.data
                    if record.type == "error":
                        raise StrategyGenerationFailed(
                            record.error,
                            cause=record.cause,
                            category=record.category,
                        )
        except httpx.HTTPError as e:
            if not received:
                raise StreamUnavailable(str(e) or type(e).__name__) from e
            raise StrategyGenerationFailed(f"Progress stream interrupted: {e}") from e

        raise StrategyGenerationFailed("Progress stream ended without a result")

    async def _unary(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> Strategy:
        try:
            response = await client.post(
                f"{self.base_url}{UNARY_PATH}",
                json=body,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise StrategyGenerationFailed(f"Strategy API unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code == 429:
            raise _rate_limited(response, payload)

        if response.status_code >= 300:
            if not isinstance(payload, dict):
                payload = {}
            raise StrategyGenerationFailed(
                payload.get("message") or payload.get("error") or f"HTTP {response.status_code}",
                cause=payload.get("cause"),
                category=payload.get("category"),
            )

        return Strategy.model_validate(payload)


def _rate_limited(response: httpx.Response, payload: Any = None) -> RateLimitExceeded:
    """Build RateLimitExceeded from a 429, preferring the Retry-After header."""
    retry_after = response.headers.get("Retry-After")
    if retry_after is None and isinstance(payload, dict):
        retry_after = payload.get("retryAfter")
    try:
        retry_after = int(retry_after)
    except (TypeError, ValueError):
        retry_after = 1

    headers = {
        name: value
        for name, value in response.headers.items()
        if name.lower() == "retry-after" or name.lower().startswith("x-ratelimit-")
    }
    return RateLimitExceeded(retry_after, headers)
