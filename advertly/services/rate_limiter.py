"""
RateLimiter - fixed-window admission control per (identity, route).

Counters live in a ``limits`` storage backend. The default is in-process
memory; any ``limits`` storage URI (``redis://...``, ``memcached://...``)
can be configured so several API workers share one set of windows.

A window starts on the first request for a key and lasts ``window_seconds``.
Every request in the window increments the counter, rejected ones included.
Requests beyond ``max_requests`` are rejected until the window ends.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple, Union

from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter

from ..core.config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Admission:
    """Outcome of one admission check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds when the current window ends

    def retry_after(self, now: Optional[float] = None) -> int:
        """Whole seconds until the window resets."""
        now = time.time() if now is None else now
        return max(1, math.ceil(self.reset_at - now))


class RateLimiter:
    """
    Fixed-window rate limiter.

    Args:
        max_requests: Requests allowed per window
        window_seconds: Window length
        storage: ``limits`` Storage instance or storage URI
            (defaults to Config.RATE_LIMIT_STORAGE_URI)
        name: Namespace for keys, so limiters can share one storage

    Example:
        >>> limiter = RateLimiter(max_requests=3, window_seconds=300, name="strategy")
        >>> admission = limiter.admit("user-1", "/api/strategies/generate")
        >>> admission.allowed
        True
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        storage: Optional[Union[Storage, str]] = None,
        name: str = "default",
    ):
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")

        if storage is None:
            storage = Config.RATE_LIMIT_STORAGE_URI
        if isinstance(storage, str):
            storage = storage_from_string(storage)

        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(max_requests, window_seconds, namespace=name.upper())
        self._strategy = FixedWindowRateLimiter(storage)
        # Latest known window end per key, used by purge()
        self._windows: Dict[Tuple[str, str], float] = {}

    def admit(self, identity_key: str, route_key: str) -> Admission:
        """
        Count a request and decide whether it may proceed.

        Args:
            identity_key: Caller identity (user id or client address)
            route_key: Route or route class being accessed

        Returns:
            Admission with remaining budget and window reset time
        """
        allowed = self._strategy.hit(self._item, identity_key, route_key)
        reset_at, remaining = self._strategy.get_window_stats(self._item, identity_key, route_key)
        self._windows[(identity_key, route_key)] = reset_at

        if not allowed:
            logger.warning(
                f"Rate limit '{self.name}' exceeded for {identity_key} on {route_key}"
            )

        return Admission(
            allowed=allowed,
            limit=self.max_requests,
            remaining=max(0, remaining),
            reset_at=reset_at,
        )

    def headers(self, admission: Admission, now: Optional[float] = None) -> Dict[str, str]:
        """HTTP headers describing an admission. Retry-After only on rejection."""
        headers = {
            "X-RateLimit-Limit": str(admission.limit),
            "X-RateLimit-Remaining": str(max(0, admission.remaining)),
            "X-RateLimit-Reset": str(math.ceil(admission.reset_at)),
        }
        if not admission.allowed:
            headers["Retry-After"] = str(admission.retry_after(now))
        return headers

    def purge(self, now: Optional[float] = None) -> int:
        """
        Drop windows that have ended.

        Returns:
            Number of windows removed
        """
        now = time.time() if now is None else now
        expired = [key for key, reset_at in list(self._windows.items()) if reset_at <= now]

        for key in expired:
            self._strategy.clear(self._item, *key)
            del self._windows[key]

        if expired:
            logger.debug(f"Rate limiter '{self.name}' purged {len(expired)} expired windows")
        return len(expired)

    @property
    def active_windows(self) -> int:
        return len(self._windows)


async def run_purge_loop(limiters: Iterable[RateLimiter], interval_seconds: float) -> None:
    """Purge expired windows of every limiter every ``interval_seconds``. Runs until cancelled."""
    limiters = list(limiters)
    while True:
        await asyncio.sleep(interval_seconds)
        for limiter in limiters:
            limiter.purge()
