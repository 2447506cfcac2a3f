"""Outbound request throttle for LLM calls."""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from formchat.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RequestThrottle:
    """
    Serializes calls and spaces their start times.

    At most one call runs at a time, and consecutive call starts are at least
    ``min_interval`` seconds apart. Waiters are served in arrival order
    (``asyncio.Lock`` wakes waiters FIFO). A queued call cannot be removed;
    a caller that gives up still occupies its slot until it runs.
    """

    def __init__(self, requests_per_minute: int = 20, min_interval: float | None = None):
        """
        Initialize throttle.

        Args:
            requests_per_minute: Sustained rate limit, converted to a start spacing
            min_interval: Explicit spacing in seconds (overrides requests_per_minute)
        """
        if min_interval is None:
            if requests_per_minute <= 0:
                raise ValueError("requests_per_minute must be positive")
            min_interval = 60.0 / requests_per_minute

        self.requests_per_minute = requests_per_minute
        self.min_interval = min_interval

        self._lock = asyncio.Lock()
        self._last_start: float | None = None
        self._queued = 0
        self._total_requests = 0

    async def schedule(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Run ``fn(*args, **kwargs)`` once a slot is free.

        Args:
            fn: Coroutine function to run
            *args: Positional arguments for fn
            **kwargs: Keyword arguments for fn

        Returns:
            Whatever fn returns; exceptions propagate unchanged
        """
        self._queued += 1
        acquired = False
        try:
            async with self._lock:
                acquired = True
                self._queued -= 1
                await self._wait_for_spacing()
                self._last_start = time.monotonic()
                self._total_requests += 1
                return await fn(*args, **kwargs)
        finally:
            if not acquired:
                self._queued -= 1

    async def _wait_for_spacing(self) -> None:
        if self._last_start is None:
            return
        while True:
            wait = self._last_start + self.min_interval - time.monotonic()
            if wait <= 0:
                return
            logger.debug(f"Throttling LLM request for {wait:.3f}s (queued={self._queued})")
            await asyncio.sleep(wait)

    def get_stats(self) -> dict[str, Any]:
        """
        Get throttle stats.

        Returns:
            Dictionary with stats
        """
        return {
            "requests_per_minute": self.requests_per_minute,
            "min_interval_seconds": self.min_interval,
            "in_flight": self._lock.locked(),
            "queued": self._queued,
            "total_requests": self._total_requests,
        }
