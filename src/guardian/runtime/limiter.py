"""Minimum-interval gate shared by every tool call of one session."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import TypeAlias

from loguru import logger

Clock: TypeAlias = Callable[[], float]
Sleeper: TypeAlias = Callable[[float], Awaitable[None]]


def monotonic_ms() -> float:
    return time.monotonic() * 1000


class RateLimiter:
    """Grant turns no closer together than ``min_interval_ms``.

    The grant timestamp is taken when the turn is handed out, so callers must
    issue the gated operation right after ``await_turn`` returns.
    """

    def __init__(
        self,
        min_interval_ms: int,
        *,
        clock: Clock = monotonic_ms,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        if min_interval_ms < 0:
            raise ValueError(f"min_interval_ms must be >= 0, got {min_interval_ms}")
        self.min_interval_ms = min_interval_ms
        self._clock = clock
        self._sleep = sleep
        self._last_granted: float | None = None
        self._lock = asyncio.Lock()

    @property
    def last_granted(self) -> float | None:
        return self._last_granted

    async def await_turn(self, label: str = "") -> float:
        """Suspend until the interval has elapsed, then record and return the grant time."""

        async with self._lock:
            if self._last_granted is not None:
                elapsed = self._clock() - self._last_granted
                if elapsed < self.min_interval_ms:
                    wait_ms = self.min_interval_ms - elapsed
                    logger.info("tool.throttle name={} wait_ms={:.0f}", label or "-", wait_ms)
                    await self._sleep(wait_ms / 1000)
            self._last_granted = self._clock()
            return self._last_granted
