"""Bounded polling for tools that register after the handshake."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Protocol

from loguru import logger

from guardian.errors import ToolsNotReadyError
from guardian.runtime.limiter import Clock, Sleeper, monotonic_ms

POLL_INTERVAL_MS = 500


class ToolDiscovery(Protocol):
    async def list_tool_names(self) -> list[str]: ...


class ReadinessWaiter:
    """Poll tool discovery until every required name is present."""

    def __init__(
        self,
        discovery: ToolDiscovery,
        *,
        poll_interval_ms: int = POLL_INTERVAL_MS,
        clock: Clock = monotonic_ms,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._discovery = discovery
        self._poll_interval_ms = poll_interval_ms
        self._clock = clock
        self._sleep = sleep

    async def wait_for(self, required: Iterable[str], timeout_ms: int) -> set[str]:
        """Return the discovered names once they cover ``required``.

        Raises:
            ToolsNotReadyError: when ``timeout_ms`` elapses with names still missing.
        """

        wanted = set(required)
        start = self._clock()
        polls = 0
        while True:
            polls += 1
            found = set(await self._discovery.list_tool_names())
            missing = wanted - found
            if not missing:
                logger.info("tools.ready polls={} tools={}", polls, ",".join(sorted(wanted)))
                return found
            if self._clock() - start > timeout_ms:
                raise ToolsNotReadyError(missing, found, timeout_ms)
            logger.debug("tools.waiting poll={} missing={}", polls, ",".join(sorted(missing)))
            await self._sleep(self._poll_interval_ms / 1000)
