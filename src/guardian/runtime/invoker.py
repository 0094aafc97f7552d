"""Single choke point for remote tool calls."""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from typing import Any, Protocol

from loguru import logger

from guardian.envelope import field_or
from guardian.runtime.limiter import RateLimiter
from guardian.types import Arguments, Envelope, ToolCallRecord


class ToolCaller(Protocol):
    async def call_tool(self, name: str, arguments: Arguments, timeout_ms: int) -> Envelope: ...


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    if len(text) <= width:
        return text
    available = width - len(placeholder)
    if available <= 0:
        return placeholder
    return text[:available] + placeholder


def _render_arguments(arguments: Arguments) -> str:
    params: list[str] = []
    for key, value in arguments.items():
        try:
            rendered = json.dumps(value, ensure_ascii=False)
        except TypeError:
            rendered = repr(value)
        params.append(f"{key}={_shorten_text(rendered)}")
    return ", ".join(params)


class ToolInvoker:
    """Rate-limited tool invocation with a per-call timeout.

    Failures from the remote side propagate unchanged; retry policy is not
    this layer's concern.
    """

    def __init__(
        self,
        caller: ToolCaller,
        limiter: RateLimiter,
        *,
        default_timeout_ms: int,
        on_record: Callable[[ToolCallRecord], Any] | None = None,
    ) -> None:
        self._caller = caller
        self._limiter = limiter
        self._default_timeout_ms = default_timeout_ms
        self._on_record = on_record

    async def invoke(self, name: str, arguments: Arguments, timeout_ms: int | None = None) -> Envelope:
        timeout = timeout_ms if timeout_ms is not None else self._default_timeout_ms
        await self._limiter.await_turn(name)
        record = ToolCallRecord(name=name, arguments=dict(arguments), timeout_ms=timeout, issued_at=time.time())
        if self._on_record is not None:
            self._on_record(record)

        logger.info("tool.call.start name={} timeout_ms={} {{ {} }}", name, timeout, _render_arguments(arguments))
        start = time.monotonic()
        try:
            result = await self._caller.call_tool(name, record.arguments, timeout)
        except Exception:
            logger.error("tool.call.error name={}", name)
            raise
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", name, duration * 1000)

        if field_or(result, "isError", False):
            logger.warning("tool.call.remote_error name={}", name)
        return result
