"""Capability-server session over MCP streamable HTTP."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Protocol

from loguru import logger
from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import Implementation

from guardian import __version__
from guardian.config import Settings
from guardian.errors import AccessTokenMissingError
from guardian.runtime.limiter import RateLimiter
from guardian.types import Arguments, Envelope

CLIENT_NAME = "hg-agent-cli"


class ToolSession(Protocol):
    """Connection handle exposing discovery and invocation."""

    limiter: RateLimiter

    async def list_tool_names(self) -> list[str]: ...

    async def call_tool(self, name: str, arguments: Arguments, timeout_ms: int) -> Envelope: ...


class McpToolSession:
    """Adapter from an initialized MCP client session to ``ToolSession``."""

    def __init__(self, client: ClientSession, limiter: RateLimiter) -> None:
        self._client = client
        self.limiter = limiter

    async def list_tool_names(self) -> list[str]:
        result = await self._client.list_tools()
        return [tool.name for tool in result.tools]

    async def call_tool(self, name: str, arguments: Arguments, timeout_ms: int) -> Envelope:
        return await self._client.call_tool(
            name,
            arguments,
            read_timeout_seconds=timedelta(milliseconds=timeout_ms),
        )


def _mask(token: str) -> str:
    return f"{token[:8]}..."


@asynccontextmanager
async def connect_session(settings: Settings) -> AsyncIterator[McpToolSession]:
    """Open the transport, run the MCP handshake, and yield a session."""

    if not settings.access_token:
        raise AccessTokenMissingError("HG_AGENT_ACCESS_TOKEN is required")

    logger.info("session.connect url={} token={}", settings.mcp_url, _mask(settings.access_token))
    headers = {"Authorization": f"Bearer {settings.access_token}"}
    async with (
        streamablehttp_client(
            settings.mcp_url,
            headers=headers,
            timeout=timedelta(seconds=settings.connect_timeout_seconds),
            sse_read_timeout=timedelta(seconds=settings.read_timeout_seconds),
        ) as (read_stream, write_stream, _get_session_id),
        ClientSession(
            read_stream,
            write_stream,
            client_info=Implementation(name=CLIENT_NAME, version=__version__),
        ) as client,
    ):
        await client.initialize()
        logger.info("session.connected url={}", settings.mcp_url)
        yield McpToolSession(client, RateLimiter(settings.min_interval_ms))
