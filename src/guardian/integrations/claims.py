"""Claim generation through the server's LLM endpoint."""

from __future__ import annotations

import json
import re
from typing import Any, Protocol

import httpx
from loguru import logger

from guardian.errors import ClaimForbiddenError, ClaimGenerationError, ClaimUnauthorizedError

CLAIM_PROMPT = (
    "Generate a realistic health claim that could be fact-checked. Examples: "
    "'Ashwagandha supplements increase muscle strength', "
    "'Intermittent fasting reverses type 2 diabetes in all cases', "
    "'Vitamin D alone prevents respiratory infections'. "
    "Return only the claim text, nothing else."
)
FALLBACK_CLAIM = "Ashwagandha supplements increase muscle strength."
REQUEST_TIMEOUT_SECONDS = 60.0

_EDGE_QUOTES = re.compile(r"^[\"']|[\"']$")


class ClaimGenerator(Protocol):
    async def generate(self) -> str: ...


def content_text(content: Any) -> str:
    """Flatten an LLM ``content`` field into plain text."""

    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for chunk in content:
            if isinstance(chunk, dict) and chunk.get("text"):
                parts.append(str(chunk["text"]))
            elif isinstance(chunk, str):
                parts.append(chunk)
            else:
                parts.append(json.dumps(chunk))
        return " ".join(parts)
    return json.dumps(content)


def clean_claim(text: str) -> str:
    """Trim whitespace and one pair of edge quote characters."""

    return _EDGE_QUOTES.sub("", text.strip()).strip()


class LlmClaimClient:
    """POST a fixed prompt to ``<server>/llm`` with a bearer token."""

    def __init__(
        self,
        url: str,
        access_token: str,
        *,
        prompt: str = CLAIM_PROMPT,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._access_token = access_token
        self._prompt = prompt
        self._timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    async def generate(self) -> str:
        payload = {"messages": [{"role": "user", "content": self._prompt}]}
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise ClaimGenerationError(f"LLM request failed: {exc!s}") from exc

        if response.status_code == 401:
            raise ClaimUnauthorizedError("Unauthorized - check your access token")
        if response.status_code == 403:
            raise ClaimForbiddenError("Forbidden - token may not have 'llm' scope")
        if not response.is_success:
            raise ClaimGenerationError(f"LLM request failed: {response.status_code} {response.reason_phrase}")

        try:
            body = response.json()
        except ValueError as exc:
            raise ClaimGenerationError(f"LLM returned invalid json: {exc!s}") from exc
        if not isinstance(body, dict) or body.get("content") is None:
            raise ClaimGenerationError("LLM response has no content")

        claim = clean_claim(content_text(body["content"]))
        if not claim:
            raise ClaimGenerationError("LLM returned an empty claim")
        logger.debug("claim.generated chars={}", len(claim))
        return claim
