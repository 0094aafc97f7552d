"""Receiver addresses for premium payments."""

from __future__ import annotations

import secrets
from collections.abc import Callable

ADDRESS_BYTES = 20


def random_address() -> str:
    """Return a fresh, unchecksummed 20-byte hex address."""

    return "0x" + secrets.token_hex(ADDRESS_BYTES)


class ReceiverProvider:
    """Yield the configured override, or a freshly generated address per call."""

    def __init__(self, override: str | None = None, *, generate: Callable[[], str] = random_address) -> None:
        self._override = override.strip() if override and override.strip() else None
        self._generate = generate

    @property
    def override(self) -> str | None:
        return self._override

    def __call__(self) -> str:
        if self._override is not None:
            return self._override
        return self._generate()
