"""Field extraction for loosely shaped tool result envelopes.

Tool results are not contractually fixed: a field may sit directly on the
result or under its ``structuredContent`` container, and results may be plain
mappings or attribute-based objects. Lookups here never raise.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final, Generic, TypeAlias, TypeVar

from guardian.types import Envelope

T = TypeVar("T")

STRUCTURED_CONTAINER = "structuredContent"


@dataclass(frozen=True)
class Present(Generic[T]):
    """A field that was found on the envelope."""

    value: T


class _AbsentType:
    _instance: _AbsentType | None = None

    def __new__(cls) -> _AbsentType:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Absent"

    def __bool__(self) -> bool:
        return False


Absent: Final = _AbsentType()

Lookup: TypeAlias = "Present[T] | _AbsentType"


def _lookup(container: Any, key: str) -> Lookup[Any]:
    if container is None:
        return Absent
    if isinstance(container, Mapping):
        value = container.get(key)
    else:
        try:
            value = getattr(container, key, None)
        except Exception:
            return Absent
    if value is None:
        return Absent
    return Present(value)


def extract(envelope: Envelope, key: str) -> Lookup[Any]:
    """Look up ``key`` on the envelope, then under its structured container."""

    direct = _lookup(envelope, key)
    if isinstance(direct, Present):
        return direct

    structured = _lookup(envelope, STRUCTURED_CONTAINER)
    if isinstance(structured, Present):
        return _lookup(structured.value, key)
    return Absent


def field_or(envelope: Envelope, key: str, default: Any) -> Any:
    """Return the extracted value when present and truthy, otherwise ``default``."""

    found = extract(envelope, key)
    if isinstance(found, Present) and found.value:
        return found.value
    return default
