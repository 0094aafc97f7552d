"""Data records shared by the workflow runtime."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, TypeAlias

Envelope: TypeAlias = Any
Arguments: TypeAlias = dict[str, Any]


@dataclass(frozen=True)
class ToolCallRecord:
    """One tool invocation as issued past the rate-limit gate."""

    name: str
    arguments: Arguments
    timeout_ms: int
    issued_at: float


@dataclass(frozen=True)
class Analysis:
    """Optional analysis fields returned by the analyze step."""

    summary: str | None = None
    confidence: float | None = None
    verdict: str | None = None
    sources: Any = None

    @classmethod
    def from_payload(cls, payload: Any) -> Analysis:
        if not isinstance(payload, dict):
            return cls()
        sources = payload.get("sources")
        return cls(
            summary=payload.get("summary"),
            confidence=payload.get("confidence"),
            verdict=payload.get("verdict"),
            sources=list(sources) if isinstance(sources, tuple) else sources,
        )


@dataclass
class RunResult:
    """Outcome of one complete four-step workflow run."""

    run: int
    claim: str = ""
    claim_source: str = "generated"
    claim_id: str = ""
    analysis: Analysis = field(default_factory=Analysis)
    note_id: str = ""
    ual: str = ""
    transaction_hash: str = ""
    paid_to: str = ""
    explorer_link: str = ""


@dataclass(frozen=True)
class RunOutcome:
    """Per-run status recorded by the driver."""

    run: int
    result: RunResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DriverReport:
    """Aggregate of all runs executed by one driver invocation."""

    requested: int
    outcomes: list[RunOutcome] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    @property
    def complete(self) -> bool:
        return self.failed == 0 and len(self.outcomes) == self.requested
