"""One run of the analyze, publish, monetize workflow."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from enum import StrEnum

from loguru import logger

from guardian.envelope import field_or
from guardian.errors import ClaimGenerationError
from guardian.integrations.claims import FALLBACK_CLAIM, ClaimGenerator
from guardian.runtime.invoker import ToolInvoker
from guardian.types import Analysis, RunResult

ANALYZE_TOOL = "analyze-health-claim"
PUBLISH_TOOL = "publish-health-note"
PREMIUM_TOOL = "access-premium-health-insights"
REQUIRED_TOOLS = (ANALYZE_TOOL, PUBLISH_TOOL, PREMIUM_TOOL)

DEMO_CONTEXT = "Automated agent-to-agent health validation demo"
FALLBACK_SUMMARY = "Automated publish from agent-to-agent flow (no summary in analysis payload)."
FALLBACK_CONFIDENCE = 0.5
FALLBACK_VERDICT = "uncertain"
FALLBACK_SOURCES = ("Not provided",)
MOCK_UAL = "did:dkg:mock"
NO_TRANSACTION = "n/a"
NO_EXPLORER_LINK = "not available"


def now_ms() -> int:
    return int(time.time() * 1000)


class WorkflowStep(StrEnum):
    GENERATE_INPUT = "generate_input"
    ANALYZE = "analyze"
    PUBLISH = "publish"
    MONETIZE = "monetize"
    DONE = "done"


class WorkflowRun:
    """Forward-only four-step run.

    Claim generation is best effort and falls back to a fixed claim. Tool calls
    in the later steps are not caught here; missing response fields resolve to
    fallback values instead.
    """

    def __init__(
        self,
        run: int,
        *,
        invoker: ToolInvoker,
        claims: ClaimGenerator,
        receivers: Callable[[], str],
        premium_amount: float,
        tool_timeout_ms: int,
        timestamp: Callable[[], int] = now_ms,
    ) -> None:
        self.run = run
        self.state = WorkflowStep.GENERATE_INPUT
        self.result = RunResult(run=run)
        self._invoker = invoker
        self._claims = claims
        self._receivers = receivers
        self._premium_amount = premium_amount
        self._tool_timeout_ms = tool_timeout_ms
        self._timestamp = timestamp

    def _steps(self) -> list[tuple[WorkflowStep, Callable[[], Awaitable[None]]]]:
        return [
            (WorkflowStep.GENERATE_INPUT, self._generate_input),
            (WorkflowStep.ANALYZE, self._analyze),
            (WorkflowStep.PUBLISH, self._publish),
            (WorkflowStep.MONETIZE, self._monetize),
        ]

    async def execute(self) -> RunResult:
        for step, handler in self._steps():
            self.state = step
            logger.info("workflow.step.start run={} step={}", self.run, step)
            await handler()
        self.state = WorkflowStep.DONE
        return self.result

    async def _generate_input(self) -> None:
        try:
            claim = await self._claims.generate()
        except Exception as exc:
            kind = exc.kind if isinstance(exc, ClaimGenerationError) else "failed"
            logger.warning(
                "workflow.step.degraded run={} step={} kind={} error={}",
                self.run,
                WorkflowStep.GENERATE_INPUT,
                kind,
                exc,
            )
            self.result.claim = FALLBACK_CLAIM
            self.result.claim_source = "fallback"
            return
        self.result.claim = claim
        self.result.claim_source = "generated"
        logger.info('workflow.claim run={} claim="{}"', self.run, claim)

    async def _analyze(self) -> None:
        envelope = await self._invoker.invoke(
            ANALYZE_TOOL,
            {"claim": self.result.claim, "context": DEMO_CONTEXT},
            self._tool_timeout_ms,
        )
        self.result.claim_id = str(field_or(envelope, "claimId", f"claim_{self._timestamp()}"))
        self.result.analysis = Analysis.from_payload(field_or(envelope, "analysis", {}))

    async def _publish(self) -> None:
        analysis = self.result.analysis
        envelope = await self._invoker.invoke(
            PUBLISH_TOOL,
            {
                "claimId": self.result.claim_id,
                "summary": analysis.summary or FALLBACK_SUMMARY,
                "confidence": analysis.confidence if analysis.confidence is not None else FALLBACK_CONFIDENCE,
                "verdict": analysis.verdict or FALLBACK_VERDICT,
                "sources": analysis.sources if analysis.sources is not None else list(FALLBACK_SOURCES),
            },
            self._tool_timeout_ms,
        )
        self.result.note_id = str(field_or(envelope, "noteId", f"note_{self._timestamp()}"))
        self.result.ual = str(field_or(envelope, "ual", MOCK_UAL))
        logger.info("workflow.published run={} note_id={} ual={}", self.run, self.result.note_id, self.result.ual)

    async def _monetize(self) -> None:
        receiver = self._receivers()
        envelope = await self._invoker.invoke(
            PREMIUM_TOOL,
            {
                "noteId": self.result.note_id,
                "paymentAmount": self._premium_amount,
                "recipient": receiver,
            },
            self._tool_timeout_ms,
        )
        self.result.transaction_hash = str(field_or(envelope, "transactionHash", NO_TRANSACTION))
        self.result.paid_to = str(field_or(envelope, "paidTo", receiver))
        self.result.explorer_link = str(field_or(envelope, "explorerLink", NO_EXPLORER_LINK))
        logger.info(
            "workflow.premium run={} tx={} paid_to={} explorer={}",
            self.run,
            self.result.transaction_hash,
            self.result.paid_to,
            self.result.explorer_link,
        )
