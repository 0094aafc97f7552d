import re

import pytest
from fakes import WELL_FORMED_RESPONSES, FakeClaims, FakeSession

from guardian.errors import ClaimUnauthorizedError
from guardian.integrations.claims import FALLBACK_CLAIM
from guardian.runtime.invoker import ToolInvoker
from guardian.runtime.workflow import (
    ANALYZE_TOOL,
    DEMO_CONTEXT,
    FALLBACK_SUMMARY,
    MOCK_UAL,
    NO_EXPLORER_LINK,
    NO_TRANSACTION,
    PREMIUM_TOOL,
    PUBLISH_TOOL,
    WorkflowRun,
    WorkflowStep,
)

RECEIVER = "0x2222222222222222222222222222222222222222"


def _workflow(session: FakeSession, claims: FakeClaims | None = None, **kwargs) -> WorkflowRun:
    return WorkflowRun(
        1,
        invoker=ToolInvoker(session, session.limiter, default_timeout_ms=480_000),
        claims=claims or FakeClaims(),
        receivers=lambda: RECEIVER,
        premium_amount=kwargs.pop("premium_amount", 1.0),
        tool_timeout_ms=480_000,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_well_formed_run_populates_every_field() -> None:
    session = FakeSession(WELL_FORMED_RESPONSES)
    workflow = _workflow(session, FakeClaims(["Creatine improves memory"]))

    result = await workflow.execute()

    assert workflow.state is WorkflowStep.DONE
    assert session.names() == [ANALYZE_TOOL, PUBLISH_TOOL, PREMIUM_TOOL]
    assert result.claim == "Creatine improves memory"
    assert result.claim_source == "generated"
    assert result.claim_id == "claim_abc"
    assert result.analysis.verdict == "misleading"
    assert result.note_id == "note_abc"
    assert result.ual == "did:dkg:otp/0xabc/1"
    assert result.transaction_hash == "0xfeed"
    assert result.paid_to == "0x1111111111111111111111111111111111111111"
    assert result.explorer_link.endswith("/tx/0xfeed")


@pytest.mark.asyncio
async def test_step_arguments_chain_into_next_step() -> None:
    session = FakeSession(WELL_FORMED_RESPONSES)

    await _workflow(session, FakeClaims(["Claim text"]), premium_amount=2.5).execute()

    (_, analyze_args, analyze_timeout), (_, publish_args, _), (_, premium_args, _) = session.calls
    assert analyze_args == {"claim": "Claim text", "context": DEMO_CONTEXT}
    assert analyze_timeout == 480_000
    assert publish_args == {
        "claimId": "claim_abc",
        "summary": "Evidence is mixed.",
        "confidence": 0.82,
        "verdict": "misleading",
        "sources": ["PubMed 123"],
    }
    assert premium_args == {"noteId": "note_abc", "paymentAmount": 2.5, "recipient": RECEIVER}


@pytest.mark.asyncio
async def test_claim_generation_failure_uses_fallback_and_continues(log_messages: list[str]) -> None:
    session = FakeSession(WELL_FORMED_RESPONSES)
    claims = FakeClaims(error=ClaimUnauthorizedError("Unauthorized - check your access token"))

    result = await _workflow(session, claims).execute()

    assert result.claim == FALLBACK_CLAIM
    assert result.claim_source == "fallback"
    assert session.calls[0][1]["claim"] == FALLBACK_CLAIM
    assert any("degraded" in message and "kind=unauthorized" in message for message in log_messages)


@pytest.mark.asyncio
async def test_unexpected_claim_error_is_also_recovered() -> None:
    session = FakeSession(WELL_FORMED_RESPONSES)

    result = await _workflow(session, FakeClaims(error=RuntimeError("boom"))).execute()

    assert result.claim == FALLBACK_CLAIM
    assert len(session.calls) == 3


@pytest.mark.asyncio
async def test_missing_fields_resolve_to_fallbacks() -> None:
    session = FakeSession({ANALYZE_TOOL: {"content": []}, PUBLISH_TOOL: {}, PREMIUM_TOOL: None})

    result = await _workflow(session, timestamp=lambda: 1_700_000_000_000).execute()

    assert re.fullmatch(r"claim_\d+", result.claim_id)
    assert result.claim_id == "claim_1700000000000"
    assert result.note_id == "note_1700000000000"
    assert result.ual == MOCK_UAL
    assert result.transaction_hash == NO_TRANSACTION
    assert result.paid_to == RECEIVER
    assert result.explorer_link == NO_EXPLORER_LINK


@pytest.mark.asyncio
async def test_publish_defaults_when_analysis_is_empty() -> None:
    session = FakeSession({ANALYZE_TOOL: {"claimId": "c9", "analysis": {"confidence": 0}}})

    await _workflow(session).execute()

    publish_args = session.calls[1][1]
    assert publish_args == {
        "claimId": "c9",
        "summary": FALLBACK_SUMMARY,
        "confidence": 0,
        "verdict": "uncertain",
        "sources": ["Not provided"],
    }


@pytest.mark.parametrize("sources", [[], "PubMed 123"])
@pytest.mark.asyncio
async def test_publish_forwards_returned_sources_as_is(sources: object) -> None:
    session = FakeSession({ANALYZE_TOOL: {"claimId": "c9", "analysis": {"sources": sources}}})

    await _workflow(session).execute()

    assert session.calls[1][1]["sources"] == sources


@pytest.mark.asyncio
async def test_remote_failure_after_step_one_propagates() -> None:
    session = FakeSession({**WELL_FORMED_RESPONSES, PUBLISH_TOOL: TimeoutError("publish timed out")})
    workflow = _workflow(session)

    with pytest.raises(TimeoutError):
        await workflow.execute()

    assert workflow.state is WorkflowStep.PUBLISH
    assert session.names() == [ANALYZE_TOOL, PUBLISH_TOOL]
    assert workflow.result.claim_id == "claim_abc"
