"""Repeat the workflow over one shared session."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Iterable

from loguru import logger

from guardian.config import DEFAULT_READY_TIMEOUT_MS, DEFAULT_TOOL_TIMEOUT_MS
from guardian.errors import RunFailedError
from guardian.integrations.claims import ClaimGenerator
from guardian.runtime.invoker import ToolInvoker
from guardian.runtime.limiter import Sleeper
from guardian.runtime.readiness import ReadinessWaiter
from guardian.runtime.session import ToolSession
from guardian.runtime.workflow import REQUIRED_TOOLS, WorkflowRun
from guardian.types import DriverReport, RunOutcome, ToolCallRecord


class RunDriver:
    """Run the workflow ``run_count`` times with a pause between runs.

    Without ``continue_on_error`` the first failed run stops the driver and
    the failure is raised as ``RunFailedError``. With it, failures are recorded
    in the report and the next run starts after the usual pause.
    """

    def __init__(
        self,
        session: ToolSession,
        *,
        claims: ClaimGenerator,
        receivers: Callable[[], str],
        premium_amount: float,
        tool_timeout_ms: int = DEFAULT_TOOL_TIMEOUT_MS,
        continue_on_error: bool = False,
        required_tools: Iterable[str] = REQUIRED_TOOLS,
        waiter: ReadinessWaiter | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._session = session
        self._claims = claims
        self._receivers = receivers
        self._premium_amount = premium_amount
        self._tool_timeout_ms = tool_timeout_ms
        self._continue_on_error = continue_on_error
        self._required_tools = tuple(required_tools)
        self._waiter = waiter or ReadinessWaiter(session)
        self._sleep = sleep
        self.calls: list[ToolCallRecord] = []
        self._invoker = ToolInvoker(
            session,
            session.limiter,
            default_timeout_ms=tool_timeout_ms,
            on_record=self.calls.append,
        )

    async def run(
        self,
        run_count: int,
        inter_run_delay_ms: int,
        *,
        ready_timeout_ms: int = DEFAULT_READY_TIMEOUT_MS,
    ) -> DriverReport:
        await self._waiter.wait_for(self._required_tools, ready_timeout_ms)

        report = DriverReport(requested=run_count)
        started = time.monotonic()
        logger.info("driver.start runs={} delay_ms={}", run_count, inter_run_delay_ms)
        try:
            for run in range(1, run_count + 1):
                report.outcomes.append(await self._run_once(run, run_count))
                if run < run_count:
                    logger.info("driver.run.pause run={}/{} delay_ms={}", run, run_count, inter_run_delay_ms)
                    await self._sleep(inter_run_delay_ms / 1000)
        finally:
            report.elapsed_seconds = time.monotonic() - started
            logger.info(
                "driver.finish succeeded={} failed={} calls={} elapsed={:.2f}s",
                report.succeeded,
                report.failed,
                len(self.calls),
                report.elapsed_seconds,
            )
        return report

    async def _run_once(self, run: int, run_count: int) -> RunOutcome:
        logger.info("driver.run.start run={}/{}", run, run_count)
        workflow = WorkflowRun(
            run,
            invoker=self._invoker,
            claims=self._claims,
            receivers=self._receivers,
            premium_amount=self._premium_amount,
            tool_timeout_ms=self._tool_timeout_ms,
        )
        try:
            result = await workflow.execute()
        except Exception as exc:
            failure = RunFailedError(run, exc)
            logger.opt(exception=exc).error("driver.run.error run={}/{} step={}", run, run_count, workflow.state)
            if not self._continue_on_error:
                raise failure from exc
            return RunOutcome(run=run, error=str(failure))
        logger.info("driver.run.finish run={}/{}", run, run_count)
        return RunOutcome(run=run, result=result)
