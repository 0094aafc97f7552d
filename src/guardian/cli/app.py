"""CLI main module for Guardian."""

from __future__ import annotations

import asyncio

import typer
from loguru import logger

from guardian.config import Settings, load_settings
from guardian.errors import GuardianError
from guardian.integrations import LlmClaimClient, ReceiverProvider
from guardian.logging_utils import configure_logging
from guardian.runtime import REQUIRED_TOOLS, RunDriver
from guardian.runtime.session import connect_session
from guardian.types import DriverReport

from .render import Renderer

app = typer.Typer(
    name="guardian",
    help="Agent-to-agent health claim flow over MCP.",
    add_completion=False,
    rich_markup_mode="rich",
)


async def run_flow(settings: Settings) -> DriverReport:
    """Connect once and drive every configured run over that session."""

    async with connect_session(settings) as session:
        driver = RunDriver(
            session,
            claims=LlmClaimClient(settings.llm_url, settings.access_token or ""),
            receivers=ReceiverProvider(settings.premium_receiver),
            premium_amount=settings.premium_amount,
            tool_timeout_ms=settings.tool_timeout_ms,
            continue_on_error=settings.continue_on_error,
        )
        return await driver.run(
            settings.run_count,
            settings.inter_run_delay_ms,
            ready_timeout_ms=settings.ready_timeout_ms,
        )


def root_error(exc: BaseException) -> BaseException:
    """Unwrap single-member exception groups raised through task groups."""

    while isinstance(exc, BaseExceptionGroup) and len(exc.exceptions) == 1:
        exc = exc.exceptions[0]
    return exc


async def list_tools(settings: Settings) -> list[str]:
    async with connect_session(settings) as session:
        return await session.list_tool_names()


def _prepare(**overrides: object) -> tuple[Settings, Renderer]:
    settings = load_settings(**overrides)
    configure_logging(profile=settings.log_profile, level=settings.log_level)
    renderer = Renderer()
    if not settings.access_token:
        renderer.missing_token()
        raise typer.Exit(1)
    return settings, renderer


@app.command()
def run(
    runs: int | None = typer.Option(None, "--runs", "-n", min=0, help="Number of workflow runs"),
    interval_ms: int | None = typer.Option(None, "--interval-ms", min=0, help="Minimum gap between tool calls"),
    delay_ms: int | None = typer.Option(None, "--delay-ms", min=0, help="Pause between runs"),
    amount: float | None = typer.Option(None, "--amount", help="Premium payment amount"),
    receiver: str | None = typer.Option(None, "--receiver", help="Fixed premium receiver address"),
    continue_on_error: bool | None = typer.Option(
        None, "--continue-on-error/--fail-fast", help="Keep going after a failed run"
    ),
) -> None:
    """Run the agent-to-agent flow."""

    settings, renderer = _prepare(
        run_count=runs,
        min_interval_ms=interval_ms,
        run_delay_ms=delay_ms,
        premium_amount=amount,
        premium_receiver=receiver,
        continue_on_error=continue_on_error,
    )
    renderer.info(f"Running agent flow {settings.run_count} time(s) against {settings.mcp_url}")
    try:
        report = asyncio.run(run_flow(settings))
    except KeyboardInterrupt:
        renderer.info("Interrupted.")
        raise typer.Exit(130) from None
    except Exception as exc:
        cause = root_error(exc)
        if isinstance(cause, GuardianError):
            renderer.error(str(cause))
        else:
            logger.opt(exception=exc).error("guardian.flow.failed")
            renderer.error(f"Agent-to-agent flow failed: {cause!s}")
        raise typer.Exit(1) from exc

    renderer.report(report, explorer_url=settings.dkg_explorer_url)
    if not report.complete:
        raise typer.Exit(1)


@app.command()
def tools() -> None:
    """List tools registered on the capability server."""

    settings, renderer = _prepare()
    try:
        names = asyncio.run(list_tools(settings))
    except Exception as exc:
        logger.exception("guardian.tools.failed")
        renderer.error(f"Could not list tools: {exc!s}")
        raise typer.Exit(1) from exc
    renderer.tools(names, REQUIRED_TOOLS)
