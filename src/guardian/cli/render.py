"""CLI renderer for Guardian."""

from __future__ import annotations

from urllib.parse import quote

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from guardian.runtime.workflow import MOCK_UAL
from guardian.types import DriverReport


def ual_explorer_link(explorer_url: str, ual: str) -> str | None:
    """Build a DKG explorer link for a real UAL."""

    if not ual or ual == MOCK_UAL:
        return None
    return f"{explorer_url}?ual={quote(ual, safe='')}"


class Renderer:
    """CLI renderer using Rich for terminal output."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def info(self, message: str) -> None:
        self.console.print(message)

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def missing_token(self) -> None:
        self.error("HG_AGENT_ACCESS_TOKEN environment variable is required.")
        self.console.print(
            "\n".join([
                "",
                "To create an access token:",
                "1. Start the main server: cd apps/agent && npm run dev:server",
                "2. Create a token: npm run script:createToken",
                "3. Enter scope: mcp llm (required for claim generation)",
                "4. Set the token: export HG_AGENT_ACCESS_TOKEN=<your-token>",
                "",
                "Alternatively, add it to .env.health-guardian:",
                "HG_AGENT_ACCESS_TOKEN=<your-token>",
            ]),
            markup=False,
        )

    def tools(self, names: list[str], required: tuple[str, ...]) -> None:
        if not names:
            self.console.print("[dim](no tools registered)[/dim]")
            return
        for name in sorted(names):
            marker = "[green]*[/green]" if name in required else " "
            self.console.print(f"{marker} {name}")
        missing = [name for name in required if name not in names]
        if missing:
            self.console.print(f"[yellow]missing required:[/yellow] {', '.join(missing)}")

    def report(self, report: DriverReport, *, explorer_url: str) -> None:
        table = Table(title=f"Agent flow: {report.succeeded}/{report.requested} runs succeeded")
        for column in ("Run", "Claim", "Claim ID", "Note ID", "UAL", "Tx", "Paid to"):
            table.add_column(column, overflow="fold")

        links: list[str] = []
        for outcome in report.outcomes:
            result = outcome.result
            if result is None:
                table.add_row(str(outcome.run), f"[red]{escape(outcome.error or '')}[/red]", "", "", "", "", "")
                continue
            claim = result.claim if result.claim_source == "generated" else f"{result.claim} (fallback)"
            cells = (claim, result.claim_id, result.note_id, result.ual, result.transaction_hash, result.paid_to)
            table.add_row(str(outcome.run), *(escape(cell) for cell in cells))
            link = ual_explorer_link(explorer_url, result.ual)
            if link:
                links.append(link)

        self.console.print(table)
        for link in links:
            self.console.print(f"[blue]{escape(link)}[/blue]", highlight=False)
        self.console.print(f"[dim]Total time: {report.elapsed_seconds:.2f}s[/dim]")
