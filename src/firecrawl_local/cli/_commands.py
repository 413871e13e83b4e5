# pyright: reportUnusedFunction=false
"""Commands of the firecrawl-local CLI."""

from typing import TYPE_CHECKING

import anyio
from rich.table import Table

from firecrawl_local import __version__
from firecrawl_local.client import FirecrawlClient
from firecrawl_local.exceptions import SupervisorError, TerminationError
from firecrawl_local.supervisor import ConcatenatedOutputSink, Supervisor, check_backend

from ._context import CLIContext
from ._shared import ExitCode, exit_with_error

if TYPE_CHECKING:
    from cyclopts import App


async def _run_supervisor(ctx: CLIContext) -> None:
    output_sink = ConcatenatedOutputSink(console=ctx.error_console)
    supervisor = Supervisor(ctx.config, output_sink=output_sink, logger=ctx.logger)
    async with supervisor:
        await supervisor.run_until_signalled()


async def _probe_health(ctx: CLIContext) -> bool:
    async with FirecrawlClient(ctx.config.api_base_url, logger=ctx.logger) as client:
        return await client.health_check()


def register_commands(app: "App") -> None:  # noqa: UP037
    """Register the CLI commands on an app.

    Args:
        app: The cyclopts App to register commands on.
    """

    @app.command(name="start")
    def start() -> None:
        """Start the broker, the workers and the API server.

        Runs until interrupted with Ctrl-C or SIGTERM, then stops every
        process, API server first.
        """
        ctx = CLIContext.get_current()
        ctx.error_console.print(
            f"Starting Firecrawl from {ctx.config.backend_root} "
            f"(API on {ctx.config.api_base_url}, broker {ctx.config.broker_url})"
        )

        try:
            anyio.run(_run_supervisor, ctx)
        except TerminationError as e:
            exit_with_error(str(e), ExitCode.SHUTDOWN_ERROR, console=ctx.error_console)
        except SupervisorError as e:
            exit_with_error(str(e), ExitCode.STARTUP_ERROR, console=ctx.error_console)
        except KeyboardInterrupt:
            ctx.error_console.print("Interrupted")

    @app.command(name="setup")
    def setup() -> None:
        """Check that the executables and build outputs Firecrawl needs exist."""
        ctx = CLIContext.get_current()
        checks = check_backend(ctx.config)

        table = Table(title="Firecrawl prerequisites")
        table.add_column("Check")
        table.add_column("Status")
        table.add_column("Detail")
        for check in checks:
            status = "[green]ok[/green]" if check.ok else "[red]missing[/red]"
            table.add_row(check.name, status, check.detail)
        ctx.console.print(table)

        if not all(check.ok for check in checks):
            exit_with_error(
                "Some prerequisites are missing",
                ExitCode.NOT_READY,
                console=ctx.error_console,
            )

    @app.command(name="health")
    def health() -> None:
        """Check whether the API server answers its readiness endpoint."""
        ctx = CLIContext.get_current()
        if anyio.run(_probe_health, ctx):
            ctx.console.print(f"Firecrawl at {ctx.config.api_base_url} is healthy")
            return
        exit_with_error(
            f"Firecrawl at {ctx.config.api_base_url} is not responding",
            ExitCode.NOT_READY,
            console=ctx.error_console,
        )

    @app.command(name="version")
    def version() -> None:
        """Show the firecrawl-local version."""
        CLIContext.get_current().console.print(f"firecrawl-local {__version__}")
