"""The command-line interface for firecrawl-local."""

from typing import Annotated

from cyclopts import App, Parameter
from rich.console import Console

from firecrawl_local.config import LogLevel, load_config
from firecrawl_local.exceptions import ConfigLoadError
from firecrawl_local.utils import create_supervisor_logger

from ._commands import register_commands
from ._context import CLIContext
from ._shared import ExitCode, exit_with_error

_HELP = "Run a local Firecrawl backend: Redis broker, queue workers and API server."


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
) -> App:
    """Create the CLI application.

    Args:
        console: Console for command output.
        error_console: Console for errors and child process output.
        exit_on_error: Whether cyclopts exits on parse errors.

    Returns:
        The configured cyclopts App.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    app = App(
        name="firecrawl-local",
        help=_HELP,
        help_on_error=True,
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.meta.default
    def _default(  # pyright: ignore[reportUnusedFunction]
        *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
        verbose: Annotated[bool, Parameter(help="Enable debug logging")] = False,
    ) -> None:
        """Launch the CLI with global options.

        Args:
            tokens: Command tokens to pass to subcommands.
            verbose: Enable debug logging.
        """
        try:
            config = load_config()
        except ConfigLoadError as e:
            exit_with_error(str(e), ExitCode.CONFIG_ERROR, console=error_console)

        if verbose:
            config = config.model_copy(
                update={
                    "logging": config.logging.model_copy(
                        update={"level": LogLevel.DEBUG}
                    )
                }
            )

        logger = create_supervisor_logger(
            level=config.logging.level.value,
            log_format=config.logging.format.value,  # type: ignore[arg-type]
            log_file=config.logging.file,
            component="supervisor",
            max_bytes=config.logging.max_bytes or None,
            backup_count=config.logging.backup_count,
        )

        CLIContext.set_current(
            CLIContext(
                config=config,
                console=console,
                error_console=error_console,
                logger=logger,
                verbose=verbose,
            )
        )
        try:
            app(tokens)
        finally:
            CLIContext.reset()

    register_commands(app)
    return app


def main() -> None:
    """Default entrypoint for the `firecrawl-local` CLI."""
    app = create_app()
    app.meta()


if __name__ == "__main__":
    main()
