"""Main CLI application module.

This module provides the main entry point for chectl. Commands are grouped
by the resource they manage.

Command Groups:
- server: Start, stop, delete and inspect a Che server
"""

import sys
from typing import Annotated

import typer
from loguru import logger

from .commands import server_app

# Create the main CLI application
app = typer.Typer(
    help="☁️  chectl - Eclipse Che lifecycle tool",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(server_app, name="server", help="Control Eclipse Che server")


def configure_logging(debug: bool = False) -> None:
    """Send library logs to stderr; only warnings unless debugging."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "WARNING")


@app.callback()
def _root(
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Print debug logs to stderr"),
    ] = False,
) -> None:
    configure_logging(debug)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
