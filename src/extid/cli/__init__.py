"""
extid CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging
import sys

import typer
from rich.console import Console

from extid import __version__
from extid.cli import allocate, init_cmd, tree
from extid.core.config.env import load_layered_env

app = typer.Typer(
    name="extid",
    help="Allocate hierarchical external identifiers for offices, centers, groups and clients",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for all commands.

    Args:
        debug: If True, enable DEBUG level logging
    """
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    extid - hierarchical external identifier allocator.

    Identifiers grow along the tree Office → Center → Group → Client:

        office 05 → center 0501 → group 050101 → client 0501010001

    Quick Start:
        1. extid init                  # Create the hierarchy database
        2. extid allocate client 42    # Allocate a client and its ancestors
        3. extid tree                  # Review the identifiers
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()
    setup_logging(debug)
    ctx.obj = {"debug": debug}


app.command(name="init")(init_cmd.main)
app.command(name="allocate")(allocate.allocate)
app.command(name="tree")(tree.tree)


@app.command()
def version() -> None:
    """Show extid version and exit."""
    console.print(f"extid version {__version__}")
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
