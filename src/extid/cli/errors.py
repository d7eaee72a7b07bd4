"""
Standardized error handling and exit codes for the extid CLI.

Provides consistent error messaging with actionable guidance and
standardized exit codes across all commands.
"""

from enum import IntEnum
from pathlib import Path

from rich.console import Console

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for extid CLI operations."""

    SUCCESS = 0
    """Operation completed (including allocations that were skipped)."""

    GENERAL_ERROR = 1
    """Allocation failed and needs attention."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it
    """
    console.print(f"[red]Error:[/red] {problem}")

    if reason:
        console.print(f"[dim]{reason}[/dim]")

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}")


def print_database_missing_error(db_path: Path) -> None:
    """Print error when the hierarchy database has not been created."""
    print_error(
        f"No hierarchy database at {db_path}",
        reason="extid reads offices, groups and clients from a SQLite database",
        solution=f"extid init --db {db_path}",
    )


def print_invalid_kind_error(kind: str) -> None:
    """Print error when an entity kind is not recognized."""
    print_error(
        f"Unknown entity kind '{kind}'",
        solution="use one of: office, center, group, client",
    )
