"""
extid init - create the hierarchy database.
"""

from pathlib import Path

import typer
from rich.console import Console

from extid.core.config import load_config
from extid.core.store.sqlite import init_db

console = Console()


def main(
    db: Path | None = typer.Option(
        None,
        "--db",
        help="SQLite database path (defaults to the configured db_path)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Delete and recreate an existing database",
    ),
) -> None:
    """
    Create the SQLite schema for offices, groups and clients.

    Examples:
        extid init
        extid init --db /var/lib/extid/hierarchy.db
    """
    db_path = db or Path(load_config().db_path)
    init_db(db_path, force_recreate=force)
    console.print(f"[green]✓[/green] Hierarchy database ready at {db_path}")
