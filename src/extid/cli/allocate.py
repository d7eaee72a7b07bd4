"""
extid allocate - run the allocator for one entity.

Mirrors what the event layer does after a create/update notification,
and reports the outcome instead of discarding it.
"""

from pathlib import Path

import typer
from rich.console import Console

from extid.cli.errors import (
    ExitCode,
    print_database_missing_error,
    print_error,
    print_invalid_kind_error,
)
from extid.core.config import load_config
from extid.core.ids import (
    AllocationOutcome,
    EntityKind,
    EntityNotFoundError,
    ExtIdError,
    HierarchyAllocator,
    handle_event,
)
from extid.core.store import SqliteHierarchyStore, StoreError

console = Console()


def allocate(
    kind: str = typer.Argument(..., help="office, center, group or client"),
    resource_id: int = typer.Argument(..., help="Id of the entity"),
    action: str = typer.Option(
        "create",
        "--action",
        "-a",
        help="Event action; only create and update allocate",
    ),
    db: Path | None = typer.Option(
        None,
        "--db",
        help="SQLite database path (defaults to the configured db_path)",
    ),
) -> None:
    """
    Allocate an external identifier for an entity and its ancestors.

    Examples:
        extid allocate client 42
        extid allocate Office 7 --action update
    """
    if EntityKind.parse(kind) is None:
        print_invalid_kind_error(kind)
        raise typer.Exit(ExitCode.USER_ERROR)

    config = load_config()
    db_path = db or Path(config.db_path)
    if not db_path.exists():
        print_database_missing_error(db_path)
        raise typer.Exit(ExitCode.USER_ERROR)

    allocator = HierarchyAllocator(SqliteHierarchyStore(db_path), config=config)

    try:
        result = handle_event(kind, action, resource_id, allocator=allocator)
    except EntityNotFoundError as e:
        print_error(str(e), solution=f"check the id, e.g. extid tree --db {db_path}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)
    except (ExtIdError, StoreError) as e:
        print_error(str(e), reason="Allocation failed and needs operator attention")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    label = f"{kind.lower()} {resource_id}"
    if result.outcome == AllocationOutcome.ALLOCATED:
        console.print(f"[green]✓[/green] {label}: allocated [bold]{result.external_id}[/bold]")
    elif result.outcome == AllocationOutcome.EXISTING:
        console.print(f"[blue]•[/blue] {label}: already [bold]{result.external_id}[/bold]")
    else:
        reason = result.reason.value if result.reason else "skipped"
        console.print(f"[yellow]⚠[/yellow]  {label}: skipped ({reason})")
        if result.detail:
            console.print(f"[dim]{result.detail}[/dim]")
