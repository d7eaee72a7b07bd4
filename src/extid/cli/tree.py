"""
extid tree - show the hierarchy with its external identifiers.
"""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path

import typer
from rich.console import Console
from rich.tree import Tree

from extid.cli.errors import ExitCode, print_database_missing_error
from extid.core.config import load_config
from extid.core.ids.models import ClientNode, GroupNode, OfficeNode
from extid.core.store import SqliteHierarchyStore

console = Console()


def _label(kind: str, node_id: int, name: str, external_id: str | None) -> str:
    ext = f"[bold green]{external_id}[/bold green]" if external_id else "[dim]unallocated[/dim]"
    title = f" {name}" if name else ""
    return f"{kind} {node_id}{title} · {ext}"


def build_tree(
    offices: list[OfficeNode],
    groups: list[GroupNode],
    clients: list[ClientNode],
) -> Tree:
    """
    Build a rich Tree of offices, centers, groups and clients.

    Offices whose parent is unknown are shown at the top level. Clients
    with several groups are listed under each of them.
    """
    office_children: dict[int | None, list[OfficeNode]] = defaultdict(list)
    known_offices = {o.id for o in offices}
    for office in offices:
        parent = office.parent_id if office.parent_id in known_offices else None
        office_children[parent].append(office)

    centers: dict[int, list[GroupNode]] = defaultdict(list)
    group_children: dict[int, list[GroupNode]] = defaultdict(list)
    for group in groups:
        if group.is_center and group.office_id is not None:
            centers[group.office_id].append(group)
        elif group.parent_id is not None:
            group_children[group.parent_id].append(group)

    members: dict[int, list[ClientNode]] = defaultdict(list)
    for client in clients:
        for group_id in sorted(client.group_ids):
            members[group_id].append(client)

    def add_group(branch: Tree, group: GroupNode) -> None:
        kind = "center" if group.is_center else "group"
        node = branch.add(_label(kind, group.id, group.name, group.external_id))
        for child in group_children[group.id]:
            add_group(node, child)
        for client in members[group.id]:
            node.add(_label("client", client.id, client.name, client.external_id))

    def add_office(branch: Tree, office: OfficeNode) -> None:
        node = branch.add(_label("office", office.id, office.name, office.external_id))
        for center in centers[office.id]:
            add_group(node, center)
        for child in office_children[office.id]:
            add_office(node, child)

    root = Tree("[bold]Hierarchy[/bold]")
    for office in office_children[None]:
        add_office(root, office)
    return root


def tree(
    db: Path | None = typer.Option(
        None,
        "--db",
        help="SQLite database path (defaults to the configured db_path)",
    ),
) -> None:
    """
    Show offices, centers, groups and clients with their identifiers.

    Examples:
        extid tree
        extid tree --db hierarchy.db
    """
    db_path = db or Path(load_config().db_path)
    if not db_path.exists():
        print_database_missing_error(db_path)
        raise typer.Exit(ExitCode.USER_ERROR)

    store = SqliteHierarchyStore(db_path)
    console.print(build_tree(store.list_offices(), store.list_groups(), store.list_clients()))
