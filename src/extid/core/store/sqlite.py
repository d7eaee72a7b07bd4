"""
SQLite-backed hierarchy store.

Opens a fresh connection per operation, so one store instance can be
shared between threads (the allocation guard serializes writers per
scope). Connections use WAL mode and enforce foreign keys.

Usage:
    from extid.core.store.sqlite import SqliteHierarchyStore

    store = SqliteHierarchyStore(Path(".extid/hierarchy.db"))
    store.save_office(OfficeNode(id=1, name="Head Office"))
    office = store.get_office(1)
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from extid.core.ids.models import ClientNode, GroupNode, OfficeNode
from extid.core.store.backend import StoreError
from extid.core.store.schema import create_schema, needs_migration

logger = logging.getLogger(__name__)


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Row factory that returns rows as dictionaries."""
    fields = [column[0] for column in cursor.description]
    return dict(zip(fields, row))


def configure_connection(conn: sqlite3.Connection) -> None:
    """
    Configure a SQLite connection.

    Settings applied:
    - WAL mode: readers do not block the writer
    - Foreign keys: enforce parent references
    - busy timeout: wait for a concurrent writer instead of failing
    - dict_factory: dict-like row access
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute("PRAGMA busy_timeout=5000")
    conn.row_factory = dict_factory


def init_db(db_path: Path | str, *, force_recreate: bool = False) -> None:
    """
    Create the database file and schema if needed.

    Args:
        db_path: Path to the SQLite database file
        force_recreate: If True, delete the existing database first
    """
    db_path = Path(db_path)

    if force_recreate and db_path.exists():
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    try:
        configure_connection(conn)
        if needs_migration(conn):
            logger.info("Creating hierarchy schema in %s", db_path)
            create_schema(conn)
    finally:
        conn.close()


@contextmanager
def get_connection(db_path: Path | str) -> Iterator[sqlite3.Connection]:
    """
    Get a configured connection as a context manager.

    Commits on a clean exit, rolls back on error, always closes.

    Raises:
        StoreError: Wrapping any sqlite3.Error raised inside the block
    """
    conn = sqlite3.connect(str(db_path))
    configure_connection(conn)

    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        raise StoreError(f"Database error on {db_path}: {e}") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _office(row: dict[str, Any]) -> OfficeNode:
    return OfficeNode(
        id=row["id"],
        parent_id=row["parent_id"],
        external_id=row["external_id"],
        name=row["name"],
    )


def _group(row: dict[str, Any]) -> GroupNode:
    return GroupNode(
        id=row["id"],
        parent_id=row["parent_id"],
        is_center=bool(row["is_center"]),
        office_id=row["office_id"],
        external_id=row["external_id"],
        name=row["name"],
    )


class SqliteHierarchyStore:
    """
    HierarchyStore implementation over a SQLite file.

    The schema is created on construction if the file is new.

    Example:
        >>> store = SqliteHierarchyStore(tmp_path / "hierarchy.db")
        >>> store.save_office(OfficeNode(id=1))
        >>> store.get_office(1).parent_id is None
        True
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        init_db(self.db_path)

    # Offices

    def get_office(self, office_id: int) -> OfficeNode | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT * FROM offices WHERE id = ?", (office_id,)).fetchone()
        return _office(row) if row else None

    def get_office_children(self, parent_id: int) -> list[OfficeNode]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM offices WHERE parent_id = ? ORDER BY id", (parent_id,)
            ).fetchall()
        return [_office(r) for r in rows]

    def list_offices(self) -> list[OfficeNode]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute("SELECT * FROM offices ORDER BY id").fetchall()
        return [_office(r) for r in rows]

    def save_office(self, node: OfficeNode) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO offices (id, parent_id, external_id, name)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    parent_id = excluded.parent_id,
                    external_id = excluded.external_id,
                    name = excluded.name
                """,
                (node.id, node.parent_id, node.external_id, node.name),
            )

    # Centers and groups

    def get_group(self, group_id: int) -> GroupNode | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM org_groups WHERE id = ?", (group_id,)
            ).fetchone()
        return _group(row) if row else None

    def get_groups_by_parent(self, parent_id: int) -> list[GroupNode]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM org_groups WHERE parent_id = ? ORDER BY id", (parent_id,)
            ).fetchall()
        return [_group(r) for r in rows]

    def get_centers_by_office(self, office_id: int) -> list[GroupNode]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                "SELECT * FROM org_groups WHERE office_id = ? AND is_center = 1 ORDER BY id",
                (office_id,),
            ).fetchall()
        return [_group(r) for r in rows]

    def list_groups(self) -> list[GroupNode]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute("SELECT * FROM org_groups ORDER BY id").fetchall()
        return [_group(r) for r in rows]

    def save_group(self, node: GroupNode) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO org_groups (id, parent_id, is_center, office_id, external_id, name)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    parent_id = excluded.parent_id,
                    is_center = excluded.is_center,
                    office_id = excluded.office_id,
                    external_id = excluded.external_id,
                    name = excluded.name
                """,
                (
                    node.id,
                    node.parent_id,
                    int(node.is_center),
                    node.office_id,
                    node.external_id,
                    node.name,
                ),
            )

    # Clients

    def _client_rows(
        self, conn: sqlite3.Connection, rows: list[dict[str, Any]]
    ) -> list[ClientNode]:
        clients = []
        for row in rows:
            memberships = conn.execute(
                "SELECT group_id FROM client_groups WHERE client_id = ?", (row["id"],)
            ).fetchall()
            clients.append(
                ClientNode(
                    id=row["id"],
                    group_ids=frozenset(m["group_id"] for m in memberships),
                    external_id=row["external_id"],
                    name=row["name"],
                )
            )
        return clients

    def get_client(self, client_id: int) -> ClientNode | None:
        with get_connection(self.db_path) as conn:
            row = conn.execute("SELECT * FROM clients WHERE id = ?", (client_id,)).fetchone()
            if row is None:
                return None
            return self._client_rows(conn, [row])[0]

    def get_clients_by_group(self, group_id: int) -> list[ClientNode]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT c.* FROM clients c
                JOIN client_groups cg ON cg.client_id = c.id
                WHERE cg.group_id = ?
                ORDER BY c.id
                """,
                (group_id,),
            ).fetchall()
            return self._client_rows(conn, rows)

    def list_clients(self) -> list[ClientNode]:
        with get_connection(self.db_path) as conn:
            rows = conn.execute("SELECT * FROM clients ORDER BY id").fetchall()
            return self._client_rows(conn, rows)

    def save_client(self, node: ClientNode) -> None:
        with get_connection(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO clients (id, external_id, name)
                VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    external_id = excluded.external_id,
                    name = excluded.name
                """,
                (node.id, node.external_id, node.name),
            )
            conn.execute("DELETE FROM client_groups WHERE client_id = ?", (node.id,))
            conn.executemany(
                "INSERT INTO client_groups (client_id, group_id) VALUES (?, ?)",
                [(node.id, gid) for gid in sorted(node.group_ids)],
            )
