"""
SQLite schema for the hierarchy store.

Schema Design:
- offices: office tree (parent_id NULL for the root)
- org_groups: centers (is_center = 1, anchored to office_id) and plain groups
  (parent_id points at a center or another group)
- clients: clients
- client_groups: client memberships (allocation needs exactly one)
- schema_info: version tracking for migrations

Office identifiers are unique when set: depth-1 and taluk widths never
produce the same code twice. Group and client codes are not constrained.
A center anchored directly to an unallocated root office has an empty
prefix, so its codes can coincide with those under depth-1 office "01".

Version history:
- 1: initial tables, unique external ids on every table
- 2: unique index kept on offices only
"""

import sqlite3

# Schema version for migrations
SCHEMA_VERSION = 2

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
);

CREATE TABLE IF NOT EXISTS offices (
    id INTEGER PRIMARY KEY,
    parent_id INTEGER REFERENCES offices(id),
    external_id TEXT,
    name TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS org_groups (
    id INTEGER PRIMARY KEY,
    parent_id INTEGER REFERENCES org_groups(id),
    is_center INTEGER NOT NULL DEFAULT 0 CHECK(is_center IN (0, 1)),
    office_id INTEGER REFERENCES offices(id),
    external_id TEXT,
    name TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS clients (
    id INTEGER PRIMARY KEY,
    external_id TEXT,
    name TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS client_groups (
    client_id INTEGER NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
    group_id INTEGER NOT NULL REFERENCES org_groups(id) ON DELETE CASCADE,
    PRIMARY KEY (client_id, group_id)
);

CREATE INDEX IF NOT EXISTS idx_offices_parent ON offices(parent_id);
CREATE INDEX IF NOT EXISTS idx_groups_parent ON org_groups(parent_id);
CREATE INDEX IF NOT EXISTS idx_groups_office ON org_groups(office_id, is_center);
CREATE INDEX IF NOT EXISTS idx_client_groups_group ON client_groups(group_id);

CREATE UNIQUE INDEX IF NOT EXISTS uq_offices_external_id
    ON offices(external_id) WHERE external_id IS NOT NULL;
DROP INDEX IF EXISTS uq_groups_external_id;
DROP INDEX IF EXISTS uq_clients_external_id;
CREATE INDEX IF NOT EXISTS idx_groups_external_id ON org_groups(external_id);
CREATE INDEX IF NOT EXISTS idx_clients_external_id ON clients(external_id);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """
    Create the database schema.

    Idempotent - safe to call multiple times.

    Args:
        conn: SQLite database connection
    """
    conn.executescript(SCHEMA_DDL)

    conn.execute(
        """
        INSERT OR REPLACE INTO schema_info (version, description)
        VALUES (?, ?)
        """,
        (SCHEMA_VERSION, "Unique external ids on offices only"),
    )

    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """
    Get the current schema version from the database.

    Returns:
        Current schema version, or None if schema_info table doesn't exist
    """
    try:
        cursor = conn.execute("SELECT MAX(version) AS version FROM schema_info")
        row = cursor.fetchone()
    except sqlite3.OperationalError:
        # schema_info table doesn't exist
        return None
    if row is None:
        return None
    version = row["version"] if isinstance(row, dict) else row[0]
    return int(version) if version is not None else None


def needs_migration(conn: sqlite3.Connection) -> bool:
    """Check if the database needs to be brought to the current schema version."""
    current_version = get_schema_version(conn)
    if current_version is None:
        return True
    return current_version < SCHEMA_VERSION
