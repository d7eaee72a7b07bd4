"""
Pytest configuration and shared fixtures.

Provides sample hierarchies, in-memory and SQLite stores, allocators and
an isolated configuration environment.
"""

import pytest

from extid.core.config import ExtIdConfig, clear_cache
from extid.core.ids import (
    ClientNode,
    GroupNode,
    HierarchyAllocator,
    OfficeNode,
)
from extid.core.store import InMemoryHierarchyStore, SqliteHierarchyStore

# ==============================================================================
# Environment Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config, .env files and EXTID_* variables out of tests."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    for name in (
        "EXTID_ROOT_OFFICE_ID",
        "EXTID_LOCK_TIMEOUT",
        "EXTID_STRICT_WIDTH",
        "EXTID_DB_PATH",
    ):
        monkeypatch.delenv(name, raising=False)
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def user_config_dir(tmp_path):
    """Provide a temporary XDG_CONFIG_HOME/extid directory."""
    config_dir = tmp_path / "xdg" / "extid"
    config_dir.mkdir(parents=True)
    return config_dir


# ==============================================================================
# Sample Hierarchy Fixtures
# ==============================================================================


def sample_offices() -> list[OfficeNode]:
    """
    Root office 1 with depth-1 offices 2-5 allocated as 01-04.

    Office 6 is an unallocated depth-1 office; office 7 is an unallocated
    taluk office under office 6.
    """
    return [
        OfficeNode(id=1, name="Head Office"),
        OfficeNode(id=2, parent_id=1, external_id="01", name="North"),
        OfficeNode(id=3, parent_id=1, external_id="02", name="South"),
        OfficeNode(id=4, parent_id=1, external_id="03", name="East"),
        OfficeNode(id=5, parent_id=1, external_id="04", name="West"),
        OfficeNode(id=6, parent_id=1, name="Central"),
        OfficeNode(id=7, parent_id=6, name="Central Taluk"),
    ]


def sample_groups() -> list[GroupNode]:
    """Center 10 under office 6, group 20 under center 10, nothing allocated."""
    return [
        GroupNode(id=10, is_center=True, office_id=6, name="Market Center"),
        GroupNode(id=20, parent_id=10, office_id=6, name="Weavers"),
    ]


def sample_clients() -> list[ClientNode]:
    """Client 100 in group 20, unallocated."""
    return [ClientNode(id=100, group_ids=frozenset({20}), name="Asha")]


@pytest.fixture
def memory_store():
    """Provide an InMemoryHierarchyStore loaded with the sample hierarchy."""
    return InMemoryHierarchyStore(
        offices=sample_offices(),
        groups=sample_groups(),
        clients=sample_clients(),
    )


@pytest.fixture
def sqlite_store(tmp_path):
    """Provide a SqliteHierarchyStore loaded with the sample hierarchy."""
    store = SqliteHierarchyStore(tmp_path / "hierarchy.db")
    for office in sample_offices():
        store.save_office(office)
    for group in sample_groups():
        store.save_group(group)
    for client in sample_clients():
        store.save_client(client)
    return store


@pytest.fixture
def config():
    """Provide a configuration with a short lock timeout."""
    return ExtIdConfig(lock_timeout_seconds=2.0)


@pytest.fixture
def allocator(memory_store, config):
    """Provide a HierarchyAllocator over the in-memory sample hierarchy."""
    return HierarchyAllocator(memory_store, config=config)
