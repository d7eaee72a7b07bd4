"""
Hierarchy stores.

Public API:
    - HierarchyStore: Protocol the allocator reads and writes through
    - StoreError: Raised on persistence failures
    - InMemoryHierarchyStore: Arena-backed store for tests and fixtures
    - SqliteHierarchyStore: SQLite file store
"""

from extid.core.store.backend import HierarchyStore, StoreError
from extid.core.store.memory import InMemoryHierarchyStore
from extid.core.store.sqlite import SqliteHierarchyStore

__all__ = [
    "HierarchyStore",
    "StoreError",
    "InMemoryHierarchyStore",
    "SqliteHierarchyStore",
]
