"""
In-memory hierarchy store.

Keeps each entity kind in its own arena keyed by id. Relationships are
resolved by scanning the arenas, which is fine for tests and for small
trees loaded from a fixture.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from extid.core.ids.models import ClientNode, GroupNode, OfficeNode


class InMemoryHierarchyStore:
    """
    Thread-safe in-memory implementation of HierarchyStore.

    Example:
        >>> store = InMemoryHierarchyStore()
        >>> store.save_office(OfficeNode(id=1, name="Head Office"))
        >>> store.save_office(OfficeNode(id=2, parent_id=1))
        >>> [o.id for o in store.get_office_children(1)]
        [2]
    """

    def __init__(
        self,
        offices: Iterable[OfficeNode] = (),
        groups: Iterable[GroupNode] = (),
        clients: Iterable[ClientNode] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._offices: dict[int, OfficeNode] = {o.id: o for o in offices}
        self._groups: dict[int, GroupNode] = {g.id: g for g in groups}
        self._clients: dict[int, ClientNode] = {c.id: c for c in clients}
        self.writes = 0

    # Offices

    def get_office(self, office_id: int) -> OfficeNode | None:
        with self._lock:
            return self._offices.get(office_id)

    def get_office_children(self, parent_id: int) -> list[OfficeNode]:
        with self._lock:
            return [o for o in self._offices.values() if o.parent_id == parent_id]

    def save_office(self, node: OfficeNode) -> None:
        with self._lock:
            self._offices[node.id] = node
            self.writes += 1

    # Centers and groups

    def get_group(self, group_id: int) -> GroupNode | None:
        with self._lock:
            return self._groups.get(group_id)

    def get_groups_by_parent(self, parent_id: int) -> list[GroupNode]:
        with self._lock:
            return [g for g in self._groups.values() if g.parent_id == parent_id]

    def get_centers_by_office(self, office_id: int) -> list[GroupNode]:
        with self._lock:
            return [
                g for g in self._groups.values() if g.is_center and g.office_id == office_id
            ]

    def save_group(self, node: GroupNode) -> None:
        with self._lock:
            self._groups[node.id] = node
            self.writes += 1

    # Clients

    def get_client(self, client_id: int) -> ClientNode | None:
        with self._lock:
            return self._clients.get(client_id)

    def get_clients_by_group(self, group_id: int) -> list[ClientNode]:
        with self._lock:
            return [c for c in self._clients.values() if group_id in c.group_ids]

    def save_client(self, node: ClientNode) -> None:
        with self._lock:
            self._clients[node.id] = node
            self.writes += 1

    def snapshot(self) -> dict[str, dict[int, str | None]]:
        """Return the external id of every entity, keyed by kind then id."""
        with self._lock:
            return {
                "office": {i: o.external_id for i, o in self._offices.items()},
                "group": {i: g.external_id for i, g in self._groups.items()},
                "client": {i: c.external_id for i, c in self._clients.items()},
            }
