"""
Hierarchy store protocol.

This module defines the HierarchyStore protocol the allocator reads and
writes through, enabling pluggable persistence (in-memory, SQLite, or an
adapter over an existing system's repositories).
"""

from typing import Protocol, runtime_checkable

from extid.core.ids.models import ClientNode, GroupNode, OfficeNode


class StoreError(Exception):
    """Error from hierarchy store operations."""

    pass


@runtime_checkable
class HierarchyStore(Protocol):
    """
    Protocol for hierarchy store implementations.

    Stores own the entities. The allocator keeps no state between calls;
    it reads nodes, computes an identifier and hands back an updated copy
    through the matching ``save_*`` method.
    """

    def get_office(self, office_id: int) -> OfficeNode | None:
        """Get an office by id, None if it does not exist."""
        ...

    def get_office_children(self, parent_id: int) -> list[OfficeNode]:
        """Get the offices whose parent is ``parent_id``."""
        ...

    def save_office(self, node: OfficeNode) -> None:
        """Insert or replace an office."""
        ...

    def get_group(self, group_id: int) -> GroupNode | None:
        """Get a center or group by id, None if it does not exist."""
        ...

    def get_groups_by_parent(self, parent_id: int) -> list[GroupNode]:
        """Get the groups whose parent group is ``parent_id``."""
        ...

    def get_centers_by_office(self, office_id: int) -> list[GroupNode]:
        """Get the centers anchored to ``office_id``."""
        ...

    def save_group(self, node: GroupNode) -> None:
        """Insert or replace a center or group."""
        ...

    def get_client(self, client_id: int) -> ClientNode | None:
        """Get a client by id, None if it does not exist."""
        ...

    def get_clients_by_group(self, group_id: int) -> list[ClientNode]:
        """Get the clients that are members of ``group_id``."""
        ...

    def save_client(self, node: ClientNode) -> None:
        """Insert or replace a client and its memberships."""
        ...
