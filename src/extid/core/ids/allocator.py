"""
Hierarchical external identifier allocation.

Every level follows the same skeleton:

1. Load the node; if it already has an identifier, return it unchanged
2. Resolve the parent's identifier, allocating it recursively if unset
3. Take the (level, parent) allocation scope
4. Re-read the node, scan sibling identifiers for the highest suffix
5. Save the node with ``parent identifier + (max suffix + 1)``

Ancestors are resolved before the child's scope is taken, so scopes are
always acquired top-down, one at a time.

Skip conditions (root office, missing parent, client in zero or several
groups, ...) never raise out of ``allocate``; they come back as a
skipped AllocationResult with a reason. Missing entities, suffix
overflow and lock timeouts are raised.

Example:
    >>> from extid.core.store import InMemoryHierarchyStore
    >>> store = InMemoryHierarchyStore(
    ...     offices=[OfficeNode(id=1), OfficeNode(id=2, parent_id=1)],
    ... )
    >>> allocator = HierarchyAllocator(store)
    >>> allocator.allocate(EntityKind.OFFICE, 2).external_id
    '01'
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, TypeVar

from extid.core.config.models import ExtIdConfig
from extid.core.ids.exceptions import (
    AllocationSkipped,
    AmbiguousMembershipError,
    EntityNotFoundError,
    MissingParentError,
)
from extid.core.ids.formatter import next_identifier
from extid.core.ids.guard import AllocationGuard
from extid.core.ids.models import (
    AllocationResult,
    AllocationScope,
    ClientNode,
    EntityKind,
    GroupNode,
    OfficeNode,
    ScopeLevel,
    SkipReason,
)
from extid.core.ids.scanner import baseline_for, max_suffix

if TYPE_CHECKING:
    from extid.core.store.backend import HierarchyStore

logger = logging.getLogger(__name__)

NodeT = TypeVar("NodeT", OfficeNode, GroupNode, ClientNode)


class HierarchyAllocator:
    """
    Allocates external identifiers across the Office → Center → Group → Client tree.

    The allocator holds no entity state between calls. All reads and writes
    go through the store; concurrent callers are serialized per scope by
    the guard.

    Attributes:
        store: HierarchyStore implementation
        config: Widths, root office id, strictness and lock timeout
        guard: Per-scope lock registry
    """

    def __init__(
        self,
        store: HierarchyStore,
        *,
        config: ExtIdConfig | None = None,
        guard: AllocationGuard | None = None,
    ) -> None:
        self.store = store
        self.config = config or ExtIdConfig()
        self.guard = guard or AllocationGuard(timeout=self.config.lock_timeout_seconds)

    # Public API

    def allocate(self, kind: EntityKind, entity_id: int) -> AllocationResult:
        """
        Ensure the entity (and its ancestors) have an external identifier.

        Args:
            kind: Entity kind
            entity_id: Store id of the entity

        Returns:
            Allocated, existing or skipped result

        Raises:
            EntityNotFoundError: If the entity does not exist
            SuffixOverflowError: If the level's identifier space is exhausted
            LockTimeoutError: If a scope stays busy past the timeout
            WidthMismatchError: In strict mode, on a malformed sibling identifier
        """
        resolvers: dict[EntityKind, Callable[[int], AllocationResult]] = {
            EntityKind.OFFICE: self._resolve_office,
            EntityKind.CENTER: self._resolve_center,
            EntityKind.GROUP: self._resolve_group,
            EntityKind.CLIENT: self._resolve_client,
        }
        try:
            return resolvers[kind](entity_id)
        except AllocationSkipped as e:
            logger.info("Skipped %s %d: %s", kind.value, entity_id, e.message)
            return AllocationResult.skipped(kind, entity_id, e.reason, e.message)

    def allocate_office(self, office_id: int) -> AllocationResult:
        return self.allocate(EntityKind.OFFICE, office_id)

    def allocate_center(self, center_id: int) -> AllocationResult:
        return self.allocate(EntityKind.CENTER, center_id)

    def allocate_group(self, group_id: int) -> AllocationResult:
        return self.allocate(EntityKind.GROUP, group_id)

    def allocate_client(self, client_id: int) -> AllocationResult:
        return self.allocate(EntityKind.CLIENT, client_id)

    # Levels

    def _resolve_office(self, office_id: int) -> AllocationResult:
        kind = EntityKind.OFFICE
        office = self.store.get_office(office_id)
        if office is None:
            raise EntityNotFoundError(kind, office_id)
        if office.external_id:
            return self._existing(kind, office_id, office.external_id)

        root_id = self.config.root_office_id
        if office.parent_id is None:
            if office.id == root_id:
                raise AllocationSkipped(
                    SkipReason.ROOT_OFFICE, kind, office_id, "root office is never allocated"
                )
            raise MissingParentError(kind, office_id, f"office {office_id} has no parent")

        parent = self.store.get_office(office.parent_id)
        if parent is None:
            raise MissingParentError(
                kind, office_id, f"parent office {office.parent_id} does not exist"
            )

        widths = self.config.widths
        if parent.id == root_id:
            level, width, prefix = ScopeLevel.OFFICE, widths.office_width, ""
        else:
            level, width = ScopeLevel.TALUK, widths.taluk_width
            prefix = parent.external_id or self._ancestor_identifier(
                kind, office_id, lambda: self._resolve_office(parent.id)
            )

        return self._assign(
            kind,
            office_id,
            AllocationScope(level=level, parent_id=parent.id),
            prefix,
            width,
            load=lambda: self.store.get_office(office_id),
            siblings=lambda: (o.external_id for o in self.store.get_office_children(parent.id)),
            save=self.store.save_office,
        )

    def _resolve_center(self, center_id: int) -> AllocationResult:
        kind = EntityKind.CENTER
        center = self.store.get_group(center_id)
        if center is None:
            raise EntityNotFoundError(kind, center_id)
        if center.external_id:
            return self._existing(kind, center_id, center.external_id)
        if not center.is_center:
            raise AllocationSkipped(SkipReason.NOT_A_CENTER, kind, center_id)

        office = self.store.get_office(center.office_id) if center.office_id else None
        if office is None:
            raise MissingParentError(kind, center_id, f"center {center_id} has no office")

        if office.external_id:
            prefix = office.external_id
        elif office.id == self.config.root_office_id:
            # Centers hanging directly off the head office have no prefix
            prefix = ""
        else:
            prefix = self._ancestor_identifier(
                kind, center_id, lambda: self._resolve_office(office.id)
            )

        return self._assign(
            kind,
            center_id,
            AllocationScope(level=ScopeLevel.CENTER, parent_id=office.id),
            prefix,
            self.config.widths.center_width,
            load=lambda: self.store.get_group(center_id),
            siblings=lambda: (c.external_id for c in self.store.get_centers_by_office(office.id)),
            save=self.store.save_group,
        )

    def _resolve_group(self, group_id: int) -> AllocationResult:
        kind = EntityKind.GROUP
        group = self.store.get_group(group_id)
        if group is None:
            raise EntityNotFoundError(kind, group_id)
        if group.external_id:
            return self._existing(kind, group_id, group.external_id)
        if group.is_center:
            raise AllocationSkipped(SkipReason.NOT_A_GROUP, kind, group_id)

        parent = self.store.get_group(group.parent_id) if group.parent_id else None
        if parent is None:
            raise MissingParentError(kind, group_id, f"group {group_id} has no parent")

        if parent.external_id:
            prefix = parent.external_id
        elif parent.is_center:
            prefix = self._ancestor_identifier(
                kind, group_id, lambda: self._resolve_center(parent.id)
            )
        else:
            raise AllocationSkipped(
                SkipReason.PARENT_NOT_CENTER,
                kind,
                group_id,
                f"group {group_id}: parent group {parent.id} has no identifier and is not a center",
            )

        return self._assign(
            kind,
            group_id,
            AllocationScope(level=ScopeLevel.GROUP, parent_id=parent.id),
            prefix,
            self.config.widths.group_width,
            load=lambda: self.store.get_group(group_id),
            siblings=lambda: (g.external_id for g in self.store.get_groups_by_parent(parent.id)),
            save=self.store.save_group,
        )

    def _resolve_client(self, client_id: int) -> AllocationResult:
        kind = EntityKind.CLIENT
        client = self.store.get_client(client_id)
        if client is None:
            raise EntityNotFoundError(kind, client_id)
        if client.external_id:
            return self._existing(kind, client_id, client.external_id)
        if len(client.group_ids) != 1:
            raise AmbiguousMembershipError(client_id, len(client.group_ids))

        (group_id,) = client.group_ids
        group = self.store.get_group(group_id)
        if group is None:
            raise MissingParentError(kind, client_id, f"group {group_id} does not exist")

        if group.external_id:
            prefix = group.external_id
        else:
            resolve = self._resolve_center if group.is_center else self._resolve_group
            prefix = self._ancestor_identifier(kind, client_id, lambda: resolve(group.id))

        return self._assign(
            kind,
            client_id,
            AllocationScope(level=ScopeLevel.CLIENT, parent_id=group.id),
            prefix,
            self.config.widths.client_width,
            load=lambda: self.store.get_client(client_id),
            siblings=lambda: (c.external_id for c in self.store.get_clients_by_group(group.id)),
            save=self.store.save_client,
        )

    # Shared steps

    def _existing(self, kind: EntityKind, entity_id: int, external_id: str) -> AllocationResult:
        logger.debug("%s %d already has external id %s", kind.value, entity_id, external_id)
        return AllocationResult.existing(kind, entity_id, external_id)

    def _ancestor_identifier(
        self,
        kind: EntityKind,
        entity_id: int,
        resolve: Callable[[], AllocationResult],
    ) -> str:
        """Resolve an ancestor, turning its skip into this node's skip."""
        try:
            result = resolve()
        except AllocationSkipped as e:
            raise AllocationSkipped(
                SkipReason.ANCESTOR_UNRESOLVED,
                kind,
                entity_id,
                f"{kind.value} {entity_id}: ancestor {e.kind.value} {e.entity_id} "
                f"unresolved ({e.reason.value})",
            ) from e
        if not result.external_id:
            raise AllocationSkipped(
                SkipReason.ANCESTOR_UNRESOLVED,
                kind,
                entity_id,
                f"{kind.value} {entity_id}: ancestor came back {result.outcome.value} "
                "without an identifier",
            )
        return result.external_id

    def _assign(
        self,
        kind: EntityKind,
        entity_id: int,
        scope: AllocationScope,
        prefix: str,
        width: int,
        *,
        load: Callable[[], NodeT | None],
        siblings: Callable[[], Iterable[str | None]],
        save: Callable[[NodeT], None],
    ) -> AllocationResult:
        """Scan siblings and save the next identifier while holding ``scope``."""
        with self.guard.hold(scope):
            # Re-read under the scope: a concurrent call may have finished first
            node = load()
            if node is None:
                raise EntityNotFoundError(kind, entity_id)
            if node.external_id:
                return self._existing(kind, entity_id, node.external_id)

            highest = max_suffix(
                siblings(),
                width,
                baseline_for(prefix, width),
                strict=self.config.strict_width,
            )
            external_id = next_identifier(highest, width)
            save(node.model_copy(update={"external_id": external_id}))

        logger.info(
            "Allocated %s %d external id %s (previous max %s)",
            kind.value,
            entity_id,
            external_id,
            highest,
        )
        return AllocationResult.allocated(kind, entity_id, external_id)
