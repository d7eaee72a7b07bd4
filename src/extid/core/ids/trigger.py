"""
Entry points for the event layer.

The event layer calls in after an entity is created or updated, passing
the entity kind and resource id it received. Kinds are matched
case-insensitively. Unknown kinds and actions other than create/update
are ignored without error.

The result is returned so callers can observe what happened; callers
that only need fire-and-forget semantics can discard it and re-read the
entity later.
"""

from __future__ import annotations

import logging
import re

from extid.core.ids.allocator import HierarchyAllocator
from extid.core.ids.models import AllocationResult, EntityKind, SkipReason

logger = logging.getLogger(__name__)

_ALLOCATING_ACTIONS = re.compile(r"^(create|update)$", re.IGNORECASE)


def allocate_external_id(
    kind: str | EntityKind,
    resource_id: int,
    *,
    allocator: HierarchyAllocator,
) -> AllocationResult:
    """
    Allocate an external identifier for ``resource_id``.

    Args:
        kind: One of office, center, group, client (any case)
        resource_id: Store id of the entity
        allocator: Allocator bound to a store

    Returns:
        The allocation result; skipped with UNSUPPORTED_KIND for unknown kinds

    Raises:
        EntityNotFoundError, SuffixOverflowError, LockTimeoutError: see
        HierarchyAllocator.allocate
    """
    entity_kind = EntityKind.parse(kind)
    if entity_kind is None:
        logger.debug("Ignoring allocation request for unsupported kind %r", kind)
        return AllocationResult.skipped(
            None, resource_id, SkipReason.UNSUPPORTED_KIND, f"unsupported kind {kind!r}"
        )
    return allocator.allocate(entity_kind, resource_id)


def handle_event(
    entity: str,
    action: str,
    resource_id: int,
    *,
    allocator: HierarchyAllocator,
) -> AllocationResult:
    """
    Handle an entity event; only create and update trigger allocation.

    Example:
        >>> handle_event("CLIENT", "Create", 42, allocator=allocator)
        AllocationResult(kind=<EntityKind.CLIENT: 'client'>, ...)
    """
    if not _ALLOCATING_ACTIONS.match(action or ""):
        logger.debug("Ignoring %s event for %s %d", action, entity, resource_id)
        return AllocationResult.skipped(
            EntityKind.parse(entity),
            resource_id,
            SkipReason.IGNORED_ACTION,
            f"action {action!r} does not allocate",
        )
    return allocate_external_id(entity, resource_id, allocator=allocator)
