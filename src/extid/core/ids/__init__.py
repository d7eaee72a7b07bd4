"""
Hierarchical external identifier allocation.

Identifiers are composed top-down along the organizational tree
Office → Center → Group → Client, each level appending a zero-padded
numeric suffix to its parent's identifier.

Public API:
    Models:
        - OfficeNode, GroupNode, ClientNode: Entity records
        - EntityKind: office / center / group / client
        - AllocationResult: Allocated, existing or skipped (with SkipReason)
        - AllocationScope: (level, parent) concurrency key

    Functions:
        - max_suffix: Highest well-formed sibling identifier
        - format_identifier: Parent identifier + zero-padded suffix
        - next_identifier: Identifier following a given one
        - allocate_external_id: Event-layer entry point
        - handle_event: Entry point filtering on create/update actions

    Classes:
        - HierarchyAllocator: Recursive per-level allocation
        - AllocationGuard: Per-scope locks with bounded wait

Example:
    >>> from extid.core.ids import HierarchyAllocator, allocate_external_id
    >>> from extid.core.store import InMemoryHierarchyStore
    >>> allocator = HierarchyAllocator(InMemoryHierarchyStore(...))
    >>> allocate_external_id("client", 42, allocator=allocator).external_id
    '0501010001'
"""

from extid.core.ids.allocator import HierarchyAllocator
from extid.core.ids.exceptions import (
    AllocationSkipped,
    AmbiguousMembershipError,
    EntityNotFoundError,
    ExtIdError,
    LockTimeoutError,
    MissingParentError,
    SuffixOverflowError,
    WidthMismatchError,
)
from extid.core.ids.formatter import format_identifier, next_identifier
from extid.core.ids.guard import AllocationGuard
from extid.core.ids.models import (
    AllocationOutcome,
    AllocationResult,
    AllocationScope,
    ClientNode,
    EntityKind,
    GroupNode,
    OfficeNode,
    ScopeLevel,
    SkipReason,
)
from extid.core.ids.scanner import baseline_for, max_suffix, suffix_of
from extid.core.ids.trigger import allocate_external_id, handle_event

__all__ = [
    # Models
    "OfficeNode",
    "GroupNode",
    "ClientNode",
    "EntityKind",
    "ScopeLevel",
    "AllocationOutcome",
    "AllocationResult",
    "AllocationScope",
    "SkipReason",
    # Exceptions
    "ExtIdError",
    "EntityNotFoundError",
    "SuffixOverflowError",
    "LockTimeoutError",
    "WidthMismatchError",
    "AllocationSkipped",
    "MissingParentError",
    "AmbiguousMembershipError",
    # Functions
    "baseline_for",
    "suffix_of",
    "max_suffix",
    "format_identifier",
    "next_identifier",
    "allocate_external_id",
    "handle_event",
    # Classes
    "HierarchyAllocator",
    "AllocationGuard",
]
