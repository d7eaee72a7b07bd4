"""
Exceptions for external identifier allocation.

Exception Hierarchy:
    ExtIdError (base)
    ├── EntityNotFoundError (requested entity does not exist)
    ├── SuffixOverflowError (suffix no longer fits the level width)
    ├── LockTimeoutError (allocation scope could not be acquired in time)
    ├── WidthMismatchError (sibling identifier has an unexpected shape)
    └── AllocationSkipped (nothing to allocate; turned into a skipped result)
        ├── MissingParentError
        └── AmbiguousMembershipError

Only the AllocationSkipped family is absorbed by the allocator. The rest
are hard failures that reach the caller.

Example:
    >>> from extid.core.ids.exceptions import SuffixOverflowError
    >>> try:
    ...     raise SuffixOverflowError("05", 100, 2)
    ... except OverflowError as e:
    ...     print(e)
    Suffix 100 does not fit in 2 digits under '05'
"""

from __future__ import annotations

from extid.core.ids.models import AllocationScope, EntityKind, SkipReason


class ExtIdError(Exception):
    """
    Base exception for all allocation errors.

    Attributes:
        message: Human-readable error message
        context: Additional context as keyword arguments
    """

    def __init__(self, message: str, **context: object) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class EntityNotFoundError(ExtIdError):
    """Raised when an entity id does not resolve in the store."""

    def __init__(self, kind: EntityKind, entity_id: int) -> None:
        super().__init__(
            f"{kind.value.capitalize()} {entity_id} not found",
            kind=kind,
            entity_id=entity_id,
        )
        self.kind = kind
        self.entity_id = entity_id


class SuffixOverflowError(ExtIdError, OverflowError):
    """
    Raised when the next suffix exceeds ``10**width - 1``.

    Signals that the identifier space under a parent is exhausted and
    needs operator attention.
    """

    def __init__(self, prefix: str, value: int, width: int) -> None:
        super().__init__(
            f"Suffix {value} does not fit in {width} digits under '{prefix}'",
            prefix=prefix,
            value=value,
            width=width,
        )
        self.prefix = prefix
        self.value = value
        self.width = width


class LockTimeoutError(ExtIdError):
    """Raised when an allocation scope stays busy longer than the timeout."""

    def __init__(self, scope: AllocationScope, timeout: float) -> None:
        super().__init__(
            f"Timed out after {timeout:g}s waiting for allocation scope {scope}",
            scope=scope,
            timeout=timeout,
        )
        self.scope = scope
        self.timeout = timeout


class WidthMismatchError(ExtIdError):
    """Raised in strict mode when a sibling identifier cannot be ranked safely."""

    def __init__(self, identifier: str, width: int, prefix: str) -> None:
        super().__init__(
            f"Identifier '{identifier}' is not '{prefix}' followed by {width} digits",
            identifier=identifier,
            width=width,
            prefix=prefix,
        )
        self.identifier = identifier
        self.width = width
        self.prefix = prefix


class AllocationSkipped(ExtIdError):
    """
    Raised inside the allocator when a node cannot get an identifier.

    Never escapes ``HierarchyAllocator.allocate``; it is converted into a
    skipped ``AllocationResult`` carrying the reason.
    """

    def __init__(
        self,
        reason: SkipReason,
        kind: EntityKind,
        entity_id: int,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message or f"{kind.value} {entity_id}: {reason.value}",
            reason=reason,
            kind=kind,
            entity_id=entity_id,
        )
        self.reason = reason
        self.kind = kind
        self.entity_id = entity_id


class MissingParentError(AllocationSkipped):
    """Node has no parent to anchor its identifier against."""

    def __init__(self, kind: EntityKind, entity_id: int, message: str | None = None) -> None:
        super().__init__(SkipReason.MISSING_PARENT, kind, entity_id, message)


class AmbiguousMembershipError(AllocationSkipped):
    """Client belongs to zero or several groups."""

    def __init__(self, entity_id: int, group_count: int) -> None:
        super().__init__(
            SkipReason.AMBIGUOUS_MEMBERSHIP,
            EntityKind.CLIENT,
            entity_id,
            f"client {entity_id} belongs to {group_count} groups, expected exactly 1",
        )
        self.group_count = group_count
