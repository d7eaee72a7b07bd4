"""
Data models for hierarchical external identifiers.

The organizational tree has four levels:

    Office → Center → Group → Client

Each node carries an optional ``external_id``. Once set it is never
rewritten. Nodes are frozen Pydantic models; an allocation produces a new
node via ``model_copy(update=...)`` instead of mutating a shared graph.

ID Format Examples (default widths):
    - Depth-1 office: 05
    - Taluk office:   05003
    - Center:         0501
    - Group:          050101
    - Client:         0501010001
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EntityKind(str, Enum):
    """Entity kinds accepted by the allocator."""

    OFFICE = "office"
    CENTER = "center"
    GROUP = "group"
    CLIENT = "client"

    @classmethod
    def parse(cls, value: str | EntityKind | None) -> EntityKind | None:
        """
        Parse an entity kind case-insensitively.

        Returns None for anything that is not a known kind, so callers can
        ignore unknown event types without raising.

        Example:
            >>> EntityKind.parse("Office")
            <EntityKind.OFFICE: 'office'>
            >>> EntityKind.parse("loan") is None
            True
        """
        if isinstance(value, EntityKind):
            return value
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class ScopeLevel(str, Enum):
    """Level component of an allocation scope."""

    OFFICE = "office"
    TALUK = "taluk"
    CENTER = "center"
    GROUP = "group"
    CLIENT = "client"


class AllocationOutcome(str, Enum):
    """What an allocation call did."""

    ALLOCATED = "allocated"
    EXISTING = "existing"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    """Why an allocation call did nothing."""

    ROOT_OFFICE = "root_office"
    MISSING_PARENT = "missing_parent"
    NOT_A_CENTER = "not_a_center"
    NOT_A_GROUP = "not_a_group"
    PARENT_NOT_CENTER = "parent_not_center"
    AMBIGUOUS_MEMBERSHIP = "ambiguous_membership"
    ANCESTOR_UNRESOLVED = "ancestor_unresolved"
    UNSUPPORTED_KIND = "unsupported_kind"
    IGNORED_ACTION = "ignored_action"


def _blank_to_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


class OfficeNode(BaseModel):
    """
    Office in the office tree.

    The root office has no parent and never receives an identifier.
    Offices directly under the root are depth-1 offices; anything deeper
    is a taluk office.
    """

    id: int
    parent_id: int | None = None
    external_id: str | None = None
    name: str = ""

    model_config = ConfigDict(frozen=True)

    @field_validator("external_id")
    @classmethod
    def normalize_external_id(cls, v: str | None) -> str | None:
        """Treat blank identifiers as unallocated."""
        return _blank_to_none(v)


class GroupNode(BaseModel):
    """
    Center or plain group.

    A center (``is_center=True``) is anchored to an office and sits at the
    top of the group hierarchy. A plain group hangs off a center or another
    group through ``parent_id``.
    """

    id: int
    parent_id: int | None = None
    is_center: bool = False
    office_id: int | None = None
    external_id: str | None = None
    name: str = ""

    model_config = ConfigDict(frozen=True)

    @field_validator("external_id")
    @classmethod
    def normalize_external_id(cls, v: str | None) -> str | None:
        """Treat blank identifiers as unallocated."""
        return _blank_to_none(v)


class ClientNode(BaseModel):
    """Client with its group memberships. Allocation needs exactly one group."""

    id: int
    group_ids: frozenset[int] = Field(default_factory=frozenset)
    external_id: str | None = None
    name: str = ""

    model_config = ConfigDict(frozen=True)

    @field_validator("external_id")
    @classmethod
    def normalize_external_id(cls, v: str | None) -> str | None:
        """Treat blank identifiers as unallocated."""
        return _blank_to_none(v)


class AllocationScope(BaseModel):
    """
    Concurrency scope: one allocation at a time per (level, parent).

    Example:
        >>> str(AllocationScope(level=ScopeLevel.CLIENT, parent_id=12))
        'client:12'
    """

    level: ScopeLevel
    parent_id: int

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.level.value}:{self.parent_id}"


class AllocationResult(BaseModel):
    """
    Result of an allocation call.

    Distinguishes a fresh allocation, an already-allocated entity and a
    skip (with its reason), so callers can tell "nothing to do" from
    "nothing happened because data was missing".
    """

    kind: EntityKind | None = Field(description="Entity kind, None for unknown kinds")
    entity_id: int
    outcome: AllocationOutcome
    external_id: str | None = Field(
        default=None,
        description="Allocated or existing identifier; None when skipped",
    )
    reason: SkipReason | None = Field(default=None, description="Set only when skipped")
    detail: str = ""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def allocated(cls, kind: EntityKind, entity_id: int, external_id: str) -> AllocationResult:
        return cls(
            kind=kind,
            entity_id=entity_id,
            outcome=AllocationOutcome.ALLOCATED,
            external_id=external_id,
        )

    @classmethod
    def existing(cls, kind: EntityKind, entity_id: int, external_id: str) -> AllocationResult:
        return cls(
            kind=kind,
            entity_id=entity_id,
            outcome=AllocationOutcome.EXISTING,
            external_id=external_id,
        )

    @classmethod
    def skipped(
        cls,
        kind: EntityKind | None,
        entity_id: int,
        reason: SkipReason,
        detail: str = "",
    ) -> AllocationResult:
        return cls(
            kind=kind,
            entity_id=entity_id,
            outcome=AllocationOutcome.SKIPPED,
            reason=reason,
            detail=detail,
        )

    @property
    def is_allocated(self) -> bool:
        return self.outcome == AllocationOutcome.ALLOCATED

    @property
    def is_skipped(self) -> bool:
        return self.outcome == AllocationOutcome.SKIPPED
