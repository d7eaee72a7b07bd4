"""
Tests for HierarchyAllocator.

The sample hierarchy (see conftest) is:

    office 1 (root)
    ├── offices 2-5 (01-04)
    └── office 6 (unallocated)
        ├── office 7 (taluk, unallocated)
        └── center 10
            └── group 20
                └── client 100
"""

import threading

import pytest

from extid.core.config import ExtIdConfig, WidthPolicy
from extid.core.ids import (
    AllocationGuard,
    AllocationOutcome,
    AllocationResult,
    AllocationScope,
    ClientNode,
    EntityKind,
    EntityNotFoundError,
    GroupNode,
    HierarchyAllocator,
    LockTimeoutError,
    OfficeNode,
    ScopeLevel,
    SkipReason,
    SuffixOverflowError,
    WidthMismatchError,
)
from extid.core.store import InMemoryHierarchyStore


def allocator_for(*, offices=(), groups=(), clients=(), **config) -> HierarchyAllocator:
    store = InMemoryHierarchyStore(offices=offices, groups=groups, clients=clients)
    return HierarchyAllocator(store, config=ExtIdConfig(**config))


ROOT = OfficeNode(id=1, name="Head Office")


# ==============================================================================
# Offices
# ==============================================================================


class TestOffices:
    """Office and taluk office allocation."""

    def test_depth_one_office_follows_siblings(self, allocator, memory_store):
        result = allocator.allocate_office(6)

        assert result.outcome == AllocationOutcome.ALLOCATED
        assert result.external_id == "05"
        assert memory_store.get_office(6).external_id == "05"

    def test_first_depth_one_office(self):
        allocator = allocator_for(offices=[ROOT, OfficeNode(id=2, parent_id=1)])
        assert allocator.allocate_office(2).external_id == "01"

    def test_existing_office_is_not_rewritten(self, allocator, memory_store):
        result = allocator.allocate_office(2)

        assert result.outcome == AllocationOutcome.EXISTING
        assert result.external_id == "01"
        assert memory_store.writes == 0

    def test_root_office_is_skipped(self, allocator, memory_store):
        result = allocator.allocate_office(1)

        assert result.is_skipped
        assert result.reason == SkipReason.ROOT_OFFICE
        assert memory_store.get_office(1).external_id is None

    def test_office_without_parent_is_skipped(self):
        allocator = allocator_for(offices=[ROOT, OfficeNode(id=9)])
        result = allocator.allocate_office(9)
        assert result.reason == SkipReason.MISSING_PARENT

    def test_office_with_dangling_parent_is_skipped(self):
        allocator = allocator_for(offices=[ROOT, OfficeNode(id=9, parent_id=42)])
        result = allocator.allocate_office(9)

        assert result.reason == SkipReason.MISSING_PARENT
        assert "42" in result.detail

    def test_taluk_office_allocates_parent_first(self, allocator, memory_store):
        result = allocator.allocate_office(7)

        assert result.external_id == "05001"
        assert memory_store.get_office(6).external_id == "05"
        assert memory_store.writes == 2

    def test_taluk_office_follows_siblings(self):
        allocator = allocator_for(
            offices=[
                ROOT,
                OfficeNode(id=2, parent_id=1, external_id="03"),
                OfficeNode(id=3, parent_id=2, external_id="03001"),
                OfficeNode(id=4, parent_id=2, external_id="03007"),
                OfficeNode(id=5, parent_id=2),
            ]
        )
        assert allocator.allocate_office(5).external_id == "03008"

    def test_configured_root_office(self):
        allocator = allocator_for(
            offices=[OfficeNode(id=50), OfficeNode(id=51, parent_id=50)],
            root_office_id=50,
        )
        assert allocator.allocate_office(50).reason == SkipReason.ROOT_OFFICE
        assert allocator.allocate_office(51).external_id == "01"

    def test_unknown_office_raises(self, allocator):
        with pytest.raises(EntityNotFoundError) as exc_info:
            allocator.allocate_office(999)

        assert exc_info.value.kind == EntityKind.OFFICE
        assert exc_info.value.entity_id == 999


# ==============================================================================
# Centers and groups
# ==============================================================================


class TestCenters:
    """Center allocation."""

    def test_center_allocates_office_first(self, allocator, memory_store):
        result = allocator.allocate_center(10)

        assert result.external_id == "0501"
        assert memory_store.get_office(6).external_id == "05"

    def test_center_follows_sibling_centers(self):
        allocator = allocator_for(
            offices=[ROOT, OfficeNode(id=2, parent_id=1, external_id="05")],
            groups=[
                GroupNode(id=10, is_center=True, office_id=2, external_id="0501"),
                GroupNode(id=11, is_center=True, office_id=2, external_id="0502"),
                GroupNode(id=12, is_center=True, office_id=2, external_id="0505"),
                GroupNode(id=13, is_center=True, office_id=2),
            ],
        )
        assert allocator.allocate_center(13).external_id == "0506"

    def test_center_under_root_office_has_no_prefix(self):
        allocator = allocator_for(
            offices=[ROOT],
            groups=[GroupNode(id=10, is_center=True, office_id=1)],
        )
        assert allocator.allocate_center(10).external_id == "01"

    def test_plain_group_is_not_a_center(self, allocator):
        result = allocator.allocate_center(20)
        assert result.reason == SkipReason.NOT_A_CENTER

    def test_center_without_office_is_skipped(self):
        allocator = allocator_for(offices=[ROOT], groups=[GroupNode(id=10, is_center=True)])
        assert allocator.allocate_center(10).reason == SkipReason.MISSING_PARENT

    def test_center_under_orphan_office_is_skipped(self):
        allocator = allocator_for(
            offices=[ROOT, OfficeNode(id=8)],
            groups=[GroupNode(id=10, is_center=True, office_id=8)],
        )
        result = allocator.allocate_center(10)

        assert result.reason == SkipReason.ANCESTOR_UNRESOLVED
        assert result.kind == EntityKind.CENTER
        assert "office 8" in result.detail


class TestGroups:
    """Group allocation."""

    def test_group_allocates_center_first(self, allocator, memory_store):
        result = allocator.allocate_group(20)

        assert result.external_id == "050101"
        assert memory_store.get_group(10).external_id == "0501"

    def test_center_is_not_a_group(self, allocator):
        assert allocator.allocate_group(10).reason == SkipReason.NOT_A_GROUP

    def test_sub_group_under_allocated_group(self):
        allocator = allocator_for(
            groups=[
                GroupNode(id=20, parent_id=10, external_id="050101"),
                GroupNode(id=21, parent_id=20),
            ],
        )
        assert allocator.allocate_group(21).external_id == "05010101"

    def test_sub_group_under_unallocated_group_is_skipped(self, memory_store):
        memory_store.save_group(GroupNode(id=21, parent_id=20))
        allocator = HierarchyAllocator(memory_store)

        result = allocator.allocate_group(21)

        assert result.reason == SkipReason.PARENT_NOT_CENTER
        assert memory_store.get_group(20).external_id is None

    def test_group_without_parent_is_skipped(self):
        allocator = allocator_for(groups=[GroupNode(id=20)])
        assert allocator.allocate_group(20).reason == SkipReason.MISSING_PARENT


# ==============================================================================
# Clients
# ==============================================================================


class TestClients:
    """Client allocation and the full recursive chain."""

    def test_full_chain(self, allocator, memory_store):
        result = allocator.allocate_client(100)

        assert result.outcome == AllocationOutcome.ALLOCATED
        assert result.kind == EntityKind.CLIENT
        assert result.external_id == "0501010001"
        snapshot = memory_store.snapshot()
        assert snapshot["office"][6] == "05"
        assert snapshot["group"][10] == "0501"
        assert snapshot["group"][20] == "050101"
        assert memory_store.writes == 4

    def test_default_widths(self, allocator, memory_store):
        allocator.allocate_office(7)
        allocator.allocate_client(100)

        assert len(memory_store.get_office(6).external_id) == 2
        assert len(memory_store.get_office(7).external_id) == 2 + 3
        assert len(memory_store.get_group(10).external_id) == 2 + 2
        assert len(memory_store.get_group(20).external_id) == 2 + 2 + 2
        assert len(memory_store.get_client(100).external_id) == 2 + 2 + 2 + 4

    def test_second_call_is_idempotent(self, allocator, memory_store):
        first = allocator.allocate_client(100)
        writes = memory_store.writes

        second = allocator.allocate_client(100)

        assert second.outcome == AllocationOutcome.EXISTING
        assert second.external_id == first.external_id
        assert memory_store.writes == writes

    @pytest.mark.parametrize("group_ids", [set(), {20, 21}])
    def test_ambiguous_membership_is_skipped(self, memory_store, group_ids):
        memory_store.save_group(GroupNode(id=21, parent_id=10))
        memory_store.save_client(ClientNode(id=101, group_ids=group_ids))
        allocator = HierarchyAllocator(memory_store)
        writes = memory_store.writes

        result = allocator.allocate_client(101)

        assert result.reason == SkipReason.AMBIGUOUS_MEMBERSHIP
        assert memory_store.writes == writes
        assert memory_store.get_group(20).external_id is None

    def test_client_directly_in_center(self, memory_store):
        memory_store.save_client(ClientNode(id=101, group_ids={10}))
        allocator = HierarchyAllocator(memory_store)

        assert allocator.allocate_client(101).external_id == "05010001"

    def test_client_in_missing_group_is_skipped(self):
        allocator = allocator_for(clients=[ClientNode(id=100, group_ids={77})])
        assert allocator.allocate_client(100).reason == SkipReason.MISSING_PARENT

    def test_client_follows_siblings(self):
        allocator = allocator_for(
            groups=[GroupNode(id=20, parent_id=10, external_id="050101")],
            clients=[
                ClientNode(id=1, group_ids={20}, external_id="0501010001"),
                ClientNode(id=2, group_ids={20}, external_id="0501010002"),
                ClientNode(id=3, group_ids={20}, external_id="0501010005"),
                ClientNode(id=4, group_ids={20}),
            ],
        )
        assert allocator.allocate_client(4).external_id == "0501010006"

    def test_client_skip_propagates_from_ancestor(self):
        allocator = allocator_for(
            offices=[ROOT, OfficeNode(id=8)],
            groups=[
                GroupNode(id=10, is_center=True, office_id=8),
                GroupNode(id=20, parent_id=10),
            ],
            clients=[ClientNode(id=100, group_ids={20})],
        )
        result = allocator.allocate_client(100)

        assert result.reason == SkipReason.ANCESTOR_UNRESOLVED
        assert result.entity_id == 100

    def test_ancestor_result_without_identifier_is_skipped(
        self, allocator, memory_store, monkeypatch
    ):
        monkeypatch.setattr(
            allocator,
            "_resolve_office",
            lambda office_id: AllocationResult.skipped(
                EntityKind.OFFICE, office_id, SkipReason.MISSING_PARENT
            ),
        )

        result = allocator.allocate_center(10)

        assert result.reason == SkipReason.ANCESTOR_UNRESOLVED
        assert "without an identifier" in result.detail
        assert memory_store.writes == 0

    def test_unknown_client_raises(self, allocator):
        with pytest.raises(EntityNotFoundError):
            allocator.allocate(EntityKind.CLIENT, 404)


# ==============================================================================
# Widths, overflow and strictness
# ==============================================================================


class TestWidths:
    """Configured widths, overflow and malformed siblings."""

    def test_custom_width(self):
        allocator = allocator_for(
            offices=[ROOT, OfficeNode(id=2, parent_id=1)],
            widths=WidthPolicy(office_width=3),
        )
        assert allocator.allocate_office(2).external_id == "001"

    def test_overflow_raises_without_writing(self):
        store = InMemoryHierarchyStore(
            offices=[
                ROOT,
                OfficeNode(id=2, parent_id=1, external_id="99"),
                OfficeNode(id=3, parent_id=1),
            ]
        )
        allocator = HierarchyAllocator(store)

        with pytest.raises(SuffixOverflowError):
            allocator.allocate_office(3)

        assert store.get_office(3).external_id is None
        assert store.writes == 0

    def test_last_value_still_fits(self):
        allocator = allocator_for(
            offices=[
                ROOT,
                OfficeNode(id=2, parent_id=1, external_id="98"),
                OfficeNode(id=3, parent_id=1),
            ]
        )
        assert allocator.allocate_office(3).external_id == "99"

    def test_malformed_sibling_ignored_by_default(self):
        allocator = allocator_for(
            offices=[
                ROOT,
                OfficeNode(id=2, parent_id=1, external_id="03"),
                OfficeNode(id=3, parent_id=1, external_id="009"),
                OfficeNode(id=4, parent_id=1),
            ]
        )
        assert allocator.allocate_office(4).external_id == "04"

    def test_non_ascii_digit_sibling_ignored(self):
        allocator = allocator_for(
            offices=[
                ROOT,
                OfficeNode(id=2, parent_id=1, external_id="\u0665\u0665"),
                OfficeNode(id=3, parent_id=1, external_id="03"),
                OfficeNode(id=4, parent_id=1),
            ]
        )
        assert allocator.allocate_office(4).external_id == "04"

    def test_malformed_sibling_raises_when_strict(self):
        allocator = allocator_for(
            offices=[
                ROOT,
                OfficeNode(id=2, parent_id=1, external_id="03"),
                OfficeNode(id=3, parent_id=1, external_id="009"),
                OfficeNode(id=4, parent_id=1),
            ],
            strict_width=True,
        )
        with pytest.raises(WidthMismatchError):
            allocator.allocate_office(4)


# ==============================================================================
# Concurrency
# ==============================================================================


class TestConcurrency:
    """Concurrent allocation under shared parents."""

    def test_concurrent_clients_get_contiguous_suffixes(self):
        count = 25
        store = InMemoryHierarchyStore(
            groups=[GroupNode(id=20, parent_id=10, external_id="050101")],
            clients=[ClientNode(id=i, group_ids={20}) for i in range(1, count + 1)],
        )
        allocator = HierarchyAllocator(store)
        barrier = threading.Barrier(count)
        results = {}

        def worker(client_id):
            barrier.wait()
            results[client_id] = allocator.allocate_client(client_id).external_id

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(1, count + 1)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        expected = {f"050101{n:04d}" for n in range(1, count + 1)}
        assert set(results.values()) == expected

    def test_concurrent_clients_share_new_ancestors(self, memory_store):
        count = 10
        for i in range(101, 101 + count):
            memory_store.save_client(ClientNode(id=i, group_ids={20}))
        allocator = HierarchyAllocator(memory_store)
        barrier = threading.Barrier(count)
        results = []
        lock = threading.Lock()

        def worker(client_id):
            barrier.wait()
            external_id = allocator.allocate_client(client_id).external_id
            with lock:
                results.append(external_id)

        threads = [
            threading.Thread(target=worker, args=(i,)) for i in range(101, 101 + count)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert memory_store.get_office(6).external_id == "05"
        assert memory_store.get_group(20).external_id == "050101"
        assert sorted(results) == [f"050101{n:04d}" for n in range(1, count + 1)]

    def test_busy_scope_raises_lock_timeout(self, memory_store):
        guard = AllocationGuard(timeout=0.05)
        allocator = HierarchyAllocator(memory_store, guard=guard)
        busy = AllocationScope(level=ScopeLevel.OFFICE, parent_id=1)
        result = {}

        def worker():
            try:
                allocator.allocate_office(6)
            except LockTimeoutError as e:
                result["error"] = e

        with guard.hold(busy):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()

        assert result["error"].scope == busy
        assert memory_store.get_office(6).external_id is None
