"""
Per-scope mutual exclusion for identifier allocation.

Reading siblings, computing the max and saving the new identifier is a
check-then-act sequence. Two allocations under the same parent at the
same level must not interleave, or both would compute the same max and
hand out the same suffix. The guard serializes work per AllocationScope;
allocations under unrelated parents proceed independently.

Callers take one scope at a time, top-down: an ancestor's scope is
released before the child's scope is requested.

Example:
    >>> from extid.core.ids.guard import AllocationGuard
    >>> from extid.core.ids.models import AllocationScope, ScopeLevel
    >>> guard = AllocationGuard(timeout=1.0)
    >>> with guard.hold(AllocationScope(level=ScopeLevel.GROUP, parent_id=3)):
    ...     pass  # read siblings, compute, save
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from extid.core.ids.exceptions import LockTimeoutError
from extid.core.ids.models import AllocationScope

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


class _ScopeLock:
    """A lock plus the number of threads holding or waiting on it."""

    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class AllocationGuard:
    """
    Registry of per-scope locks with bounded waiting.

    Lock entries are created on first use and dropped once no thread holds
    or waits on them, so the registry does not grow with the number of
    parents ever seen.

    Attributes:
        timeout: Default seconds to wait for a busy scope
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")
        self.timeout = timeout
        self._registry_lock = threading.Lock()
        self._scopes: dict[AllocationScope, _ScopeLock] = {}

    def _checkout(self, scope: AllocationScope) -> _ScopeLock:
        with self._registry_lock:
            entry = self._scopes.get(scope)
            if entry is None:
                entry = _ScopeLock()
                self._scopes[scope] = entry
            entry.users += 1
            return entry

    def _checkin(self, scope: AllocationScope, entry: _ScopeLock) -> None:
        with self._registry_lock:
            entry.users -= 1
            if entry.users == 0:
                self._scopes.pop(scope, None)

    @contextmanager
    def hold(self, scope: AllocationScope, timeout: float | None = None) -> Iterator[None]:
        """
        Hold ``scope`` for the duration of the block.

        Args:
            scope: The (level, parent) scope to serialize on
            timeout: Seconds to wait; defaults to the guard's timeout

        Raises:
            LockTimeoutError: If the scope stays busy past the timeout
        """
        wait = self.timeout if timeout is None else timeout
        entry = self._checkout(scope)
        try:
            if not entry.lock.acquire(timeout=wait):
                logger.error("Allocation scope %s busy for more than %gs", scope, wait)
                raise LockTimeoutError(scope, wait)
            logger.debug("Acquired allocation scope %s", scope)
            try:
                yield
            finally:
                entry.lock.release()
                logger.debug("Released allocation scope %s", scope)
        finally:
            self._checkin(scope, entry)

    def active_scopes(self) -> list[AllocationScope]:
        """Return scopes that currently have a holder or a waiter."""
        with self._registry_lock:
            return list(self._scopes)
