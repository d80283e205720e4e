"""Per-owner-pair mutual exclusion.

Creation, response and signing for a given pair of owners all run under the
same lock, so the duplicate-proposal check and the sign-then-complete
sequence are atomic with respect to each other.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class PairLockRegistry:
    """Lazily created ``threading.Lock`` per unordered owner pair."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[frozenset[str], threading.Lock] = {}

    def lock_for(self, owner_a: str, owner_b: str) -> threading.Lock:
        key = frozenset((owner_a, owner_b))
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, owner_a: str, owner_b: str) -> Iterator[None]:
        with self.lock_for(owner_a, owner_b):
            yield

    def __len__(self) -> int:
        return len(self._locks)
