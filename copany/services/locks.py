"""Process-local mutual exclusion per copany."""
from __future__ import annotations

from contextlib import contextmanager
from threading import Lock
from typing import Iterator
from weakref import WeakValueDictionary


class CopanyLockRegistry:
    """Hands out one lock per copany id; recomputes of the same copany never overlap in-process.

    Locks are held weakly, so an entry disappears once no caller references it.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: WeakValueDictionary[int, Lock] = WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def lock_for(self, copany_id: int) -> Lock:
        with self._guard:
            lock = self._locks.get(copany_id)
            if lock is None:
                lock = Lock()
                self._locks[copany_id] = lock
            return lock

    @contextmanager
    def hold(self, copany_id: int) -> Iterator[None]:
        lock = self.lock_for(copany_id)
        with lock:
            yield


copany_locks = CopanyLockRegistry()
