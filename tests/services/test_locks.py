"""Tests for per-copany locking."""
from __future__ import annotations

import gc
import threading

from copany.services import CopanyLockRegistry


def test_same_copany_shares_a_lock() -> None:
    registry = CopanyLockRegistry()

    assert registry.lock_for(1) is registry.lock_for(1)
    assert registry.lock_for(1) is not registry.lock_for(2)


def test_hold_excludes_concurrent_holders() -> None:
    registry = CopanyLockRegistry()
    entered = threading.Event()
    release = threading.Event()
    acquired_while_held: list[bool] = []

    def _holder() -> None:
        with registry.hold(1):
            entered.set()
            release.wait(timeout=5)

    worker = threading.Thread(target=_holder)
    worker.start()
    entered.wait(timeout=5)

    acquired_while_held.append(registry.lock_for(1).acquire(blocking=False))
    with registry.hold(2):
        pass
    release.set()
    worker.join(timeout=5)

    assert acquired_while_held == [False]
    with registry.hold(1):
        pass


def test_released_locks_are_dropped() -> None:
    registry = CopanyLockRegistry()

    with registry.hold(7):
        assert len(registry) == 1
    gc.collect()

    assert len(registry) == 0
