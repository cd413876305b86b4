"""Tests for the per-rule lock registry."""

import threading

import pytest

from src.automation.domain.exceptions import LockTimeoutError
from src.automation.infrastructure.rule_lock import KeyedLockRegistry


@pytest.fixture
def locks():
    return KeyedLockRegistry(default_timeout=0.05)


class TestKeyedLockRegistry:
    def test_same_rule_is_serialized(self, locks):
        with locks.acquire(1):
            with pytest.raises(LockTimeoutError):
                with locks.acquire(1):
                    pass

    def test_other_rules_are_independent(self, locks):
        with locks.acquire(1):
            with locks.acquire(2):
                pass

    def test_lock_is_reused_after_release(self, locks):
        for _ in range(3):
            with locks.acquire(1):
                pass

        assert len(locks) == 1

    def test_lock_held_by_another_thread_blocks_new_callers(self, locks):
        held = threading.Event()
        release = threading.Event()

        def hold():
            with locks.acquire(7, timeout=1):
                held.set()
                release.wait(timeout=5)

        worker = threading.Thread(target=hold)
        worker.start()
        try:
            assert held.wait(timeout=5)
            with pytest.raises(LockTimeoutError):
                with locks.acquire(7):
                    pass
        finally:
            release.set()
            worker.join()

        with locks.acquire(7):
            pass
