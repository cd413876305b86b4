"""Per-rule locks serializing runtime state mutations."""

import threading
from contextlib import contextmanager
from typing import Iterator

from loguru import logger

from src.automation.domain.exceptions import LockTimeoutError


class KeyedLockRegistry:
    """
    One lock per rule id, created on first use and kept for the registry's
    lifetime so every caller of a key always contends on the same lock.

    Example:
        with locks.acquire(rule.id, timeout=2.0):
            state = store.load_state(rule.id)
            ...
    """

    def __init__(self, default_timeout: float = 2.0):
        self.default_timeout = default_timeout
        self._locks: dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, key: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def acquire(self, key: int, timeout: float | None = None) -> Iterator[None]:
        """
        Hold the lock for ``key``.

        Raises:
            LockTimeoutError: if the lock is not acquired within ``timeout`` seconds
        """
        timeout = self.default_timeout if timeout is None else timeout
        lock = self._lock_for(key)
        if not lock.acquire(timeout=timeout):
            logger.warning(f"Lock for rule {key} not acquired within {timeout}s")
            raise LockTimeoutError(key, timeout)
        try:
            yield
        finally:
            lock.release()

    def __len__(self):
        return len(self._locks)
