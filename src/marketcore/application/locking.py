"""Per-key mutual exclusion.

A ``KeyedLock`` hands out one ``threading.Lock`` per key, created on
demand, so work on different keys (products, payment references) runs in
parallel while work on the same key is serialized.  An entry lives only
while some thread holds or waits for it.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from marketcore.domain.exceptions import LockTimeoutError


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class KeyedLock:

    def __init__(self, default_timeout: float | None = None) -> None:
        self._default_timeout = default_timeout
        self._entries: dict[str, _Entry] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._entries)

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1
            return entry

    def _checkin(self, key: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[key]

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        """Hold the lock for ``key``; raise LockTimeoutError after ``timeout`` seconds."""
        timeout = self._default_timeout if timeout is None else timeout
        entry = self._checkout(key)
        try:
            acquired = entry.lock.acquire() if timeout is None else entry.lock.acquire(timeout=timeout)
            if not acquired:
                raise LockTimeoutError(f"Timed out after {timeout}s waiting for lock on '{key}'")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)
