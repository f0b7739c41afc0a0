"""Tests for KeyedLock."""

import threading

import pytest

from marketcore.application.locking import KeyedLock
from marketcore.domain.exceptions import LockTimeoutError


class TestKeyedLock:

    def test_entry_dropped_after_hold(self):
        locks = KeyedLock()

        with locks.hold("pi_1"):
            assert len(locks) == 1

        assert len(locks) == 0

    def test_many_keys_leave_nothing_behind(self):
        locks = KeyedLock()

        for n in range(500):
            with locks.hold(f"pi_{n}"):
                pass

        assert len(locks) == 0

    def test_entry_dropped_when_body_raises(self):
        locks = KeyedLock()

        with pytest.raises(RuntimeError):
            with locks.hold("A"):
                raise RuntimeError("boom")

        assert len(locks) == 0

    def test_entry_dropped_after_timeout(self):
        locks = KeyedLock()
        held = threading.Event()
        done = threading.Event()

        def holder():
            with locks.hold("A"):
                held.set()
                done.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(5)

        with pytest.raises(LockTimeoutError):
            with locks.hold("A", timeout=0.05):
                pass

        done.set()
        thread.join(5)
        assert len(locks) == 0

    def test_waiter_keeps_entry_and_still_serializes(self):
        locks = KeyedLock()
        counter = {"value": 0}

        def bump():
            for _ in range(200):
                with locks.hold("A"):
                    current = counter["value"]
                    counter["value"] = current + 1

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)

        assert counter["value"] == 800
        assert len(locks) == 0

    def test_different_keys_do_not_block(self):
        locks = KeyedLock(default_timeout=0.05)

        with locks.hold("A"):
            with locks.hold("B"):
                assert len(locks) == 2
