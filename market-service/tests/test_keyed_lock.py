# tests/test_keyed_lock.py
import threading
import time

import pytest

from app.services.locks import KeyedLock


def test_locks_are_dropped_after_release():
    locks = KeyedLock()
    with locks.hold("os_b", "os_a", "os_a"):
        assert len(locks) == 2
    assert len(locks) == 0


def test_released_when_body_raises():
    locks = KeyedLock()
    with pytest.raises(RuntimeError):
        with locks.hold("os_a"):
            raise RuntimeError("boom")
    assert len(locks) == 0
    with locks.hold("os_a"):
        pass


def test_same_key_is_serialized():
    locks = KeyedLock()
    inside = []
    overlap = []

    def worker():
        with locks.hold("os_a"):
            inside.append(1)
            if len(inside) > 1:
                overlap.append(True)
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert overlap == []
    assert len(locks) == 0


def test_overlapping_key_sets_do_not_deadlock():
    locks = KeyedLock()
    done = []

    def worker(keys):
        for _ in range(20):
            with locks.hold(*keys):
                pass
        done.append(keys)

    a = threading.Thread(target=worker, args=(("os_1", "os_2"),))
    b = threading.Thread(target=worker, args=(("os_2", "os_1"),))
    a.start()
    b.start()
    a.join(timeout=5)
    b.join(timeout=5)

    assert len(done) == 2
