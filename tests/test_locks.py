import threading

import pytest

from dealer_catalog.utils.locks import KeyedLocks


class TestKeyedLocks:
    def test_entries_are_dropped_after_release(self):
        locks = KeyedLocks()

        with locks.hold(1):
            with locks.hold(2):
                assert len(locks) == 2

        assert len(locks) == 0

    def test_same_key_is_serialized(self):
        locks = KeyedLocks()
        inside = []
        overlaps = []

        def worker():
            for _ in range(50):
                with locks.hold("vehicle-1"):
                    inside.append(1)
                    if len(inside) > 1:
                        overlaps.append(True)
                    inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []
        assert len(locks) == 0

    def test_release_on_error(self):
        locks = KeyedLocks()

        with pytest.raises(RuntimeError):
            with locks.hold(7):
                raise RuntimeError("boom")

        assert len(locks) == 0
