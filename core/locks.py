# Per-offer critical sections
# One lock per offer id so unrelated offers progress independently.

import threading
from contextlib import contextmanager


class KeyedLocks:
    """Registry of reference-counted locks, evicted when no thread holds or waits."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}  # key -> [lock, refcount]

    @contextmanager
    def hold(self, key: str):
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1

        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self):
        with self._guard:
            return len(self._locks)


# Process-wide registry shared by every service instance
offer_locks = KeyedLocks()
