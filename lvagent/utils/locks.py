"""Per-key locks for volume and path operations."""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List


class KeyedLock:
    """Get-or-create a lock per key.

    Prevents TOCTOU races by ensuring only one operation per volume id
    (controller) or per path (node) at a time. Entries are dropped once no
    caller holds or waits on them.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
            self._users[key] = self._users.get(key, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._users[key] -= 1
                if not self._users[key]:
                    del self._users[key]
                    del self._locks[key]

    def held_keys(self) -> List[str]:
        with self._guard:
            return list(self._locks)
