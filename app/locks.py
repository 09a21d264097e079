from __future__ import annotations

from contextlib import contextmanager
import threading
from typing import Dict, Hashable, Iterator, Tuple


class KeyedLocks:
    """
    One mutex per key, created on demand and dropped when no holder or waiter
    remains. Used to serialize booking writes per (resource, date).
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, Tuple[threading.Lock, int]] = {}

    def _checkout(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _checkin(self, key: Hashable) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, *keys: Hashable) -> Iterator[None]:
        # Sorted acquisition keeps two multi-key holders from deadlocking.
        ordered = sorted(set(keys), key=repr)
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                lock.acquire()
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


booking_locks = KeyedLocks()


def resource_day_key(resource_id: str, booking_date) -> Tuple[str, str, str]:
    return ("resource", resource_id, booking_date.isoformat())


def user_day_key(user_id: str, booking_date) -> Tuple[str, str, str]:
    return ("user", user_id, booking_date.isoformat())
