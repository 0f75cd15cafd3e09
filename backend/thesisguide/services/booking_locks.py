from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date
from threading import Lock


def booking_key(actor_id: str, on_date: date) -> str:
    return f"{actor_id}|{on_date.isoformat()}"


class BookingLocks:
    """Per-(actor, date) mutexes serialising conflict check and write for one process.

    A key's lock lives only while someone holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, Lock] = {}
        self._holders: dict[str, int] = {}
        self._guard = Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: str) -> Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = Lock()
            self._holders[key] = self._holders.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            remaining = self._holders[key] - 1
            if remaining:
                self._holders[key] = remaining
            else:
                del self._holders[key]
                del self._locks[key]

    @contextmanager
    def hold(self, keys: Iterable[str]) -> Iterator[None]:
        # Sorted acquisition keeps two bookings sharing actors from deadlocking.
        ordered = sorted(set(keys))
        acquired: list[tuple[str, Lock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append((key, lock))
            yield
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)
