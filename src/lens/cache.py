"""Permanent metadata cache guarded by a reader-writer lock.

Entries are never evicted individually. ``clear`` drops everything and bumps
the generation, so an extraction that started before the clear cannot
repopulate the cache with metadata built from stale configuration.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from metadata.models import Metadata

logger = logging.getLogger(__name__)


class _ReadWriteLock:
    """Many concurrent readers or one writer.

    A queued writer holds back new readers, so a steady stream of reads
    cannot starve ``put`` or ``clear``. Not reentrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False
        self._writers_waiting = 0

    @property
    def writers_waiting(self) -> int:
        with self._cond:
            return self._writers_waiting

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writing or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class PermanentCache:
    def __init__(self) -> None:
        self._lock = _ReadWriteLock()
        self._items: dict[str, Metadata] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock.read():
            return self._generation

    def get(self, key: str) -> Metadata | None:
        with self._lock.read():
            value = self._items.get(key)
        logger.debug("Cache %s for %s", "hit" if value is not None else "miss", key)
        return value

    def put(self, key: str, value: Metadata, generation: int) -> Metadata:
        """Store ``value`` unless the key is taken or the generation is stale.

        Returns the value that callers should use: the existing entry when
        another writer got there first, otherwise ``value``.
        """
        with self._lock.write():
            if generation != self._generation:
                logger.debug("Dropping stale write for %s", key)
                return value
            return self._items.setdefault(key, value)

    def clear(self) -> None:
        with self._lock.write():
            dropped = len(self._items)
            self._items.clear()
            self._generation += 1
        logger.debug("Cleared %d cached entries", dropped)

    def keys(self) -> list[str]:
        with self._lock.read():
            return sorted(self._items)

    def snapshot(self) -> dict[str, Metadata]:
        with self._lock.read():
            return dict(self._items)

    def size(self) -> int:
        with self._lock.read():
            return len(self._items)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._items


__all__ = ["PermanentCache"]
