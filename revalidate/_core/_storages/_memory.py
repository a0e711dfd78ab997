from __future__ import annotations

import logging
import threading
import typing as tp

from revalidate._core._storages._base import BaseStorage, clone_response
from revalidate._core.models import CacheEntry, Request, Response
from revalidate._lru_cache import LRUCache

logger = logging.getLogger("revalidate.storages")

__all__ = ("InMemoryStorage",)


class InMemoryStorage(BaseStorage):
    """
    A simple in-memory storage.

    Without `capacity` the storage is unbounded and keeps every entry for the
    lifetime of the instance. With `capacity` it keeps at most that many
    entries and evicts the least recently used one first.

    :param capacity: The maximum number of responses that can be cached, defaults to None (unbounded)
    :type capacity: tp.Optional[int], optional
    """

    def __init__(self, capacity: tp.Optional[int] = None) -> None:
        self._entries: tp.Union[tp.Dict[str, CacheEntry], LRUCache[str, CacheEntry]]
        if capacity is None:
            self._entries = {}
        else:
            self._entries = LRUCache(capacity=capacity)
        self._lock = threading.RLock()

    def store(self, response: Response, fresh_until: float, stale_until: float) -> None:
        key = self._key_for_response(response)
        entry = CacheEntry(response=clone_response(response), fresh_until=fresh_until, stale_until=stale_until)

        with self._lock:
            if isinstance(self._entries, LRUCache):
                self._entries.put(key, entry)
            else:
                self._entries[key] = entry
        logger.debug(f"Stored entry {key!r} (fresh until {fresh_until}, stale until {stale_until})")

    def get_entry(self, request: Request) -> tp.Optional[CacheEntry]:
        key = self.get_key(request)

        with self._lock:
            try:
                entry = self._entries[key] if isinstance(self._entries, dict) else self._entries.get(key)
            except KeyError:
                return None

        return CacheEntry(
            response=clone_response(entry.response),
            fresh_until=entry.fresh_until,
            stale_until=entry.stale_until,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
