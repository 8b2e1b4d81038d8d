"""
CacheStore — time-bounded key/value cache for booking data.

Entries are written as JSON ``{"data": ..., "storedAt": <epoch ms>}`` under
``booking_cache_<key>`` in a KeyValueStorage.  The TTL is NOT stored with the
entry: every reader passes the TTL of the data class it is reading, so the
same entry can be "fresh" for one caller and "stale" for another.

Storage failures never reach the caller.  A failed write is dropped (the
booking flow simply runs uncached), a corrupt entry is deleted and reported
as a miss.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from .cache_keys import CacheKey

log = logging.getLogger(__name__)

KEY_PREFIX = "booking_cache_"

T = TypeVar("T")


class KeyValueStorage(ABC):
    """
    Port: a persistent string -> string map.

    Shared with unrelated code, which is why CacheStore only ever touches
    keys under its own prefix.
    """

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Return the stored string, or None if absent."""
        ...

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store value under key. May raise when the backend is full or broken."""
        ...

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete key. Deleting a missing key is not an error."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """Return every stored key, including ones this package did not write."""
        ...


@dataclass(frozen=True)
class CacheTtls:
    """Per-data-class TTLs in seconds.

    Catalog data changes quickly and is always confirmed fresh (TTL 0), staff
    lists change rarely, availability is short-lived against a live schedule.
    """

    categories: float = 0
    services: float = 0
    staff: float = 10 * 60
    addons: float = 0
    availability: float = 2 * 60

    def for_namespace(self, namespace: str) -> float:
        return {
            "categories": self.categories,
            "services": self.services,
            "staff": self.staff,
            "addons": self.addons,
            "availability": self.availability,
        }[namespace]


class CacheStore:
    """TTL cache over a KeyValueStorage. Single-threaded use only."""

    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Callable[[], float] = time.time,
    ):
        self._storage = storage
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def _storage_key(key: CacheKey | str) -> str:
        return f"{KEY_PREFIX}{key}"

    def set(self, key: CacheKey | str, value: Any, ttl: float | None = None) -> None:
        """Store value now. ttl is accepted for symmetry with get() and not persisted."""
        try:
            raw = json.dumps({"data": value, "storedAt": self._now_ms()})
            self._storage.set_item(self._storage_key(key), raw)
        except Exception as exc:
            log.warning("cache write dropped for %s: %s", key, exc)

    def get(self, key: CacheKey | str, ttl: float) -> Any | None:
        """Return the cached value, or None when missing, expired or corrupt."""
        storage_key = self._storage_key(key)
        try:
            raw = self._storage.get_item(storage_key)
        except Exception as exc:
            log.warning("cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None

        try:
            entry = json.loads(raw)
            data = entry["data"]
            stored_at = int(entry["storedAt"])
        except (ValueError, TypeError, KeyError) as exc:
            log.warning("corrupt cache entry %s removed: %s", key, exc)
            self._remove_quietly(storage_key)
            return None

        if self._now_ms() - stored_at > ttl * 1000:
            log.debug("cache expired: %s", key)
            self._remove_quietly(storage_key)
            return None

        log.debug("cache hit: %s", key)
        return data

    def get_as(self, key: CacheKey | str, ttl: float, decode: Callable[[Any], T]) -> T | None:
        """Like get(), but rebuilds the value with decode.

        An entry whose data no longer decodes (older layout, foreign writer)
        is deleted and reported as a miss.
        """
        data = self.get(key, ttl)
        if data is None:
            return None
        try:
            return decode(data)
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            log.warning("undecodable cache entry %s removed: %s", key, exc)
            self.remove(key)
            return None

    def remove(self, key: CacheKey | str) -> None:
        self._remove_quietly(self._storage_key(key))

    def remove_namespace(self, namespace: str) -> int:
        """Remove every entry of one data class. Returns the number removed."""
        root = f"{KEY_PREFIX}{namespace}"
        return self._remove_matching(root, lambda k: k == root or k.startswith(root + "_"))

    def clear_all(self) -> int:
        """Remove every booking cache entry, leaving unrelated keys alone."""
        return self._remove_matching(KEY_PREFIX, lambda k: k.startswith(KEY_PREFIX))

    def _remove_matching(self, prefix: str, matches: Callable[[str], bool]) -> int:
        try:
            doomed = [k for k in self._storage.keys() if matches(k)]
        except Exception as exc:
            log.warning("cache clear failed for %s*: %s", prefix, exc)
            return 0
        for k in doomed:
            self._remove_quietly(k)
        log.info("cache cleared: %d entr%s under %s*", len(doomed),
                 "y" if len(doomed) == 1 else "ies", prefix)
        return len(doomed)

    def _remove_quietly(self, storage_key: str) -> None:
        try:
            self._storage.remove_item(storage_key)
        except Exception as exc:
            log.warning("cache remove failed for %s: %s", storage_key, exc)
