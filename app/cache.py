"""In-process TTL cache shared by the aggregation lookups."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class CacheEntry:
    """A stored value and the clock reading at which it was written."""

    key: str
    value: Any
    stored_at: float


class TTLCache(Generic[T]):
    """Key/value store with passive expiry.

    Entries older than ``ttl_seconds`` read as absent but stay in memory until
    the key is written again; nothing is evicted in the background. Instances
    live for the lifetime of the process and are never persisted.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at > self._ttl:
            return None
        return entry.value

    def set(self, key: str, value: T) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


def make_cache_key(resource: str, **params: Any) -> str:
    """Build a deterministic key from the resource name and request parameters.

    Parameters are ordered by name and JSON-encoded, so ``q=None`` and
    ``q=""`` or values containing separators never collide.
    """

    return json.dumps([resource, params], sort_keys=True, default=str)
