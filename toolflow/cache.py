"""Time-bounded in-process cache."""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Key/value cache whose entries expire ``ttl_seconds`` after being set.

    Expired entries are evicted lazily on access and by :meth:`purge`.
    ``clock`` returns seconds and defaults to :func:`time.monotonic`.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._max_entries = max_entries
        self._entries: Dict[str, Tuple[float, V]] = {}

    def get(self, key: str, default: Any = None) -> V | Any:
        item = self._entries.get(key)
        if item is None:
            return default
        expires_at, value = item
        if expires_at <= self._clock():
            del self._entries[key]
            return default
        return value

    def set(self, key: str, value: V, ttl_seconds: Optional[float] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        self._entries[key] = (self._clock() + ttl, value)
        if self._max_entries is not None and len(self._entries) > self._max_entries:
            self.purge()
            while len(self._entries) > self._max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k][0])
                del self._entries[oldest]

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def purge(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key, _ABSENT) is not _ABSENT

    def __len__(self) -> int:
        self.purge()
        return len(self._entries)


_ABSENT = object()
