"""Feature-set caches used by FeatureRepository."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import Any


class FeatureCache(ABC):
    """Abstract cache of decoded feature sets keyed by source."""

    @abstractmethod
    def get(self, key: str) -> dict[str, Any] | None:
        """Return the cached feature set, or None when absent or expired."""
        ...

    @abstractmethod
    def set(self, key: str, value: dict[str, Any], ttl: float) -> None:
        """Store ``value`` for ``ttl`` seconds."""
        ...

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry."""
        ...


class _CacheEntry:
    __slots__ = ("value", "expires_at")

    def __init__(self, value: dict[str, Any], ttl: float) -> None:
        self.value = value
        self.expires_at = time.monotonic() + ttl

    def is_expired(self) -> bool:
        return time.monotonic() >= self.expires_at


class InMemoryFeatureCache(FeatureCache):
    """Process-local TTL cache. Each repository owns its own instance."""

    def __init__(self) -> None:
        self._store: dict[str, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._store[key]
                return None
            return entry.value

    def set(self, key: str, value: dict[str, Any], ttl: float) -> None:
        with self._lock:
            self._store[key] = _CacheEntry(value, ttl)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
