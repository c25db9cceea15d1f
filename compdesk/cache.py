"""Response cache shared by the API routers.

Entries are keyed by ``(query_type, root_id, period_id, params)`` and never
expire on their own; they are dropped through :meth:`ResponseCache.invalidate`.
"""
from __future__ import annotations

import logging
import os
import threading
from typing import Any, Dict, Hashable, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

CACHE_DISABLED = os.getenv("COMPDESK_DISABLE_CACHE", "").strip().lower() in {"1", "true", "yes", "on"}

CacheKey = Tuple[str, int, Optional[int], Tuple[Tuple[str, Hashable], ...]]


def cache_key(query_type: str, root_id: int, period_id: Optional[int], **params: Hashable) -> CacheKey:
    return (query_type, root_id, period_id, tuple(sorted(params.items())))


class ResponseCache(Protocol):
    def get(self, key: CacheKey) -> Optional[Any]:
        ...

    def set(self, key: CacheKey, value: Any) -> None:
        ...

    def invalidate(self, root_id: Optional[int] = None) -> int:
        ...


class InMemoryResponseCache:
    """Process-local cache guarded by a lock."""

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            return self._entries.get(key)

    def set(self, key: CacheKey, value: Any) -> None:
        with self._lock:
            self._entries[key] = value

    def invalidate(self, root_id: Optional[int] = None) -> int:
        with self._lock:
            if root_id is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                stale = [key for key in self._entries if key[1] == root_id]
                for key in stale:
                    del self._entries[key]
                removed = len(stale)
        logger.info("Invalidated %d cached responses (root_id=%s)", removed, root_id)
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class NullResponseCache:
    """Cache that never stores anything."""

    def get(self, key: CacheKey) -> Optional[Any]:
        return None

    def set(self, key: CacheKey, value: Any) -> None:
        return None

    def invalidate(self, root_id: Optional[int] = None) -> int:
        return 0


_response_cache: ResponseCache = NullResponseCache() if CACHE_DISABLED else InMemoryResponseCache()


def get_cache() -> ResponseCache:
    """FastAPI dependency returning the process-wide response cache."""

    return _response_cache


__all__ = [
    "CacheKey",
    "ResponseCache",
    "InMemoryResponseCache",
    "NullResponseCache",
    "cache_key",
    "get_cache",
]
