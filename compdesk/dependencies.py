"""Shared FastAPI dependencies."""
from __future__ import annotations

from typing import Any, Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from compdesk.cache import CacheKey, ResponseCache
from compdesk.database import get_session
from compdesk.services import CompensationService

get_db = get_session


def get_service(db: Session = Depends(get_db)) -> CompensationService:
    """A service bound to the request's session."""

    return CompensationService(db)


def cached_response(cache: ResponseCache, key: CacheKey, build: Callable[[], Any]) -> Any:
    """Return the cached payload for ``key`` or build and store it."""

    payload = cache.get(key)
    if payload is None:
        payload = build()
        cache.set(key, payload)
    return payload


__all__ = ["get_db", "get_service", "cached_response"]
