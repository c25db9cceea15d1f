"""Response cache maintenance route."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from compdesk.cache import ResponseCache, get_cache
from compdesk.schemas import CacheInvalidateRequest

router = APIRouter(prefix="/api/cache", tags=["Cache"])


@router.post("/invalidate")
def invalidate(
    payload: CacheInvalidateRequest | None = None,
    cache: ResponseCache = Depends(get_cache),
):
    root_id = payload.root_id if payload is not None else None
    removed = cache.invalidate(root_id)
    return {"invalidated": removed, "root_id": root_id}
