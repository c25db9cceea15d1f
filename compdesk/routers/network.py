"""Network visualization routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from compdesk.cache import ResponseCache, cache_key, get_cache
from compdesk.dependencies import cached_response, get_service
from compdesk.services import DEFAULT_TREE_DEPTH, MAX_TREE_DEPTH, CompensationService

router = APIRouter(prefix="/api/network", tags=["Network"])


@router.get("/{distributor_id}/tree")
def network_tree(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    depth: int = Query(DEFAULT_TREE_DEPTH, ge=1, le=MAX_TREE_DEPTH),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("tree", distributor_id, period, depth=depth),
        lambda: {"tree": service.network_tree(distributor_id, period, depth=depth)},
    )


@router.get("/{distributor_id}/first-level")
def first_level(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("first-level", distributor_id, period),
        lambda: {"frontals": service.network_first_level(distributor_id, period)},
    )


@router.get("/{distributor_id}/stats-by-level")
def stats_by_level(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("stats-by-level", distributor_id, period),
        lambda: {"stats": service.network_stats_by_level(distributor_id, period)},
    )
