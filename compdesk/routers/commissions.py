"""Commission breakdown routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from compdesk.cache import ResponseCache, cache_key, get_cache
from compdesk.dependencies import cached_response, get_service
from compdesk.services import MAX_DETAILS_LIMIT, MAX_HISTORY_MONTHS, CompensationService

router = APIRouter(prefix="/api/commissions", tags=["Commissions"])


@router.get("/{distributor_id}/by-generation")
def by_generation(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("by-generation", distributor_id, period),
        lambda: {"generations": service.commissions_by_generation(distributor_id, period)},
    )


@router.get("/{distributor_id}/by-level")
def by_level(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("by-level", distributor_id, period),
        lambda: {"levels": service.commissions_by_level(distributor_id, period)},
    )


@router.get("/{distributor_id}/by-level-generation")
def by_level_generation(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("by-level-generation", distributor_id, period),
        lambda: {"data": service.commissions_by_level_generation(distributor_id, period)},
    )


@router.get("/{distributor_id}/details")
def details(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    limit: int = Query(50, ge=1, le=MAX_DETAILS_LIMIT),
    offset: int = Query(0, ge=0),
    nivel: int | None = Query(None, ge=1, le=3),
    generation: int | None = Query(None, ge=0, le=4),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key(
            "details", distributor_id, period, limit=limit, offset=offset, nivel=nivel, generation=generation
        ),
        lambda: service.commission_details(
            distributor_id, period, limit=limit, offset=offset, nivel=nivel, generation=generation
        ),
    )


@router.get("/{distributor_id}/history")
def history(
    distributor_id: int,
    months: int = Query(12, ge=1, le=MAX_HISTORY_MONTHS),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("history", distributor_id, None, months=months),
        lambda: {"history": service.commission_history(distributor_id, months)},
    )
