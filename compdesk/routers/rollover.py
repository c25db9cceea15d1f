"""Roll-over routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from compdesk.cache import ResponseCache, cache_key, get_cache
from compdesk.dependencies import cached_response, get_service
from compdesk.services import CompensationService

router = APIRouter(prefix="/api/rollover", tags=["Roll-over"])


@router.get("/{distributor_id}/summary")
def rollover_summary(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("rollover-summary", distributor_id, period),
        lambda: service.rollover_summary(distributor_id, period),
    )


@router.get("/{distributor_id}/analysis")
def rollover_analysis(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("rollover-analysis", distributor_id, period),
        lambda: service.rollover_analysis(distributor_id, period),
    )
