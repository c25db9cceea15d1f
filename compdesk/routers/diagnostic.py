"""Network health diagnostic routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from compdesk.cache import ResponseCache, cache_key, get_cache
from compdesk.dependencies import cached_response, get_service
from compdesk.services import CompensationService

router = APIRouter(prefix="/api/diagnostic", tags=["Diagnostic"])


@router.get("/{distributor_id}/dilution")
def dilution(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("dilution", distributor_id, period),
        lambda: {"analysis": service.dilution_diagnostic(distributor_id, period)},
    )


@router.get("/{distributor_id}/comparison")
def comparison(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("comparison", distributor_id, period),
        lambda: {"comparison": service.period_comparison(distributor_id, period)},
    )


@router.get("/{distributor_id}/full")
def full(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("full", distributor_id, period),
        lambda: service.full_diagnostic(distributor_id, period),
    )


@router.get("/{distributor_id}/vertical-growth")
def vertical_growth(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("vertical-growth", distributor_id, period),
        lambda: service.vertical_growth(distributor_id, period),
    )
