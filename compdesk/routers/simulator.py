"""What-if simulation routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from compdesk.cache import ResponseCache, cache_key, get_cache
from compdesk.core.simulator import MAX_NEW_FRONTALS, MAX_POINTS_PER_FRONTAL, MAX_VOLUME_PERCENTAGE
from compdesk.dependencies import cached_response, get_service
from compdesk.services import CompensationService

router = APIRouter(prefix="/api/simulator", tags=["Simulator"])


@router.get("/{distributor_id}/new-plata")
def new_plata(
    distributor_id: int,
    target: int = Query(..., ge=1),
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("sim-new-plata", distributor_id, period, target=target),
        lambda: {"simulation": service.simulate_new_plata(distributor_id, target, period)},
    )


@router.get("/{distributor_id}/new-frontals")
def new_frontals(
    distributor_id: int,
    count: int = Query(3, ge=1, le=MAX_NEW_FRONTALS),
    points: int = Query(3300, gt=0, le=MAX_POINTS_PER_FRONTAL),
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("sim-new-frontals", distributor_id, period, count=count, points=points),
        lambda: {"simulation": service.simulate_new_frontals(distributor_id, count, points, period)},
    )


@router.get("/{distributor_id}/volume-increase")
def volume_increase(
    distributor_id: int,
    percentage: float = Query(10, gt=0, le=float(MAX_VOLUME_PERCENTAGE)),
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("sim-volume-increase", distributor_id, period, percentage=percentage),
        lambda: {"simulation": service.simulate_volume_increase(distributor_id, percentage, period)},
    )


@router.get("/{distributor_id}/candidates")
def candidates(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("sim-candidates", distributor_id, period, limit=limit),
        lambda: {"candidates": service.candidates(distributor_id, period, limit=limit)},
    )
