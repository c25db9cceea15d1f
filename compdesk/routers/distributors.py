"""Distributor lookup and summary routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from compdesk.cache import ResponseCache, cache_key, get_cache
from compdesk.dependencies import cached_response, get_service
from compdesk.services import CompensationService

router = APIRouter(prefix="/api/distributors", tags=["Distributors"])


@router.get("/{distributor_id}")
def get_distributor(distributor_id: int, service: CompensationService = Depends(get_service)):
    return service.distributor(distributor_id)


@router.get("/{distributor_id}/summary")
def distributor_summary(
    distributor_id: int,
    period: int | None = Query(None, ge=1),
    service: CompensationService = Depends(get_service),
    cache: ResponseCache = Depends(get_cache),
):
    return cached_response(
        cache,
        cache_key("summary", distributor_id, period),
        lambda: service.summary(distributor_id, period),
    )
