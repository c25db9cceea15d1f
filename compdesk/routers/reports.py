"""Network-wide report routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from compdesk.dependencies import get_service
from compdesk.services import CompensationService

router = APIRouter(prefix="/api/reports", tags=["Reports"])

MIN_REPORT_YEAR = 1900
MAX_REPORT_YEAR = 9999


@router.get("/new-ranks/years")
def new_rank_years(service: CompensationService = Depends(get_service)):
    return service.new_rank_years()


@router.get("/new-ranks/summary")
def new_ranks_summary(
    year: int = Query(..., ge=MIN_REPORT_YEAR, le=MAX_REPORT_YEAR),
    service: CompensationService = Depends(get_service),
):
    return service.new_ranks_summary(year)


@router.get("/new-ranks/detail")
def new_ranks_detail(
    year: int = Query(..., ge=MIN_REPORT_YEAR, le=MAX_REPORT_YEAR),
    service: CompensationService = Depends(get_service),
):
    return service.new_ranks_detail(year)
