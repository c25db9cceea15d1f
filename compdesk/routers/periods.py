"""Compensation period routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from compdesk.dependencies import get_service
from compdesk.services import CompensationService

router = APIRouter(prefix="/api/periods", tags=["Periods"])


@router.get("")
def list_periods(service: CompensationService = Depends(get_service)):
    return {"periods": service.list_periods()}


@router.get("/current")
def current_period(service: CompensationService = Depends(get_service)):
    return service.period()


@router.get("/{period_id}")
def get_period(period_id: int, service: CompensationService = Depends(get_service)):
    return service.period(period_id)
