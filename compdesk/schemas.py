"""Pydantic schemas for API responses and requests."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from compdesk.core.formatting import format_wire_date


class PeriodRead(BaseModel):
    id_period: int
    name_period: str
    start_date: Optional[str]
    end_date: Optional[str]
    status: str

    @field_validator("start_date", "end_date", mode="before")
    def format_dates(cls, value: Any) -> Optional[str]:
        if isinstance(value, date):
            return format_wire_date(value)
        return value

    model_config = ConfigDict(from_attributes=True)


class DistributorRead(BaseModel):
    id_customers: int
    full_name: str
    id_sponsor: Optional[int] = None
    sponsor_name: Optional[str] = None
    date_register: Optional[str] = None
    id_plan: Optional[int] = None
    name_plan: Optional[str] = None


class CurrencyRead(BaseModel):
    code: str
    symbol: str
    name: str


class GenerationRow(BaseModel):
    generation: int
    personas: int
    pts_negocio: int
    comision: float
    porcentaje: float


class LevelRow(BaseModel):
    nivel: int
    personas: int
    pts_negocio: int
    comision: float
    porcentaje_nivel: float
    porcentaje_generation: float


class LevelGenerationRow(LevelRow):
    generation: int


class CommissionDetailRow(BaseModel):
    id_customers: int
    full_name: Optional[str]
    nivel: Optional[int]
    generation: Optional[int]
    name_plan: Optional[str]
    point_current_customers: int
    point_business_customers: int
    percentage_nivel: float
    percentage_generation: float
    subtotal_earnings: float
    code_money: Optional[str]


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class CommissionHistoryRow(BaseModel):
    id_period: int
    name_period: Optional[str]
    name_plan: Optional[str]
    subtotal_earnings: float
    total: float
    code_money: Optional[str]


class RollOverConfig(BaseModel):
    v_grupal_required: Optional[int]
    rollover_percent: Optional[float]
    max_per_leg: Optional[float]


class RollOverSummaryRead(BaseModel):
    distributor_rank: str
    rollover_config: RollOverConfig
    total_frontals: int
    total_group_points: int
    total_roll_over: float
    effective_group_points: float
    frontals_with_rollover: int
    roll_over_percentage: float


class RollOverLegRead(BaseModel):
    id_customers: int
    full_name: str
    name_plan: str
    points: int
    personal_points: int
    branch_points: int
    nivel: int = 1
    roll_over: float
    roll_over_applied: bool
    percentage_of_total: float
    effective_points: float
    effective_percentage: float
    max_allowed: Optional[float]
    exceeds_limit: bool


class NetworkNodeRead(BaseModel):
    id: int
    name: str
    plan: str
    points: int
    nivel: int
    children: List["NetworkNodeRead"] = Field(default_factory=list)


NetworkNodeRead.model_rebuild()


class NetworkFrontalRead(BaseModel):
    id: int
    name: str
    plan: str
    personal_points: int
    subnet_size: int
    subnet_points: int


class NetworkLevelStats(BaseModel):
    nivel: int
    count: int
    total_points: int


class DiagnosticImpact(BaseModel):
    monetary: float
    percentage: float


class DiagnosticRead(BaseModel):
    has_problem: bool
    problem_type: str
    severity: str
    title: str
    description: str
    impact: DiagnosticImpact
    recommendations: List[str]


class PeriodDataRead(BaseModel):
    id_period: int
    name_period: str
    total_commission: float
    network_size: int
    g0_g2_percentage: float
    g3_g4_percentage: float
    g0_g2_commission: float
    g3_g4_commission: float


class PeriodChangesRead(BaseModel):
    commission_change: float
    commission_change_percentage: float
    network_change: int
    network_change_percentage: float
    g0_g2_shift: float
    new_plata_plus_count: int


class PeriodComparisonRead(BaseModel):
    current_period: PeriodDataRead
    previous_period: Optional[PeriodDataRead]
    changes: PeriodChangesRead


class EffectRead(BaseModel):
    description: str
    amount: float


class SimulationImpact(BaseModel):
    title: str
    details: List[str]
    commission_change: float
    is_positive: bool


class SimulationBreakdown(BaseModel):
    positive_effects: List[EffectRead]
    negative_effects: List[EffectRead]


class SimulationRead(BaseModel):
    scenario_type: str
    description: str
    input: Dict[str, Any]
    impact: SimulationImpact
    breakdown: SimulationBreakdown
    baseline_total: float
    simulated_total: float


class PlataCandidateRead(BaseModel):
    id_customers: int
    full_name: str
    nivel: Optional[int]
    generation: Optional[int]
    name_plan: str
    points: int


class NewRankSummaryRead(BaseModel):
    period_id: int
    period_name: str
    rank_id: int
    rank_name: str
    count: int


class NewRankDetailRead(BaseModel):
    id_customers: int
    full_name: str
    previous_rank_id: int
    previous_rank_name: str
    new_rank_id: int
    new_rank_name: str
    period_id: int
    period_name: str


class CacheInvalidateRequest(BaseModel):
    root_id: Optional[int] = Field(None, ge=1)


__all__ = [
    "PeriodRead",
    "DistributorRead",
    "CurrencyRead",
    "GenerationRow",
    "LevelRow",
    "LevelGenerationRow",
    "CommissionDetailRow",
    "Pagination",
    "CommissionHistoryRow",
    "RollOverConfig",
    "RollOverSummaryRead",
    "RollOverLegRead",
    "NetworkNodeRead",
    "NetworkFrontalRead",
    "NetworkLevelStats",
    "DiagnosticRead",
    "PeriodDataRead",
    "PeriodComparisonRead",
    "SimulationRead",
    "PlataCandidateRead",
    "NewRankSummaryRead",
    "NewRankDetailRead",
    "CacheInvalidateRequest",
]
