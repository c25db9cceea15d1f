"""Dilution diagnosis and period-over-period comparison."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from compdesk.core.commission import MONEY_QUANT, ZERO, CommissionBreakdown, percentage
from compdesk.core.dilution import DilutionAnalysis
from compdesk.core.network import NetworkTree

PROBLEM_TYPES = {
    "healthy": ("healthy", "low"),
    "moderate": ("moderate_dilution", "medium"),
    "critical": ("severe_dilution", "high"),
}


@dataclass
class DiagnosticResult:
    has_problem: bool
    problem_type: str
    severity: str
    title: str
    description: str
    impact_monetary: Decimal
    impact_percentage: Decimal
    recommendations: List[str] = field(default_factory=list)


def _recommendations(band: str, dilution: DilutionAnalysis) -> List[str]:
    if band == "healthy":
        return [
            "Mantén el crecimiento horizontal: sigue sumando frontales directos.",
            "Acompaña a tus frontales para que su volumen se quede en G0-G2.",
        ]
    tips = [
        "Patrocina nuevos frontales para recuperar volumen en G0.",
        "Impulsa el crecimiento en las primeras generaciones antes de promover nuevos rangos.",
    ]
    if dilution.chains:
        worst = max(dilution.chains, key=lambda chain: chain.total_commission_lost)
        tips.append(
            f"Revisa la línea de {worst.plata_name} ({worst.plata_plan}): concentra "
            f"{worst.affected_count} distribuidor(es) con comisión diluida."
        )
    if band == "critical":
        tips.append("Más de la mitad de tu comisión viene de G3-G4: prioriza la amplitud sobre la profundidad.")
    return tips


def diagnose_dilution(breakdown: CommissionBreakdown, dilution: DilutionAnalysis) -> DiagnosticResult:
    band = dilution.health_band
    problem_type, severity = PROBLEM_TYPES[band]
    total_dilution = dilution.total_dilution_amount
    near_share = breakdown.g0_g2_percentage

    if band == "healthy":
        title = "Red saludable"
        description = (
            f"El {near_share}% de tu comisión viene de G0-G2. "
            "Tu red crece principalmente de forma horizontal."
        )
    elif band == "moderate":
        title = "Dilución moderada"
        description = (
            f"Solo el {near_share}% de tu comisión viene de G0-G2. "
            "Los cortes de generación empiezan a reducir tu comisión."
        )
    else:
        title = "Dilución severa"
        description = (
            f"Solo el {near_share}% de tu comisión viene de G0-G2. "
            "La mayor parte de tu volumen se paga a las tasas de G3-G4."
        )

    return DiagnosticResult(
        has_problem=band != "healthy",
        problem_type=problem_type,
        severity=severity,
        title=title,
        description=description,
        impact_monetary=ZERO - total_dilution.quantize(MONEY_QUANT),
        impact_percentage=ZERO - percentage(total_dilution, breakdown.total),
        recommendations=_recommendations(band, dilution),
    )


@dataclass
class PeriodData:
    id_period: int
    name_period: str
    total_commission: Decimal
    network_size: int
    g0_g2_percentage: Decimal
    g3_g4_percentage: Decimal
    g0_g2_commission: Decimal
    g3_g4_commission: Decimal
    plata_plus_ids: frozenset = frozenset()

    @classmethod
    def from_breakdown(
        cls,
        id_period: int,
        name_period: str,
        tree: NetworkTree,
        breakdown: CommissionBreakdown,
    ) -> "PeriodData":
        return cls(
            id_period=id_period,
            name_period=name_period,
            total_commission=breakdown.total,
            network_size=tree.downline_size,
            g0_g2_percentage=breakdown.g0_g2_percentage,
            g3_g4_percentage=breakdown.g3_g4_percentage,
            g0_g2_commission=breakdown.g0_g2_commission,
            g3_g4_commission=breakdown.g3_g4_commission,
            plata_plus_ids=frozenset(node.id for node in tree.downline() if node.is_plata_plus),
        )


@dataclass
class PeriodChanges:
    commission_change: Decimal
    commission_change_percentage: Decimal
    network_change: int
    network_change_percentage: Decimal
    g0_g2_shift: Decimal
    new_plata_plus_count: int


@dataclass
class PeriodComparison:
    current_period: PeriodData
    previous_period: Optional[PeriodData]
    changes: PeriodChanges


def compare_periods(current: PeriodData, previous: Optional[PeriodData]) -> PeriodComparison:
    """Changes from ``previous`` to ``current``; with no previous period every change is 0."""

    if previous is None:
        changes = PeriodChanges(
            commission_change=ZERO,
            commission_change_percentage=ZERO,
            network_change=0,
            network_change_percentage=ZERO,
            g0_g2_shift=ZERO,
            new_plata_plus_count=0,
        )
        return PeriodComparison(current_period=current, previous_period=None, changes=changes)

    commission_change = current.total_commission - previous.total_commission
    network_change = current.network_size - previous.network_size
    changes = PeriodChanges(
        commission_change=commission_change,
        commission_change_percentage=percentage(commission_change, previous.total_commission),
        network_change=network_change,
        network_change_percentage=percentage(Decimal(network_change), Decimal(previous.network_size)),
        g0_g2_shift=current.g0_g2_percentage - previous.g0_g2_percentage,
        new_plata_plus_count=len(current.plata_plus_ids - previous.plata_plus_ids),
    )
    return PeriodComparison(current_period=current, previous_period=previous, changes=changes)


__all__ = [
    "DiagnosticResult",
    "PeriodData",
    "PeriodChanges",
    "PeriodComparison",
    "diagnose_dilution",
    "compare_periods",
]
