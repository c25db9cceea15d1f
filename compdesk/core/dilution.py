"""Vertical growth analysis: generation cuts, dilution chains and network health.

Every Plata+ distributor below the root is a generation cut: each of its
descendants sits one generation further from the root because of it. A
dilution chain lists the descendants whose rate differs between their actual
generation and the generation they would have without that single cut.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping, Optional, Tuple

from compdesk.core.classification import count_plata_ancestors, node_depths
from compdesk.core.commission import (
    MONEY_QUANT,
    ZERO,
    CommissionBreakdown,
    commissionable_points,
    percentage,
)
from compdesk.core.network import NetworkTree
from compdesk.core.ranks import GENERATION_RATES, MAX_GENERATION, generation_rate

HEALTHY_THRESHOLD = 70
MODERATE_THRESHOLD = 40
VISUAL_TREE_DEPTH = 3


@dataclass
class AffectedDistributor:
    id: int
    full_name: str
    name_plan: str
    level: int
    generation_before: int
    generation_after: int
    rate_before: Decimal
    rate_after: Decimal
    points: int

    @property
    def commission_lost(self) -> Decimal:
        return Decimal(self.points) * (self.rate_after - self.rate_before)


@dataclass
class DilutionChain:
    chain_id: int
    plata_id: int
    plata_name: str
    plata_plan: str
    plata_level: int
    affected: List[AffectedDistributor] = field(default_factory=list)

    @property
    def total_commission_lost(self) -> Decimal:
        return sum((item.commission_lost for item in self.affected), ZERO)

    @property
    def affected_count(self) -> int:
        return len(self.affected)


@dataclass
class PlataPlusDistributor:
    id: int
    full_name: str
    name_plan: str
    level: int
    generation: int
    points: int
    commission: Decimal
    downline_in_g3_g4: int
    estimated_dilution_caused: Decimal


@dataclass
class HypotheticalScenario:
    current_commission: Decimal
    commission_if_no_platas: Decimal

    @property
    def potential_gain(self) -> Decimal:
        return self.commission_if_no_platas - self.current_commission

    @property
    def explanation(self) -> str:
        g0_rate = GENERATION_RATES[0] * 100
        if self.potential_gain > 0:
            return (
                f"Si todos los distribuidores de tu red estuvieran en G0 ({g0_rate:.0f}%), "
                f"ganarías {self.potential_gain.quantize(MONEY_QUANT)} más que hoy."
            )
        if self.potential_gain < 0:
            return (
                f"Los cortes de generación te favorecen: con toda la red en G0 ({g0_rate:.0f}%) "
                f"ganarías {(-self.potential_gain).quantize(MONEY_QUANT)} menos que hoy."
            )
        return f"Tu comisión sería la misma con toda la red en G0 ({g0_rate:.0f}%)."


@dataclass
class GenerationCutNode:
    id: int
    full_name: str
    name_plan: str
    level: int
    generation: int
    points: int
    commission_earned: Decimal
    is_plata_plus: bool
    creates_generation_cut: bool


@dataclass
class DilutionAnalysis:
    chains: List[DilutionChain]
    plata_plus: List[PlataPlusDistributor]
    hypothetical: HypotheticalScenario
    health_score: int
    average_generation: Decimal
    network_depth: int
    most_impacted_generation_shift: str
    visual_tree: List[GenerationCutNode]

    @property
    def total_dilution_amount(self) -> Decimal:
        return sum((chain.total_commission_lost for chain in self.chains), ZERO)

    @property
    def health_band(self) -> str:
        return health_band(self.health_score)


def health_score(near_commission: Decimal, total_commission: Decimal) -> int:
    """``round(100 * near / total)`` with half-up rounding; 100 for an empty network."""

    if not total_commission:
        return 100
    share = Decimal(near_commission) / Decimal(total_commission)
    score = (share * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(min(max(score, Decimal("0")), Decimal("100")))


def health_band(score: int) -> str:
    if score >= HEALTHY_THRESHOLD:
        return "healthy"
    if score >= MODERATE_THRESHOLD:
        return "moderate"
    return "critical"


def _build_chains(
    tree: NetworkTree,
    plata_counts: Mapping[int, int],
    levels: Mapping[int, int],
) -> List[DilutionChain]:
    chains: List[DilutionChain] = []
    for cut in tree.downline():
        if not cut.is_plata_plus:
            continue
        chain = DilutionChain(
            chain_id=len(chains) + 1,
            plata_id=cut.id,
            plata_name=cut.full_name,
            plata_plan=cut.name_plan,
            plata_level=levels[cut.id],
        )
        for node, _depth in tree.descendants(cut.id):
            count = plata_counts[node.id]
            generation_after = min(count, MAX_GENERATION)
            generation_before = min(max(count - 1, 0), MAX_GENERATION)
            rate_after = generation_rate(generation_after)
            rate_before = generation_rate(generation_before)
            if rate_after <= rate_before:
                continue
            chain.affected.append(
                AffectedDistributor(
                    id=node.id,
                    full_name=node.full_name,
                    name_plan=node.name_plan,
                    level=levels[node.id],
                    generation_before=generation_before,
                    generation_after=generation_after,
                    rate_before=rate_before,
                    rate_after=rate_after,
                    points=commissionable_points(node),
                )
            )
        if chain.affected:
            chains.append(chain)
    return chains


def _most_impacted_shift(chains: List[DilutionChain]) -> str:
    totals: Dict[Tuple[int, int], Decimal] = defaultdict(lambda: ZERO)
    for chain in chains:
        for item in chain.affected:
            totals[(item.generation_before, item.generation_after)] += item.commission_lost
    if not totals:
        return ""
    (before, after), _amount = max(totals.items(), key=lambda entry: (entry[1], -entry[0][0]))
    return f"G{before}→G{after}"


def analyze_dilution(
    tree: NetworkTree,
    generations: Mapping[int, int],
    levels: Mapping[int, int],
    breakdown: CommissionBreakdown,
    visual_depth: Optional[int] = VISUAL_TREE_DEPTH,
) -> DilutionAnalysis:
    plata_counts = count_plata_ancestors(tree)
    chains = _build_chains(tree, plata_counts, levels)
    chain_totals = {chain.plata_id: chain.total_commission_lost for chain in chains}

    plata_plus: List[PlataPlusDistributor] = []
    for node in tree.downline():
        if not node.is_plata_plus:
            continue
        far_downline = sum(
            1 for child, _depth in tree.descendants(node.id) if generations[child.id] >= 3
        )
        plata_plus.append(
            PlataPlusDistributor(
                id=node.id,
                full_name=node.full_name,
                name_plan=node.name_plan,
                level=levels[node.id],
                generation=generations[node.id],
                points=commissionable_points(node),
                commission=breakdown.per_node.get(node.id, ZERO),
                downline_in_g3_g4=far_downline,
                estimated_dilution_caused=chain_totals.get(node.id, ZERO),
            )
        )

    no_plata_total = sum(
        (Decimal(commissionable_points(node)) * GENERATION_RATES[0] for node in tree.downline()),
        ZERO,
    )
    hypothetical = HypotheticalScenario(
        current_commission=breakdown.total,
        commission_if_no_platas=no_plata_total,
    )

    if generations:
        average_generation = (
            Decimal(sum(generations.values())) / Decimal(len(generations))
        ).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    else:
        average_generation = ZERO

    depths = node_depths(tree)
    visual_tree: List[GenerationCutNode] = []
    for node in tree.downline():
        if visual_depth is not None and depths[node.id] > visual_depth:
            continue
        visual_tree.append(
            GenerationCutNode(
                id=node.id,
                full_name=node.full_name,
                name_plan=node.name_plan,
                level=levels[node.id],
                generation=generations[node.id],
                points=commissionable_points(node),
                commission_earned=breakdown.per_node.get(node.id, ZERO),
                is_plata_plus=node.is_plata_plus,
                creates_generation_cut=node.is_plata_plus and bool(node.children_ids),
            )
        )

    return DilutionAnalysis(
        chains=chains,
        plata_plus=plata_plus,
        hypothetical=hypothetical,
        health_score=health_score(breakdown.g0_g2_commission, breakdown.total),
        average_generation=average_generation,
        network_depth=max(depths.values(), default=0),
        most_impacted_generation_shift=_most_impacted_shift(chains),
        visual_tree=visual_tree,
    )


def generation_distribution(breakdown: CommissionBreakdown) -> List[dict]:
    rows = []
    for generation, cell in breakdown.by_generation.items():
        rows.append(
            {
                "generation": generation,
                "rate": GENERATION_RATES[generation],
                "count": cell.count,
                "total_points": cell.total_points,
                "total_commission": cell.total_commission,
                "percentage_of_total": percentage(cell.total_commission, breakdown.total),
            }
        )
    return rows


__all__ = [
    "AffectedDistributor",
    "DilutionChain",
    "PlataPlusDistributor",
    "HypotheticalScenario",
    "GenerationCutNode",
    "DilutionAnalysis",
    "analyze_dilution",
    "generation_distribution",
    "health_score",
    "health_band",
    "HEALTHY_THRESHOLD",
    "MODERATE_THRESHOLD",
]
