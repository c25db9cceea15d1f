"""Commission aggregation over a classified tree."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Mapping, Tuple

from compdesk.core.network import DistributorNode, NetworkTree, Points
from compdesk.core.ranks import (
    FAR_GENERATIONS,
    GENERATION_RATES,
    LEVEL_RATES,
    NEAR_GENERATIONS,
    generation_rate,
)
from compdesk.errors import ComputationInvariantViolation

logger = logging.getLogger(__name__)

MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def commissionable_points(node: DistributorNode) -> Points:
    """Point basis every generation rate is applied to (the node's business points)."""

    return node.group_points


def node_commission(node: DistributorNode, generation: int) -> Decimal:
    return Decimal(commissionable_points(node)) * generation_rate(generation)


def percentage(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole * 100`` rounded to cents, 0 when ``whole`` is 0."""

    if not whole:
        return ZERO
    return (part / whole * HUNDRED).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


@dataclass
class CommissionCell:
    count: int = 0
    total_points: Points = 0
    total_commission: Decimal = ZERO
    percentage_of_total: Decimal = ZERO

    def add(self, points: Points, commission: Decimal) -> None:
        self.count += 1
        self.total_points += points
        self.total_commission += commission


@dataclass
class CommissionBreakdown:
    by_generation: Dict[int, CommissionCell]
    by_level: Dict[int, CommissionCell]
    by_level_generation: Dict[Tuple[int, int], CommissionCell]
    per_node: Dict[int, Decimal] = field(default_factory=dict)
    total: Decimal = ZERO

    def _sum_generations(self, generations) -> Decimal:
        return sum((self.by_generation[g].total_commission for g in generations), ZERO)

    @property
    def g0_g2_commission(self) -> Decimal:
        return self._sum_generations(NEAR_GENERATIONS)

    @property
    def g3_g4_commission(self) -> Decimal:
        return self._sum_generations(FAR_GENERATIONS)

    @property
    def g0_g2_percentage(self) -> Decimal:
        return percentage(self.g0_g2_commission, self.total)

    @property
    def g3_g4_percentage(self) -> Decimal:
        return percentage(self.g3_g4_commission, self.total)

    @property
    def network_size(self) -> int:
        return len(self.per_node)


def _check_totals(breakdown: CommissionBreakdown) -> None:
    by_generation = sum((cell.total_commission for cell in breakdown.by_generation.values()), ZERO)
    by_level = sum((cell.total_commission for cell in breakdown.by_level.values()), ZERO)
    by_cell = sum((cell.total_commission for cell in breakdown.by_level_generation.values()), ZERO)
    if not (by_generation == by_level == by_cell == breakdown.total):
        message = (
            "Commission partitions disagree: "
            f"generations={by_generation} levels={by_level} cells={by_cell} total={breakdown.total}"
        )
        logger.error(message)
        raise ComputationInvariantViolation(message)


def aggregate(
    tree: NetworkTree,
    generations: Mapping[int, int],
    levels: Mapping[int, int],
) -> CommissionBreakdown:
    """Sum commission per generation, per level and per (level, generation) cell."""

    breakdown = CommissionBreakdown(
        by_generation={generation: CommissionCell() for generation in GENERATION_RATES},
        by_level={level: CommissionCell() for level in LEVEL_RATES},
        by_level_generation={},
    )

    for node in tree.downline():
        if node.id not in generations or node.id not in levels:
            message = f"Distributor {node.id} was not classified"
            logger.error(message)
            raise ComputationInvariantViolation(message)
        generation = generations[node.id]
        level = levels[node.id]
        if generation not in breakdown.by_generation or level not in breakdown.by_level:
            message = f"Distributor {node.id} classified out of range: G{generation}, ML{level}"
            logger.error(message)
            raise ComputationInvariantViolation(message)

        points = commissionable_points(node)
        commission = node_commission(node, generation)
        breakdown.per_node[node.id] = commission
        breakdown.total += commission
        breakdown.by_generation[generation].add(points, commission)
        breakdown.by_level[level].add(points, commission)
        breakdown.by_level_generation.setdefault((level, generation), CommissionCell()).add(points, commission)

    _check_totals(breakdown)

    for cell in breakdown.by_generation.values():
        cell.percentage_of_total = percentage(cell.total_commission, breakdown.total)
    for cell in breakdown.by_level.values():
        cell.percentage_of_total = percentage(cell.total_commission, breakdown.total)
    for cell in breakdown.by_level_generation.values():
        cell.percentage_of_total = percentage(cell.total_commission, breakdown.total)

    breakdown.by_level_generation = dict(sorted(breakdown.by_level_generation.items()))
    return breakdown


__all__ = [
    "MONEY_QUANT",
    "CommissionCell",
    "CommissionBreakdown",
    "aggregate",
    "commissionable_points",
    "node_commission",
    "percentage",
]
