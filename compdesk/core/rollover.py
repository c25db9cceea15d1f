"""Roll-over capping of group volume per frontal leg."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from compdesk.core.commission import ZERO, percentage
from compdesk.core.network import NetworkTree
from compdesk.core.ranks import Rank, rollover_requirement


@dataclass
class RollOverLeg:
    leg_id: int
    full_name: str
    name_plan: str
    personal_points: int
    branch_points: int
    max_allowed: Optional[Decimal]
    roll_over: Decimal = ZERO
    effective_points: Decimal = ZERO
    percentage_of_total: Decimal = ZERO
    effective_percentage: Decimal = ZERO

    @property
    def gross_points(self) -> int:
        return self.personal_points + self.branch_points

    @property
    def roll_over_applied(self) -> bool:
        return self.roll_over > 0


@dataclass
class RollOverSummary:
    distributor_rank: str
    v_grupal_required: Optional[int]
    rollover_percent: Optional[Decimal]
    max_per_leg: Optional[Decimal]
    total_frontals: int = 0
    total_group_points: int = 0
    total_roll_over: Decimal = ZERO
    effective_group_points: Decimal = ZERO
    frontals_with_rollover: int = 0
    roll_over_percentage: Decimal = ZERO


@dataclass
class RollOverAnalysis:
    summary: RollOverSummary
    legs: List[RollOverLeg] = field(default_factory=list)


def cap_leg(gross_points: int, max_allowed: Optional[Decimal]) -> tuple[Decimal, Decimal]:
    """Return ``(roll_over, effective_points)`` for one leg."""

    gross = Decimal(gross_points)
    if max_allowed is None:
        return ZERO, gross
    roll_over = max(ZERO, gross - max_allowed)
    return roll_over, gross - roll_over


def analyze_rollover(tree: NetworkTree, root_rank: Optional[Rank] = None) -> RollOverAnalysis:
    """Cap each frontal leg at ``rollover_percent`` of the rank's required group volume.

    A leg's gross volume is the frontal's personal points plus the business
    points of everyone below it. Ranks without a requirement leave legs uncapped.
    """

    rank = tree.root.rank if root_rank is None else root_rank
    requirement = rollover_requirement(rank)
    max_per_leg = requirement.max_per_leg if requirement else None

    summary = RollOverSummary(
        distributor_rank=rank.display_name,
        v_grupal_required=requirement.v_grupal_required if requirement else None,
        rollover_percent=requirement.rollover_percent if requirement else None,
        max_per_leg=max_per_leg,
    )

    legs: List[RollOverLeg] = []
    for frontal in tree.children(tree.root_id):
        branch_points = sum(node.group_points for node, _depth in tree.descendants(frontal.id))
        leg = RollOverLeg(
            leg_id=frontal.id,
            full_name=frontal.full_name,
            name_plan=frontal.name_plan,
            personal_points=frontal.personal_points,
            branch_points=branch_points,
            max_allowed=max_per_leg,
        )
        leg.roll_over, leg.effective_points = cap_leg(leg.gross_points, max_per_leg)
        legs.append(leg)

    summary.total_frontals = len(legs)
    summary.total_group_points = sum(leg.gross_points for leg in legs)
    summary.total_roll_over = sum((leg.roll_over for leg in legs), ZERO)
    summary.effective_group_points = Decimal(summary.total_group_points) - summary.total_roll_over
    summary.frontals_with_rollover = sum(1 for leg in legs if leg.roll_over_applied)
    summary.roll_over_percentage = percentage(summary.total_roll_over, Decimal(summary.total_group_points))

    for leg in legs:
        leg.percentage_of_total = percentage(Decimal(leg.gross_points), Decimal(summary.total_group_points))
        reference = max_per_leg if max_per_leg is not None else Decimal(leg.gross_points)
        leg.effective_percentage = percentage(leg.effective_points, reference)

    legs.sort(key=lambda leg: (-leg.gross_points, leg.leg_id))
    return RollOverAnalysis(summary=summary, legs=legs)


__all__ = ["RollOverLeg", "RollOverSummary", "RollOverAnalysis", "analyze_rollover", "cap_leg"]
