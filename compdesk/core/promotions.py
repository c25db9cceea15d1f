"""Rank promotions between consecutive periods."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional

from compdesk.core.ranks import Rank, parse_rank


@dataclass(frozen=True)
class PlanChange:
    """A distributor's plan in a period and in the period before it."""

    id: int
    full_name: str
    previous_plan: Optional[str]
    current_plan: Optional[str]


@dataclass(frozen=True)
class RankPromotion:
    id: int
    full_name: str
    previous_rank: Rank
    new_rank: Rank
    period_id: int
    period_name: str


@dataclass(frozen=True)
class PromotionCount:
    period_id: int
    period_name: str
    rank: Rank
    count: int


def detect_promotions(changes: Iterable[PlanChange], period_id: int, period_name: str) -> List[RankPromotion]:
    """Keep the distributors whose rank went up from the previous period.

    Missing or unknown plans read as Distribuidor, so an unrecognized current
    plan is never a promotion.
    """

    promotions = []
    for change in changes:
        previous_rank, _ = parse_rank(change.previous_plan)
        new_rank, _ = parse_rank(change.current_plan)
        if new_rank > previous_rank:
            promotions.append(
                RankPromotion(
                    id=change.id,
                    full_name=change.full_name,
                    previous_rank=previous_rank,
                    new_rank=new_rank,
                    period_id=period_id,
                    period_name=period_name,
                )
            )
    return promotions


def summarize_promotions(promotions: Iterable[RankPromotion]) -> List[PromotionCount]:
    """Count promotions per (period, new rank), periods in first-seen order and ranks ascending."""

    promotions = list(promotions)
    period_order = {}
    for promotion in promotions:
        period_order.setdefault(promotion.period_id, (len(period_order), promotion.period_name))

    counts = Counter((promotion.period_id, promotion.new_rank) for promotion in promotions)
    return [
        PromotionCount(period_id=period_id, period_name=period_order[period_id][1], rank=rank, count=count)
        for (period_id, rank), count in sorted(
            counts.items(), key=lambda entry: (period_order[entry[0][0]][0], entry[0][1])
        )
    ]


__all__ = ["PlanChange", "RankPromotion", "PromotionCount", "detect_promotions", "summarize_promotions"]
