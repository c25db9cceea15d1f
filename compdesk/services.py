"""Application service layer."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from compdesk import crud
from compdesk.core.classification import classify_generations, classify_levels, node_depths
from compdesk.core.commission import CommissionBreakdown, aggregate, percentage
from compdesk.core.diagnostics import PeriodData, compare_periods, diagnose_dilution
from compdesk.core.dilution import DilutionAnalysis, analyze_dilution, generation_distribution
from compdesk.core.formatting import currency_info, format_wire_date, money, rate_percent
from compdesk.core.network import NetworkTree, build_tree
from compdesk.core.promotions import RankPromotion, detect_promotions, summarize_promotions
from compdesk.core.ranks import Rank, generation_rate, level_rate, parse_rank
from compdesk.core.rollover import RollOverAnalysis, analyze_rollover
from compdesk.core.simulator import (
    NewFrontals,
    PromoteToPlata,
    Scenario,
    SimulationResult,
    VolumeIncrease,
    plata_candidates,
    simulate,
)
from compdesk.errors import InvalidInput, NotFound
from compdesk.models import Distributor, Period
from compdesk.schemas import (
    CommissionDetailRow,
    CommissionHistoryRow,
    DiagnosticRead,
    DistributorRead,
    GenerationRow,
    LevelGenerationRow,
    LevelRow,
    NetworkFrontalRead,
    NetworkLevelStats,
    NetworkNodeRead,
    NewRankDetailRead,
    NewRankSummaryRead,
    Pagination,
    PeriodComparisonRead,
    PeriodRead,
    PlataCandidateRead,
    RollOverConfig,
    RollOverLegRead,
    RollOverSummaryRead,
    SimulationRead,
)

logger = logging.getLogger(__name__)

QUALIFIED_FRONTAL_POINTS = 100
DEFAULT_TREE_DEPTH = 3
MAX_TREE_DEPTH = 10
MAX_DETAILS_LIMIT = 500
MAX_HISTORY_MONTHS = 36


@dataclass
class NetworkSnapshot:
    """One root's classified and aggregated network for one period."""

    distributor: Distributor
    period: Period
    tree: NetworkTree
    generations: Dict[int, int]
    levels: Dict[int, int]
    breakdown: CommissionBreakdown

    @property
    def currency_code(self) -> str:
        return self.distributor.currency_code or "MXN"


class CompensationService:
    """Loads network snapshots from the database and runs the compensation engine."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self._snapshots: Dict[Tuple[int, int], NetworkSnapshot] = {}

    # --- lookups ---

    def resolve_period(self, period_id: Optional[int] = None) -> Period:
        if period_id is None:
            period = crud.get_current_period(self.db)
            if period is None:
                raise NotFound("No compensation periods are loaded")
            return period
        period = crud.get_period(self.db, period_id)
        if period is None:
            raise NotFound(f"Period {period_id} not found")
        return period

    def get_distributor(self, distributor_id: int) -> Distributor:
        distributor = crud.get_distributor(self.db, distributor_id)
        if distributor is None:
            raise NotFound(f"Distributor {distributor_id} not found")
        return distributor

    def list_periods(self) -> List[dict]:
        return [PeriodRead.model_validate(period).model_dump() for period in crud.list_periods(self.db)]

    def period(self, period_id: Optional[int] = None) -> dict:
        return PeriodRead.model_validate(self.resolve_period(period_id)).model_dump()

    def distributor(self, distributor_id: int) -> dict:
        distributor = self.get_distributor(distributor_id)
        rank: Optional[Rank] = None
        current = crud.get_current_period(self.db)
        if current is not None:
            snapshot = crud.get_snapshot(self.db, distributor_id, current.id_period)
            if snapshot is not None:
                rank, _recognized = parse_rank(snapshot.name_plan)
        return DistributorRead(
            id_customers=distributor.id_customers,
            full_name=distributor.full_name,
            id_sponsor=distributor.id_sponsor,
            sponsor_name=distributor.sponsor.full_name if distributor.sponsor else None,
            date_register=format_wire_date(distributor.date_register),
            id_plan=int(rank) if rank is not None else None,
            name_plan=rank.display_name if rank is not None else None,
        ).model_dump()

    # --- engine ---

    def build_tree(self, root_id: int, period_id: Optional[int] = None, max_depth: Optional[int] = None) -> NetworkTree:
        """Load and assemble the sponsorship tree below ``root_id`` for a period."""

        self.get_distributor(root_id)
        period = self.resolve_period(period_id)
        if crud.get_snapshot(self.db, root_id, period.id_period) is None:
            raise NotFound(f"Distributor {root_id} has no data for period {period.name_period}")
        rows = crud.load_network_rows(self.db, root_id, period.id_period)
        return build_tree(rows, root_id, max_depth=max_depth)

    def snapshot(self, root_id: int, period_id: Optional[int] = None) -> NetworkSnapshot:
        period = self.resolve_period(period_id)
        key = (root_id, period.id_period)
        if key not in self._snapshots:
            tree = self.build_tree(root_id, period.id_period)
            generations = classify_generations(tree)
            levels = classify_levels(tree)
            breakdown = aggregate(tree, generations, levels)
            logger.info(
                "Computed commission for root %s in period %s: %d distributors, total %s",
                root_id,
                period.id_period,
                tree.downline_size,
                breakdown.total,
            )
            self._snapshots[key] = NetworkSnapshot(
                distributor=self.get_distributor(root_id),
                period=period,
                tree=tree,
                generations=generations,
                levels=levels,
                breakdown=breakdown,
            )
        return self._snapshots[key]

    # --- commission views ---

    def summary(self, root_id: int, period_id: Optional[int] = None) -> dict:
        snap = self.snapshot(root_id, period_id)
        root = snap.tree.root
        frontals = snap.tree.children(root.id)
        breakdown = snap.breakdown
        return {
            "distributor": {
                "id_customers": root.id,
                "full_name": root.full_name,
                "name_plan": root.name_plan,
                "date_registration": format_wire_date(snap.distributor.date_register),
            },
            "currency": currency_info(snap.currency_code),
            "period": {"id_period": snap.period.id_period, "name_period": snap.period.name_period},
            "personal": {
                "point_current_customers": root.personal_points,
                "subtotal_earnings": money(breakdown.total),
            },
            "network": {
                "total_distributors": snap.tree.downline_size,
                "qualified_frontals": sum(
                    1 for frontal in frontals if frontal.personal_points >= QUALIFIED_FRONTAL_POINTS
                ),
            },
            "commissions": {
                "total": money(breakdown.total),
                "generation_summary": {
                    "g0_g2_percentage": float(breakdown.g0_g2_percentage),
                    "g3_g4_percentage": float(breakdown.g3_g4_percentage),
                    "g0_g2_commission": money(breakdown.g0_g2_commission),
                    "g3_g4_commission": money(breakdown.g3_g4_commission),
                },
            },
            "diagnostics": list(snap.tree.diagnostics),
        }

    def commissions_by_generation(self, root_id: int, period_id: Optional[int] = None) -> List[dict]:
        breakdown = self.snapshot(root_id, period_id).breakdown
        return [
            GenerationRow(
                generation=generation,
                personas=cell.count,
                pts_negocio=cell.total_points,
                comision=money(cell.total_commission),
                porcentaje=rate_percent(generation_rate(generation)),
            ).model_dump()
            for generation, cell in breakdown.by_generation.items()
        ]

    def commissions_by_level(self, root_id: int, period_id: Optional[int] = None) -> List[dict]:
        breakdown = self.snapshot(root_id, period_id).breakdown
        rows = []
        for level, cell in breakdown.by_level.items():
            # Blended generation rate actually paid on this level.
            effective_rate = percentage(cell.total_commission, Decimal(cell.total_points))
            rows.append(
                LevelRow(
                    nivel=level,
                    personas=cell.count,
                    pts_negocio=cell.total_points,
                    comision=money(cell.total_commission),
                    porcentaje_nivel=rate_percent(level_rate(level)),
                    porcentaje_generation=float(effective_rate),
                ).model_dump()
            )
        return rows

    def commissions_by_level_generation(self, root_id: int, period_id: Optional[int] = None) -> List[dict]:
        breakdown = self.snapshot(root_id, period_id).breakdown
        return [
            LevelGenerationRow(
                nivel=level,
                generation=generation,
                personas=cell.count,
                pts_negocio=cell.total_points,
                comision=money(cell.total_commission),
                porcentaje_nivel=rate_percent(level_rate(level)),
                porcentaje_generation=rate_percent(generation_rate(generation)),
            ).model_dump()
            for (level, generation), cell in breakdown.by_level_generation.items()
        ]

    def commission_details(
        self,
        root_id: int,
        period_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
        nivel: Optional[int] = None,
        generation: Optional[int] = None,
    ) -> dict:
        if not 1 <= limit <= MAX_DETAILS_LIMIT:
            raise InvalidInput(f"limit must be between 1 and {MAX_DETAILS_LIMIT}")
        if offset < 0:
            raise InvalidInput("offset must not be negative")

        snap = self.snapshot(root_id, period_id)
        nodes = [
            node
            for node in snap.tree.downline()
            if (nivel is None or snap.levels[node.id] == nivel)
            and (generation is None or snap.generations[node.id] == generation)
        ]
        nodes.sort(key=lambda node: (-snap.breakdown.per_node[node.id], node.id))
        page = nodes[offset : offset + limit]

        data = [
            CommissionDetailRow(
                id_customers=node.id,
                full_name=node.full_name,
                nivel=snap.levels[node.id],
                generation=snap.generations[node.id],
                name_plan=node.name_plan,
                point_current_customers=node.personal_points,
                point_business_customers=node.group_points,
                percentage_nivel=rate_percent(level_rate(snap.levels[node.id])),
                percentage_generation=rate_percent(generation_rate(snap.generations[node.id])),
                subtotal_earnings=money(snap.breakdown.per_node[node.id]),
                code_money=snap.currency_code,
            ).model_dump()
            for node in page
        ]
        pagination = Pagination(
            total=len(nodes),
            limit=limit,
            offset=offset,
            has_more=offset + len(page) < len(nodes),
        )
        return {"data": data, "pagination": pagination.model_dump()}

    def commission_history(self, root_id: int, months: int = 12) -> List[dict]:
        if not 1 <= months <= MAX_HISTORY_MONTHS:
            raise InvalidInput(f"months must be between 1 and {MAX_HISTORY_MONTHS}")
        distributor = self.get_distributor(root_id)
        current = self.resolve_period()
        history = []
        for period in reversed(crud.list_periods_ending_at(self.db, current, months)):
            if crud.get_snapshot(self.db, root_id, period.id_period) is None:
                continue
            snap = self.snapshot(root_id, period.id_period)
            history.append(
                CommissionHistoryRow(
                    id_period=period.id_period,
                    name_period=period.name_period,
                    name_plan=snap.tree.root.name_plan,
                    subtotal_earnings=money(snap.breakdown.total),
                    total=money(snap.breakdown.total),
                    code_money=distributor.currency_code,
                ).model_dump()
            )
        return history

    # --- roll-over ---

    def rollover(self, root_id: int, period_id: Optional[int] = None) -> RollOverAnalysis:
        return analyze_rollover(self.snapshot(root_id, period_id).tree)

    def rollover_summary(self, root_id: int, period_id: Optional[int] = None) -> dict:
        summary = self.rollover(root_id, period_id).summary
        return RollOverSummaryRead(
            distributor_rank=summary.distributor_rank,
            rollover_config=RollOverConfig(
                v_grupal_required=summary.v_grupal_required,
                rollover_percent=float(summary.rollover_percent) if summary.rollover_percent is not None else None,
                max_per_leg=money(summary.max_per_leg) if summary.max_per_leg is not None else None,
            ),
            total_frontals=summary.total_frontals,
            total_group_points=summary.total_group_points,
            total_roll_over=money(summary.total_roll_over),
            effective_group_points=money(summary.effective_group_points),
            frontals_with_rollover=summary.frontals_with_rollover,
            roll_over_percentage=float(summary.roll_over_percentage),
        ).model_dump()

    def rollover_analysis(self, root_id: int, period_id: Optional[int] = None) -> dict:
        analysis = self.rollover(root_id, period_id)
        legs = [
            RollOverLegRead(
                id_customers=leg.leg_id,
                full_name=leg.full_name,
                name_plan=leg.name_plan,
                points=leg.gross_points,
                personal_points=leg.personal_points,
                branch_points=leg.branch_points,
                roll_over=money(leg.roll_over),
                roll_over_applied=leg.roll_over_applied,
                percentage_of_total=float(leg.percentage_of_total),
                effective_points=money(leg.effective_points),
                effective_percentage=float(leg.effective_percentage),
                max_allowed=money(leg.max_allowed) if leg.max_allowed is not None else None,
                exceeds_limit=leg.roll_over_applied,
            ).model_dump()
            for leg in analysis.legs
        ]
        return {"summary": self.rollover_summary(root_id, period_id), "legs": legs}

    # --- network views ---

    def network_tree(self, root_id: int, period_id: Optional[int] = None, depth: int = DEFAULT_TREE_DEPTH) -> dict:
        if not 1 <= depth <= MAX_TREE_DEPTH:
            raise InvalidInput(f"depth must be between 1 and {MAX_TREE_DEPTH}")
        pruned = self.snapshot(root_id, period_id).tree.pruned(depth)

        def render(node_id: int, nivel: int) -> NetworkNodeRead:
            node = pruned.nodes[node_id]
            return NetworkNodeRead(
                id=node.id,
                name=node.full_name,
                plan=node.name_plan,
                points=node.group_points,
                nivel=nivel,
                children=[render(child_id, nivel + 1) for child_id in node.children_ids],
            )

        return render(pruned.root_id, 0).model_dump()

    def network_first_level(self, root_id: int, period_id: Optional[int] = None) -> List[dict]:
        tree = self.snapshot(root_id, period_id).tree
        frontals = []
        for frontal in tree.children(tree.root_id):
            leg = [node for node, _depth in tree.walk(frontal.id)]
            frontals.append(
                NetworkFrontalRead(
                    id=frontal.id,
                    name=frontal.full_name,
                    plan=frontal.name_plan,
                    personal_points=frontal.personal_points,
                    subnet_size=len(leg),
                    subnet_points=sum(node.group_points for node in leg),
                ).model_dump()
            )
        return frontals

    def network_stats_by_level(self, root_id: int, period_id: Optional[int] = None) -> List[dict]:
        tree = self.snapshot(root_id, period_id).tree
        depths = node_depths(tree)
        stats: Dict[int, NetworkLevelStats] = {}
        for node in tree.downline():
            depth = depths[node.id]
            entry = stats.setdefault(depth, NetworkLevelStats(nivel=depth, count=0, total_points=0))
            entry.count += 1
            entry.total_points += node.group_points
        return [stats[depth].model_dump() for depth in sorted(stats)]

    # --- diagnostics ---

    def dilution(self, root_id: int, period_id: Optional[int] = None) -> DilutionAnalysis:
        snap = self.snapshot(root_id, period_id)
        return analyze_dilution(snap.tree, snap.generations, snap.levels, snap.breakdown)

    def dilution_diagnostic(self, root_id: int, period_id: Optional[int] = None) -> dict:
        snap = self.snapshot(root_id, period_id)
        result = diagnose_dilution(snap.breakdown, self.dilution(root_id, period_id))
        return DiagnosticRead(
            has_problem=result.has_problem,
            problem_type=result.problem_type,
            severity=result.severity,
            title=result.title,
            description=result.description,
            impact={"monetary": money(result.impact_monetary), "percentage": float(result.impact_percentage)},
            recommendations=result.recommendations,
        ).model_dump()

    def _period_data(self, root_id: int, period: Period) -> PeriodData:
        snap = self.snapshot(root_id, period.id_period)
        return PeriodData.from_breakdown(period.id_period, period.name_period, snap.tree, snap.breakdown)

    @staticmethod
    def _period_data_wire(data: PeriodData) -> dict:
        return {
            "id_period": data.id_period,
            "name_period": data.name_period,
            "total_commission": money(data.total_commission),
            "network_size": data.network_size,
            "g0_g2_percentage": float(data.g0_g2_percentage),
            "g3_g4_percentage": float(data.g3_g4_percentage),
            "g0_g2_commission": money(data.g0_g2_commission),
            "g3_g4_commission": money(data.g3_g4_commission),
        }

    def period_comparison(self, root_id: int, period_id: Optional[int] = None) -> dict:
        period = self.resolve_period(period_id)
        current = self._period_data(root_id, period)
        previous = None
        previous_period = crud.get_previous_period(self.db, period)
        if previous_period is not None and crud.get_snapshot(self.db, root_id, previous_period.id_period):
            previous = self._period_data(root_id, previous_period)

        comparison = compare_periods(current, previous)
        changes = comparison.changes
        return PeriodComparisonRead(
            current_period=self._period_data_wire(comparison.current_period),
            previous_period=self._period_data_wire(previous) if previous is not None else None,
            changes={
                "commission_change": money(changes.commission_change),
                "commission_change_percentage": float(changes.commission_change_percentage),
                "network_change": changes.network_change,
                "network_change_percentage": float(changes.network_change_percentage),
                "g0_g2_shift": float(changes.g0_g2_shift),
                "new_plata_plus_count": changes.new_plata_plus_count,
            },
        ).model_dump()

    def full_diagnostic(self, root_id: int, period_id: Optional[int] = None) -> dict:
        return {
            "dilution": self.dilution_diagnostic(root_id, period_id),
            "comparison": self.period_comparison(root_id, period_id),
        }

    def vertical_growth(self, root_id: int, period_id: Optional[int] = None) -> dict:
        snap = self.snapshot(root_id, period_id)
        analysis = self.dilution(root_id, period_id)
        hypothetical = analysis.hypothetical
        return {
            "summary": {
                "total_plata_plus_in_network": len(analysis.plata_plus),
                "total_dilution_amount": money(analysis.total_dilution_amount),
                "most_impacted_generation_shift": analysis.most_impacted_generation_shift,
                "network_depth": analysis.network_depth,
                "average_generation": float(analysis.average_generation),
                "health_score": analysis.health_score,
                "health_band": analysis.health_band,
            },
            "generation_distribution": [
                {
                    "generation": row["generation"],
                    "rate": float(row["rate"]),
                    "count": row["count"],
                    "total_points": row["total_points"],
                    "total_commission": money(row["total_commission"]),
                    "percentage_of_total": float(row["percentage_of_total"]),
                }
                for row in generation_distribution(snap.breakdown)
            ],
            "dilution_chains": [
                {
                    "chain_id": chain.chain_id,
                    "plata_distributor": {
                        "id_customers": chain.plata_id,
                        "full_name": chain.plata_name,
                        "name_plan": chain.plata_plan,
                        "nivel": chain.plata_level,
                    },
                    "affected_distributors": [
                        {
                            "id_customers": item.id,
                            "full_name": item.full_name,
                            "name_plan": item.name_plan,
                            "nivel": item.level,
                            "generation_before": item.generation_before,
                            "generation_after": item.generation_after,
                            "rate_before": float(item.rate_before),
                            "rate_after": float(item.rate_after),
                            "points": item.points,
                            "commission_lost": money(item.commission_lost),
                        }
                        for item in chain.affected
                    ],
                    "total_commission_lost": money(chain.total_commission_lost),
                    "affected_count": chain.affected_count,
                }
                for chain in analysis.chains
            ],
            "plata_plus_distributors": [
                {
                    "id_customers": item.id,
                    "full_name": item.full_name,
                    "name_plan": item.name_plan,
                    "nivel": item.level,
                    "generation": item.generation,
                    "points": item.points,
                    "commission": money(item.commission),
                    "downline_in_g3_g4": item.downline_in_g3_g4,
                    "estimated_dilution_caused": money(item.estimated_dilution_caused),
                }
                for item in analysis.plata_plus
            ],
            "hypothetical_scenario": {
                "current_commission": money(hypothetical.current_commission),
                "commission_if_no_platas": money(hypothetical.commission_if_no_platas),
                "potential_gain": money(hypothetical.potential_gain),
                "explanation": hypothetical.explanation,
            },
            "visual_tree": [
                {
                    "id_customers": node.id,
                    "full_name": node.full_name,
                    "name_plan": node.name_plan,
                    "nivel": node.level,
                    "generation": node.generation,
                    "points": node.points,
                    "commission_earned": money(node.commission_earned),
                    "is_plata_plus": node.is_plata_plus,
                    "creates_generation_cut": node.creates_generation_cut,
                }
                for node in analysis.visual_tree
            ],
            "diagnostics": list(snap.tree.diagnostics),
        }

    # --- simulator ---

    def _simulate(self, root_id: int, period_id: Optional[int], scenario: Scenario, description: str) -> dict:
        snap = self.snapshot(root_id, period_id)
        result: SimulationResult = simulate(snap.tree, None, scenario, baseline=snap.breakdown)
        logger.info(
            "Simulated %s for root %s: change %s",
            scenario.scenario_type,
            root_id,
            result.commission_change,
        )
        return SimulationRead(
            scenario_type=scenario.scenario_type,
            description=description,
            input=scenario.as_input(),
            impact={
                "title": result.title,
                "details": result.details,
                "commission_change": money(result.commission_change),
                "is_positive": result.is_positive,
            },
            breakdown={
                "positive_effects": [
                    {"description": effect.description, "amount": money(effect.amount)}
                    for effect in result.positive_effects
                ],
                "negative_effects": [
                    {"description": effect.description, "amount": money(effect.amount)}
                    for effect in result.negative_effects
                ],
            },
            baseline_total=money(result.baseline_total),
            simulated_total=money(result.simulated_total),
        ).model_dump()

    def simulate_new_plata(self, root_id: int, target_id: int, period_id: Optional[int] = None) -> dict:
        scenario = PromoteToPlata(target_id=target_id)
        tree = self.snapshot(root_id, period_id).tree
        description = scenario.description
        if target_id in tree and target_id != tree.root_id:
            description = f"Promover a {tree.nodes[target_id].full_name} a Plata"
        return self._simulate(root_id, period_id, scenario, description)

    def simulate_new_frontals(
        self, root_id: int, count: int, points: int, period_id: Optional[int] = None
    ) -> dict:
        scenario = NewFrontals(count=count, points_per_frontal=points)
        return self._simulate(root_id, period_id, scenario, scenario.description)

    def simulate_volume_increase(self, root_id: int, percentage_value: float, period_id: Optional[int] = None) -> dict:
        scenario = VolumeIncrease(percentage=Decimal(str(percentage_value)))
        return self._simulate(root_id, period_id, scenario, scenario.description)

    def candidates(self, root_id: int, period_id: Optional[int] = None, limit: int = 20) -> List[dict]:
        snap = self.snapshot(root_id, period_id)
        return [
            PlataCandidateRead(
                id_customers=candidate.id,
                full_name=candidate.full_name,
                nivel=candidate.level,
                generation=candidate.generation,
                name_plan=candidate.name_plan,
                points=candidate.points,
            ).model_dump()
            for candidate in plata_candidates(snap.tree, snap.generations, snap.levels, limit=limit)
        ]

    # --- reports ---

    def new_rank_years(self) -> List[int]:
        return crud.list_period_years(self.db)

    def _promotions(self, year: int) -> List[RankPromotion]:
        promotions: List[RankPromotion] = []
        for period in crud.list_periods_in_year(self.db, year):
            previous = crud.get_previous_period(self.db, period)
            if previous is None:
                continue
            changes = crud.list_plan_changes(self.db, period, previous)
            promotions.extend(detect_promotions(changes, period.id_period, period.name_period))
        logger.info("Found %d rank promotions in %s", len(promotions), year)
        return promotions

    def new_ranks_summary(self, year: int) -> List[dict]:
        return [
            NewRankSummaryRead(
                period_id=item.period_id,
                period_name=item.period_name,
                rank_id=int(item.rank),
                rank_name=item.rank.display_name,
                count=item.count,
            ).model_dump()
            for item in summarize_promotions(self._promotions(year))
        ]

    def new_ranks_detail(self, year: int) -> List[dict]:
        return [
            NewRankDetailRead(
                id_customers=promotion.id,
                full_name=promotion.full_name,
                previous_rank_id=int(promotion.previous_rank),
                previous_rank_name=promotion.previous_rank.display_name,
                new_rank_id=int(promotion.new_rank),
                new_rank_name=promotion.new_rank.display_name,
                period_id=promotion.period_id,
                period_name=promotion.period_name,
            ).model_dump()
            for promotion in self._promotions(year)
        ]


__all__ = ["CompensationService", "NetworkSnapshot"]
