"""What-if simulations over a private copy of the network."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Mapping, Optional, Union

from compdesk.core.classification import classify_generations, classify_levels
from compdesk.core.commission import MONEY_QUANT, ZERO, CommissionBreakdown, aggregate
from compdesk.core.network import DistributorNode, NetworkTree, Points
from compdesk.core.ranks import GENERATION_RATES, Rank
from compdesk.errors import InvalidInput

MAX_NEW_FRONTALS = 100
MAX_POINTS_PER_FRONTAL = 1_000_000
MAX_VOLUME_PERCENTAGE = Decimal("1000")


@dataclass(frozen=True)
class NewFrontals:
    count: int
    points_per_frontal: int

    scenario_type = "new_frontals"

    def validate(self) -> None:
        if not 1 <= self.count <= MAX_NEW_FRONTALS:
            raise InvalidInput(f"count must be between 1 and {MAX_NEW_FRONTALS}")
        if not 0 < self.points_per_frontal <= MAX_POINTS_PER_FRONTAL:
            raise InvalidInput(f"points must be between 1 and {MAX_POINTS_PER_FRONTAL}")

    @property
    def description(self) -> str:
        return f"Agregar {self.count} frontales nuevos con {self.points_per_frontal} pts cada uno"

    def as_input(self) -> dict:
        return {"count": self.count, "points": self.points_per_frontal}


@dataclass(frozen=True)
class VolumeIncrease:
    percentage: Decimal

    scenario_type = "volume_increase"

    def validate(self) -> None:
        if not ZERO < Decimal(self.percentage) <= MAX_VOLUME_PERCENTAGE:
            raise InvalidInput(f"percentage must be greater than 0 and at most {MAX_VOLUME_PERCENTAGE}")

    @property
    def description(self) -> str:
        return f"Incrementar {Decimal(self.percentage).normalize():f}% el volumen de toda la red"

    def as_input(self) -> dict:
        return {"percentage": float(self.percentage)}


@dataclass(frozen=True)
class PromoteToPlata:
    target_id: int

    scenario_type = "new_plata"

    def validate(self) -> None:
        if self.target_id is None:
            raise InvalidInput("target is required")

    @property
    def description(self) -> str:
        return f"Promover al distribuidor {self.target_id} a Plata"

    def as_input(self) -> dict:
        return {"target": self.target_id}


Scenario = Union[NewFrontals, VolumeIncrease, PromoteToPlata]


@dataclass
class Effect:
    description: str
    amount: Decimal


@dataclass
class SimulationResult:
    scenario: Scenario
    baseline_total: Decimal
    simulated_total: Decimal
    positive_effects: List[Effect] = field(default_factory=list)
    negative_effects: List[Effect] = field(default_factory=list)
    details: List[str] = field(default_factory=list)

    @property
    def commission_change(self) -> Decimal:
        return self.simulated_total - self.baseline_total

    @property
    def is_positive(self) -> bool:
        return self.commission_change >= 0

    @property
    def title(self) -> str:
        amount = abs(self.commission_change).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
        if self.commission_change > 0:
            return f"Tu comisión aumentaría {amount}"
        if self.commission_change < 0:
            return f"Tu comisión disminuiría {amount}"
        return "Tu comisión no cambiaría"


def _scale(points: Points, factor: Decimal) -> Decimal:
    return Decimal(points) * factor


def _format_points(points: Points) -> str:
    return f"{Decimal(points).normalize():f}"


def apply_scenario(tree: NetworkTree, scenario: Scenario) -> NetworkTree:
    """Return a mutated clone of ``tree``; ``tree`` itself is left untouched."""

    scenario.validate()
    mutated = tree.clone()

    if isinstance(scenario, NewFrontals):
        for index in range(scenario.count):
            node_id = mutated.next_synthetic_id()
            mutated.add_child(
                mutated.root_id,
                DistributorNode(
                    id=node_id,
                    full_name=f"Frontal simulado {index + 1}",
                    rank=Rank.DISTRIBUIDOR,
                    personal_points=scenario.points_per_frontal,
                    group_points=scenario.points_per_frontal,
                    synthetic=True,
                ),
            )
    elif isinstance(scenario, VolumeIncrease):
        factor = Decimal("1") + Decimal(scenario.percentage) / Decimal("100")
        for node in mutated.nodes.values():
            node.personal_points = _scale(node.personal_points, factor)
            node.group_points = _scale(node.group_points, factor)
    elif isinstance(scenario, PromoteToPlata):
        if scenario.target_id == mutated.root_id:
            raise InvalidInput("The root distributor cannot be the promotion target")
        if scenario.target_id not in mutated:
            raise InvalidInput(f"Distributor {scenario.target_id} is not in this network")
        target = mutated.nodes[scenario.target_id]
        if target.is_plata_plus:
            raise InvalidInput(f"Distributor {scenario.target_id} is already {target.name_plan}")
        target.rank = Rank.PLATA
    else:
        raise InvalidInput(f"Unsupported scenario {scenario!r}")

    return mutated


def _classify_and_aggregate(tree: NetworkTree) -> CommissionBreakdown:
    return aggregate(tree, classify_generations(tree), classify_levels(tree))


def _movement_details(baseline_tree: NetworkTree, simulated_tree: NetworkTree) -> List[str]:
    before = classify_generations(baseline_tree)
    after = classify_generations(simulated_tree)
    moved = [node_id for node_id, generation in before.items() if after.get(node_id) != generation]
    if not moved:
        return []
    shifts: dict = {}
    for node_id in moved:
        key = (before[node_id], after[node_id])
        shifts[key] = shifts.get(key, 0) + 1
    return [
        f"{count} distribuidor(es) pasarían de G{old} a G{new}"
        for (old, new), count in sorted(shifts.items())
    ]


def _network_points(tree: NetworkTree) -> Points:
    return sum(node.group_points for node in tree.downline())


def simulate(
    tree: NetworkTree,
    root_rank: Optional[Rank],
    scenario: Scenario,
    baseline: Optional[CommissionBreakdown] = None,
) -> SimulationResult:
    """Re-derive commission under ``scenario`` and diff it against the unmutated tree.

    ``root_rank`` overrides the root's rank on the simulated copy; the root's
    rank does not change any generation below it, so it only matters for
    callers that go on to analyze roll-over on the result.
    """

    simulated_tree = apply_scenario(tree, scenario)
    if root_rank is not None:
        simulated_tree.root.rank = root_rank
    baseline = baseline if baseline is not None else _classify_and_aggregate(tree)
    simulated = _classify_and_aggregate(simulated_tree)

    result = SimulationResult(
        scenario=scenario,
        baseline_total=baseline.total,
        simulated_total=simulated.total,
    )
    for generation in GENERATION_RATES:
        delta = (
            simulated.by_generation[generation].total_commission
            - baseline.by_generation[generation].total_commission
        )
        rate = GENERATION_RATES[generation] * 100
        if delta > 0:
            result.positive_effects.append(Effect(f"Más comisión en G{generation} ({rate:.0f}%)", delta))
        elif delta < 0:
            result.negative_effects.append(Effect(f"Menos comisión en G{generation} ({rate:.0f}%)", delta))

    if isinstance(scenario, NewFrontals):
        result.details.append(
            f"{scenario.count} frontales nuevos en G0 con {scenario.points_per_frontal} pts cada uno"
        )
    elif isinstance(scenario, VolumeIncrease):
        result.details.append(
            f"Volumen de la red: {_format_points(_network_points(tree))} → "
            f"{_format_points(_network_points(simulated_tree))} pts"
        )
    result.details.extend(_movement_details(tree, simulated_tree))
    return result


@dataclass
class PlataCandidate:
    id: int
    full_name: str
    name_plan: str
    points: int
    level: int
    generation: int


def plata_candidates(
    tree: NetworkTree,
    generations: Mapping[int, int],
    levels: Mapping[int, int],
    limit: int = 20,
) -> List[PlataCandidate]:
    """Distributors below Plata, highest business volume first."""

    if limit < 1:
        raise InvalidInput("limit must be at least 1")
    nodes = [node for node in tree.downline() if not node.is_plata_plus and not node.synthetic]
    nodes.sort(key=lambda node: (-node.group_points, node.id))
    return [
        PlataCandidate(
            id=node.id,
            full_name=node.full_name,
            name_plan=node.name_plan,
            points=node.group_points,
            level=levels[node.id],
            generation=generations[node.id],
        )
        for node in nodes[:limit]
    ]


__all__ = [
    "NewFrontals",
    "VolumeIncrease",
    "PromoteToPlata",
    "Scenario",
    "Effect",
    "SimulationResult",
    "PlataCandidate",
    "apply_scenario",
    "simulate",
    "plata_candidates",
]
