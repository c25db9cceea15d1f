from decimal import Decimal

import pytest

from compdesk.core.classification import classify_generations, classify_levels
from compdesk.core.simulator import (
    NewFrontals,
    PromoteToPlata,
    VolumeIncrease,
    apply_scenario,
    plata_candidates,
    simulate,
)
from compdesk.errors import InvalidInput

from helpers import row, tree_of


def _snapshot(tree):
    return {
        node_id: (node.rank, node.personal_points, node.group_points, list(node.children_ids))
        for node_id, node in tree.nodes.items()
    }


def test_new_frontals_on_an_empty_network():
    tree = tree_of(row(1))

    result = simulate(tree, None, NewFrontals(count=3, points_per_frontal=1000))

    assert result.commission_change == Decimal("120")
    assert result.is_positive
    assert result.baseline_total == 0
    assert [effect.description for effect in result.positive_effects] == ["Más comisión en G0 (4%)"]
    assert result.negative_effects == []


def test_simulation_leaves_the_source_tree_untouched():
    tree = tree_of(
        row(1),
        row(2, sponsor=1, group=500, personal=100),
        row(3, sponsor=2, group=300),
    )
    before = _snapshot(tree)

    simulate(tree, None, NewFrontals(count=2, points_per_frontal=100))
    simulate(tree, None, VolumeIncrease(percentage=Decimal("25")))
    simulate(tree, None, PromoteToPlata(target_id=2))

    assert _snapshot(tree) == before


def test_simulation_is_repeatable():
    tree = tree_of(row(1), row(2, sponsor=1, group=500), row(3, sponsor=2, group=300))
    scenario = PromoteToPlata(target_id=2)

    first = simulate(tree, None, scenario)
    second = simulate(tree, None, scenario)

    assert first.commission_change == second.commission_change
    assert first.simulated_total == second.simulated_total


def test_volume_increase_scales_points_exactly():
    tree = tree_of(row(1), row(2, sponsor=1, group=5, personal=3))

    mutated = apply_scenario(tree, VolumeIncrease(percentage=Decimal("10")))

    assert mutated.nodes[2].group_points == Decimal("5.5")
    assert mutated.nodes[2].personal_points == Decimal("3.3")
    assert tree.nodes[2].group_points == 5


@pytest.mark.parametrize("points", [4, 5, 333])
def test_volume_increase_change_is_proportional_for_small_volumes(points):
    tree = tree_of(row(1), row(2, sponsor=1, group=points))

    result = simulate(tree, None, VolumeIncrease(percentage=Decimal("10")))

    assert result.commission_change == result.baseline_total * Decimal("0.10")


def test_volume_increase_raises_commission_proportionally():
    tree = tree_of(row(1), row(2, sponsor=1, group=1000))

    result = simulate(tree, None, VolumeIncrease(percentage=Decimal("10")))

    assert result.commission_change == Decimal("4")


def test_promoting_to_plata_moves_the_downline_one_generation():
    tree = tree_of(row(1), row(2, sponsor=1, group=0), row(3, sponsor=2, group=1000))

    result = simulate(tree, None, PromoteToPlata(target_id=2))

    assert result.commission_change == Decimal("10")
    assert any("G0 a G1" in detail for detail in result.details)
    assert [effect.amount for effect in result.negative_effects] == [Decimal("-40")]
    assert [effect.amount for effect in result.positive_effects] == [Decimal("50")]


def test_promotion_that_pushes_volume_to_far_generations_is_negative():
    tree = tree_of(
        row(1),
        row(2, sponsor=1, plan="Plata"),
        row(3, sponsor=2, plan="Plata"),
        row(4, sponsor=3),
        row(5, sponsor=4, group=1000),
    )

    result = simulate(tree, None, PromoteToPlata(target_id=4))

    assert result.commission_change == Decimal("-30")
    assert not result.is_positive
    assert result.title.startswith("Tu comisión disminuiría")


@pytest.mark.parametrize(
    "scenario",
    [
        PromoteToPlata(target_id=1),
        PromoteToPlata(target_id=99),
        PromoteToPlata(target_id=2),
        NewFrontals(count=0, points_per_frontal=100),
        NewFrontals(count=101, points_per_frontal=100),
        NewFrontals(count=1, points_per_frontal=0),
        VolumeIncrease(percentage=Decimal("0")),
        VolumeIncrease(percentage=Decimal("1001")),
    ],
)
def test_invalid_scenarios_are_rejected(scenario):
    tree = tree_of(row(1), row(2, sponsor=1, plan="Oro"))

    with pytest.raises(InvalidInput):
        simulate(tree, None, scenario)


def test_synthetic_frontals_never_collide_with_real_ids():
    tree = tree_of(row(1), row(2, sponsor=1))

    mutated = apply_scenario(tree, NewFrontals(count=3, points_per_frontal=10))

    synthetic = [node for node in mutated.nodes.values() if node.synthetic]
    assert len(synthetic) == 3
    assert all(node.id < 0 for node in synthetic)
    assert mutated.root.children_ids[0] == 2


def test_plata_candidates_sorted_by_points():
    tree = tree_of(
        row(1),
        row(2, sponsor=1, group=300),
        row(3, sponsor=1, plan="Plata", group=9000),
        row(4, sponsor=3, group=800),
        row(5, sponsor=1, group=800),
    )

    candidates = plata_candidates(tree, classify_generations(tree), classify_levels(tree), limit=2)

    assert [candidate.id for candidate in candidates] == [4, 5]
    assert candidates[0].generation == 1
    assert candidates[0].level == 2
