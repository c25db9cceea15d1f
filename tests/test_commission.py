from decimal import Decimal

import pytest

from compdesk.core.classification import classify_generations, classify_levels
from compdesk.core.commission import aggregate, percentage
from compdesk.errors import ComputationInvariantViolation

from helpers import row, tree_of


def _sample_tree():
    return tree_of(
        row(1, plan="Platino"),
        row(2, sponsor=1, plan="Plata", group=2000),
        row(3, sponsor=2, group=1000),
        row(4, sponsor=3, plan="Oro", group=500),
        row(5, sponsor=4, group=300),
        row(6, sponsor=5, plan="Plata", group=200),
        row(7, sponsor=6, group=100),
        row(8, sponsor=1, group=400),
    )


def _aggregate(tree):
    return aggregate(tree, classify_generations(tree), classify_levels(tree))


def test_commission_is_group_points_times_generation_rate():
    tree = tree_of(row(1), row(2, sponsor=1, plan="Plata", group=2000), row(3, sponsor=2, group=1000))

    breakdown = _aggregate(tree)

    assert breakdown.per_node[2] == Decimal("80.00")
    assert breakdown.per_node[3] == Decimal("50.00")
    assert breakdown.total == Decimal("130.00")


def test_partitions_sum_to_the_same_grand_total():
    breakdown = _aggregate(_sample_tree())

    by_generation = sum(cell.total_commission for cell in breakdown.by_generation.values())
    by_level = sum(cell.total_commission for cell in breakdown.by_level.values())
    by_cell = sum(cell.total_commission for cell in breakdown.by_level_generation.values())

    assert by_generation == by_level == by_cell == breakdown.total


def test_every_generation_and_level_bucket_is_present():
    breakdown = _aggregate(tree_of(row(1), row(2, sponsor=1, group=100)))

    assert list(breakdown.by_generation) == [0, 1, 2, 3, 4]
    assert list(breakdown.by_level) == [1, 2, 3]
    assert list(breakdown.by_level_generation) == [(1, 0)]


def test_cross_product_cells_are_sorted_and_non_empty():
    breakdown = _aggregate(_sample_tree())

    keys = list(breakdown.by_level_generation)
    assert keys == sorted(keys)
    assert all(cell.count > 0 for cell in breakdown.by_level_generation.values())


def test_generation_counts_and_points():
    breakdown = _aggregate(_sample_tree())

    # 2 and 8 in G0; 3, 4 in G1; 5, 6 in G2; 7 in G3
    assert breakdown.by_generation[0].count == 2
    assert breakdown.by_generation[0].total_points == 2400
    assert breakdown.by_generation[1].total_points == 1500
    assert breakdown.by_generation[2].total_points == 500
    assert breakdown.by_generation[3].total_points == 100
    assert breakdown.by_generation[4].count == 0


def test_near_and_far_shares():
    breakdown = _aggregate(_sample_tree())

    assert breakdown.g3_g4_commission == Decimal("2.00")
    assert breakdown.g0_g2_commission == breakdown.total - Decimal("2.00")
    assert breakdown.g0_g2_percentage + breakdown.g3_g4_percentage == Decimal("100.00")


def test_empty_downline_yields_zero_everything():
    breakdown = _aggregate(tree_of(row(1, plan="Diamante")))

    assert breakdown.total == 0
    assert breakdown.network_size == 0
    assert all(cell.percentage_of_total == 0 for cell in breakdown.by_generation.values())


def test_unclassified_node_raises_invariant_violation():
    tree = tree_of(row(1), row(2, sponsor=1, group=100))

    with pytest.raises(ComputationInvariantViolation):
        aggregate(tree, {}, classify_levels(tree))


def test_out_of_range_generation_raises_invariant_violation():
    tree = tree_of(row(1), row(2, sponsor=1, group=100))

    with pytest.raises(ComputationInvariantViolation):
        aggregate(tree, {2: 7}, classify_levels(tree))


def test_percentage_is_zero_for_zero_total():
    assert percentage(Decimal("5"), Decimal("0")) == 0
    assert percentage(Decimal("1"), Decimal("3")) == Decimal("33.33")
