from compdesk.core.classification import (
    classify_generations,
    classify_levels,
    count_plata_ancestors,
    node_depths,
)

from helpers import row, tree_of


def _deep_plata_chain(length):
    """root -> 2 -> 3 -> ... with every intermediate distributor at Plata."""
    rows = [row(1)]
    for node_id in range(2, length + 2):
        rows.append(row(node_id, sponsor=node_id - 1, plan="Plata", group=100))
    return tree_of(*rows)


def test_flat_network_is_all_generation_zero_and_level_one():
    tree = tree_of(row(1), row(2, sponsor=1), row(3, sponsor=1, plan="Oro"), row(4, sponsor=1))

    assert classify_generations(tree) == {2: 0, 3: 0, 4: 0}
    assert classify_levels(tree) == {2: 1, 3: 1, 4: 1}


def test_plata_node_keeps_its_own_generation_and_cuts_its_descendants():
    tree = tree_of(row(1), row(2, sponsor=1, plan="Plata"), row(3, sponsor=2, group=1000))

    generations = classify_generations(tree)

    assert generations[2] == 0
    assert generations[3] == 1


def test_root_rank_is_never_counted():
    tree = tree_of(row(1, plan="Sirius"), row(2, sponsor=1), row(3, sponsor=2))

    assert classify_generations(tree) == {2: 0, 3: 0}


def test_generation_is_capped_at_four_but_counts_are_not():
    tree = _deep_plata_chain(7)

    counts = count_plata_ancestors(tree)
    generations = classify_generations(tree)

    assert counts[8] == 6
    assert generations[8] == 4
    assert all(0 <= value <= 4 for value in generations.values())


def test_levels_are_capped_at_three_while_depths_are_raw():
    tree = tree_of(row(1), row(2, sponsor=1), row(3, sponsor=2), row(4, sponsor=3), row(5, sponsor=4))

    assert classify_levels(tree) == {2: 1, 3: 2, 4: 3, 5: 3}
    assert node_depths(tree) == {1: 0, 2: 1, 3: 2, 4: 3, 5: 4}


def test_root_is_excluded_from_classification_maps():
    tree = tree_of(row(1))

    assert classify_generations(tree) == {}
    assert classify_levels(tree) == {}


def test_sibling_branches_are_classified_independently():
    tree = tree_of(
        row(1),
        row(2, sponsor=1, plan="Plata"),
        row(3, sponsor=2),
        row(4, sponsor=1),
        row(5, sponsor=4),
    )

    assert classify_generations(tree) == {2: 0, 3: 1, 4: 0, 5: 0}


def test_classification_is_repeatable():
    tree = _deep_plata_chain(5)

    assert classify_generations(tree) == classify_generations(tree)
    assert classify_levels(tree) == classify_levels(tree)
