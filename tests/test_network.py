import pytest

from compdesk.core.network import build_tree
from compdesk.core.ranks import Rank
from compdesk.errors import InvalidInput, NotFound

from helpers import row, tree_of


def test_build_tree_links_children_in_row_order():
    tree = tree_of(
        row(1),
        row(3, sponsor=1),
        row(2, sponsor=1),
        row(4, sponsor=2),
    )

    assert tree.root_id == 1
    assert tree.root.children_ids == [3, 2]
    assert tree.nodes[4].sponsor_id == 2
    assert tree.downline_size == 3
    assert [node.id for node in tree.downline()] == [3, 2, 4]


def test_build_tree_ignores_rows_outside_the_root_downline():
    tree = build_tree([row(1), row(2, sponsor=1), row(10), row(11, sponsor=10)], root_id=1)

    assert set(tree.nodes) == {1, 2}


def test_build_tree_starts_at_a_non_root_distributor():
    tree = build_tree([row(1), row(2, sponsor=1), row(3, sponsor=2)], root_id=2)

    assert tree.root.sponsor_id is None
    assert set(tree.nodes) == {2, 3}


def test_missing_root_raises_not_found():
    with pytest.raises(NotFound):
        build_tree([row(2, sponsor=1)], root_id=1)


def test_duplicate_rows_are_rejected():
    with pytest.raises(InvalidInput):
        build_tree([row(1), row(1)], root_id=1)


def test_unknown_rank_defaults_to_distribuidor_with_diagnostic():
    tree = tree_of(row(1), row(2, sponsor=1, plan="Esmeralda"), row(3, sponsor=1, plan=None))

    assert tree.nodes[2].rank is Rank.DISTRIBUIDOR
    assert tree.nodes[3].rank is Rank.DISTRIBUIDOR
    assert len(tree.diagnostics) == 2
    assert "Esmeralda" in tree.diagnostics[0]


def test_rank_parsing_is_accent_and_case_insensitive():
    tree = tree_of(
        row(1),
        row(2, sponsor=1, plan="  doble diamante "),
        row(3, sponsor=1, plan="AZUL"),
        row(4, sponsor=1, plan="platino"),
    )

    assert tree.nodes[2].rank is Rank.DOBLE_DIAMANTE
    assert tree.nodes[3].rank is Rank.SIRIUS
    assert tree.nodes[4].rank is Rank.PLATINO
    assert tree.diagnostics == []


def test_clone_does_not_alias_nodes_or_child_lists():
    tree = tree_of(row(1), row(2, sponsor=1, group=100))
    copy = tree.clone()

    copy.nodes[2].group_points = 999
    copy.root.children_ids.append(42)

    assert tree.nodes[2].group_points == 100
    assert tree.root.children_ids == [2]


def test_max_depth_limits_the_tree():
    rows = [row(1), row(2, sponsor=1), row(3, sponsor=2), row(4, sponsor=3)]

    assert set(build_tree(rows, 1, max_depth=2).nodes) == {1, 2, 3}
    with pytest.raises(InvalidInput):
        build_tree(rows, 1, max_depth=0)


def test_pruned_copy_cuts_children_at_depth():
    tree = tree_of(row(1), row(2, sponsor=1), row(3, sponsor=2))
    pruned = tree.pruned(1)

    assert set(pruned.nodes) == {1, 2}
    assert pruned.nodes[2].children_ids == []
    assert tree.nodes[2].children_ids == [3]


def test_synthetic_ids_are_negative_and_unique():
    tree = tree_of(row(1), row(2, sponsor=1))
    first = tree.next_synthetic_id()

    assert first < 0
    assert first not in tree
