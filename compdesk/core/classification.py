"""Generation and multilevel classification of a sponsorship tree.

Both classifiers are pure functions of the tree: the maps they return are kept
apart from the nodes so one tree can be classified under several hypothetical
rank assignments.
"""
from __future__ import annotations

from typing import Dict, List, Tuple

from compdesk.core.network import NetworkTree
from compdesk.core.ranks import MAX_GENERATION, MAX_LEVEL


def count_plata_ancestors(tree: NetworkTree) -> Dict[int, int]:
    """Uncapped number of Plata+ nodes strictly between the root and each node.

    Neither the root nor the node itself is counted. The root is not a key.
    """

    counts: Dict[int, int] = {}
    # (node id, Plata+ count seen above this node, excluding the root)
    stack: List[Tuple[int, int]] = [(child_id, 0) for child_id in reversed(tree.root.children_ids)]
    while stack:
        node_id, above = stack.pop()
        counts[node_id] = above
        node = tree.nodes[node_id]
        below = above + 1 if node.is_plata_plus else above
        for child_id in reversed(node.children_ids):
            stack.append((child_id, below))
    return counts


def classify_generations(tree: NetworkTree) -> Dict[int, int]:
    """Map every non-root node to its generation G0..G4."""

    return {node_id: min(count, MAX_GENERATION) for node_id, count in count_plata_ancestors(tree).items()}


def node_depths(tree: NetworkTree) -> Dict[int, int]:
    """Raw sponsorship depth of every node (root = 0)."""

    return {node.id: depth for node, depth in tree.walk()}


def classify_levels(tree: NetworkTree) -> Dict[int, int]:
    """Map every non-root node to its multilevel ML1..ML3."""

    return {node.id: min(depth, MAX_LEVEL) for node, depth in tree.descendants(tree.root_id)}


__all__ = ["count_plata_ancestors", "classify_generations", "classify_levels", "node_depths"]
