"""Sponsorship tree assembly.

The tree is an arena of nodes indexed by distributor id. Each node keeps a
``sponsor_id`` back-reference and an ordered ``children_ids`` list, so cloning
the tree for a simulation is a shallow walk over the arena rather than a deep
copy of a pointer graph.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from compdesk.core.ranks import Rank, parse_rank
from compdesk.errors import InvalidInput, NotFound

logger = logging.getLogger(__name__)

# Whole points from the data source; exact decimals on scaled simulation copies.
Points = Union[int, Decimal]


@dataclass(frozen=True)
class NetworkRow:
    """One distributor row for a period, as fetched from the data source."""

    id: int
    full_name: str
    sponsor_id: Optional[int]
    name_plan: Optional[str]
    personal_points: int = 0
    group_points: int = 0


@dataclass
class DistributorNode:
    id: int
    full_name: str
    rank: Rank
    personal_points: Points
    group_points: Points
    sponsor_id: Optional[int] = None
    children_ids: List[int] = field(default_factory=list)
    synthetic: bool = False

    @property
    def name_plan(self) -> str:
        return self.rank.display_name

    @property
    def is_plata_plus(self) -> bool:
        return self.rank.is_plata_plus

    def copy(self) -> "DistributorNode":
        return DistributorNode(
            id=self.id,
            full_name=self.full_name,
            rank=self.rank,
            personal_points=self.personal_points,
            group_points=self.group_points,
            sponsor_id=self.sponsor_id,
            children_ids=list(self.children_ids),
            synthetic=self.synthetic,
        )


@dataclass
class NetworkTree:
    root_id: int
    nodes: Dict[int, DistributorNode]
    diagnostics: List[str] = field(default_factory=list)

    @property
    def root(self) -> DistributorNode:
        return self.nodes[self.root_id]

    def node(self, node_id: int) -> DistributorNode:
        try:
            return self.nodes[node_id]
        except KeyError as exc:
            raise NotFound(f"Distributor {node_id} is not part of this network") from exc

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def downline_size(self) -> int:
        """Number of distributors below the root."""

        return len(self.nodes) - 1

    def children(self, node_id: int) -> List[DistributorNode]:
        return [self.nodes[child_id] for child_id in self.nodes[node_id].children_ids]

    def walk(self, start_id: Optional[int] = None) -> Iterator[Tuple[DistributorNode, int]]:
        """Yield ``(node, depth)`` in depth-first pre-order, depth relative to ``start_id``."""

        start = self.root_id if start_id is None else start_id
        stack: List[Tuple[int, int]] = [(start, 0)]
        while stack:
            node_id, depth = stack.pop()
            node = self.nodes[node_id]
            yield node, depth
            for child_id in reversed(node.children_ids):
                stack.append((child_id, depth + 1))

    def descendants(self, node_id: int) -> Iterator[Tuple[DistributorNode, int]]:
        """Yield every node strictly below ``node_id`` with its relative depth."""

        walker = self.walk(node_id)
        next(walker)
        yield from walker

    def downline(self) -> Iterator[DistributorNode]:
        """Every node except the root, in depth-first order."""

        for node, _depth in self.descendants(self.root_id):
            yield node

    def max_depth(self) -> int:
        return max((depth for _node, depth in self.walk()), default=0)

    def add_child(self, parent_id: int, child: DistributorNode) -> None:
        if child.id in self.nodes:
            raise InvalidInput(f"Distributor {child.id} already exists in this network")
        parent = self.node(parent_id)
        child.sponsor_id = parent.id
        child.children_ids = []
        self.nodes[child.id] = child
        parent.children_ids.append(child.id)

    def next_synthetic_id(self) -> int:
        """An id that cannot collide with real distributors (negative range)."""

        return min(min(self.nodes), 0) - 1

    def clone(self) -> "NetworkTree":
        return NetworkTree(
            root_id=self.root_id,
            nodes={node_id: node.copy() for node_id, node in self.nodes.items()},
            diagnostics=list(self.diagnostics),
        )

    def pruned(self, max_depth: int) -> "NetworkTree":
        """Copy limited to ``max_depth`` levels below the root, for visualization."""

        if max_depth < 1:
            raise InvalidInput("max_depth must be at least 1")
        kept: Dict[int, DistributorNode] = {}
        for node, depth in self.walk():
            if depth > max_depth:
                continue
            copy = node.copy()
            if depth == max_depth:
                copy.children_ids = []
            kept[copy.id] = copy
        return NetworkTree(root_id=self.root_id, nodes=kept, diagnostics=list(self.diagnostics))


def _to_node(row: NetworkRow, diagnostics: List[str]) -> DistributorNode:
    rank, recognized = parse_rank(row.name_plan)
    if not recognized:
        message = (
            f"Distributor {row.id} has missing or unknown rank {row.name_plan!r}; "
            f"defaulted to {rank.display_name}"
        )
        diagnostics.append(message)
        logger.warning(message)
    return DistributorNode(
        id=row.id,
        full_name=row.full_name or "",
        rank=rank,
        personal_points=max(int(row.personal_points or 0), 0),
        group_points=max(int(row.group_points or 0), 0),
        sponsor_id=row.sponsor_id,
    )


def build_tree(rows: Iterable[NetworkRow], root_id: int, max_depth: Optional[int] = None) -> NetworkTree:
    """Assemble the sponsorship tree below ``root_id`` from flat rows.

    Rows that are not reachable from the root are ignored. Children keep the
    order in which their rows were supplied. ``max_depth`` limits the tree to
    that many levels below the root; ``None`` keeps the full downline.
    """

    if max_depth is not None and max_depth < 1:
        raise InvalidInput("max_depth must be at least 1")

    by_id: Dict[int, NetworkRow] = {}
    children_of: Dict[int, List[int]] = {}
    for row in rows:
        if row.id in by_id:
            raise InvalidInput(f"Duplicate distributor row {row.id}")
        by_id[row.id] = row
        if row.sponsor_id is not None and row.sponsor_id != row.id:
            children_of.setdefault(row.sponsor_id, []).append(row.id)

    if root_id not in by_id:
        raise NotFound(f"Distributor {root_id} not found for this period")

    diagnostics: List[str] = []
    root = _to_node(by_id[root_id], diagnostics)
    root.sponsor_id = None
    nodes: Dict[int, DistributorNode] = {root.id: root}

    queue = deque([(root_id, 0)])
    while queue:
        parent_id, depth = queue.popleft()
        if max_depth is not None and depth >= max_depth:
            continue
        for child_id in children_of.get(parent_id, []):
            if child_id in nodes:
                # A sponsorship loop back into the tree; the first path wins.
                diagnostics.append(f"Distributor {child_id} closes a sponsorship cycle; ignored")
                continue
            child = _to_node(by_id[child_id], diagnostics)
            nodes[child_id] = child
            nodes[parent_id].children_ids.append(child_id)
            queue.append((child_id, depth + 1))

    return NetworkTree(root_id=root_id, nodes=nodes, diagnostics=diagnostics)


__all__ = ["Points", "NetworkRow", "DistributorNode", "NetworkTree", "build_tree"]
