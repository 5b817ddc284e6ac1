"""
Connectivity analysis for the route solver.

This module implements:
- Partitioning a node set into connected components (iterative BFS)
- Bridging island components into the largest one with shortest paths
- Pruning a street graph down to its largest connected component
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .graph_store import Adjacency, EdgeMultiset, GraphEdge, StreetGraph
from .logging_config import get_logger
from .shortest_path import PathResult, find_closest_target, path_nodes, virtual_copies
from .types import NodeID

logger = get_logger(__name__)

DEFAULT_ISLAND_SEARCH_LIMIT = 1000


@dataclass
class Component:
    """A group of seed nodes that can reach each other.

    ``nodes`` keeps discovery order so searches over a component are
    deterministic.
    """

    component_id: int
    nodes: List[NodeID]

    @property
    def size(self) -> int:
        return len(self.nodes)


@dataclass
class BridgeResult:
    """Outcome of bridging components into the largest one.

    Attributes:
        connected_nodes: Nodes of the anchor after every successful bridge,
            including intermediate nodes of bridge paths
        bridge_edges: Virtual edge copies along every bridge path
        dropped: Islands that could not be reached
    """

    connected_nodes: Set[NodeID]
    bridge_edges: List[GraphEdge] = field(default_factory=list)
    dropped: List[Component] = field(default_factory=list)

    @property
    def dropped_node_count(self) -> int:
        return sum(component.size for component in self.dropped)


def find_components(
    graph: StreetGraph,
    seed_nodes: Iterable[NodeID],
    edges: Optional[Sequence[GraphEdge]] = None,
) -> List[Component]:
    """Partition seed nodes by mutual reachability.

    Args:
        graph: Street graph
        seed_nodes: Nodes to partition
        edges: When given, traversal only uses these edges; otherwise any edge
            of the graph may be used, so seeds joined through non-seed roads
            share a component

    Returns:
        Components sorted by size, largest first
    """
    adjacency: Adjacency = EdgeMultiset(edges) if edges is not None else graph
    seeds: List[NodeID] = list(dict.fromkeys(seed_nodes))
    seed_set = set(seeds)

    assigned: Dict[NodeID, int] = {}
    groups: List[List[NodeID]] = []

    for seed in seeds:
        if seed in assigned:
            continue
        if edges is None and not graph.has_node(seed):
            continue

        group_index = len(groups)
        members: List[NodeID] = []
        visited: Set[NodeID] = {seed}
        queue = deque([seed])

        while queue:
            node = queue.popleft()
            if node in seed_set:
                assigned[node] = group_index
                members.append(node)
            for neighbor, _ in adjacency.neighbors(node):
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)

        groups.append(members)

    groups.sort(key=len, reverse=True)
    return [Component(component_id=i, nodes=members) for i, members in enumerate(groups)]


def _cheapest_bridge(
    graph: StreetGraph,
    island: Component,
    anchor_nodes: Set[NodeID],
    allowed_edge_ids: Optional[Set[int]],
    search_limit: int,
) -> Optional[PathResult]:
    best: Optional[PathResult] = None
    for node in island.nodes[:search_limit]:
        result = find_closest_target(graph, node, anchor_nodes, allowed_edge_ids)
        if result is not None and (best is None or result.cost < best.cost):
            best = result
    return best


def bridge_components(
    graph: StreetGraph,
    components: Sequence[Component],
    allowed_edge_ids: Optional[Iterable[int]] = None,
    search_limit: int = DEFAULT_ISLAND_SEARCH_LIMIT,
) -> BridgeResult:
    """Connect every island to the largest component.

    The first component is the anchor. For each remaining island, up to
    ``search_limit`` of its nodes search for the cheapest path into the
    anchor's current node set; the best path is added as virtual edges and
    the island (plus the path's nodes) joins the anchor. When
    ``allowed_edge_ids`` is given the search is first restricted to those
    edges and falls back to the whole graph.

    Islands that cannot be reached are dropped with a warning.
    """
    if not components:
        return BridgeResult(connected_nodes=set())

    allowed = set(allowed_edge_ids) if allowed_edge_ids is not None else None
    result = BridgeResult(connected_nodes=set(components[0].nodes))

    for island in components[1:]:
        best = None
        if allowed is not None:
            best = _cheapest_bridge(graph, island, result.connected_nodes, allowed, search_limit)
        if best is None:
            best = _cheapest_bridge(graph, island, result.connected_nodes, None, search_limit)

        if best is None:
            logger.warning(
                f"Dropping unreachable island {island.component_id} ({island.size} nodes)"
            )
            result.dropped.append(island)
            continue

        result.bridge_edges.extend(virtual_copies(best.steps))
        result.connected_nodes.update(island.nodes)
        result.connected_nodes.update(path_nodes(best.steps))
        logger.debug(
            f"Bridged island {island.component_id} ({island.size} nodes) "
            f"with {len(best.steps)} edges, {best.length:.0f}m"
        )

    if len(components) > 1:
        logger.info(
            f"Bridged {len(components) - 1 - len(result.dropped)} of {len(components) - 1} islands "
            f"({len(result.bridge_edges)} virtual edges, {len(result.dropped)} dropped)"
        )
    return result


def prune_disconnected_components(graph: StreetGraph) -> int:
    """Remove every node outside the largest connected component.

    Returns:
        Number of nodes removed
    """
    components = find_components(graph, graph.node_ids())
    if len(components) <= 1:
        return 0

    removed = 0
    for component in components[1:]:
        for node_id in component.nodes:
            graph.remove_node(node_id)
            removed += 1

    logger.info(
        f"Pruned {removed} nodes in {len(components) - 1} disconnected components "
        f"(kept {components[0].size})"
    )
    return removed
