"""
Shortest-path search over the street graph.

A single heap-based Dijkstra serves both uses in the solver:

- multi-target search: cheapest path from one node to the nearest of a set
  (parity matching, island bridging, anchoring)
- point-to-point search: ``find_path`` between two nodes

Searches can be limited to an allow-list of edge ids. Ridden edges can be made
more expensive so point-to-point routes prefer fresh roads; augmentation
passes a penalty of 1 so real weights are compared.
"""

import heapq
from itertools import count
from typing import Dict, Iterable, List, NamedTuple, Optional, Set, Tuple

from .config import DEFAULT_CONFIG, SolverConfig
from .graph_store import GraphEdge, StreetGraph
from .logging_config import get_logger
from .types import Coordinate, Distance, NodeID

logger = get_logger(__name__)


class PathStep(NamedTuple):
    """One traversal of an edge in a given direction."""

    from_node: NodeID
    to_node: NodeID
    edge: GraphEdge


class PathResult(NamedTuple):
    """Result of a multi-target search.

    Attributes:
        target: The target node that was reached
        steps: Ordered steps from the source to ``target``
        cost: Penalized search cost
        length: Real length of the path in meters
    """

    target: NodeID
    steps: List[PathStep]
    cost: float
    length: Distance


def _reconstruct(
    predecessors: Dict[NodeID, Tuple[NodeID, GraphEdge]],
    source: NodeID,
    target: NodeID,
) -> List[PathStep]:
    steps: List[PathStep] = []
    current = target
    visited: Set[NodeID] = set()
    while current != source:
        if current in visited:
            logger.warning(f"Cycle in predecessor chain from {source} to {target} at {current}")
            return []
        visited.add(current)
        previous, edge = predecessors[current]
        steps.append(PathStep(previous, current, edge))
        current = previous
    steps.reverse()
    return steps


def find_closest_target(
    graph: StreetGraph,
    from_id: NodeID,
    target_ids: Iterable[NodeID],
    allowed_edge_ids: Optional[Iterable[int]] = None,
    ridden_penalty: float = 1.0,
) -> Optional[PathResult]:
    """Cheapest path from ``from_id`` to any node of ``target_ids``.

    The source itself never counts as a target. The search stops as soon as a
    target is popped from the heap: every remaining frontier entry is at
    least as expensive.

    Args:
        graph: Street graph
        from_id: Source node
        target_ids: Candidate destinations
        allowed_edge_ids: If given, only these edges may be traversed
        ridden_penalty: Multiplier applied to the weight of ridden edges

    Returns:
        ``PathResult`` for the nearest reachable target, or None
    """
    targets = set(target_ids)
    targets.discard(from_id)
    if not targets or not graph.has_node(from_id):
        return None

    allowed = set(allowed_edge_ids) if allowed_edge_ids is not None else None

    distances: Dict[NodeID, float] = {from_id: 0.0}
    predecessors: Dict[NodeID, Tuple[NodeID, GraphEdge]] = {}
    tie_breaker = count()
    heap: List[Tuple[float, int, NodeID]] = [(0.0, next(tie_breaker), from_id)]
    settled: Set[NodeID] = set()

    while heap:
        cost, _, node = heapq.heappop(heap)
        if node in settled:
            continue
        settled.add(node)

        if node in targets:
            steps = _reconstruct(predecessors, from_id, node)
            if not steps:
                return None
            length = sum(step.edge.length for step in steps)
            return PathResult(target=node, steps=steps, cost=cost, length=length)

        for neighbor, edge in graph.neighbors(node):
            if allowed is not None and edge.edge_id not in allowed:
                continue
            if neighbor in settled:
                continue
            step_cost = edge.weight * ridden_penalty if edge.is_ridden else edge.weight
            new_cost = cost + step_cost
            if new_cost < distances.get(neighbor, float("inf")):
                distances[neighbor] = new_cost
                predecessors[neighbor] = (node, edge)
                heapq.heappush(heap, (new_cost, next(tie_breaker), neighbor))

    return None


def find_path(
    graph: StreetGraph,
    from_id: NodeID,
    to_id: NodeID,
    allowed_edge_ids: Optional[Iterable[int]] = None,
    penalize_ridden: bool = True,
    config: Optional[SolverConfig] = None,
) -> List[PathStep]:
    """Ordered steps of the cheapest path between two nodes.

    Returns:
        List of ``PathStep``; empty when ``from_id == to_id`` or when no path
        exists
    """
    if from_id == to_id:
        return []
    config = config or DEFAULT_CONFIG
    penalty = config.ridden_penalty if penalize_ridden else 1.0
    result = find_closest_target(graph, from_id, (to_id,), allowed_edge_ids, penalty)
    if result is None:
        logger.debug(f"No path from {from_id} to {to_id}")
        return []
    return result.steps


def path_nodes(steps: List[PathStep]) -> List[NodeID]:
    """Node sequence visited by a path, including both ends."""
    if not steps:
        return []
    return [steps[0].from_node] + [step.to_node for step in steps]


def path_coordinates(graph: StreetGraph, steps: List[PathStep]) -> List[Coordinate]:
    return [graph.coordinate(node_id) for node_id in path_nodes(steps)]


def virtual_copies(steps: Iterable[PathStep]) -> List[GraphEdge]:
    """Edges of a path marked as repeated (virtual) traversals."""
    return [step.edge.as_virtual() for step in steps]
