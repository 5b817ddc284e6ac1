"""
Eulerian trail construction with repair and fallback.

The trail is built in up to three stages, and the stage that produced it is
reported as a tagged result instead of being signalled with exceptions:

1. ``Attempted``: networkx finds an Eulerian circuit or path over the edge
   multiset, anchored at the requested start/end
2. ``Repaired``: the multiset was disconnected or unbalanced; its components
   were bridged, parity re-balanced, and the attempt repeated
3. ``Degraded``: a greedy walk consumed every edge, jumping between unused
   edges where no incident one was left

Every trail is finally normalized (reversed or rotated) so it begins at the
requested start, since the orientation networkx returns is not guaranteed.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx

from .config import DEFAULT_CONFIG, SolverConfig
from .connectivity import bridge_components, find_components
from .graph_store import GraphEdge, StreetGraph
from .logging_config import get_logger
from .parity import balance_parity
from .types import NodeID, RoutePoint

logger = get_logger(__name__)


@dataclass
class Trail:
    """Ordered walk over the edge multiset.

    ``edges[i]`` is the edge traversed from ``nodes[i]`` to ``nodes[i + 1]``;
    it is None where the fallback walk jumped between disconnected edges.
    """

    nodes: List[NodeID] = field(default_factory=list)
    edges: List[Optional[GraphEdge]] = field(default_factory=list)

    @property
    def is_closed(self) -> bool:
        return len(self.nodes) > 1 and self.nodes[0] == self.nodes[-1]

    @property
    def edge_count(self) -> int:
        return sum(1 for edge in self.edges if edge is not None)

    @property
    def length(self) -> float:
        return sum(edge.length for edge in self.edges if edge is not None)

    @property
    def virtual_length(self) -> float:
        return sum(edge.length for edge in self.edges if edge is not None and edge.is_virtual)

    @property
    def jump_count(self) -> int:
        return sum(1 for edge in self.edges if edge is None)

    def reversed(self) -> "Trail":
        return Trail(nodes=self.nodes[::-1], edges=self.edges[::-1])

    def rotated_to(self, node_id: NodeID) -> "Trail":
        """Rotate a closed trail so it starts and ends at ``node_id``."""
        if not self.is_closed or node_id not in self.nodes:
            return self
        i = self.nodes.index(node_id)
        if i == 0:
            return self
        nodes = self.nodes[i:-1] + self.nodes[:i] + [node_id]
        edges = self.edges[i:] + self.edges[:i]
        return Trail(nodes=nodes, edges=edges)

    def to_route_points(self, graph: StreetGraph) -> List[RoutePoint]:
        """Coordinates of the trail; a point is flagged when the step leaving
        it runs over a road under construction."""
        points = []
        for i, node_id in enumerate(self.nodes):
            lat, lon = graph.coordinate(node_id)
            edge = self.edges[i] if i < len(self.edges) else None
            points.append(
                RoutePoint(lat=lat, lon=lon, has_construction=bool(edge and edge.has_construction))
            )
        return points


@dataclass
class TrailOutcome:
    """Base of the tagged trail results."""

    trail: Trail

    @property
    def tag(self) -> str:
        return type(self).__name__.lower()


@dataclass
class Attempted(TrailOutcome):
    """Eulerian trail found on the first attempt."""


@dataclass
class Repaired(TrailOutcome):
    """Eulerian trail found after bridging and re-balancing."""


@dataclass
class Degraded(TrailOutcome):
    """Greedy fallback walk; may contain jumps."""

    reason: str = ""


# ==============================================================================
# Eulerian attempt
# ==============================================================================


def _multigraph(edges: Sequence[GraphEdge]) -> nx.MultiGraph:
    graph = nx.MultiGraph()
    for index, edge in enumerate(edges):
        graph.add_edge(edge.u, edge.v, key=index)
    return graph


def _trail_from_steps(
    edges: Sequence[GraphEdge], steps: List[Tuple[NodeID, NodeID, int]]
) -> Optional[Trail]:
    if not steps:
        return None
    trail = Trail(nodes=[steps[0][0]])
    for u, v, key in steps:
        if u != trail.nodes[-1]:
            return None
        trail.nodes.append(v)
        trail.edges.append(edges[key])
    return trail


def normalize_trail(trail: Trail, start: Optional[NodeID], end: Optional[NodeID]) -> Trail:
    """Orient a trail so it begins at ``start`` (or finishes at ``end``)."""
    if not trail.nodes:
        return trail
    if start is not None:
        if end is not None and end != start:
            if trail.nodes[0] != start and trail.nodes[-1] == start:
                return trail.reversed()
            return trail
        if trail.nodes[0] == start:
            return trail
        if trail.is_closed and start in trail.nodes:
            return trail.rotated_to(start)
        if trail.nodes[-1] == start:
            return trail.reversed()
        return trail
    if end is not None:
        if trail.is_closed and end in trail.nodes:
            return trail.rotated_to(end)
        if trail.nodes[0] == end and trail.nodes[-1] != end:
            return trail.reversed()
    return trail


def _satisfies_anchors(trail: Trail, start: Optional[NodeID], end: Optional[NodeID]) -> bool:
    if start is not None and trail.nodes[0] != start:
        return False
    if end is not None and trail.nodes[-1] != end:
        return False
    if start is not None and start == end and not trail.is_closed and len(trail.nodes) > 1:
        return False
    return True


def attempt_eulerian(
    edges: Sequence[GraphEdge],
    start: Optional[NodeID] = None,
    end: Optional[NodeID] = None,
) -> Tuple[Optional[Trail], str]:
    """Try to extract an Eulerian trail over the multiset.

    Returns:
        Tuple of (normalized trail or None, failure reason)
    """
    if not edges:
        return Trail(nodes=[start] if start is not None else []), ""

    multigraph = _multigraph(edges)
    source = start if start is not None else end

    if source is not None and source not in multigraph:
        return None, f"anchor node {source} is not on any edge"
    if not nx.is_connected(multigraph):
        return None, "edge set is disconnected"

    try:
        if start is not None and end is not None and start != end:
            if not nx.has_eulerian_path(multigraph, start):
                return None, f"no Eulerian path from {start} to {end}"
            steps = list(nx.eulerian_path(multigraph, source=start, keys=True))
        elif nx.is_eulerian(multigraph):
            steps = list(nx.eulerian_circuit(multigraph, source=source, keys=True))
        elif source is None and nx.has_eulerian_path(multigraph):
            steps = list(nx.eulerian_path(multigraph, keys=True))
        elif start is not None and end is None and nx.has_eulerian_path(multigraph, start):
            steps = list(nx.eulerian_path(multigraph, source=start, keys=True))
        else:
            return None, "edge set is not Eulerian"
    except nx.NetworkXError as exc:
        return None, str(exc)

    trail = _trail_from_steps(edges, steps)
    if trail is None:
        return None, "Eulerian traversal was not contiguous"

    trail = normalize_trail(trail, start, end)
    if not _satisfies_anchors(trail, start, end):
        return None, "trail does not honor the requested anchors"

    # Coverage is only checked for unanchored trails
    if start is None and end is None and trail.edge_count < len(edges):
        return None, f"trail covers {trail.edge_count} of {len(edges)} edges"
    return trail, ""


# ==============================================================================
# Fallback
# ==============================================================================


def greedy_walk(
    edges: Sequence[GraphEdge],
    start: Optional[NodeID] = None,
    end: Optional[NodeID] = None,
) -> Trail:
    """Consume every edge, jumping to an unused edge when stuck.

    Repeated edges are tracked by position so each copy is walked once.
    """
    if not edges:
        return Trail(nodes=[start] if start is not None else [])

    arcs: Dict[NodeID, List[Tuple[NodeID, int]]] = {}
    for index, edge in enumerate(edges):
        arcs.setdefault(edge.u, []).append((edge.v, index))
        arcs.setdefault(edge.v, []).append((edge.u, index))

    used = [False] * len(edges)
    cursor: Dict[NodeID, int] = {node: 0 for node in arcs}
    next_unused = 0

    current = start if start in arcs else edges[0].u
    trail = Trail(nodes=[current])
    remaining = len(edges)

    while remaining:
        node_arcs = arcs[current]
        position = cursor[current]
        while position < len(node_arcs) and used[node_arcs[position][1]]:
            position += 1
        cursor[current] = position

        if position < len(node_arcs):
            neighbor, index = node_arcs[position]
            used[index] = True
            remaining -= 1
            trail.nodes.append(neighbor)
            trail.edges.append(edges[index])
            current = neighbor
            continue

        while used[next_unused]:
            next_unused += 1
        current = edges[next_unused].u
        trail.nodes.append(current)
        trail.edges.append(None)

    return normalize_trail(trail, start, end)


# ==============================================================================
# Entry point
# ==============================================================================


def _repair(
    graph: StreetGraph,
    edges: Sequence[GraphEdge],
    start: Optional[NodeID],
    end: Optional[NodeID],
    allowed_edge_ids: Optional[Sequence[int]],
    config: SolverConfig,
) -> List[GraphEdge]:
    seeds = [node for edge in edges for node in (edge.u, edge.v)]
    seeds.extend(anchor for anchor in (start, end) if anchor is not None)

    repaired = list(edges)
    components = find_components(graph, seeds, edges=repaired)
    if len(components) > 1:
        bridged = bridge_components(
            graph, components, allowed_edge_ids, search_limit=config.island_search_limit
        )
        dropped = set()
        for component in bridged.dropped:
            dropped.update(component.nodes)
        if dropped:
            repaired = [e for e in repaired if e.u not in dropped and e.v not in dropped]
        repaired.extend(bridged.bridge_edges)

    return balance_parity(
        graph,
        repaired,
        start,
        end,
        allowed_edge_ids,
        sample_size=config.matching_sample_size,
    ).edges


def build_trail(
    graph: StreetGraph,
    edges: Sequence[GraphEdge],
    start: Optional[NodeID] = None,
    end: Optional[NodeID] = None,
    allowed_edge_ids: Optional[Sequence[int]] = None,
    config: Optional[SolverConfig] = None,
) -> TrailOutcome:
    """Build a trail over an (already balanced) edge multiset.

    Args:
        graph: Street graph used for repair paths
        edges: Edge multiset, typically the output of ``balance_parity``
        start: Optional start node
        end: Optional end node
        allowed_edge_ids: Preferred edges for repair paths
        config: Solver configuration

    Returns:
        ``Attempted``, ``Repaired`` or ``Degraded`` wrapping the trail
    """
    config = config or DEFAULT_CONFIG

    trail, reason = attempt_eulerian(edges, start, end)
    if trail is not None:
        return Attempted(trail)

    logger.warning(f"Eulerian trail failed ({reason}); repairing {len(edges)} edges")
    repaired_edges = _repair(graph, edges, start, end, allowed_edge_ids, config)

    trail, repair_reason = attempt_eulerian(repaired_edges, start, end)
    if trail is not None:
        logger.info(f"Trail repaired with {len(repaired_edges) - len(edges)} extra edges")
        return Repaired(trail)

    logger.error(f"Trail repair failed ({repair_reason}); falling back to greedy walk")
    trail = greedy_walk(repaired_edges, start, end)
    return Degraded(trail, reason=repair_reason or reason)
