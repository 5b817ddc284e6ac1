"""
Route solving pipeline.

Pipeline:
1. Select required edges (sweep, selection box or manual route)
2. Bridge disconnected required clusters into the largest one
3. Snap start/end and connect them to the required network
4. Balance node parity with virtual edges
5. Build the Eulerian trail (with repair and fallback)
6. Convert the trail to route points

Only caller mistakes raise (``ValidationError``, ``ConfigurationError``,
``NodeNotFoundError``). Every degraded situation is logged and reported in
the returned ``SweepSolution``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Set

from .config import DEFAULT_CONFIG, SolverConfig
from .connectivity import bridge_components, find_components
from .graph_store import GraphEdge, StreetGraph
from .logging_config import LogTimer, get_logger
from .parity import balance_parity
from .requirements import MODE_MANUAL, select_required_edges
from .shortest_path import find_closest_target, virtual_copies
from .snapping import find_closest_node
from .trail_builder import TrailOutcome, build_trail
from .types import NodeID, RoutePoint, as_coordinate

logger = get_logger(__name__)


@dataclass
class SweepSolution:
    """Solved route with diagnostics.

    Attributes:
        points: Ordered route points
        mode: Required-edge intent (sweep, selection or manual)
        outcome: Trail stage that produced the route (attempted, repaired,
            degraded), or None when nothing was required
        required_edges: Number of required edges
        dropped_islands: Required clusters that could not be reached
        forced_duplications: Odd nodes fixed by forced edge duplication
        total_length: Route length in meters
        virtual_length: Meters spent on repeated (virtual) edges
        start_node: Snapped start node
        end_node: Snapped end node
    """

    points: List[RoutePoint] = field(default_factory=list)
    mode: str = ""
    outcome: Optional[str] = None
    required_edges: int = 0
    dropped_islands: int = 0
    forced_duplications: int = 0
    total_length: float = 0.0
    virtual_length: float = 0.0
    start_node: Optional[NodeID] = None
    end_node: Optional[NodeID] = None

    @property
    def is_degraded(self) -> bool:
        return self.outcome == "degraded"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "route": [point.to_dict() for point in self.points],
            "mode": self.mode,
            "outcome": self.outcome,
            "requiredEdges": self.required_edges,
            "droppedIslands": self.dropped_islands,
            "forcedDuplications": self.forced_duplications,
            "totalLength": round(self.total_length, 1),
            "virtualLength": round(self.virtual_length, 1),
        }


def _snap(graph: StreetGraph, point: Any) -> Optional[NodeID]:
    if point is None:
        return None
    lat, lon = as_coordinate(point)
    return find_closest_node(graph, lat, lon)


def _connect_anchor(
    graph: StreetGraph,
    anchor: Optional[NodeID],
    edges: List[GraphEdge],
    allowed: Optional[Set[int]],
) -> Optional[NodeID]:
    """Join an anchor that is off the working edges with a virtual path."""
    if anchor is None:
        return None
    nodes = {node for edge in edges for node in (edge.u, edge.v)}
    if anchor in nodes or not nodes:
        return anchor

    path = None
    if allowed is not None:
        path = find_closest_target(graph, anchor, nodes, allowed)
    if path is None:
        path = find_closest_target(graph, anchor, nodes)
    if path is None:
        logger.warning(f"Anchor node {anchor} cannot reach the required roads; ignoring it")
        return None

    edges.extend(virtual_copies(path.steps))
    logger.debug(f"Connected anchor {anchor} with {len(path.steps)} virtual edges")
    return anchor


def solve_route(
    graph: StreetGraph,
    start_point: Optional[Any] = None,
    end_point: Optional[Any] = None,
    manual_route: Optional[Sequence[Sequence[float]]] = None,
    selection_box: Optional[Any] = None,
    config: Optional[SolverConfig] = None,
) -> SweepSolution:
    """Solve the route and return it with diagnostics.

    Args:
        graph: Street graph from ``build_graph``
        start_point: Optional start as (lat, lon) or ``{lat, lon}``
        end_point: Optional end as (lat, lon) or ``{lat, lon}``
        manual_route: Hand-drawn polyline as ``[lon, lat]`` points
        selection_box: ``{north, south, east, west}`` selection
        config: Solver configuration

    Returns:
        ``SweepSolution``; its ``points`` are empty when nothing is required

    Raises:
        ValidationError: For contradictory intents or malformed points
    """
    config = config or DEFAULT_CONFIG

    with LogTimer(logger, "Route solve"):
        required = select_required_edges(graph, manual_route, selection_box, config)
        solution = SweepSolution(mode=required.mode, required_edges=len(required))
        if not required:
            logger.info("No required edges; returning empty route")
            return solution

        allowed = required.edge_ids if required.mode == MODE_MANUAL else None

        components = find_components(graph, required.node_ids)
        bridged = bridge_components(
            graph, components, allowed, search_limit=config.island_search_limit
        )
        dropped: Set[NodeID] = set()
        for component in bridged.dropped:
            dropped.update(component.nodes)
        solution.dropped_islands = len(bridged.dropped)

        working = [e for e in required.edges if e.u not in dropped and e.v not in dropped]
        working.extend(bridged.bridge_edges)

        start = _connect_anchor(graph, _snap(graph, start_point), working, allowed)
        end = _connect_anchor(graph, _snap(graph, end_point), working, allowed)
        solution.start_node, solution.end_node = start, end

        parity = balance_parity(
            graph,
            working,
            start,
            end,
            allowed,
            sample_size=config.matching_sample_size,
        )
        solution.forced_duplications = parity.forced

        outcome: TrailOutcome = build_trail(graph, parity.edges, start, end, allowed, config)
        solution.outcome = outcome.tag
        solution.points = outcome.trail.to_route_points(graph)
        solution.total_length = outcome.trail.length
        solution.virtual_length = outcome.trail.virtual_length

    logger.info(
        f"Route: {len(solution.points)} points, {solution.total_length / 1000:.2f} km "
        f"({solution.virtual_length / 1000:.2f} km repeated), outcome={solution.outcome}"
    )
    return solution


def solve(
    graph: StreetGraph,
    start_point: Optional[Any] = None,
    end_point: Optional[Any] = None,
    manual_route: Optional[Sequence[Sequence[float]]] = None,
    selection_box: Optional[Any] = None,
    config: Optional[SolverConfig] = None,
) -> List[RoutePoint]:
    """Ordered route points covering every required edge."""
    return solve_route(graph, start_point, end_point, manual_route, selection_box, config).points
