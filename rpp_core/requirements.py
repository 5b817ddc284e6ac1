"""
Selection of the edges a route is required to cover.

Exactly one intent applies per solve:

- ``sweep``: every road not yet ridden and not avoided
- ``selection``: every road with an endpoint inside a bounding box
- ``manual``: every road lying along a hand-drawn polyline
"""

from dataclasses import dataclass
from math import cos, radians
from typing import Any, List, Optional, Sequence, Set

from .config import DEFAULT_CONFIG, SolverConfig
from .exceptions import ValidationError
from .geo import distance_to_polyline, midpoint
from .graph_store import GraphEdge, StreetGraph
from .logging_config import get_logger
from .types import BoundingBox, Coordinate, NodeID, Polyline

logger = get_logger(__name__)

MODE_SWEEP = "sweep"
MODE_SELECTION = "selection"
MODE_MANUAL = "manual"

METERS_PER_DEGREE_LAT = 111_320.0


@dataclass
class RequiredEdgeSet:
    """Edges a route must traverse, tagged with the intent that chose them."""

    edges: List[GraphEdge]
    mode: str

    @property
    def edge_ids(self) -> Set[int]:
        return {edge.edge_id for edge in self.edges}

    @property
    def node_ids(self) -> List[NodeID]:
        return list(dict.fromkeys(node for edge in self.edges for node in (edge.u, edge.v)))

    def __len__(self) -> int:
        return len(self.edges)

    def __bool__(self) -> bool:
        return bool(self.edges)


def manual_route_to_polyline(manual_route: Sequence[Sequence[float]]) -> Polyline:
    """Convert a ``[lon, lat]`` drawing into (lat, lon) coordinates."""
    polyline = []
    for point in manual_route:
        try:
            lon, lat = point[0], point[1]
            polyline.append((float(lat), float(lon)))
        except (IndexError, TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid manual route point {point!r}: {exc}") from exc
    return polyline


def _edges_along_polyline(
    graph: StreetGraph, polyline: Polyline, tolerance_m: float
) -> List[GraphEdge]:
    lats = [lat for lat, _ in polyline]
    lons = [lon for _, lon in polyline]
    lat_margin = tolerance_m / METERS_PER_DEGREE_LAT
    lon_margin = lat_margin / max(cos(radians(max(abs(min(lats)), abs(max(lats))))), 1e-6)
    min_lat, max_lat = min(lats) - lat_margin, max(lats) + lat_margin
    min_lon, max_lon = min(lons) - lon_margin, max(lons) + lon_margin

    def near(point: Coordinate) -> bool:
        if not (min_lat <= point[0] <= max_lat and min_lon <= point[1] <= max_lon):
            return False
        return distance_to_polyline(point, polyline) <= tolerance_m

    selected = []
    for edge in graph.edges():
        u_coord = graph.coordinate(edge.u)
        v_coord = graph.coordinate(edge.v)
        if near(u_coord) and near(v_coord) and near(midpoint(u_coord, v_coord)):
            selected.append(edge)
    return selected


def select_required_edges(
    graph: StreetGraph,
    manual_route: Optional[Sequence[Sequence[float]]] = None,
    selection_box: Optional[Any] = None,
    config: Optional[SolverConfig] = None,
) -> RequiredEdgeSet:
    """Pick the required edges for one solve.

    Args:
        graph: Street graph
        manual_route: Hand-drawn polyline as ``[lon, lat]`` points
        selection_box: ``BoundingBox`` or ``{north, south, east, west}``
        config: Solver configuration (manual route tolerance)

    Raises:
        ValidationError: If both a manual route and a selection box are given
    """
    config = config or DEFAULT_CONFIG

    if manual_route and selection_box is not None:
        raise ValidationError("Provide either a manual route or a selection box, not both")

    if manual_route:
        polyline = manual_route_to_polyline(manual_route)
        edges = _edges_along_polyline(graph, polyline, config.manual_route_tolerance_m)
        mode = MODE_MANUAL
    elif selection_box is not None:
        box = BoundingBox.from_mapping(selection_box)
        edges = [
            edge
            for edge in graph.edges()
            if box.contains(*graph.coordinate(edge.u)) or box.contains(*graph.coordinate(edge.v))
        ]
        mode = MODE_SELECTION
    else:
        edges = [edge for edge in graph.edges() if not edge.is_ridden and not edge.is_avoided]
        mode = MODE_SWEEP

    logger.info(f"Selected {len(edges)} required edges ({mode})")
    return RequiredEdgeSet(edges=edges, mode=mode)
