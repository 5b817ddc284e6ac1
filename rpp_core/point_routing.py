"""
Point-to-point routing helpers for interactive route drawing.

- ``route_between``: road path between two arbitrary locations
- ``snap_point``: nearest point on any road
- ``route_step``: extend a drawn route from the previous click to a new one,
  staying on the roads the clicks were snapped to
"""

from typing import Any, List, NamedTuple, Optional

from .config import SolverConfig
from .graph_store import StreetGraph
from .logging_config import get_logger
from .shortest_path import find_path, path_coordinates
from .snapping import find_closest_node, find_closest_point_on_edge
from .types import Coordinate, SnappedPoint, as_coordinate

logger = get_logger(__name__)


class StepResult(NamedTuple):
    """Snapped click and the road polyline leading to it."""

    snapped: Optional[SnappedPoint]
    path: List[Coordinate]


def route_between(
    graph: StreetGraph, start: Any, end: Any, config: Optional[SolverConfig] = None
) -> List[Coordinate]:
    """Road path between two locations, preferring roads not yet ridden.

    Returns:
        (lat, lon) coordinates from the node nearest ``start`` to the node
        nearest ``end``; empty when either cannot be snapped or no path exists
    """
    start_lat, start_lon = as_coordinate(start)
    end_lat, end_lon = as_coordinate(end)
    start_node = find_closest_node(graph, start_lat, start_lon)
    end_node = find_closest_node(graph, end_lat, end_lon)
    if start_node is None or end_node is None:
        return []
    steps = find_path(graph, start_node, end_node, penalize_ridden=True, config=config)
    return path_coordinates(graph, steps)


def snap_point(graph: StreetGraph, point: Any) -> Optional[SnappedPoint]:
    lat, lon = as_coordinate(point)
    return find_closest_point_on_edge(graph, lat, lon)


def _append(path: List[Coordinate], coord: Coordinate) -> None:
    if not path or path[-1] != coord:
        path.append(coord)


def route_step(
    graph: StreetGraph,
    point: Any,
    last_point: Optional[Any] = None,
    config: Optional[SolverConfig] = None,
) -> StepResult:
    """Snap a click and route to it from the previous click.

    The path runs from the previous snapped point, through the road network,
    to the new snapped point. Path endpoints are chosen among the endpoints of
    the two snapped edges, so a click never jumps onto a nearby road it was
    not snapped to.
    """
    lat, lon = as_coordinate(point)
    snapped = find_closest_point_on_edge(graph, lat, lon)
    if snapped is None or last_point is None:
        return StepResult(snapped, [])

    last_lat, last_lon = as_coordinate(last_point)
    previous = find_closest_point_on_edge(graph, last_lat, last_lon)
    if previous is None:
        return StepResult(snapped, [])

    start_node = find_closest_node(graph, last_lat, last_lon, (previous.u, previous.v))
    end_node = find_closest_node(graph, lat, lon, (snapped.u, snapped.v))

    path: List[Coordinate] = []
    _append(path, (previous.lat, previous.lon))
    _append(path, graph.coordinate(start_node))
    for step in find_path(graph, start_node, end_node, config=config):
        _append(path, graph.coordinate(step.to_node))
    _append(path, (snapped.lat, snapped.lon))

    logger.debug(f"Step from {start_node} to {end_node}: {len(path)} points")
    return StepResult(snapped, path)
