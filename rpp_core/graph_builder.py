"""
Build the street graph from Overpass map elements.

Ways are split into one undirected edge per consecutive node pair. While
building, each edge is tagged:

- ridden: its midpoint lies within a threshold of a previously ridden track
- avoided: the way matches an enabled avoidance preference (weight ×penalty)
- construction: the way is tagged as under construction

Malformed elements never abort a build; they are counted and skipped.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DEFAULT_CONFIG, SolverConfig
from .exceptions import GraphBuildError
from .geo import haversine, haversine_many, midpoint
from .graph_store import StreetGraph
from .logging_config import LogTimer, get_logger
from .types import Coordinate, NodeID, RoutingOptions

logger = get_logger(__name__)

# Never routable by bike, independent of routing options
EXCLUDED_HIGHWAYS = frozenset({"motorway", "motorway_link", "trunk", "trunk_link"})

MAJOR_HIGHWAYS = frozenset({"primary", "primary_link", "secondary", "secondary_link"})

TRAIL_HIGHWAYS = frozenset({"path", "footway", "bridleway", "steps", "cycleway"})

UNPAVED_SURFACES = frozenset(
    {
        "unpaved",
        "gravel",
        "fine_gravel",
        "compacted",
        "dirt",
        "earth",
        "ground",
        "grass",
        "mud",
        "sand",
        "pebblestone",
        "rock",
        "woodchips",
    }
)

PAVED_SURFACES = frozenset(
    {
        "paved",
        "asphalt",
        "concrete",
        "concrete:plates",
        "concrete:lanes",
        "paving_stones",
        "sett",
        "cobblestone",
        "chipseal",
        "metal",
    }
)

UNPAVED_TRACKTYPES = frozenset({"grade2", "grade3", "grade4", "grade5"})

# Pre-filter margin around an edge when looking for ridden points (degrees)
RIDDEN_BBOX_MARGIN_DEG = 0.001

MapElements = Union[Sequence[Mapping[str, Any]], Mapping[str, Any]]
RiddenRoads = Sequence[Sequence[Sequence[float]]]


# ==============================================================================
# Tag classification
# ==============================================================================


def is_excluded_way(tags: Mapping[str, Any]) -> bool:
    return tags.get("highway") in EXCLUDED_HIGHWAYS


def has_construction(tags: Mapping[str, Any]) -> bool:
    return "construction" in tags or tags.get("highway") == "construction"


def is_unpaved(tags: Mapping[str, Any]) -> bool:
    """Heuristic for gravel and dirt roads."""
    surface = tags.get("surface")
    if surface in UNPAVED_SURFACES:
        return True
    if tags.get("tracktype") in UNPAVED_TRACKTYPES:
        return True
    return tags.get("highway") == "track" and surface not in PAVED_SURFACES


def is_avoided_way(tags: Mapping[str, Any], options: RoutingOptions) -> bool:
    """Whether a way matches any enabled avoidance preference."""
    if not options.any_enabled:
        return False
    highway = tags.get("highway")
    if options.avoid_highways and highway in MAJOR_HIGHWAYS:
        return True
    if options.avoid_trails and highway in TRAIL_HIGHWAYS:
        surface = tags.get("surface")
        if surface is None or surface in UNPAVED_SURFACES:
            return True
    if options.avoid_gravel and is_unpaved(tags):
        return True
    return False


# ==============================================================================
# Ridden detection
# ==============================================================================


class RiddenIndex:
    """Ridden track points grouped per polyline with bounding boxes.

    A road edge counts as ridden when its midpoint is within ``threshold_m`` of
    any ridden point. Polylines whose bounding box cannot overlap the edge's
    box are skipped before any distance is computed.
    """

    def __init__(self, ridden_roads: Optional[RiddenRoads], threshold_m: float):
        self.threshold_m = threshold_m
        self._tracks: List[Tuple[np.ndarray, Tuple[float, float, float, float]]] = []

        for polyline in ridden_roads or ():
            try:
                points = np.asarray(polyline, dtype=float)
            except (TypeError, ValueError):
                logger.debug("Skipping malformed ridden polyline")
                continue
            if points.ndim != 2 or points.shape[0] == 0 or points.shape[1] < 2:
                continue
            points = points[:, :2]
            bbox = (
                float(points[:, 0].min()),
                float(points[:, 0].max()),
                float(points[:, 1].min()),
                float(points[:, 1].max()),
            )
            self._tracks.append((points, bbox))

    def __bool__(self) -> bool:
        return bool(self._tracks)

    @property
    def track_count(self) -> int:
        return len(self._tracks)

    def is_ridden(self, start: Coordinate, end: Coordinate) -> bool:
        if not self._tracks:
            return False

        min_lat = min(start[0], end[0]) - RIDDEN_BBOX_MARGIN_DEG
        max_lat = max(start[0], end[0]) + RIDDEN_BBOX_MARGIN_DEG
        min_lon = min(start[1], end[1]) - RIDDEN_BBOX_MARGIN_DEG
        max_lon = max(start[1], end[1]) + RIDDEN_BBOX_MARGIN_DEG
        mid_lat, mid_lon = midpoint(start, end)

        for points, (t_min_lat, t_max_lat, t_min_lon, t_max_lon) in self._tracks:
            if t_max_lat < min_lat or t_min_lat > max_lat:
                continue
            if t_max_lon < min_lon or t_min_lon > max_lon:
                continue

            lats = points[:, 0]
            lons = points[:, 1]
            mask = (lats > min_lat) & (lats < max_lat) & (lons > min_lon) & (lons < max_lon)
            if not mask.any():
                continue
            distances = haversine_many(mid_lat, mid_lon, lats[mask], lons[mask])
            if bool((distances < self.threshold_m).any()):
                return True
        return False


# ==============================================================================
# Element parsing
# ==============================================================================


def _element_list(map_elements: Optional[MapElements]) -> List[Mapping[str, Any]]:
    if map_elements is None:
        return []
    if isinstance(map_elements, Mapping):
        elements = map_elements.get("elements") or []
    else:
        elements = map_elements
    if isinstance(elements, (str, bytes)) or not isinstance(elements, Sequence):
        raise GraphBuildError(f"expected a list of map elements, got {type(elements).__name__}")
    return list(elements)


def _node_table(elements: Iterable[Mapping[str, Any]]) -> Dict[NodeID, Coordinate]:
    table: Dict[NodeID, Coordinate] = {}
    for elem in elements:
        if not isinstance(elem, Mapping) or elem.get("type") != "node":
            continue
        try:
            table[int(elem["id"])] = (float(elem["lat"]), float(elem["lon"]))
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping malformed node element: {elem.get('id')!r}")
    return table


def _inline_geometry(way: Mapping[str, Any], index: int) -> Optional[Coordinate]:
    geometry = way.get("geometry")
    if not geometry or index >= len(geometry):
        return None
    point = geometry[index]
    try:
        return (float(point["lat"]), float(point["lon"]))
    except (KeyError, TypeError, ValueError):
        return None


def _way_node_ids(way: Mapping[str, Any]) -> Optional[List[NodeID]]:
    try:
        return [int(node_id) for node_id in way.get("nodes") or []]
    except (TypeError, ValueError):
        return None


# ==============================================================================
# Builder
# ==============================================================================


def build_graph(
    map_elements: Optional[MapElements],
    ridden_roads: Optional[RiddenRoads] = None,
    routing_options: Optional[RoutingOptions] = None,
    config: Optional[SolverConfig] = None,
) -> StreetGraph:
    """Build a tagged street graph from Overpass elements.

    Args:
        map_elements: Overpass ``elements`` list, or a full Overpass response
            mapping containing one
        ridden_roads: Previously ridden tracks, each a list of ``[lat, lon]``
        routing_options: Avoidance preferences
        config: Solver configuration (ridden threshold, avoidance penalty)

    Returns:
        Populated ``StreetGraph``; empty when the input holds no usable ways

    Raises:
        GraphBuildError: If the input is not an element list at all
    """
    config = config or DEFAULT_CONFIG
    options = routing_options or RoutingOptions()
    elements = _element_list(map_elements)
    ridden = RiddenIndex(ridden_roads, config.ridden_threshold_m)
    graph = StreetGraph()

    with LogTimer(logger, "Graph build"):
        node_table = _node_table(elements)

        skipped_ways = 0
        excluded_ways = 0
        for elem in elements:
            if not isinstance(elem, Mapping) or elem.get("type") != "way":
                continue

            tags = elem.get("tags") or {}
            if is_excluded_way(tags):
                excluded_ways += 1
                continue

            node_ids = _way_node_ids(elem)
            if node_ids is None or len(node_ids) < 2:
                skipped_ways += 1
                logger.debug(f"Skipping way {elem.get('id')!r} without a usable node list")
                continue

            try:
                way_id = int(elem["id"])
            except (KeyError, TypeError, ValueError):
                way_id = None

            avoided = is_avoided_way(tags, options)
            construction = has_construction(tags)
            name = tags.get("name")

            for i in range(len(node_ids) - 1):
                u, v = node_ids[i], node_ids[i + 1]
                if u == v:
                    continue

                u_coord = _inline_geometry(elem, i) or node_table.get(u)
                v_coord = _inline_geometry(elem, i + 1) or node_table.get(v)
                if u_coord is None or v_coord is None:
                    logger.debug(f"Way {way_id}: missing coordinates for {u}-{v}")
                    continue

                graph.add_node(u, *u_coord)
                graph.add_node(v, *v_coord)

                length = haversine(u_coord, v_coord)
                weight = length * config.avoid_penalty if avoided else length
                graph.add_edge(
                    u,
                    v,
                    length,
                    weight,
                    way_id=way_id,
                    name=name,
                    is_ridden=ridden.is_ridden(u_coord, v_coord),
                    is_avoided=avoided,
                    has_construction=construction,
                )

    summary = graph.summary()
    logger.info(
        f"Built graph: {summary['nodes']} nodes, {summary['edges']} edges "
        f"({summary['ridden']} ridden, {summary['avoided']} avoided, "
        f"{summary['construction']} construction); "
        f"{excluded_ways} ways excluded, {skipped_ways} skipped"
    )
    return graph
