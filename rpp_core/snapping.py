"""
Snap arbitrary locations onto the street graph.

Both lookups are linear scans vectorized with numpy. ``np.argmin`` returns the
first minimum, so ties resolve to the earliest node or edge in store order.
"""

from typing import Iterable, List, Optional

import numpy as np

from .geo import haversine_many
from .graph_store import GraphEdge, StreetGraph
from .types import NodeID, SnappedPoint


def find_closest_node(
    graph: StreetGraph,
    lat: float,
    lon: float,
    candidate_ids: Optional[Iterable[NodeID]] = None,
) -> Optional[NodeID]:
    """Nearest node by haversine distance.

    Args:
        graph: Street graph
        lat: Query latitude
        lon: Query longitude
        candidate_ids: Restrict the search to these nodes; ids missing from
            the graph are ignored

    Returns:
        Node id, or None when the graph (or the candidate set) is empty
    """
    if candidate_ids is None:
        nodes = list(graph.nodes())
    else:
        wanted = set(candidate_ids)
        nodes = [node for node in graph.nodes() if node.node_id in wanted]

    if not nodes:
        return None

    lats = np.fromiter((node.lat for node in nodes), dtype=float, count=len(nodes))
    lons = np.fromiter((node.lon for node in nodes), dtype=float, count=len(nodes))
    distances = haversine_many(lat, lon, lats, lons)
    return nodes[int(np.argmin(distances))].node_id


def find_closest_point_on_edge(graph: StreetGraph, lat: float, lon: float) -> Optional[SnappedPoint]:
    """Nearest point on any edge.

    Each edge is treated as a flat segment with the longitude delta scaled by
    ``cos(latitude of u)``; the projection parameter is clamped to [0, 1] and
    the reported distance is the haversine distance to the projected point.

    Returns:
        ``SnappedPoint`` or None when the graph has no edges
    """
    edges: List[GraphEdge] = list(graph.edges())
    if not edges:
        return None

    coords = np.array(
        [graph.coordinate(edge.u) + graph.coordinate(edge.v) for edge in edges],
        dtype=float,
    )
    lat1, lon1, lat2, lon2 = coords[:, 0], coords[:, 1], coords[:, 2], coords[:, 3]

    scale = np.cos(np.radians(lat1))
    d_lat = lat2 - lat1
    d_lon = (lon2 - lon1) * scale
    rel_lat = lat - lat1
    rel_lon = (lon - lon1) * scale

    length_sq = d_lat * d_lat + d_lon * d_lon
    safe_length_sq = np.where(length_sq == 0, 1.0, length_sq)
    t = np.where(length_sq == 0, 0.0, (rel_lat * d_lat + rel_lon * d_lon) / safe_length_sq)
    t = np.clip(t, 0.0, 1.0)

    proj_lat = lat1 + t * d_lat
    proj_lon = lon1 + t * (lon2 - lon1)
    distances = haversine_many(lat, lon, proj_lat, proj_lon)

    best = int(np.argmin(distances))
    edge = edges[best]
    return SnappedPoint(
        lat=float(proj_lat[best]),
        lon=float(proj_lon[best]),
        distance=float(distances[best]),
        u=edge.u,
        v=edge.v,
        edge_id=edge.edge_id,
    )
