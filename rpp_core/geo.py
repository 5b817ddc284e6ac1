"""
Geographic utilities for the route core.

Provides great-circle distances (scalar and numpy-vectorized) and the
locally-flat projections used for snapping points onto road segments.
"""

from math import asin, cos, radians, sin, sqrt
from typing import Sequence, Tuple

import numpy as np

from .types import Coordinate

EARTH_RADIUS_M = 6371000.0


def haversine(coord1: Coordinate, coord2: Coordinate) -> float:
    """
    Calculate great-circle distance between two points using Haversine formula.

    Args:
        coord1: First coordinate as (latitude, longitude) in decimal degrees
        coord2: Second coordinate as (latitude, longitude) in decimal degrees

    Returns:
        Distance in meters (float)

    Example:
        >>> san_francisco = (37.7749, -122.4194)
        >>> los_angeles = (34.0522, -118.2437)
        >>> distance = haversine(san_francisco, los_angeles)
        >>> print(f"{distance / 1000:.1f} km")
        559.1 km

    Note:
        - Earth radius is approximated as 6,371 km
        - Coordinates must be in (lat, lon) format, not (lon, lat)
    """
    lat1, lon1 = coord1
    lat2, lon2 = coord2

    lat1, lon1, lat2, lon2 = map(radians, (lat1, lon1, lat2, lon2))

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(min(1.0, sqrt(a)))

    return EARTH_RADIUS_M * c


def haversine_many(lat: float, lon: float, lats: np.ndarray, lons: np.ndarray) -> np.ndarray:
    """
    Vectorized haversine from one point to many points.

    Args:
        lat: Latitude of the reference point
        lon: Longitude of the reference point
        lats: Array of latitudes
        lons: Array of longitudes (same shape as ``lats``)

    Returns:
        Array of distances in meters
    """
    lat1 = np.radians(lat)
    lon1 = np.radians(lon)
    lat2 = np.radians(lats)
    lon2 = np.radians(lons)

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    c = 2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))
    return EARTH_RADIUS_M * c


def midpoint(coord1: Coordinate, coord2: Coordinate) -> Coordinate:
    """Arithmetic midpoint in degrees; fine for street-length segments."""
    return ((coord1[0] + coord2[0]) / 2, (coord1[1] + coord2[1]) / 2)


def project_onto_segment(
    point: Coordinate, seg_start: Coordinate, seg_end: Coordinate
) -> Tuple[Coordinate, float]:
    """
    Project a point onto a segment using a locally-flat approximation.

    The longitude delta is scaled by ``cos(latitude of seg_start)`` so that a
    degree of longitude and a degree of latitude cover comparable ground before
    the projection parameter is computed. The parameter is clamped to [0, 1],
    so points beyond either end snap to that endpoint.

    Args:
        point: Query point (lat, lon)
        seg_start: Segment start (lat, lon)
        seg_end: Segment end (lat, lon)

    Returns:
        Tuple of (projected point (lat, lon), clamped parameter t)
    """
    lat, lon = point
    lat1, lon1 = seg_start
    lat2, lon2 = seg_end

    scale = cos(radians(lat1))
    d_lat = lat2 - lat1
    d_lon = (lon2 - lon1) * scale
    rel_lat = lat - lat1
    rel_lon = (lon - lon1) * scale

    length_sq = d_lat * d_lat + d_lon * d_lon
    if length_sq == 0:
        return (lat1, lon1), 0.0

    t = (rel_lat * d_lat + rel_lon * d_lon) / length_sq
    t = max(0.0, min(1.0, t))
    return (lat1 + t * (lat2 - lat1), lon1 + t * (lon2 - lon1)), t


def distance_to_polyline(point: Coordinate, polyline: Sequence[Coordinate]) -> float:
    """
    Shortest distance in meters from a point to a (lat, lon) polyline.

    A single-vertex polyline degenerates to point distance; an empty one
    returns infinity.
    """
    if not polyline:
        return float("inf")
    if len(polyline) == 1:
        return haversine(point, polyline[0])

    best = float("inf")
    for i in range(len(polyline) - 1):
        projected, _ = project_onto_segment(point, polyline[i], polyline[i + 1])
        best = min(best, haversine(point, projected))
    return best
