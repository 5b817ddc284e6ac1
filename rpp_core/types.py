"""
Type definitions for the route core.

This module provides type aliases and small value types shared across the
builder, the routing engines and the solver. All coordinate tuples are
(latitude, longitude) unless a name says otherwise.
"""

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

from .exceptions import ValidationError

# Type Aliases for clarity
Coordinate = Tuple[float, float]  # (latitude, longitude) in decimal degrees
NodeID = int  # Source map node identifier
EdgeID = int  # Store-assigned undirected edge identifier
Distance = float  # Distance in meters
Polyline = List[Coordinate]


@dataclass(frozen=True)
class RoutingOptions:
    """User preferences applied while the graph is built.

    Attributes:
        avoid_gravel: Penalize unpaved surfaces
        avoid_highways: Penalize major roads (primary/secondary)
        avoid_trails: Penalize paths, footways and similar trails
    """

    avoid_gravel: bool = False
    avoid_highways: bool = False
    avoid_trails: bool = False

    @property
    def any_enabled(self) -> bool:
        return self.avoid_gravel or self.avoid_highways or self.avoid_trails

    def cache_token(self) -> str:
        """Stable serialization used in cache keys."""
        return json.dumps(asdict(self), sort_keys=True)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "RoutingOptions":
        """Build options from a dict using either snake_case or camelCase keys."""
        if not data:
            return cls()
        return cls(
            avoid_gravel=bool(data.get("avoid_gravel", data.get("avoidGravel", False))),
            avoid_highways=bool(data.get("avoid_highways", data.get("avoidHighways", False))),
            avoid_trails=bool(data.get("avoid_trails", data.get("avoidTrails", False))),
        )


@dataclass(frozen=True)
class BoundingBox:
    """Rectangular area in decimal degrees."""

    north: float
    south: float
    east: float
    west: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east

    def rounded(self, precision: int = 4) -> Tuple[float, float, float, float]:
        return (
            round(self.south, precision),
            round(self.west, precision),
            round(self.north, precision),
            round(self.east, precision),
        )

    @classmethod
    def from_mapping(cls, data: Any) -> "BoundingBox":
        """Accept a BoundingBox or a ``{north, south, east, west}`` mapping."""
        if isinstance(data, BoundingBox):
            return data
        try:
            box = cls(
                north=float(data["north"]),
                south=float(data["south"]),
                east=float(data["east"]),
                west=float(data["west"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid bounding box {data!r}: {exc}") from exc
        if box.south > box.north or box.west > box.east:
            raise ValidationError(f"Bounding box is inverted: {box}")
        return box


@dataclass(frozen=True)
class RoutePoint:
    """One point of a solved route.

    Attributes:
        lat: Latitude
        lon: Longitude
        has_construction: The step leaving this point runs over a road
            tagged as under construction
    """

    lat: float
    lon: float
    has_construction: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"lat": self.lat, "lon": self.lon}
        if self.has_construction:
            data["hasConstruction"] = True
        return data


class SnappedPoint(NamedTuple):
    """Nearest point on a graph edge for an arbitrary query location.

    Attributes:
        lat: Latitude of the projected point
        lon: Longitude of the projected point
        distance: Distance from the query location in meters
        u: First endpoint of the snapped edge
        v: Second endpoint of the snapped edge
        edge_id: Identifier of the snapped edge
    """

    lat: float
    lon: float
    distance: Distance
    u: NodeID
    v: NodeID
    edge_id: EdgeID


def as_coordinate(point: Any) -> Coordinate:
    """Normalize a (lat, lon) tuple or a ``{lat, lon}`` mapping to a tuple.

    Raises:
        ValidationError: If the point cannot be interpreted
    """
    try:
        if isinstance(point, Mapping):
            return (float(point["lat"]), float(point["lon"]))
        lat, lon = point
        return (float(lat), float(lon))
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid point {point!r}: {exc}") from exc
