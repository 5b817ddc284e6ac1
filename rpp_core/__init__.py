"""
RPP Core - Rural Postman route solver for street sweeps

This package plans one continuous ride covering a set of required streets:
- Street graph construction from Overpass map elements
- Ridden / avoided / construction tagging of road edges
- Snapping, shortest paths and island bridging
- Greedy parity correction and Eulerian trail extraction
- TTL cache for built graphs

Version: 1.0.0
"""

import logging

from .config import DEFAULT_CONFIG, LONG_TTL_SECONDS, SolverConfig
from .connectivity import BridgeResult, Component, bridge_components, find_components, prune_disconnected_components
from .exceptions import (
    ConfigurationError,
    GraphBuildError,
    GraphError,
    NodeNotFoundError,
    RPPError,
    ValidationError,
)
from .geo import haversine
from .graph_builder import build_graph
from .graph_store import EdgeMultiset, GraphEdge, GraphNode, StreetGraph
from .logging_config import get_logger, log_exception, setup_logging
from .parity import ParityResult, balance_parity
from .point_routing import StepResult, route_between, route_step, snap_point
from .requirements import RequiredEdgeSet, select_required_edges
from .route_cache import GraphCache, clear_graph_cache, get_cached_graph, graph_cache_stats, make_cache_key
from .shortest_path import PathResult, PathStep, find_closest_target, find_path
from .snapping import find_closest_node, find_closest_point_on_edge
from .solver import SweepSolution, solve, solve_route
from .trail_builder import Attempted, Degraded, Repaired, Trail, TrailOutcome, build_trail
from .types import BoundingBox, Coordinate, NodeID, RoutePoint, RoutingOptions, SnappedPoint

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Types
    "Coordinate",
    "NodeID",
    "BoundingBox",
    "RoutePoint",
    "RoutingOptions",
    "SnappedPoint",
    # Configuration
    "SolverConfig",
    "DEFAULT_CONFIG",
    "LONG_TTL_SECONDS",
    # Graph
    "StreetGraph",
    "GraphNode",
    "GraphEdge",
    "EdgeMultiset",
    "build_graph",
    # Snapping and paths
    "find_closest_node",
    "find_closest_point_on_edge",
    "find_closest_target",
    "find_path",
    "PathResult",
    "PathStep",
    # Connectivity
    "Component",
    "BridgeResult",
    "find_components",
    "bridge_components",
    "prune_disconnected_components",
    # Solving
    "ParityResult",
    "balance_parity",
    "Trail",
    "TrailOutcome",
    "Attempted",
    "Repaired",
    "Degraded",
    "build_trail",
    "RequiredEdgeSet",
    "select_required_edges",
    "SweepSolution",
    "solve",
    "solve_route",
    # Point routing
    "StepResult",
    "route_between",
    "route_step",
    "snap_point",
    # Cache
    "GraphCache",
    "get_cached_graph",
    "clear_graph_cache",
    "graph_cache_stats",
    "make_cache_key",
    # Utilities
    "haversine",
    "get_logger",
    "log_exception",
    "setup_logging",
    # Exceptions
    "RPPError",
    "ValidationError",
    "ConfigurationError",
    "GraphError",
    "GraphBuildError",
    "NodeNotFoundError",
]

__version__ = "1.0.0"
