"""
Process-wide cache of built street graphs.

Graphs are keyed by the requested area (bounding box rounded to 4 decimals)
and the serialized routing options, and expire after a TTL. The clock, the key
function and the builder are injectable so expiry and keying can be tested
without sleeping or building real graphs.

Concurrent requests for the same key are serialized by a per-key lock, so a
graph is built once even when several callers miss at the same time.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Dict, Optional, Union

from .config import DEFAULT_TTL_SECONDS, SolverConfig
from .graph_builder import MapElements, RiddenRoads, build_graph
from .graph_store import StreetGraph
from .logging_config import get_logger
from .types import BoundingBox, RoutingOptions

logger = get_logger(__name__)

AreaKey = Union[BoundingBox, Dict[str, float], str]
KeyFunction = Callable[[AreaKey, RoutingOptions], str]
GraphBuilder = Callable[..., StreetGraph]


def make_cache_key(area: AreaKey, options: Optional[RoutingOptions] = None) -> str:
    """Cache key from the area and the routing options.

    Boxes are rounded to 4 decimals (about 11 m) so nearly identical requests
    share an entry. String area keys are used verbatim.
    """
    options = options or RoutingOptions()
    if isinstance(area, str):
        area_part = area
    else:
        box = BoundingBox.from_mapping(area)
        area_part = ",".join(f"{value:.4f}" for value in box.rounded(4))
    return f"{area_part}|{options.cache_token()}"


@dataclass
class _GraphCacheEntry:
    graph: StreetGraph
    timestamp: float
    ttl_seconds: float


class GraphCache:
    """TTL cache of street graphs with in-flight build de-duplication."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        key_fn: KeyFunction = make_cache_key,
        builder: GraphBuilder = build_graph,
    ):
        self._ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._key_fn = key_fn
        self._builder = builder
        self._lock = Lock()
        self._build_locks: Dict[str, Lock] = {}
        self._items: Dict[str, _GraphCacheEntry] = {}

        self._hits = 0
        self._misses = 0
        self._builds = 0
        self._expirations = 0

    def _lookup(self, key: str) -> Optional[StreetGraph]:
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp > entry.ttl_seconds:
                del self._items[key]
                self._expirations += 1
                logger.debug(f"Cache entry expired: {key}")
                return None
            return entry.graph

    def _build_lock(self, key: str) -> Lock:
        with self._lock:
            lock = self._build_locks.get(key)
            if lock is None:
                lock = Lock()
                self._build_locks[key] = lock
            return lock

    def get(self, area: AreaKey, options: Optional[RoutingOptions] = None) -> Optional[StreetGraph]:
        """Cached graph for an area, or None when absent or expired."""
        return self._lookup(self._key_fn(area, options or RoutingOptions()))

    def get_or_build(
        self,
        area: AreaKey,
        elements: Optional[MapElements],
        ridden: Optional[RiddenRoads] = None,
        options: Optional[RoutingOptions] = None,
        config: Optional[SolverConfig] = None,
        ttl_seconds: Optional[float] = None,
    ) -> StreetGraph:
        """Return the cached graph for an area, building it on a miss.

        Args:
            area: Bounding box (or mapping, or an opaque string key)
            elements: Map elements used when a build is needed
            ridden: Ridden tracks for the build
            options: Routing options; part of the key
            config: Solver configuration for the build
            ttl_seconds: Lifetime of a newly built entry (defaults to the
                cache TTL)
        """
        options = options or RoutingOptions()
        key = self._key_fn(area, options)

        graph = self._lookup(key)
        if graph is not None:
            with self._lock:
                self._hits += 1
            return graph

        with self._build_lock(key):
            # Another caller may have finished the build while we waited
            graph = self._lookup(key)
            if graph is not None:
                with self._lock:
                    self._hits += 1
                return graph

            with self._lock:
                self._misses += 1
            logger.info(f"Graph cache miss, building: {key}")
            graph = self._builder(elements, ridden, options, config)

            with self._lock:
                self._items[key] = _GraphCacheEntry(
                    graph=graph,
                    timestamp=self._clock(),
                    ttl_seconds=self._ttl_seconds if ttl_seconds is None else float(ttl_seconds),
                )
                self._builds += 1
        return graph

    def invalidate(self, area: AreaKey, options: Optional[RoutingOptions] = None) -> bool:
        key = self._key_fn(area, options or RoutingOptions())
        with self._lock:
            return self._items.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            cleared = len(self._items)
            self._items.clear()
            self._build_locks.clear()
            return cleared

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._items),
                "hits": self._hits,
                "misses": self._misses,
                "builds": self._builds,
                "expirations": self._expirations,
                "ttl_seconds": self._ttl_seconds,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


GRAPH_CACHE = GraphCache()


def get_cached_graph(
    area_key: AreaKey,
    elements: Optional[MapElements],
    ridden: Optional[RiddenRoads] = None,
    options: Optional[RoutingOptions] = None,
    config: Optional[SolverConfig] = None,
) -> StreetGraph:
    """Shared-cache lookup that builds and stores the graph on a miss.

    A ``config`` also sets the lifetime of a newly built entry.
    """
    ttl_seconds = config.cache_ttl_seconds if config is not None else None
    return GRAPH_CACHE.get_or_build(area_key, elements, ridden, options, config, ttl_seconds)


def clear_graph_cache() -> int:
    return GRAPH_CACHE.clear()


def graph_cache_stats() -> Dict[str, Any]:
    return GRAPH_CACHE.stats()
