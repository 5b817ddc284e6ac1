"""
Tunable parameters for graph building and solving.

Every threshold the solver relies on lives in ``SolverConfig`` so callers can
adjust them per request instead of patching module constants.
"""

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from .exceptions import ConfigurationError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60
LONG_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class SolverConfig:
    """Solver configuration.

    Attributes:
        ridden_threshold_m: Max distance from an edge midpoint to a ridden
            track point for the edge to count as ridden
        avoid_penalty: Weight multiplier for edges matching an avoidance rule
        ridden_penalty: Traversal multiplier for ridden edges in
            point-to-point routing
        island_search_limit: Max island nodes searched when bridging
        matching_sample_size: Max odd nodes examined per matching round
        manual_route_tolerance_m: Max distance from a manual route for an edge
            to be considered part of it
        cache_ttl_seconds: Default lifetime of cached graphs
    """

    ridden_threshold_m: float = 20.0
    avoid_penalty: float = 100.0
    ridden_penalty: float = 10.0
    island_search_limit: int = 1000
    matching_sample_size: int = 100
    manual_route_tolerance_m: float = 20.0
    cache_ttl_seconds: float = DEFAULT_TTL_SECONDS

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigurationError: If any value is out of range
        """
        for name in ("ridden_threshold_m", "manual_route_tolerance_m", "cache_ttl_seconds"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(name, "must be positive")
        for name in ("avoid_penalty", "ridden_penalty"):
            if getattr(self, name) < 1:
                raise ConfigurationError(name, "must be at least 1")
        for name in ("island_search_limit", "matching_sample_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(name, "must be a positive integer")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SolverConfig":
        """Create a config from a mapping, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown solver config keys: {', '.join(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})


DEFAULT_CONFIG = SolverConfig()
