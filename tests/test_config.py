"""
Unit tests for configuration and value types.
"""

import sys
from pathlib import Path

# Add parent directory to path before importing rpp_core
sys.path.insert(0, str(Path(__file__).parent.parent))

import unittest  # noqa: E402

from rpp_core.config import DEFAULT_CONFIG, SolverConfig  # noqa: E402
from rpp_core.exceptions import ConfigurationError, RPPError, ValidationError  # noqa: E402
from rpp_core.types import BoundingBox, RoutePoint, RoutingOptions, as_coordinate  # noqa: E402


class TestSolverConfig(unittest.TestCase):
    """Test SolverConfig defaults and validation."""

    def test_defaults(self):
        """Test default thresholds."""
        self.assertEqual(DEFAULT_CONFIG.ridden_threshold_m, 20.0)
        self.assertEqual(DEFAULT_CONFIG.avoid_penalty, 100.0)
        self.assertEqual(DEFAULT_CONFIG.ridden_penalty, 10.0)
        self.assertEqual(DEFAULT_CONFIG.island_search_limit, 1000)
        self.assertEqual(DEFAULT_CONFIG.matching_sample_size, 100)
        self.assertEqual(DEFAULT_CONFIG.cache_ttl_seconds, 3600)

    def test_invalid_values(self):
        """Test out-of-range values raise ConfigurationError."""
        with self.assertRaises(ConfigurationError):
            SolverConfig(ridden_threshold_m=0)
        with self.assertRaises(ConfigurationError):
            SolverConfig(avoid_penalty=0.5)
        with self.assertRaises(ConfigurationError) as ctx:
            SolverConfig(matching_sample_size=0)
        self.assertEqual(ctx.exception.field, "matching_sample_size")
        self.assertIsInstance(ctx.exception, RPPError)

    def test_from_dict(self):
        """Test unknown keys are ignored."""
        config = SolverConfig.from_dict({"ridden_penalty": 3.0, "unknown": 1})
        self.assertEqual(config.ridden_penalty, 3.0)
        self.assertEqual(SolverConfig.from_dict(None), SolverConfig())


class TestRoutingOptions(unittest.TestCase):
    """Test RoutingOptions."""

    def test_camel_case(self):
        """Test collaborator-style keys are accepted."""
        options = RoutingOptions.from_mapping({"avoidGravel": True, "avoid_trails": True})
        self.assertTrue(options.avoid_gravel)
        self.assertTrue(options.avoid_trails)
        self.assertFalse(options.avoid_highways)
        self.assertTrue(options.any_enabled)

    def test_cache_token_stable(self):
        """Test equal options serialize identically."""
        self.assertEqual(
            RoutingOptions(avoid_gravel=True).cache_token(),
            RoutingOptions.from_mapping({"avoidGravel": True}).cache_token(),
        )


class TestBoundingBox(unittest.TestCase):
    """Test BoundingBox parsing."""

    def test_contains(self):
        """Test containment is inclusive."""
        box = BoundingBox.from_mapping({"north": 1, "south": 0, "east": 1, "west": 0})
        self.assertTrue(box.contains(0.5, 0.5))
        self.assertTrue(box.contains(1.0, 0.0))
        self.assertFalse(box.contains(1.5, 0.5))

    def test_invalid(self):
        """Test missing keys and inverted boxes raise ValidationError."""
        with self.assertRaises(ValidationError):
            BoundingBox.from_mapping({"north": 1})
        with self.assertRaises(ValidationError):
            BoundingBox.from_mapping({"north": 0, "south": 1, "east": 1, "west": 0})


class TestPoints(unittest.TestCase):
    """Test point helpers."""

    def test_route_point_dict(self):
        """Test the construction flag only appears when set."""
        self.assertEqual(RoutePoint(1.0, 2.0).to_dict(), {"lat": 1.0, "lon": 2.0})
        self.assertEqual(
            RoutePoint(1.0, 2.0, True).to_dict(),
            {"lat": 1.0, "lon": 2.0, "hasConstruction": True},
        )

    def test_as_coordinate(self):
        """Test tuples and mappings are accepted."""
        self.assertEqual(as_coordinate((1, 2)), (1.0, 2.0))
        self.assertEqual(as_coordinate({"lat": 1, "lon": 2}), (1.0, 2.0))
        with self.assertRaises(ValidationError):
            as_coordinate({"lat": 1})
        with self.assertRaises(ValidationError):
            as_coordinate("x")


if __name__ == "__main__":
    unittest.main()
