"""
Unit tests for geographic utilities.
"""

import sys
from pathlib import Path

# Add parent directory to path before importing rpp_core
sys.path.insert(0, str(Path(__file__).parent.parent))

import unittest  # noqa: E402

import numpy as np  # noqa: E402

from rpp_core.geo import (  # noqa: E402
    distance_to_polyline,
    haversine,
    haversine_many,
    midpoint,
    project_onto_segment,
)


class TestHaversine(unittest.TestCase):
    """Test haversine distance calculation."""

    def test_same_point(self):
        """Test distance between same point is zero."""
        coord = (40.7128, -74.0060)
        self.assertAlmostEqual(haversine(coord, coord), 0.0, places=6)

    def test_known_distance(self):
        """Test known distance (NYC to LA approx 3944 km)."""
        expected = 3944000
        dist = haversine((40.7128, -74.0060), (34.0522, -118.2437))
        self.assertAlmostEqual(dist, expected, delta=expected * 0.01)

    def test_vectorized_matches_scalar(self):
        """Test the numpy version agrees with the scalar one."""
        lats = np.array([0.0, 1.0, 45.0])
        lons = np.array([1.0, 0.0, -73.0])
        distances = haversine_many(0.0, 0.0, lats, lons)
        for lat, lon, dist in zip(lats, lons, distances):
            self.assertAlmostEqual(dist, haversine((0.0, 0.0), (lat, lon)), places=3)


class TestProjection(unittest.TestCase):
    """Test flat projection onto segments."""

    def test_midpoint(self):
        """Test arithmetic midpoint."""
        self.assertEqual(midpoint((0.0, 0.0), (2.0, 4.0)), (1.0, 2.0))

    def test_inside_segment(self):
        """Test a point beside a segment projects onto it."""
        projected, t = project_onto_segment((0.001, 0.0005), (0.0, 0.0), (0.0, 0.001))
        self.assertAlmostEqual(t, 0.5, places=3)
        self.assertAlmostEqual(projected[0], 0.0)
        self.assertAlmostEqual(projected[1], 0.0005, places=6)

    def test_clamped(self):
        """Test t is clamped to the segment."""
        _, t = project_onto_segment((0.0, -1.0), (0.0, 0.0), (0.0, 0.001))
        self.assertEqual(t, 0.0)
        _, t = project_onto_segment((0.0, 1.0), (0.0, 0.0), (0.0, 0.001))
        self.assertEqual(t, 1.0)

    def test_degenerate_segment(self):
        """Test a zero-length segment returns its start."""
        projected, t = project_onto_segment((1.0, 1.0), (0.0, 0.0), (0.0, 0.0))
        self.assertEqual(projected, (0.0, 0.0))
        self.assertEqual(t, 0.0)

    def test_distance_to_polyline(self):
        """Test distance to the nearest polyline segment."""
        polyline = [(0.0, 0.0), (0.0, 0.001), (0.001, 0.001)]
        self.assertAlmostEqual(distance_to_polyline((0.0, 0.0005), polyline), 0.0, places=3)
        self.assertAlmostEqual(distance_to_polyline((0.0005, 0.002), polyline), 111.2, delta=1.0)
        self.assertEqual(distance_to_polyline((0.0, 0.0), []), float("inf"))


if __name__ == "__main__":
    unittest.main()
