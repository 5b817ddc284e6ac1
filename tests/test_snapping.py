"""
Unit tests for snapping locations onto the street graph.
"""

import sys
from pathlib import Path

# Add parent directory to path before importing rpp_core
sys.path.insert(0, str(Path(__file__).parent.parent))

import unittest  # noqa: E402

from rpp_core.graph_store import StreetGraph  # noqa: E402
from rpp_core.snapping import find_closest_node, find_closest_point_on_edge  # noqa: E402


def _crossing_roads():
    """Road A from (0,0) to (1,1) added first, short road B crossing its middle."""
    graph = StreetGraph()
    graph.add_node(1, 0.0, 0.0)
    graph.add_node(2, 1.0, 1.0)
    graph.add_edge(1, 2, 157000.0)
    graph.add_node(3, 0.5, 0.4)
    graph.add_node(4, 0.5, 0.6)
    graph.add_edge(3, 4, 22000.0)
    return graph


class TestFindClosestNode(unittest.TestCase):
    """Test nearest-node lookup."""

    def test_empty_graph(self):
        """Test an empty graph yields None."""
        self.assertIsNone(find_closest_node(StreetGraph(), 0.0, 0.0))

    def test_unrestricted(self):
        """Test the globally nearest node wins."""
        graph = _crossing_roads()
        self.assertIn(find_closest_node(graph, 0.5, 0.5), (3, 4))

    def test_restricted_to_candidates(self):
        """Test a candidate set keeps the lookup on the snapped road."""
        graph = _crossing_roads()
        self.assertIn(find_closest_node(graph, 0.5, 0.5, {1, 2}), (1, 2))

    def test_unknown_candidates(self):
        """Test candidates missing from the graph yield None."""
        graph = _crossing_roads()
        self.assertIsNone(find_closest_node(graph, 0.5, 0.5, {98, 99}))
        self.assertIsNone(find_closest_node(graph, 0.5, 0.5, set()))

    def test_ties_go_to_first_node(self):
        """Test equidistant nodes resolve to store order."""
        graph = StreetGraph()
        graph.add_node(10, 0.0, -0.001)
        graph.add_node(11, 0.0, 0.001)
        self.assertEqual(find_closest_node(graph, 0.0, 0.0), 10)


class TestFindClosestPointOnEdge(unittest.TestCase):
    """Test projection onto edges."""

    def test_no_edges(self):
        """Test a graph without edges yields None."""
        graph = StreetGraph()
        graph.add_node(1, 0.0, 0.0)
        self.assertIsNone(find_closest_point_on_edge(graph, 0.0, 0.0))

    def test_aspect_ratio(self):
        """Test longitude is scaled by latitude before projecting."""
        graph = StreetGraph()
        graph.add_node(1, 45.0, -73.0)
        graph.add_node(2, 45.0001, -72.9999)
        graph.add_edge(1, 2, 15.0)

        snapped = find_closest_point_on_edge(graph, 45.0001, -73.0)
        self.assertIsNotNone(snapped)
        t = (snapped.lat - 45.0) / 0.0001
        self.assertGreater(t, 0.6)
        self.assertLess(t, 0.7)

    def test_prefers_first_edge_on_tie(self):
        """Test a click on a crossing snaps to the earlier road."""
        graph = _crossing_roads()
        snapped = find_closest_point_on_edge(graph, 0.5, 0.5)
        self.assertIn(snapped.u, (1, 2))
        self.assertIn(snapped.v, (1, 2))
        self.assertAlmostEqual(snapped.distance, 0.0, places=3)

    def test_clamped_to_endpoint(self):
        """Test points beyond a segment snap to its endpoint."""
        graph = StreetGraph()
        graph.add_node(1, 0.0, 0.0)
        graph.add_node(2, 0.0, 0.001)
        graph.add_edge(1, 2, 111.0)

        snapped = find_closest_point_on_edge(graph, 0.0, 0.005)
        self.assertAlmostEqual(snapped.lat, 0.0)
        self.assertAlmostEqual(snapped.lon, 0.001)
        self.assertAlmostEqual(snapped.distance, 444.8, delta=1.0)


if __name__ == "__main__":
    unittest.main()
