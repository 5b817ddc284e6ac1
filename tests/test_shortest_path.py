"""
Unit tests for the shortest-path engine.
"""

import sys
from pathlib import Path

# Add parent directory to path before importing rpp_core
sys.path.insert(0, str(Path(__file__).parent.parent))

import unittest  # noqa: E402

from rpp_core.graph_store import StreetGraph  # noqa: E402
from rpp_core.shortest_path import (  # noqa: E402
    find_closest_target,
    find_path,
    path_coordinates,
    path_nodes,
    virtual_copies,
)


def _diamond(ridden_short=False):
    """1 -> 4 either via 2 (short) or via 3 (long)."""
    graph = StreetGraph()
    graph.add_node(1, 0.0, 0.0)
    graph.add_node(2, 0.001, 0.001)
    graph.add_node(3, -0.001, 0.001)
    graph.add_node(4, 0.0, 0.002)
    graph.add_edge(1, 2, 100.0, is_ridden=ridden_short)
    graph.add_edge(2, 4, 100.0, is_ridden=ridden_short)
    graph.add_edge(1, 3, 150.0)
    graph.add_edge(3, 4, 150.0)
    graph.add_node(5, 1.0, 1.0)
    return graph


class TestFindClosestTarget(unittest.TestCase):
    """Test multi-target Dijkstra."""

    def test_nearest_target(self):
        """Test the cheapest target is chosen."""
        graph = _diamond()
        result = find_closest_target(graph, 1, {3, 4})
        self.assertEqual(result.target, 3)
        self.assertEqual(result.cost, 150.0)
        self.assertEqual(result.length, 150.0)

    def test_source_is_never_target(self):
        """Test the source itself is excluded from targets."""
        graph = _diamond()
        self.assertIsNone(find_closest_target(graph, 1, {1}))
        result = find_closest_target(graph, 1, {1, 4})
        self.assertEqual(result.target, 4)

    def test_unreachable(self):
        """Test isolated targets yield None."""
        graph = _diamond()
        self.assertIsNone(find_closest_target(graph, 1, {5}))

    def test_unknown_source(self):
        """Test unknown sources yield None."""
        graph = _diamond()
        self.assertIsNone(find_closest_target(graph, 42, {1}))

    def test_allowed_edges(self):
        """Test the allow-list restricts traversal."""
        graph = _diamond()
        long_way = {e.edge_id for e in graph.edges() if 3 in (e.u, e.v)}
        result = find_closest_target(graph, 1, {4}, allowed_edge_ids=long_way)
        self.assertEqual(path_nodes(result.steps), [1, 3, 4])
        self.assertIsNone(find_closest_target(graph, 1, {4}, allowed_edge_ids=set()))

    def test_ridden_penalty(self):
        """Test ridden edges cost more while length stays real."""
        graph = _diamond(ridden_short=True)
        result = find_closest_target(graph, 1, {4}, ridden_penalty=10.0)
        self.assertEqual(path_nodes(result.steps), [1, 3, 4])
        result = find_closest_target(graph, 1, {4}, ridden_penalty=1.0)
        self.assertEqual(path_nodes(result.steps), [1, 2, 4])
        self.assertEqual(result.length, 200.0)


class TestFindPath(unittest.TestCase):
    """Test point-to-point routing."""

    def test_same_node(self):
        """Test routing to itself is empty."""
        self.assertEqual(find_path(_diamond(), 1, 1), [])

    def test_no_path(self):
        """Test an unreachable destination is empty."""
        self.assertEqual(find_path(_diamond(), 1, 5), [])

    def test_steps_are_contiguous(self):
        """Test steps chain from source to destination."""
        steps = find_path(_diamond(), 1, 4)
        self.assertEqual(steps[0].from_node, 1)
        self.assertEqual(steps[-1].to_node, 4)
        for prev, step in zip(steps, steps[1:]):
            self.assertEqual(prev.to_node, step.from_node)

    def test_penalizes_ridden_by_default(self):
        """Test point-to-point routing avoids ridden roads."""
        graph = _diamond(ridden_short=True)
        self.assertEqual(path_nodes(find_path(graph, 1, 4)), [1, 3, 4])
        self.assertEqual(path_nodes(find_path(graph, 1, 4, penalize_ridden=False)), [1, 2, 4])

    def test_coordinates_and_virtual_copies(self):
        """Test path helpers."""
        graph = _diamond()
        steps = find_path(graph, 1, 4)
        coords = path_coordinates(graph, steps)
        self.assertEqual(coords[0], (0.0, 0.0))
        self.assertEqual(coords[-1], (0.0, 0.002))
        copies = virtual_copies(steps)
        self.assertTrue(all(edge.is_virtual for edge in copies))
        self.assertEqual(len(copies), len(steps))


if __name__ == "__main__":
    unittest.main()
