"""
Unit tests for the graph cache.

Uses a fake clock and a counting builder so expiry can be tested without
sleeping.
"""

import sys
import threading
from pathlib import Path

# Add parent directory to path before importing rpp_core
sys.path.insert(0, str(Path(__file__).parent.parent))

import unittest  # noqa: E402

from rpp_core.config import LONG_TTL_SECONDS, SolverConfig  # noqa: E402
from rpp_core.graph_store import StreetGraph  # noqa: E402
from rpp_core.route_cache import (  # noqa: E402
    GraphCache,
    clear_graph_cache,
    get_cached_graph,
    graph_cache_stats,
    make_cache_key,
)
from rpp_core.types import BoundingBox, RoutingOptions  # noqa: E402

BOX = {"north": 45.51231, "south": 45.50001, "east": -73.55001, "west": -73.56789}


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class CountingBuilder:
    def __init__(self):
        self.calls = 0
        self.lock = threading.Lock()

    def __call__(self, elements, ridden, options, config):
        with self.lock:
            self.calls += 1
        return StreetGraph()


class TestMakeCacheKey(unittest.TestCase):
    """Test cache key construction."""

    def test_rounding(self):
        """Test boxes differing below 4 decimals share a key."""
        nudged = dict(BOX, north=BOX["north"] + 0.00002)
        self.assertEqual(make_cache_key(BOX), make_cache_key(nudged))

    def test_options_in_key(self):
        """Test different options give different keys."""
        self.assertNotEqual(
            make_cache_key(BOX, RoutingOptions()),
            make_cache_key(BOX, RoutingOptions(avoid_gravel=True)),
        )

    def test_bounding_box_and_mapping_agree(self):
        """Test a BoundingBox and its mapping produce the same key."""
        self.assertEqual(make_cache_key(BOX), make_cache_key(BoundingBox.from_mapping(BOX)))

    def test_string_area(self):
        """Test opaque string keys are used verbatim."""
        self.assertTrue(make_cache_key("downtown").startswith("downtown|"))


class TestGraphCache(unittest.TestCase):
    """Test GraphCache behavior."""

    def setUp(self):
        self.clock = FakeClock()
        self.builder = CountingBuilder()
        self.cache = GraphCache(ttl_seconds=3600, clock=self.clock, builder=self.builder)

    def test_hit_within_ttl(self):
        """Test a second request reuses the graph."""
        first = self.cache.get_or_build(BOX, [])
        self.clock.now += 3599
        second = self.cache.get_or_build(BOX, [])
        self.assertIs(first, second)
        self.assertEqual(self.builder.calls, 1)
        self.assertEqual(self.cache.stats()["hits"], 1)

    def test_expiry(self):
        """Test entries are rebuilt after the TTL."""
        first = self.cache.get_or_build(BOX, [])
        self.clock.now += 3601
        self.assertIsNone(self.cache.get(BOX))
        second = self.cache.get_or_build(BOX, [])
        self.assertIsNot(first, second)
        self.assertEqual(self.builder.calls, 2)
        self.assertEqual(self.cache.stats()["expirations"], 1)

    def test_long_ttl_override(self):
        """Test a per-entry TTL outlives the default."""
        self.cache.get_or_build(BOX, [], ttl_seconds=LONG_TTL_SECONDS)
        self.clock.now += 7200
        self.assertIsNotNone(self.cache.get(BOX))

    def test_options_separate_entries(self):
        """Test entries are kept per routing options."""
        self.cache.get_or_build(BOX, [], options=RoutingOptions())
        self.cache.get_or_build(BOX, [], options=RoutingOptions(avoid_trails=True))
        self.assertEqual(self.builder.calls, 2)
        self.assertEqual(len(self.cache), 2)

    def test_invalidate_and_clear(self):
        """Test manual removal."""
        self.cache.get_or_build(BOX, [])
        self.assertTrue(self.cache.invalidate(BOX))
        self.assertFalse(self.cache.invalidate(BOX))
        self.cache.get_or_build(BOX, [])
        self.assertEqual(self.cache.clear(), 1)
        self.assertEqual(len(self.cache), 0)

    def test_custom_key_function(self):
        """Test an injected key function controls sharing."""
        cache = GraphCache(clock=self.clock, builder=self.builder, key_fn=lambda area, options: "same")
        cache.get_or_build(BOX, [])
        cache.get_or_build({"north": 1, "south": 0, "east": 1, "west": 0}, [])
        self.assertEqual(self.builder.calls, 1)

    def test_concurrent_requests_build_once(self):
        """Test simultaneous misses on one key trigger a single build."""
        barrier = threading.Barrier(8)
        results = []

        def worker():
            barrier.wait()
            results.append(self.cache.get_or_build(BOX, []))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(self.builder.calls, 1)
        self.assertEqual(len(results), 8)
        self.assertTrue(all(graph is results[0] for graph in results))


class TestSharedCache(unittest.TestCase):
    """Test the process-wide cache helpers."""

    ELEMENTS = [
        {"type": "node", "id": 1, "lat": 45.501, "lon": -73.560},
        {"type": "node", "id": 2, "lat": 45.501, "lon": -73.559},
        {"type": "way", "id": 10, "nodes": [1, 2], "tags": {"highway": "residential"}},
    ]

    def setUp(self):
        clear_graph_cache()

    def tearDown(self):
        clear_graph_cache()

    def test_builds_once_and_reuses(self):
        """Test the shared cache builds a real graph once per area."""
        before = graph_cache_stats()
        graph = get_cached_graph(BOX, self.ELEMENTS, config=SolverConfig(cache_ttl_seconds=60))
        again = get_cached_graph(BOX, self.ELEMENTS)
        after = graph_cache_stats()

        self.assertIs(graph, again)
        self.assertEqual(graph.edge_count, 1)
        self.assertEqual(after["builds"] - before["builds"], 1)
        self.assertEqual(after["hits"] - before["hits"], 1)
        self.assertEqual(after["size"], 1)

    def test_clear(self):
        """Test clearing reports the number of dropped entries."""
        get_cached_graph(BOX, self.ELEMENTS)
        self.assertEqual(clear_graph_cache(), 1)
        self.assertEqual(graph_cache_stats()["size"], 0)


if __name__ == "__main__":
    unittest.main()
