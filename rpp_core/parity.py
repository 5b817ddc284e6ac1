"""
Greedy parity correction for Eulerian trail construction.

An edge multiset admits an Eulerian circuit when every node has even degree,
and an Eulerian path from ``start`` to ``end`` when exactly those two nodes
are odd. This module duplicates shortest paths between odd nodes (as virtual
edges) until the degree condition holds.

Matching is greedy: each round samples the first unmatched odd nodes, finds
each one's nearest unmatched odd partner, and commits only the globally
cheapest pair. This is not a minimum-weight perfect matching; on adversarial
layouts the added distance can be noticeably larger than optimal.

Overlapping matching paths can stack copies of one edge. Surplus virtual
copies are removed in pairs afterwards so no edge is traversed more than
twice.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .graph_store import GraphEdge, StreetGraph, edge_degrees
from .logging_config import LogTimer, get_logger
from .shortest_path import PathResult, find_closest_target, virtual_copies
from .types import NodeID

logger = get_logger(__name__)

DEFAULT_SAMPLE_SIZE = 100


@dataclass
class ParityResult:
    """Balanced edge multiset.

    Attributes:
        edges: Input edges followed by every added virtual edge
        added: Virtual edges added by matching or forced duplication
        forced: Number of odd nodes fixed by duplicating an incident edge
        unmatched: Odd nodes left without a partner
    """

    edges: List[GraphEdge]
    added: List[GraphEdge] = field(default_factory=list)
    forced: int = 0
    unmatched: List[NodeID] = field(default_factory=list)


def odd_degree_nodes(
    edges: Iterable[GraphEdge],
    start: Optional[NodeID] = None,
    end: Optional[NodeID] = None,
) -> List[NodeID]:
    """Nodes whose parity must change for a trail to exist.

    With distinct ``start`` and ``end`` both anchors must end up odd, so their
    membership is toggled; otherwise every odd node needs a partner.
    """
    odd = [node for node, degree in edge_degrees(edges).items() if degree % 2 == 1]
    if start is not None and end is not None and start != end:
        for anchor in (start, end):
            if anchor in odd:
                odd.remove(anchor)
            else:
                odd.append(anchor)
    return odd


def _nearest_partner(
    graph: StreetGraph,
    node: NodeID,
    partners: Set[NodeID],
    allowed: Optional[Set[int]],
) -> Optional[PathResult]:
    result = find_closest_target(graph, node, partners, allowed)
    if result is None and allowed is not None:
        result = find_closest_target(graph, node, partners, None)
    return result


def _forced_edge(graph: StreetGraph, edges: List[GraphEdge], node: NodeID) -> Optional[GraphEdge]:
    for edge in edges:
        if node in (edge.u, edge.v):
            return edge
    if graph.has_node(node):
        incident = graph.incident_edges(node)
        if incident:
            return incident[0]
    return None


def _drop_surplus_copies(result: ParityResult, first_added: int) -> int:
    """Trim virtual copies so no edge appears more than twice.

    Copies are removed in pairs, which leaves every node's parity unchanged,
    and at least one copy of each edge stays in the multiset.

    Returns:
        Number of virtual copies removed
    """
    counts = Counter(edge.edge_id for edge in result.edges)
    virtual_counts = Counter(edge.edge_id for edge in result.edges if edge.is_virtual)

    to_drop: Dict[int, int] = {}
    for edge_id, count in counts.items():
        if count <= 2:
            continue
        keep = 1 if count % 2 else 2
        drop = min(count - keep, virtual_counts[edge_id])
        drop -= drop % 2
        if drop:
            to_drop[edge_id] = drop

    if not to_drop:
        return 0

    kept: List[Tuple[int, GraphEdge]] = []
    for index in range(len(result.edges) - 1, -1, -1):
        edge = result.edges[index]
        if edge.is_virtual and to_drop.get(edge.edge_id, 0) > 0:
            to_drop[edge.edge_id] -= 1
            continue
        kept.append((index, edge))
    kept.reverse()

    removed = len(result.edges) - len(kept)
    result.edges = [edge for _, edge in kept]
    result.added = [edge for index, edge in kept if index >= first_added]
    logger.debug(f"Removed {removed} surplus virtual edges")
    return removed


def balance_parity(
    graph: StreetGraph,
    edges: Iterable[GraphEdge],
    start: Optional[NodeID] = None,
    end: Optional[NodeID] = None,
    allowed_edge_ids: Optional[Iterable[int]] = None,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> ParityResult:
    """Add virtual edges until the multiset admits the requested trail.

    Args:
        graph: Street graph used for shortest paths
        edges: Edge multiset to balance
        start: Optional trail start node
        end: Optional trail end node
        allowed_edge_ids: Preferred edges for matching paths; the full graph
            is used when no restricted path exists
        sample_size: Unmatched odd nodes examined per round

    Returns:
        ``ParityResult`` with the augmented multiset
    """
    result = ParityResult(edges=list(edges))
    first_added = len(result.edges)
    allowed = set(allowed_edge_ids) if allowed_edge_ids is not None else None
    unmatched = odd_degree_nodes(result.edges, start, end)

    if not unmatched:
        _drop_surplus_copies(result, first_added)
        return result

    logger.debug(f"Balancing parity for {len(unmatched)} odd nodes")

    with LogTimer(logger, "Parity correction", level=logging.DEBUG):
        while len(unmatched) >= 2:
            unmatched_set = set(unmatched)
            best: Optional[Tuple[NodeID, PathResult]] = None

            for node in unmatched[:sample_size]:
                partner = _nearest_partner(graph, node, unmatched_set - {node}, allowed)
                if partner is not None and (best is None or partner.cost < best[1].cost):
                    best = (node, partner)

            if best is not None:
                node, partner = best
                added = virtual_copies(partner.steps)
                result.edges.extend(added)
                result.added.extend(added)
                unmatched.remove(node)
                unmatched.remove(partner.target)
                continue

            # Nothing in the sample reaches a partner
            node = unmatched.pop(0)
            edge = _forced_edge(graph, result.edges, node)
            if edge is None:
                logger.error(f"Odd node {node} has no incident edge to duplicate")
                result.unmatched.append(node)
                continue
            duplicate = edge.as_virtual()
            result.edges.append(duplicate)
            result.added.append(duplicate)
            result.forced += 1
            logger.error(
                f"No matching partner reachable from odd node {node}; "
                f"forcing duplicate of edge {edge.edge_id}"
            )

    result.unmatched.extend(unmatched)
    _drop_surplus_copies(result, first_added)
    logger.info(
        f"Parity balanced: {len(result.added)} virtual edges added, "
        f"{result.forced} forced, {len(result.unmatched)} unmatched"
    )
    return result
