"""
Undirected street multigraph used by every routing component.

Nodes carry their source map id and coordinates. Each undirected edge is
stored once and registered in the adjacency of both endpoints, which makes the
pair of directed arcs share one payload: removing the edge always removes both
arcs, so the graph can never become asymmetric.

Two classes implement the same adjacency interface (``degree`` and
``neighbors``):

- ``StreetGraph``: the full store built from map data
- ``EdgeMultiset``: a read-only view over an arbitrary list of edges, used for
  the required/augmented edge sets where the same road may appear several
  times (original plus virtual duplicates)
"""

from collections import defaultdict
from dataclasses import dataclass, replace
from typing import Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from .exceptions import GraphError, NodeNotFoundError
from .types import Coordinate, Distance, EdgeID, NodeID


@dataclass(frozen=True)
class GraphNode:
    """A node in the street graph."""

    node_id: NodeID
    lat: float
    lon: float

    @property
    def coordinate(self) -> Coordinate:
        return (self.lat, self.lon)


@dataclass(frozen=True)
class GraphEdge:
    """An undirected road edge.

    Attributes:
        edge_id: Store-assigned identifier, shared by virtual copies
        u: First endpoint (order carries no meaning)
        v: Second endpoint
        length: Great-circle length in meters
        weight: Routing cost (length, penalized when avoided)
        way_id: Originating map way
        name: Display name of the road
        is_ridden: Already covered by the rider, not required in a sweep
        is_avoided: Matches a user avoidance preference
        is_virtual: Inserted by bridging or parity correction
        has_construction: Road is tagged as under construction
    """

    edge_id: EdgeID
    u: NodeID
    v: NodeID
    length: Distance
    weight: float
    way_id: Optional[int] = None
    name: Optional[str] = None
    is_ridden: bool = False
    is_avoided: bool = False
    is_virtual: bool = False
    has_construction: bool = False

    def other(self, node_id: NodeID) -> NodeID:
        """Return the endpoint opposite ``node_id``."""
        if node_id == self.u:
            return self.v
        if node_id == self.v:
            return self.u
        raise GraphError(f"Node {node_id} is not an endpoint of edge {self.edge_id}")

    def as_virtual(self) -> "GraphEdge":
        """Copy of this edge marked as a virtual (repeated) traversal."""
        return self if self.is_virtual else replace(self, is_virtual=True)


class Adjacency(Protocol):
    """Adjacency interface shared by the store and edge-set views."""

    def degree(self, node_id: NodeID) -> int: ...

    def neighbors(self, node_id: NodeID) -> Iterator[Tuple[NodeID, GraphEdge]]: ...


class StreetGraph:
    """Weighted undirected multigraph of streets."""

    def __init__(self):
        self._nodes: Dict[NodeID, GraphNode] = {}
        self._edges: Dict[EdgeID, GraphEdge] = {}
        self._adjacency: Dict[NodeID, Dict[EdgeID, GraphEdge]] = {}
        self._next_edge_id = 0

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, node_id: NodeID, lat: float, lon: float) -> GraphNode:
        """Insert a node, or return the existing one with the same id."""
        existing = self._nodes.get(node_id)
        if existing is not None:
            return existing
        node = GraphNode(node_id=node_id, lat=float(lat), lon=float(lon))
        self._nodes[node_id] = node
        self._adjacency[node_id] = {}
        return node

    def has_node(self, node_id: NodeID) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: NodeID) -> GraphNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def coordinate(self, node_id: NodeID) -> Coordinate:
        return self.get_node(node_id).coordinate

    def nodes(self) -> Iterator[GraphNode]:
        return iter(self._nodes.values())

    def node_ids(self) -> List[NodeID]:
        return list(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def remove_node(self, node_id: NodeID) -> None:
        """Remove a node together with every incident edge."""
        if node_id not in self._nodes:
            raise NodeNotFoundError(node_id)
        for edge_id in list(self._adjacency[node_id]):
            self.remove_edge(edge_id)
        del self._adjacency[node_id]
        del self._nodes[node_id]

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(
        self,
        u: NodeID,
        v: NodeID,
        length: Distance,
        weight: Optional[float] = None,
        **attributes,
    ) -> GraphEdge:
        """Insert an undirected edge between two existing nodes.

        Args:
            u: First endpoint
            v: Second endpoint
            length: Length in meters
            weight: Routing cost; defaults to ``length``
            **attributes: Remaining ``GraphEdge`` fields (way_id, name, flags)

        Returns:
            The stored edge

        Raises:
            NodeNotFoundError: If either endpoint is missing
            GraphError: For self-loops, which carry no routing value
        """
        if u not in self._nodes:
            raise NodeNotFoundError(u)
        if v not in self._nodes:
            raise NodeNotFoundError(v)
        if u == v:
            raise GraphError(f"Refusing self-loop edge at node {u}")

        edge = GraphEdge(
            edge_id=self._next_edge_id,
            u=u,
            v=v,
            length=float(length),
            weight=float(length if weight is None else weight),
            **attributes,
        )
        self._next_edge_id += 1
        self._edges[edge.edge_id] = edge
        self._adjacency[u][edge.edge_id] = edge
        self._adjacency[v][edge.edge_id] = edge
        return edge

    def has_edge(self, edge_id: EdgeID) -> bool:
        return edge_id in self._edges

    def get_edge(self, edge_id: EdgeID) -> GraphEdge:
        try:
            return self._edges[edge_id]
        except KeyError:
            raise GraphError(f"Edge {edge_id} is not in the graph") from None

    def edges(self) -> Iterator[GraphEdge]:
        """Iterate every undirected edge once."""
        return iter(self._edges.values())

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    def edges_between(self, u: NodeID, v: NodeID) -> List[GraphEdge]:
        return [edge for edge in self._adjacency.get(u, {}).values() if edge.other(u) == v]

    def remove_edge(self, edge_id: EdgeID) -> None:
        """Remove an edge; both of its arcs disappear together."""
        edge = self._edges.pop(edge_id, None)
        if edge is None:
            raise GraphError(f"Edge {edge_id} is not in the graph")
        self._adjacency[edge.u].pop(edge_id, None)
        self._adjacency[edge.v].pop(edge_id, None)

    # ------------------------------------------------------------------
    # Adjacency
    # ------------------------------------------------------------------

    def degree(self, node_id: NodeID) -> int:
        """Number of undirected edges incident to a node."""
        if node_id not in self._adjacency:
            raise NodeNotFoundError(node_id)
        return len(self._adjacency[node_id])

    def neighbors(self, node_id: NodeID) -> Iterator[Tuple[NodeID, GraphEdge]]:
        """Yield ``(neighbor, edge)`` for every arc leaving ``node_id``."""
        if node_id not in self._adjacency:
            raise NodeNotFoundError(node_id)
        for edge in self._adjacency[node_id].values():
            yield edge.other(node_id), edge

    def incident_edges(self, node_id: NodeID) -> List[GraphEdge]:
        if node_id not in self._adjacency:
            raise NodeNotFoundError(node_id)
        return list(self._adjacency[node_id].values())

    def summary(self) -> Dict[str, int]:
        """Counts used in log lines."""
        return {
            "nodes": self.node_count,
            "edges": self.edge_count,
            "ridden": sum(1 for e in self._edges.values() if e.is_ridden),
            "avoided": sum(1 for e in self._edges.values() if e.is_avoided),
            "construction": sum(1 for e in self._edges.values() if e.has_construction),
        }

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"StreetGraph(nodes={self.node_count}, edges={self.edge_count})"


class EdgeMultiset:
    """Adjacency view over a list of edges that may contain repeats.

    Repeated entries (a road plus its virtual duplicates) are kept as separate
    arcs, so ``degree`` counts traversals rather than distinct roads.
    """

    def __init__(self, edges: Iterable[GraphEdge]):
        self.edges: List[GraphEdge] = list(edges)
        self._adjacency: Dict[NodeID, List[Tuple[NodeID, GraphEdge]]] = defaultdict(list)
        for edge in self.edges:
            self._adjacency[edge.u].append((edge.v, edge))
            self._adjacency[edge.v].append((edge.u, edge))

    def degree(self, node_id: NodeID) -> int:
        return len(self._adjacency.get(node_id, ()))

    def neighbors(self, node_id: NodeID) -> Iterator[Tuple[NodeID, GraphEdge]]:
        return iter(self._adjacency.get(node_id, ()))

    def node_ids(self) -> List[NodeID]:
        return list(self._adjacency)

    def odd_nodes(self) -> List[NodeID]:
        return [node for node, arcs in self._adjacency.items() if len(arcs) % 2 == 1]

    def __len__(self) -> int:
        return len(self.edges)


def edge_degrees(edges: Iterable[GraphEdge]) -> Dict[NodeID, int]:
    """Degree of every node touched by an edge list (repeats counted)."""
    degrees: Dict[NodeID, int] = defaultdict(int)
    for edge in edges:
        degrees[edge.u] += 1
        degrees[edge.v] += 1
    return dict(degrees)
