"""
Custom exceptions for the StreetSweep route core.

Provides a clear exception hierarchy for better error handling and debugging.
All exceptions inherit from RPPError for easy catching of all library errors.

Most degraded situations (unreachable islands, unmatched odd nodes, broken
trails) are logged and recovered inside the solver; only caller mistakes are
raised through these types.
"""


class RPPError(Exception):
    """Base exception for all route-core errors."""

    pass


# ==============================================================================
# Input Errors
# ==============================================================================


class ValidationError(RPPError):
    """Raised when caller input is contradictory or malformed."""

    pass


class ConfigurationError(RPPError):
    """Raised when a solver configuration value is invalid."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid configuration for '{field}': {reason}")


# ==============================================================================
# Graph Errors
# ==============================================================================


class GraphError(RPPError):
    """Base class for graph-related errors."""

    pass


class GraphBuildError(GraphError):
    """Raised when graph construction input cannot be interpreted at all."""

    def __init__(self, reason: str, num_nodes: int = 0, num_edges: int = 0):
        self.reason = reason
        self.num_nodes = num_nodes
        self.num_edges = num_edges
        msg = f"Graph construction failed: {reason}"
        if num_nodes or num_edges:
            msg += f" (nodes: {num_nodes}, edges: {num_edges})"
        super().__init__(msg)


class NodeNotFoundError(GraphError):
    """Raised when a node id is not present in the graph store."""

    def __init__(self, node_id):
        self.node_id = node_id
        super().__init__(f"Node {node_id} is not in the graph")

