"""Graph module for keyed nodes, weak edges and invalidation dispatch.

This module provides the Dag container, its Node and Edge data types, and
an inspector for dangling references.
"""

from depgraph.graph.dag import (
    NO_EDGE,
    Dag,
    DagError,
    DanglingEdgeError,
    DispatchReport,
    NodeNotFoundError,
)
from depgraph.graph.inspector import GraphInspector, InspectionReport
from depgraph.graph.node import Edge, Node

__all__ = [
    "NO_EDGE",
    "Dag",
    "DagError",
    "DanglingEdgeError",
    "DispatchReport",
    "Edge",
    "GraphInspector",
    "InspectionReport",
    "Node",
    "NodeNotFoundError",
]
