"""Embeddable dependency graph with invalidate-then-dispatch propagation."""

from depgraph.config import DanglingEdgePolicy, DepgraphConfig, GraphConfig, load_config
from depgraph.graph import (
    NO_EDGE,
    Dag,
    DagError,
    DanglingEdgeError,
    DispatchReport,
    Edge,
    GraphInspector,
    InspectionReport,
    Node,
    NodeNotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    "NO_EDGE",
    "Dag",
    "DagError",
    "DanglingEdgeError",
    "DanglingEdgePolicy",
    "DepgraphConfig",
    "DispatchReport",
    "Edge",
    "GraphConfig",
    "GraphInspector",
    "InspectionReport",
    "Node",
    "NodeNotFoundError",
    "load_config",
]
