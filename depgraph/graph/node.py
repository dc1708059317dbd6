"""Node and edge data types for the invalidation graph.

Nodes are owned by a Dag. Edges hold only weak back-references to their
targets, so a node stays alive exactly as long as the Dag (or a caller
holding a handle from ``Dag.get``) keeps it.
"""

import weakref
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_EDGE_WEIGHT = 1


@dataclass(frozen=True)
class Edge:
    """Weighted, non-owning reference to another node.

    Attributes:
        weight: Integer weight attached to the edge
        target: Weak reference to the destination node
        target_key: Key of the destination at creation time (diagnostics only)
    """

    weight: int
    target: "weakref.ref[Node]"
    target_key: str

    def resolve(self) -> "Node | None":
        """Return the target node, or None if it has been dropped."""
        return self.target()

    @property
    def is_dangling(self) -> bool:
        return self.target() is None


@dataclass(eq=False)
class Node:
    """Keyed payload container with an ordered list of outgoing edges.

    Equality and hashing are identity based, so two nodes carrying the same
    key and payload are still distinct.

    Attributes:
        key: Identifier, unique within a Dag
        data: Opaque payload; only its repr() is ever used
        edges: Outgoing edges in insertion order
    """

    key: str
    data: Any
    edges: list[Edge] = field(default_factory=list)

    def add_edge(self, target: "Node", weight: int = DEFAULT_EDGE_WEIGHT) -> Edge:
        """Append an edge from this node to ``target``.

        Args:
            target: Node the edge points at; only a weak reference is kept
            weight: Edge weight

        Returns:
            The newly created edge

        Example:
            >>> a = Node("A", "a")
            >>> b = Node("B", "b")
            >>> b.add_edge(a).weight
            1
        """
        edge = Edge(weight=weight, target=weakref.ref(target), target_key=target.key)
        self.edges.append(edge)

        logger.debug(
            "edge_attached",
            holder_key=self.key,
            target_key=target.key,
            weight=weight,
            edge_count=len(self.edges),
        )

        return edge
