"""Keyed dependency graph with invalidate-then-dispatch change propagation.

This module provides the Dag class, which owns every node by strong
reference and wires them together with weakly-referencing edges. Updating
a node marks it invalidated; a later dispatch walks everything reachable
from each invalidated node and hands each visited node to a callback.
"""

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog

from depgraph.config import DanglingEdgePolicy, GraphConfig
from depgraph.graph.node import Edge, Node

logger = structlog.get_logger(__name__)

# Returned by get_edge_weight when no matching edge exists
NO_EDGE = -1

DispatchCallback = Callable[[Node], None]


class DagError(Exception):
    """Base exception for graph precondition violations."""

    def __init__(self, message: str):
        """Initialize the exception with a descriptive message.

        Args:
            message: Description of the violated precondition
        """
        super().__init__(message)
        self.message = message


class NodeNotFoundError(DagError):
    """Raised when an edge operation names a key that is not in the graph."""

    def __init__(self, message: str, key: str):
        super().__init__(message)
        self.key = key


class DanglingEdgeError(DagError):
    """Raised when an edge points at a node that has since been removed.

    Callers are expected to keep referential integrity: never remove a node
    that is still the target of an edge which may be traversed.
    """

    def __init__(self, holder_key: str, target_key: str):
        """Initialize the exception for one dangling edge.

        Args:
            holder_key: Key of the node whose edge list holds the edge
            target_key: Key the removed target had when the edge was created
        """
        super().__init__(
            f"Cannot resolve edge from '{holder_key}': node '{target_key}' was removed",
        )
        self.holder_key = holder_key
        self.target_key = target_key


@dataclass
class DispatchReport:
    """Outcome of a single dispatch call.

    Attributes:
        roots: Invalidated keys that resolved and were walked
        skipped_roots: Invalidated keys whose node was removed before dispatch
        visits: Number of callback invocations across all roots
        dangling_edges: (holder_key, target_key) pairs skipped during the walk
    """

    roots: list[str] = field(default_factory=list)
    skipped_roots: list[str] = field(default_factory=list)
    visits: int = 0
    dangling_edges: list[tuple[str, str]] = field(default_factory=list)

    def summary(self) -> str:
        """Generate a human-readable summary of the dispatch."""
        lines = [
            f"Roots walked: {len(self.roots)}",
            f"Roots skipped: {len(self.skipped_roots)}",
            f"Callbacks: {self.visits}",
            f"Dangling edges: {len(self.dangling_edges)}",
        ]

        if self.skipped_roots:
            lines.append(f"\nSkipped Roots: {', '.join(sorted(self.skipped_roots))}")

        if self.dangling_edges:
            lines.append("\nDangling Edges:")
            lines.extend(f"  - {holder} -> {target}" for holder, target in self.dangling_edges)

        return "\n".join(lines)


class Dag:
    """Container owning keyed nodes and propagating invalidation along edges.

    The Dag is the only strong owner of its nodes. Edges refer to their
    targets weakly, so removing a node (or replacing it with ``add``) leaves
    any edge that pointed at it dangling instead of retargeting it. Despite
    the name, acyclicity is not enforced; dispatch terminates on cycles
    because every walk tracks visited keys.

    Thread-safety:
        This class is NOT thread-safe. If concurrent access is required,
        protect all method calls with external synchronization and snapshot
        the invalidated set under the same lock before dispatching.

    Example:
        >>> dag = Dag()
        >>> dag.add("A", "a")
        >>> dag.add("B", "b")
        >>> edge = dag.add_edge("A", "B")  # stored on A, pointing at B
        >>> dag.update("A", "a2")
        >>> seen = []
        >>> dag.dispatch(lambda node: seen.append(node.key)).visits
        2
        >>> seen
        ['A', 'B']
    """

    def __init__(self, config: GraphConfig | None = None):
        """Initialize an empty graph.

        Args:
            config: Behavioral settings; defaults to GraphConfig()
        """
        self.config = config or GraphConfig()
        self.nodes: dict[str, Node] = {}
        self._invalidated: set[str] = set()
        # Keys updated while a dispatch is walking; None outside dispatch
        self._pending: set[str] | None = None

        logger.debug(
            "dag_initialized",
            dangling_edges=self.config.dangling_edges.value,
            clear_after_dispatch=self.config.clear_after_dispatch,
        )

    def __contains__(self, key: object) -> bool:
        return key in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def keys(self) -> Iterator[str]:
        return iter(self.nodes)

    @property
    def invalidated(self) -> frozenset[str]:
        """Keys marked invalidated since the last dispatch."""
        return frozenset(self._invalidated)

    @property
    def is_dirty(self) -> bool:
        return bool(self._invalidated)

    def add(self, key: str, data: Any) -> None:
        """Insert a new node, replacing any node already stored under ``key``.

        Edges that targeted a replaced node keep pointing at the old node
        and dangle once it is gone; they never pick up the new one.

        Args:
            key: Node key
            data: Payload to store
        """
        replaced = key in self.nodes
        self.nodes[key] = Node(key, data)

        logger.debug("node_added", key=key, data=repr(data), replaced=replaced)

    def update(self, key: str, data: Any) -> None:
        """Replace a node's payload in place and mark it invalidated.

        Identity, key and edges of the node are preserved, so incoming
        edges stay valid. Unknown keys are ignored.

        Args:
            key: Node key
            data: New payload
        """
        node = self.nodes.get(key)
        if node is None:
            logger.debug("update_ignored_missing_node", key=key)
            return

        node.data = data
        self._invalidated.add(key)
        if self._pending is not None:
            self._pending.add(key)

        logger.debug(
            "node_updated",
            key=key,
            data=repr(data),
            invalidated_count=len(self._invalidated),
        )

    def remove(self, key: str) -> bool:
        """Remove a node from the graph.

        The invalidated set is left alone and edges elsewhere that target
        the node are not repaired.

        Args:
            key: Node key

        Returns:
            True if a node was removed, False if the key was absent
        """
        removed = self.nodes.pop(key, None) is not None

        logger.debug("node_removed", key=key, found=removed)

        return removed

    def get(self, key: str) -> Node | None:
        """Return a handle to the node under ``key``, or None if absent."""
        return self.nodes.get(key)

    def _require(self, key: str, purpose: str) -> Node:
        node = self.nodes.get(key)
        if node is None:
            msg = f"Cannot find node '{key}' {purpose}"
            logger.error("node_not_found", key=key, purpose=purpose)
            raise NodeNotFoundError(msg, key)
        return node

    def add_edge(self, to_key: str, from_key: str) -> Edge:
        """Attach a weight-1 edge to node ``to_key`` that targets node ``from_key``.

        The edge lives in ``to_key``'s edge list, so dispatch propagates
        from ``to_key`` to ``from_key``.

        Args:
            to_key: Key of the node that stores the edge
            from_key: Key of the node the edge points at

        Returns:
            The newly created edge

        Raises:
            NodeNotFoundError: If either key is absent
        """
        to_node = self._require(to_key, "to add edge to")
        from_node = self._require(from_key, "to add edge from")

        edge = to_node.add_edge(from_node)

        logger.debug("edge_added", to_key=to_key, from_key=from_key, weight=edge.weight)

        return edge

    def get_edge_weight(self, to_key: str, from_key: str) -> int:
        """Look up the weight of the edge on ``from_key`` whose target is ``to_key``.

        Note that this searches ``from_key``'s edges while ``add_edge``
        stores edges on ``to_key``, so an edge created by
        ``add_edge(x, y)`` is found by ``get_edge_weight(y, x)``.

        Args:
            to_key: Key the edge target must carry
            from_key: Key of the node whose edges are searched

        Returns:
            The edge weight, or NO_EDGE (-1) if no such edge exists

        Raises:
            NodeNotFoundError: If ``from_key`` is absent
            DanglingEdgeError: If a scanned edge target was removed and the
                dangling edge policy is RAISE
        """
        from_node = self._require(from_key, "to read edge weight from")

        for edge in from_node.edges:
            target = self._resolve(from_node, edge)
            if target is not None and target.key == to_key:
                return edge.weight

        return NO_EDGE

    def _resolve(
        self,
        holder: Node,
        edge: Edge,
        report: DispatchReport | None = None,
    ) -> Node | None:
        target = edge.resolve()
        if target is not None:
            return target

        if self.config.dangling_edges is DanglingEdgePolicy.RAISE:
            logger.error(
                "dangling_edge_encountered",
                holder_key=holder.key,
                target_key=edge.target_key,
            )
            raise DanglingEdgeError(holder.key, edge.target_key)

        logger.warning(
            "dangling_edge_skipped",
            holder_key=holder.key,
            target_key=edge.target_key,
        )
        if report is not None:
            report.dangling_edges.append((holder.key, edge.target_key))
        return None

    def traverse(
        self,
        node: Node,
        visited: set[str],
        callback: DispatchCallback,
        report: DispatchReport | None = None,
    ) -> None:
        """Walk depth-first, pre-order from ``node``, calling back once per key.

        Nodes whose key is already in ``visited`` are not called back again,
        which stops the walk on diamonds and cycles alike. The walk uses an
        explicit stack of edges, so each target is resolved at the same
        point a recursive walk would resolve it.

        Args:
            node: Start node
            visited: Keys already visited in this walk; updated in place
            callback: Invoked with each newly visited node
            report: Collects visit counts and skipped dangling edges

        Raises:
            DanglingEdgeError: If a reachable edge target was removed and the
                dangling edge policy is RAISE
        """
        if node.key in visited:
            return

        stack: list[tuple[Node, Edge]] = []

        def visit(current: Node) -> None:
            visited.add(current.key)
            callback(current)
            if report is not None:
                report.visits += 1
            stack.extend((current, edge) for edge in reversed(current.edges))

        visit(node)
        while stack:
            holder, edge = stack.pop()
            target = self._resolve(holder, edge, report)
            if target is None or target.key in visited:
                continue
            visit(target)

    def dispatch(self, callback: DispatchCallback) -> DispatchReport:
        """Propagate invalidation from every invalidated node.

        Each invalidated key gets its own walk with a fresh visited set, so
        a node reachable from two roots is called back once per root.
        Keys whose node was removed after being invalidated are skipped.
        Processed keys are cleared afterwards unless the config says
        otherwise; keys a callback updates during the walk, roots included,
        stay invalidated for the next dispatch. If a walk raises, the
        invalidated set is left untouched.

        Args:
            callback: Side-effecting function called with each visited node;
                it must not add, remove or rewire nodes

        Returns:
            DispatchReport describing the sweep

        Raises:
            DanglingEdgeError: If a reachable edge target was removed and the
                dangling edge policy is RAISE
        """
        roots = list(self._invalidated)
        report = DispatchReport()

        logger.info("dispatching_invalidated_nodes", root_count=len(roots))

        self._pending = set()
        try:
            for key in roots:
                node = self.nodes.get(key)
                if node is None:
                    logger.debug("dispatch_root_missing", key=key)
                    report.skipped_roots.append(key)
                    continue

                report.roots.append(key)
                self.traverse(node, set(), callback, report)

            if self.config.clear_after_dispatch:
                self._invalidated = self._pending
        finally:
            self._pending = None

        logger.info(
            "dispatch_complete",
            roots=len(report.roots),
            skipped_roots=len(report.skipped_roots),
            visits=report.visits,
            dangling_edges=len(report.dangling_edges),
        )

        return report

    def get_stats(self) -> dict[str, int]:
        """Get statistics about the current graph state.

        Returns:
            Dictionary with graph statistics including:
                - total_nodes: Number of nodes in the graph
                - total_edges: Number of edges across all nodes
                - dangling_edges: Edges whose target is gone
                - invalidated: Number of invalidated keys
        """
        edges = [edge for node in self.nodes.values() for edge in node.edges]
        stats = {
            "total_nodes": len(self.nodes),
            "total_edges": len(edges),
            "dangling_edges": sum(1 for edge in edges if edge.is_dangling),
            "invalidated": len(self._invalidated),
        }

        logger.debug("graph_stats_retrieved", **stats)

        return stats
