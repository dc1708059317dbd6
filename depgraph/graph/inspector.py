"""Graph inspection with dangling-reference reporting.

This module checks a Dag for the referential problems that make dispatch
fail: edges whose target has been removed and invalidated keys whose node
no longer exists. It also renders the graph for debugging.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from depgraph.graph.dag import Dag

logger = structlog.get_logger(__name__)


@dataclass
class InspectionReport:
    """Report containing inspection results for a Dag.

    Attributes:
        is_healthy: Whether dispatch can walk every edge without failing
        warnings: List of warning messages
        dangling_edges: (holder_key, target_key) pairs whose target is gone
        stale_invalidated: Invalidated keys with no node behind them
    """

    is_healthy: bool = True
    warnings: list[str] = field(default_factory=list)
    dangling_edges: list[tuple[str, str]] = field(default_factory=list)
    stale_invalidated: set[str] = field(default_factory=set)

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)
        logger.warning("inspection_warning", message=message)

    def summary(self) -> str:
        """Generate a human-readable summary of the inspection report."""
        lines = [
            f"Inspection Status: {'HEALTHY' if self.is_healthy else 'DANGLING'}",
            f"Warnings: {len(self.warnings)}",
            f"Dangling Edges: {len(self.dangling_edges)}",
            f"Stale Invalidated Keys: {len(self.stale_invalidated)}",
        ]

        if self.warnings:
            lines.append("\nWarnings:")
            lines.extend(f"  - {warning}" for warning in self.warnings)

        if self.stale_invalidated:
            lines.append(f"\nStale Invalidated: {', '.join(sorted(self.stale_invalidated))}")

        return "\n".join(lines)


class GraphInspector:
    """Inspector for Dag referential integrity.

    Dangling edges make the graph unhealthy because dispatch or
    get_edge_weight will fail on them under the default policy. Stale
    invalidated keys are only a warning; dispatch skips them.
    """

    def inspect(self, dag: "Dag") -> InspectionReport:
        """Inspect a Dag and generate a report.

        Args:
            dag: The Dag to inspect

        Returns:
            InspectionReport containing all findings
        """
        logger.info("starting_graph_inspection", node_count=len(dag))

        report = InspectionReport()

        for key, node in dag.nodes.items():
            report.dangling_edges.extend(
                (key, edge.target_key) for edge in node.edges if edge.is_dangling
            )

        if report.dangling_edges:
            report.is_healthy = False
            for holder, target in report.dangling_edges:
                report.add_warning(f"Edge on '{holder}' targets removed node '{target}'")

        stale = {key for key in dag.invalidated if key not in dag}
        if stale:
            report.stale_invalidated = stale
            report.add_warning(
                f"Invalidated keys with no node: {', '.join(sorted(stale))}",
            )

        logger.info(
            "graph_inspection_complete",
            is_healthy=report.is_healthy,
            dangling_edge_count=len(report.dangling_edges),
            stale_invalidated_count=len(stale),
        )

        return report

    def generate_visualization(self, dag: "Dag", output_format: str = "mermaid") -> str:
        """Generate a visual representation of the graph.

        Edges are drawn from the node holding them to their target, which
        is the direction dispatch propagates. Nodes get index-based ids and
        keep their key as the label, so distinct keys never merge. A
        dangling edge is drawn to its own "<key> (removed)" node, never to
        a live node that has since reused the key.

        Args:
            dag: The Dag to visualize
            output_format: Output format ('mermaid' or 'dot')

        Returns:
            String representation of the graph in the requested format

        Raises:
            ValueError: If an unsupported format is requested
        """
        output_format = output_format.lower().strip()

        keys = sorted(dag.keys())
        node_ids = {key: f"n{index}" for index, key in enumerate(keys)}
        removed: dict[str, str] = {}
        edges = []

        for key in keys:
            for edge in dag.nodes[key].edges:
                target = edge.resolve()
                # A target kept alive outside the graph counts as removed too
                detached = target is None or dag.nodes.get(target.key) is not target
                if detached:
                    target_id = removed.setdefault(edge.target_key, f"r{len(removed)}")
                else:
                    target_id = node_ids[edge.target_key]
                edges.append((node_ids[key], target_id, edge.weight, detached))

        labels = [(node_ids[key], key) for key in keys]
        removed_labels = [(target_id, f"{key} (removed)") for key, target_id in removed.items()]

        if output_format == "mermaid":
            return self._generate_mermaid(labels, removed_labels, edges)
        if output_format == "dot":
            return self._generate_graphviz(labels, removed_labels, edges)
        error_msg = f"Unsupported format: {output_format}. Use 'mermaid' or 'dot'."
        raise ValueError(error_msg)

    def _generate_mermaid(
        self,
        labels: list[tuple[str, str]],
        removed_labels: list[tuple[str, str]],
        edges: list[tuple[str, str, int, bool]],
    ) -> str:
        lines = ["graph TD"]

        if not labels:
            lines.append("    Empty[Empty Graph]")
            return "\n".join(lines)

        def quote(label: str) -> str:
            return '"' + label.replace('"', "#quot;") + '"'

        lines.extend(f"    {node_id}[{quote(label)}]" for node_id, label in labels)
        lines.extend(f"    {node_id}[{quote(label)}]" for node_id, label in removed_labels)

        for holder, target, weight, dangling in edges:
            arrow = "-.->" if dangling else "-->"
            lines.append(f"    {holder} {arrow}|{weight}| {target}")

        return "\n".join(lines)

    def _generate_graphviz(
        self,
        labels: list[tuple[str, str]],
        removed_labels: list[tuple[str, str]],
        edges: list[tuple[str, str, int, bool]],
    ) -> str:
        def escape_dot_string(s: str) -> str:
            """Escape backslashes and double quotes for DOT format."""
            return s.replace("\\", "\\\\").replace('"', '\\"')

        lines = ["digraph Dag {"]
        lines.append("    rankdir=LR;")
        lines.append("    node [shape=box, style=rounded];")

        if not labels:
            lines.append('    Empty [label="Empty Graph"];')
        else:
            lines.extend(
                f'    {node_id} [label="{escape_dot_string(label)}"];' for node_id, label in labels
            )
            lines.extend(
                f'    {node_id} [label="{escape_dot_string(label)}", style=dashed];'
                for node_id, label in removed_labels
            )

            for holder, target, weight, dangling in edges:
                style = ", style=dotted" if dangling else ""
                lines.append(f'    {holder} -> {target} [label="{weight}"{style}];')

        lines.append("}")
        return "\n".join(lines)
