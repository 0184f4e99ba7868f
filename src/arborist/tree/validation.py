"""Structural audit of a node set: orphans and cycles.

The store's foreign key and the move checks keep a healthy forest free of
both problems, so this audit only finds damage caused by out-of-band
writes or bugs. Problems are reported as data in a ValidationReport; the
audit itself never raises for a bad tree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from arborist.observability.logging import get_logger
from arborist.tree.store import DictNodeStore
from arborist.tree.traversal import DEFAULT_MAX_DEPTH, TreeTraversal

if TYPE_CHECKING:
    from collections.abc import Iterable

    from arborist.tree.models import Node
    from arborist.tree.store import NodeStore

log = get_logger(__name__)

IssueType = Literal["orphaned_node", "circular_reference", "traversal_error"]


@dataclass
class ValidationIssue:
    """A single structural problem.

    Attributes:
        type: Which invariant is broken.
        node_id: The offending node.
        message: Human-readable description.
        parent_id: The node's parent pointer at audit time.
    """

    type: IssueType
    node_id: int
    message: str
    parent_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "nodeId": self.node_id,
            "parentId": self.parent_id,
            "message": self.message,
        }


@dataclass
class ValidationReport:
    """Aggregated result of a structural audit.

    Attributes:
        issues: Every problem found, in node order.
        total_nodes: Size of the audited node set.
        root_nodes: Nodes in the set without a parent.
    """

    issues: list[ValidationIssue] = field(default_factory=list)
    total_nodes: int = 0
    root_nodes: int = 0

    @property
    def is_valid(self) -> bool:
        """True if no issue was found."""
        return not self.issues

    def issues_of_type(self, issue_type: IssueType) -> list[ValidationIssue]:
        return [i for i in self.issues if i.type == issue_type]

    @property
    def summary(self) -> str:
        """Human-readable one-line summary."""
        if self.is_valid:
            return f"valid: {self.total_nodes} nodes, {self.root_nodes} roots"
        counts: dict[str, int] = {}
        for issue in self.issues:
            counts[issue.type] = counts.get(issue.type, 0) + 1
        parts = [f"{count} {kind}" for kind, count in sorted(counts.items())]
        return "invalid: " + ", ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "issues": [issue.to_dict() for issue in self.issues],
            "totalNodes": self.total_nodes,
            "rootNodes": self.root_nodes,
        }


def validate_tree_structure(
    store: NodeStore,
    nodes: Iterable[Node] | None = None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> ValidationReport:
    """Audit a node set for orphans and cycles.

    Args:
        store: Store to load from when *nodes* is omitted.
        nodes: Node set to audit. When given, parents and ancestors are
            resolved within this set only, so a parent outside the set
            counts as missing.
        max_depth: Passed to the traversal; the cycle check itself is not
            bounded by it, so cycles longer than *max_depth* are found too.

    Returns:
        Report listing every orphaned node, every node on a cycle, and any
        node whose ancestors couldn't be computed.
    """
    if nodes is None:
        node_list = store.list_all()
        source: NodeStore = store
    else:
        node_list = list(nodes)
        source = DictNodeStore.from_nodes(node_list)

    by_id = {node.id: node for node in node_list}
    traversal = TreeTraversal(source, max_depth=max_depth)
    report = ValidationReport(
        total_nodes=len(node_list),
        root_nodes=sum(1 for node in node_list if node.parent_id is None),
    )

    for node in node_list:
        if node.parent_id is not None and node.parent_id not in by_id:
            report.issues.append(
                ValidationIssue(
                    type="orphaned_node",
                    node_id=node.id,
                    parent_id=node.parent_id,
                    message=(
                        f"Node {node.id} ({node.label!r}) references "
                        f"non-existent parent {node.parent_id}"
                    ),
                )
            )

    for node in node_list:
        if node.parent_id is None:
            continue
        try:
            on_cycle = traversal.is_on_cycle(node.id)
        except Exception as e:  # reported, not raised
            report.issues.append(
                ValidationIssue(
                    type="traversal_error",
                    node_id=node.id,
                    parent_id=node.parent_id,
                    message=f"Failed to compute ancestors of node {node.id}: {e}",
                )
            )
            continue
        if on_cycle:
            report.issues.append(
                ValidationIssue(
                    type="circular_reference",
                    node_id=node.id,
                    parent_id=node.parent_id,
                    message=f"Node {node.id} ({node.label!r}) is its own ancestor",
                )
            )

    if report.is_valid:
        log.debug("tree_structure_valid", total_nodes=report.total_nodes)
    else:
        log.warning("tree_structure_invalid", summary=report.summary)
    return report
