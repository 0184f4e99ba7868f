"""Tree service: the operations a front end calls.

TreeService wraps a NodeStore and exposes the whole engine: node creation
with input validation, forest and subtree views, paths, statistics,
structural audits, relocation, relabelling and cascading deletes.

The service holds no cached tree state; every call re-reads the store, so
one instance can be shared by any number of callers as long as the store
serializes conflicting writes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from arborist.observability.logging import get_logger
from arborist.tree.errors import (
    InvalidLabelError,
    InvalidNodeInputError,
    InvalidParentIdError,
    NodeNotFoundError,
    ParentNotFoundError,
    RelocationError,
)
from arborist.tree.hierarchy import build_hierarchy, build_subtree, count_nodes
from arborist.tree.models import (
    DatabaseStats,
    DepthBucket,
    DetailedStats,
    LabelUpdate,
    Node,
    NodePath,
    NodeSpec,
    RootSummary,
    ServiceStats,
    SubtreeSize,
    TreeNode,
    TreeStats,
    TreeStructure,
)
from arborist.tree.relocation import move_node_and_subtree
from arborist.tree.traversal import DEFAULT_MAX_DEPTH, TreeTraversal
from arborist.tree.validation import ValidationReport, validate_tree_structure

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from arborist.tree.store import NodeStore

log = get_logger(__name__)

MAX_LABEL_LENGTH = 255

# Sample forest used by ``seed_sample_data``: (label, index of parent in this list)
SAMPLE_FOREST: list[tuple[str, int | None]] = [
    ("root", None),
    ("bear", 0),
    ("cat", 1),
    ("frog", 0),
]


def validate_label(label: object) -> str:
    """Check a node label and return it unchanged.

    Raises:
        InvalidLabelError: If the label is missing, not a string, blank, or
            longer than 255 characters.
    """
    if label is None:
        raise InvalidLabelError("Label is required")
    if not isinstance(label, str):
        raise InvalidLabelError("Label must be a string")
    if not label.strip():
        raise InvalidLabelError("Label cannot be empty or just whitespace")
    if len(label) > MAX_LABEL_LENGTH:
        raise InvalidLabelError(f"Label cannot be longer than {MAX_LABEL_LENGTH} characters")
    return label


def validate_parent_id(parent_id: object) -> int | None:
    """Check a parent id: ``None`` or a positive integer.

    Raises:
        InvalidParentIdError: For anything else (bools included).
    """
    if parent_id is None:
        return None
    if isinstance(parent_id, bool) or not isinstance(parent_id, int) or parent_id <= 0:
        raise InvalidParentIdError(parent_id)
    return parent_id


def validate_node_input(label: object, parent_id: object) -> tuple[str, int | None]:
    """Validate both creation inputs; label first."""
    return validate_label(label), validate_parent_id(parent_id)


def _spec_fields(spec: NodeSpec | dict[str, Any]) -> tuple[object, object]:
    """Pull (label, parent_id) out of a NodeSpec or a raw request dict."""
    if isinstance(spec, NodeSpec):
        return spec.label, spec.parent_id
    parent_id = spec["parentId"] if "parentId" in spec else spec.get("parent_id")
    return spec.get("label"), parent_id


class TreeService:
    """Adjacency-list forest operations over a NodeStore.

    Attributes:
        store: The underlying storage backend.
        traversal: Read-only queries bound to the same store.
    """

    def __init__(self, store: NodeStore, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.store = store
        self.max_depth = max_depth
        self.traversal = TreeTraversal(store, max_depth=max_depth)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the underlying store."""
        self.store.close()

    def __enter__(self) -> TreeService:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_node(self, label: object, parent_id: object = None) -> TreeNode:
        """Create a node and attach it to *parent_id* (``None`` for a root).

        Input is validated before the store is touched; the parent is
        checked before any row is written.

        Returns:
            The new node, with an empty children list.

        Raises:
            InvalidLabelError: Bad label.
            InvalidParentIdError: Parent id isn't a positive integer.
            ParentNotFoundError: Parent doesn't exist.
        """
        clean_label, clean_parent = validate_node_input(label, parent_id)
        if clean_parent is not None and not self.store.exists_by_id(clean_parent):
            raise ParentNotFoundError(clean_parent)

        node_id = self.store.insert(clean_label, clean_parent)
        log.info("node_created", node_id=node_id, parent_id=clean_parent)
        return TreeNode(id=node_id, label=clean_label)

    def create_nodes(self, specs: Iterable[NodeSpec | dict[str, Any]]) -> list[Node]:
        """Create several nodes atomically.

        Every spec is validated before the transaction starts. Parents are
        checked inside the transaction, so a spec may name a parent created
        earlier in the same batch only by its real id. If any insert fails,
        none of the batch is kept.

        Returns:
            The created rows, in input order.
        """
        checked = [validate_node_input(*_spec_fields(spec)) for spec in specs]

        created: list[Node] = []
        with self.store.transaction():
            for label, parent_id in checked:
                node_id = self.store.insert(label, parent_id)
                node = self.store.get_by_id(node_id)
                if node is None:
                    raise NodeNotFoundError(node_id, context="bulk create")
                created.append(node)
        log.info("nodes_created", count=len(created))
        return created

    def seed_sample_data(self) -> bool:
        """Populate an empty store with the sample forest.

        Returns:
            True if seeded, False if the store already had nodes.
        """
        if self.store.node_count() > 0:
            log.info("seed_skipped", reason="store not empty")
            return False

        ids: list[int] = []
        with self.store.transaction():
            for label, parent_index in SAMPLE_FOREST:
                parent_id = ids[parent_index] if parent_index is not None else None
                ids.append(self.store.insert(label, parent_id))
        log.info("sample_data_seeded", node_ids=ids)
        return True

    # -------------------------------------------------------------------------
    # Hierarchy views
    # -------------------------------------------------------------------------

    def list_all_trees(self) -> list[TreeNode]:
        """Return every tree in the store, nested."""
        return build_hierarchy(self.store.list_all())

    def get_tree(self, node_id: int) -> TreeNode:
        """Return the tree rooted at *node_id*.

        Any node can anchor the view, not just real roots: the result is
        that node with its full subtree.

        Raises:
            NodeNotFoundError: If the node doesn't exist.
        """
        node = self.store.get_by_id(node_id)
        if node is None:
            raise NodeNotFoundError(node_id, context="get_tree")
        descendants = self.traversal.get_all_descendants(node_id)
        tree = build_subtree([node, *descendants], node_id)
        if tree is None:
            raise NodeNotFoundError(node_id, context="get_tree")
        return tree

    def get_path(self, node_id: int) -> NodePath:
        """Return the root-first path to *node_id*.

        Raises:
            NodeNotFoundError: If the node doesn't exist.
        """
        path = self.traversal.get_path_to_node(node_id)
        if not path:
            raise NodeNotFoundError(node_id, context="get_path")
        return NodePath(node_id=node_id, path=path, depth=len(path))

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_stats(self) -> ServiceStats:
        """Return node and tree counts for the whole store."""
        roots = self.store.list_roots()
        all_nodes = self.store.list_all()
        trees = build_hierarchy(all_nodes)

        return ServiceStats(
            database=DatabaseStats(
                total_nodes=self.store.node_count(),
                root_nodes=len(roots),
                roots=[RootSummary(id=r.id, label=r.label) for r in roots],
            ),
            trees=TreeStats(
                count=len(trees),
                total_nodes=len(all_nodes),
                structures=[
                    TreeStructure(
                        root_id=tree.id,
                        root_label=tree.label,
                        node_count=count_nodes(tree),
                    )
                    for tree in trees
                ],
            ),
        )

    def get_detailed_stats(self) -> DetailedStats:
        """Return depth distribution and per-root subtree sizes.

        Computes each node's depth with its own ancestor walk, so this is
        O(n * depth) store lookups.
        """
        all_nodes = self.store.list_all()
        roots = self.store.list_roots()

        depth_counts: dict[int, int] = {}
        for node in all_nodes:
            depth = self.traversal.get_node_depth(node.id)
            depth_counts[depth] = depth_counts.get(depth, 0) + 1

        subtree_sizes = [
            SubtreeSize(
                root_id=root.id,
                root_label=root.label,
                size=self.traversal.get_subtree_size(root.id),
            )
            for root in roots
        ]
        average = (
            sum(s.size for s in subtree_sizes) / len(subtree_sizes) if subtree_sizes else 0.0
        )

        return DetailedStats(
            total_nodes=len(all_nodes),
            total_trees=len(roots),
            max_depth=max(depth_counts, default=0),
            depth_distribution=[
                DepthBucket(depth=depth, count=count)
                for depth, count in sorted(depth_counts.items())
            ],
            subtree_sizes=subtree_sizes,
            average_subtree_size=average,
        )

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(
        self,
        node_id: int | None = None,
        nodes: Iterable[Node] | None = None,
    ) -> ValidationReport:
        """Audit the store, one subtree, or a caller-supplied node set.

        Args:
            node_id: If set, audit only this node and its descendants.
            nodes: Explicit node set to audit. Takes precedence over
                *node_id*.

        Raises:
            NodeNotFoundError: If *node_id* is given and doesn't exist.
        """
        if nodes is not None:
            return validate_tree_structure(self.store, nodes, max_depth=self.max_depth)
        if node_id is None:
            return validate_tree_structure(self.store, max_depth=self.max_depth)

        node = self.store.get_by_id(node_id)
        if node is None:
            raise NodeNotFoundError(node_id, context="validate")
        # The subtree root's own parent lies outside the set; audit it as a root.
        anchor = node.model_copy(update={"parent_id": None})
        subtree = [anchor, *self.traversal.get_all_descendants(node_id)]
        return validate_tree_structure(self.store, subtree, max_depth=self.max_depth)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def move_node(self, source_id: int, new_parent_id: int | None) -> Node:
        """Move a node and its subtree under *new_parent_id*.

        Raises:
            RelocationError: One of the typed precondition failures; the
                store is left unchanged.
        """
        try:
            return move_node_and_subtree(
                self.store, source_id, new_parent_id, max_depth=self.max_depth
            )
        except RelocationError as e:
            log.warning("move_rejected", node_id=source_id, target=new_parent_id, reason=e.code)
            raise

    def update_label(self, node_id: int, label: object) -> Node:
        """Relabel one node.

        Raises:
            InvalidLabelError: Bad label.
            NodeNotFoundError: Node doesn't exist.
        """
        clean = validate_label(label)
        if not self.store.update_label(node_id, clean):
            raise NodeNotFoundError(node_id, context="update_label")
        node = self.store.get_by_id(node_id)
        if node is None:
            raise NodeNotFoundError(node_id, context="update_label")
        log.info("node_relabelled", node_id=node_id)
        return node

    def update_labels(self, updates: Iterable[LabelUpdate | dict[str, Any]]) -> list[Node]:
        """Relabel several nodes atomically; all or nothing."""
        checked: list[tuple[int, str]] = []
        for update in updates:
            if isinstance(update, LabelUpdate):
                node_id, label = update.id, update.label
            else:
                node_id, label = update.get("id"), update.get("label")
            if isinstance(node_id, bool) or not isinstance(node_id, int):
                raise InvalidNodeInputError(f"Node ID must be an integer, got {node_id!r}")
            checked.append((node_id, validate_label(label)))

        updated: list[Node] = []
        with self.store.transaction():
            for node_id, label in checked:
                if not self.store.update_label(node_id, label):
                    raise NodeNotFoundError(node_id, context="update_labels")
                node = self.store.get_by_id(node_id)
                if node is None:
                    raise NodeNotFoundError(node_id, context="update_labels")
                updated.append(node)
        log.info("nodes_relabelled", count=len(updated))
        return updated

    def delete_node(self, node_id: int) -> int:
        """Delete a node and every descendant in one transaction.

        Returns:
            Number of rows removed.

        Raises:
            NodeNotFoundError: Node doesn't exist.
        """
        with self.store.transaction():
            if not self.store.exists_by_id(node_id):
                raise NodeNotFoundError(node_id, context="delete_node")
            ids = {node_id, *self.traversal.get_descendant_ids(node_id)}
            removed = self.store.delete_by_ids(ids)
        log.info("node_deleted", node_id=node_id, removed=removed)
        return removed

    def __repr__(self) -> str:
        return f"TreeService(store={self.store!r})"
