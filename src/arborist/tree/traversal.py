"""Ancestor, descendant, depth and path queries over parent pointers.

Every query walks ``parent_id`` links one store lookup at a time; no
depth or closure index is kept. All walks are iterative.

The ancestor listings (and the depth and path queries built on them) stop
after ``max_depth`` hops. Descendant walks, ancestry predicates and cycle
checks are never truncated; they end on cyclic data because each node is
visited at most once, so a deep but healthy tree always gets a complete
answer from them.

Unknown node ids are treated as having no relationships: the queries
return empty results rather than raising.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arborist.observability.logging import get_logger
from arborist.tree.models import Node, PathEntry

if TYPE_CHECKING:
    from collections.abc import Iterator

    from arborist.tree.store import NodeStore

log = get_logger(__name__)

DEFAULT_MAX_DEPTH = 1000


class TreeTraversal:
    """Read-only tree queries against a NodeStore.

    Holds no state besides the store reference and the depth guard, so one
    instance can serve any number of calls.
    """

    def __init__(self, store: NodeStore, *, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if max_depth <= 0:
            raise ValueError(f"max_depth must be positive, got {max_depth}")
        self._store = store
        self.max_depth = max_depth

    # -------------------------------------------------------------------------
    # Ancestors
    # -------------------------------------------------------------------------

    def get_ancestors(self, node_id: int) -> list[Node]:
        """Return the ancestor chain, nearest parent first.

        The node itself is excluded. Roots and unknown ids yield ``[]``. The
        walk stops at a dangling parent pointer or after ``max_depth`` hops.
        """
        node = self._store.get_by_id(node_id)
        if node is None:
            return []

        ancestors: list[Node] = []
        parent_id = node.parent_id
        while parent_id is not None and len(ancestors) < self.max_depth:
            parent = self._store.get_by_id(parent_id)
            if parent is None:
                break
            ancestors.append(parent)
            parent_id = parent.parent_id

        if parent_id is not None and len(ancestors) >= self.max_depth:
            log.warning("ancestor_walk_truncated", node_id=node_id, max_depth=self.max_depth)
        return ancestors

    def get_ancestor_ids(self, node_id: int) -> list[int]:
        """Return ancestor ids, nearest parent first.

        Follows the same bounded walk as :meth:`get_ancestors` but only
        collects ids. On cyclic data the node's own id shows up in the
        result.
        """
        node = self._store.get_by_id(node_id)
        if node is None:
            return []

        ids: list[int] = []
        parent_id = node.parent_id
        while parent_id is not None and len(ids) < self.max_depth:
            parent = self._store.get_by_id(parent_id)
            if parent is None:
                break
            ids.append(parent.id)
            parent_id = parent.parent_id
        return ids

    def iter_ancestor_ids(self, node_id: int) -> Iterator[int]:
        """Yield ancestor ids lazily, nearest parent first.

        Unlike :meth:`get_ancestor_ids` this walk has no hop limit. It stops
        at a root, at a dangling parent pointer, or right after yielding an id
        it has already yielded, so it ends on cyclic data too.
        """
        node = self._store.get_by_id(node_id)
        if node is None:
            return

        seen: set[int] = set()
        parent_id = node.parent_id
        while parent_id is not None:
            parent = self._store.get_by_id(parent_id)
            if parent is None:
                return
            yield parent.id
            if parent.id in seen:
                return
            seen.add(parent.id)
            parent_id = parent.parent_id

    # -------------------------------------------------------------------------
    # Ancestry predicates
    # -------------------------------------------------------------------------

    @staticmethod
    def is_same_node(a: int, b: int) -> bool:
        """True if *a* and *b* name the same node."""
        return a == b

    def is_strict_ancestor(self, a: int, b: int) -> bool:
        """True if *a* appears on *b*'s ancestor chain (``a != b``)."""
        if a == b:
            return False
        return any(ancestor_id == a for ancestor_id in self.iter_ancestor_ids(b))

    def is_ancestor(self, a: int, b: int) -> bool:
        """True if *a* is *b* or one of *b*'s ancestors (self counts)."""
        return self.is_same_node(a, b) or self.is_strict_ancestor(a, b)

    def is_on_cycle(self, node_id: int) -> bool:
        """True if following parent pointers from *node_id* leads back to it."""
        return any(ancestor_id == node_id for ancestor_id in self.iter_ancestor_ids(node_id))

    # -------------------------------------------------------------------------
    # Depth and paths
    # -------------------------------------------------------------------------

    def get_node_depth(self, node_id: int) -> int:
        """Number of ancestors; roots have depth 0."""
        return len(self.get_ancestors(node_id))

    def get_path_to_node(self, node_id: int) -> list[PathEntry]:
        """Root-first path ending with the node itself.

        Returns ``[]`` when the node doesn't exist, which callers treat as
        "not found".
        """
        node = self._store.get_by_id(node_id)
        if node is None:
            return []
        chain = [node, *self.get_ancestors(node_id)]
        return [PathEntry(id=n.id, label=n.label) for n in reversed(chain)]

    def get_nodes_at_depth(self, depth: int) -> list[Node]:
        """Return every node at exactly *depth*.

        Depth 0 reads the roots directly. Deeper levels compute the depth of
        every node in the store, O(n * depth); fine at the scale this store
        targets, but an explicit depth column would be needed beyond that.
        """
        if depth < 0:
            return []
        if depth == 0:
            return self._store.list_roots()
        nodes = [n for n in self._store.list_all() if n.parent_id is not None]
        return sorted(
            (n for n in nodes if self.get_node_depth(n.id) == depth),
            key=lambda n: n.id,
        )

    # -------------------------------------------------------------------------
    # Descendants
    # -------------------------------------------------------------------------

    def get_all_descendants(self, node_id: int) -> list[Node]:
        """Return every descendant of *node_id*, excluding the node.

        Pre-order: each child (ascending id) is followed by its own
        descendants. Uses one ``list_children`` lookup per visited node.
        Never truncated by ``max_depth``; callers get the complete set.
        """
        descendants: list[Node] = []
        visited: set[int] = {node_id}
        # Children pushed in reverse so the lowest id is expanded first.
        stack: list[Node] = list(reversed(self._store.list_children(node_id)))
        while stack:
            current = stack.pop()
            if current.id in visited:
                log.warning("descendant_cycle_detected", node_id=node_id, at=current.id)
                continue
            visited.add(current.id)
            descendants.append(current)
            stack.extend(reversed(self._store.list_children(current.id)))
        return descendants

    def get_descendant_ids(self, node_id: int) -> set[int]:
        """Ids of every descendant of *node_id*."""
        return {n.id for n in self.get_all_descendants(node_id)}

    def get_subtree_size(self, node_id: int) -> int:
        """Number of descendants, excluding the node itself."""
        return len(self.get_all_descendants(node_id))
