"""Move a node, together with its subtree, under a new parent.

Descendants point at their immediate parent, not at the subtree root, so
rewriting the moved node's own ``parent_id`` relocates the whole subtree.
No descendant row is touched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arborist.observability.logging import get_logger
from arborist.tree.errors import (
    DescendantMoveError,
    NoOpMoveError,
    SelfMoveError,
    SourceNotFoundError,
    TargetParentNotFoundError,
)
from arborist.tree.traversal import DEFAULT_MAX_DEPTH, TreeTraversal

if TYPE_CHECKING:
    from arborist.tree.models import Node
    from arborist.tree.store import NodeStore

log = get_logger(__name__)


def move_node_and_subtree(
    store: NodeStore,
    source_id: int,
    new_parent_id: int | None,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Node:
    """Re-parent *source_id* under *new_parent_id* (``None`` makes it a root).

    Preconditions are checked inside the same transaction as the write, in
    this order, each with its own error:

    1. the source exists;
    2. the source is not its own new parent;
    3. the new parent is not in the source's subtree;
    4. the new parent exists;
    5. the new parent differs from the current one.

    Args:
        store: Node store to read and write.
        source_id: Node to move.
        new_parent_id: New parent id, or None to detach as a root.
        max_depth: Depth guard for the traversal helper; the subtree and
            ancestry checks are never truncated by it.

    Returns:
        The moved node as stored after the update.

    Raises:
        SourceNotFoundError: Source doesn't exist.
        SelfMoveError: ``source_id == new_parent_id``.
        DescendantMoveError: New parent is a descendant of the source.
        TargetParentNotFoundError: New parent doesn't exist.
        NoOpMoveError: Source is already a child of the new parent.
    """
    traversal = TreeTraversal(store, max_depth=max_depth)

    with store.transaction():
        source = store.get_by_id(source_id)
        if source is None:
            raise SourceNotFoundError(source_id, context="move")

        if new_parent_id is not None:
            if traversal.is_same_node(source_id, new_parent_id):
                raise SelfMoveError(source_id)
            in_subtree = traversal.is_strict_ancestor(source_id, new_parent_id)
            if in_subtree or new_parent_id in traversal.get_descendant_ids(source_id):
                raise DescendantMoveError(source_id, new_parent_id)
            if not store.exists_by_id(new_parent_id):
                raise TargetParentNotFoundError(new_parent_id, context="move")

        if source.parent_id == new_parent_id:
            raise NoOpMoveError(source_id, new_parent_id)

        store.update_parent(source_id, new_parent_id)
        moved = store.get_by_id(source_id)

    if moved is None:
        raise SourceNotFoundError(source_id, context="move")
    log.info(
        "node_moved",
        node_id=source_id,
        from_parent=source.parent_id,
        to_parent=new_parent_id,
    )
    return moved
