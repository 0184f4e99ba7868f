"""Build nested trees from flat parent-pointer rows.

Pure functions: no store access, no side effects, never raise on odd
input. Rows that can't be attached to the requested root are dropped;
reporting them is the validator's job.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arborist.tree.models import TreeNode

if TYPE_CHECKING:
    from collections.abc import Iterable

    from arborist.tree.models import Node


def build_hierarchy(
    nodes: Iterable[Node] | None,
    root_parent_id: int | None = None,
) -> list[TreeNode]:
    """Build a forest of nested nodes from a flat node list.

    Nodes whose ``parent_id`` equals *root_parent_id* become top-level trees
    (in input order). Nodes whose parent is in the input become children of
    that parent. Anything else is unreachable from the requested root and is
    silently dropped.

    Args:
        nodes: Flat node rows; need not be the whole store.
        root_parent_id: Parent id treated as "top level". ``None`` builds the
            full forest of real roots.

    Returns:
        Top-level trees, every ``children`` list sorted by ascending id.
    """
    if not nodes:
        return []

    rows = list(nodes)
    by_id: dict[int, TreeNode] = {
        node.id: TreeNode(id=node.id, label=node.label) for node in rows
    }

    trees: list[TreeNode] = []
    for node in rows:
        tree_node = by_id[node.id]
        if node.parent_id == root_parent_id:
            trees.append(tree_node)
        elif node.parent_id is not None and node.parent_id in by_id:
            by_id[node.parent_id].children.append(tree_node)

    sort_children(trees)
    return trees


def build_subtree(nodes: Iterable[Node] | None, anchor_id: int) -> TreeNode | None:
    """Build the single tree rooted at *anchor_id*.

    The anchor node itself is the root of the result, whatever its own
    parent is. Only nodes reachable from the anchor are attached.

    Args:
        nodes: Flat rows containing the anchor and (some of) its descendants.
        anchor_id: Id of the node to root the tree at.

    Returns:
        The anchored tree, or None if the anchor is not among *nodes*.
    """
    if not nodes:
        return None

    rows = list(nodes)
    by_id: dict[int, TreeNode] = {
        node.id: TreeNode(id=node.id, label=node.label) for node in rows
    }
    anchor = by_id.get(anchor_id)
    if anchor is None:
        return None

    for node in rows:
        if node.id == anchor_id:
            continue
        if node.parent_id is not None and node.parent_id in by_id:
            by_id[node.parent_id].children.append(by_id[node.id])

    sort_children([anchor])
    return anchor


def sort_children(trees: list[TreeNode]) -> None:
    """Sort every ``children`` list under *trees* by id, in place."""
    stack = list(trees)
    seen: set[int] = set()
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        current.children.sort(key=lambda child: child.id)
        stack.extend(current.children)


def count_nodes(tree: TreeNode) -> int:
    """Count nodes in *tree*, including the tree's own root."""
    count = 0
    stack = [tree]
    while stack:
        current = stack.pop()
        count += 1
        stack.extend(current.children)
    return count
