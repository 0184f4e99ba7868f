"""Adjacency-list tree engine.

Stores nodes as parent-pointer rows and answers hierarchy questions over
them: nested views, ancestor/descendant walks, structural audits, and
subtree relocation.
"""

from arborist.tree.errors import (
    DescendantMoveError,
    InvalidLabelError,
    InvalidNodeInputError,
    InvalidParentIdError,
    NodeNotFoundError,
    NoOpMoveError,
    ParentNotFoundError,
    RelocationError,
    SelfMoveError,
    SourceNotFoundError,
    TargetParentNotFoundError,
    TreeError,
)
from arborist.tree.hierarchy import build_hierarchy, build_subtree, count_nodes
from arborist.tree.models import Node, NodePath, PathEntry, TreeNode
from arborist.tree.relocation import move_node_and_subtree
from arborist.tree.service import TreeService
from arborist.tree.sqlite_store import SqliteNodeStore
from arborist.tree.store import DictNodeStore, NodeStore
from arborist.tree.traversal import TreeTraversal
from arborist.tree.validation import (
    ValidationIssue,
    ValidationReport,
    validate_tree_structure,
)

__all__ = [
    "DescendantMoveError",
    "DictNodeStore",
    "InvalidLabelError",
    "InvalidNodeInputError",
    "InvalidParentIdError",
    "NoOpMoveError",
    "Node",
    "NodeNotFoundError",
    "NodePath",
    "NodeStore",
    "ParentNotFoundError",
    "PathEntry",
    "RelocationError",
    "SelfMoveError",
    "SourceNotFoundError",
    "SqliteNodeStore",
    "TargetParentNotFoundError",
    "TreeError",
    "TreeNode",
    "TreeService",
    "TreeTraversal",
    "ValidationIssue",
    "ValidationReport",
    "build_hierarchy",
    "build_subtree",
    "count_nodes",
    "move_node_and_subtree",
    "validate_tree_structure",
]
