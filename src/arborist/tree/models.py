"""Pydantic models for stored rows and the nested views built from them.

Rows (``Node``) mirror the ``nodes`` table one-to-one. Everything else is a
read model returned by the service layer; field aliases give the camelCase
JSON shape consumers expect (``model_dump(by_alias=True)``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> dict[str, object]:
        """Dump with camelCase aliases, ready for ``json.dumps``."""
        return self.model_dump(by_alias=True, mode="json")


class Node(BaseModel):
    """A single stored node row."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    label: str
    parent_id: int | None = None
    created_at: str | None = None


class TreeNode(_CamelModel):
    """A node with its nested children, as returned by hierarchy queries."""

    id: int
    label: str
    children: list[TreeNode] = Field(default_factory=list)


class PathEntry(_CamelModel):
    """One hop on a root-to-node path."""

    id: int
    label: str


class NodePath(_CamelModel):
    """Root-first path to a node.

    ``depth`` is the number of entries on the path, so a root has depth 1
    here (unlike ``TreeTraversal.get_node_depth``, which counts ancestors).
    """

    node_id: int = Field(alias="nodeId")
    path: list[PathEntry]
    depth: int


class NodeSpec(_CamelModel):
    """Input for bulk node creation."""

    label: str
    parent_id: int | None = Field(default=None, alias="parentId")


class LabelUpdate(_CamelModel):
    """Input for bulk relabelling."""

    id: int
    label: str


# -- Stats ---------------------------------------------------------------------


class RootSummary(_CamelModel):
    id: int
    label: str


class DatabaseStats(_CamelModel):
    total_nodes: int = Field(alias="totalNodes")
    root_nodes: int = Field(alias="rootNodes")
    roots: list[RootSummary] = Field(default_factory=list)


class TreeStructure(_CamelModel):
    root_id: int = Field(alias="rootId")
    root_label: str = Field(alias="rootLabel")
    node_count: int = Field(alias="nodeCount")


class TreeStats(_CamelModel):
    count: int
    total_nodes: int = Field(alias="totalNodes")
    structures: list[TreeStructure] = Field(default_factory=list)


class ServiceStats(_CamelModel):
    """Aggregate counts for the whole store."""

    database: DatabaseStats
    trees: TreeStats


class DepthBucket(_CamelModel):
    depth: int
    count: int


class SubtreeSize(_CamelModel):
    root_id: int = Field(alias="rootId")
    root_label: str = Field(alias="rootLabel")
    size: int


class DetailedStats(_CamelModel):
    """Depth and subtree-size breakdown across all trees.

    ``subtree_sizes`` has one entry per root and counts that root's
    descendants; ``average_subtree_size`` averages those counts.
    """

    total_nodes: int = Field(alias="totalNodes")
    total_trees: int = Field(alias="totalTrees")
    max_depth: int = Field(alias="maxDepth")
    depth_distribution: list[DepthBucket] = Field(
        default_factory=list, alias="depthDistribution"
    )
    subtree_sizes: list[SubtreeSize] = Field(default_factory=list, alias="subtreeSizes")
    average_subtree_size: float = Field(default=0.0, alias="averageSubtreeSize")
