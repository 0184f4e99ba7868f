"""Tree error types.

These errors are raised when a tree operation is rejected: malformed input,
references to nodes that don't exist (the equivalent of a foreign key
violation), and relocations that would break the forest invariants.

Each error carries a stable ``code`` and a short ``title`` so the calling
layer can pick a status and message per case without parsing strings.
Structural problems found by the validator are reported as data, never
raised; see ``arborist.tree.validation``.
"""

from __future__ import annotations

from dataclasses import dataclass


class TreeError(Exception):
    """Base class for rejected tree operations."""

    code = "tree_error"
    title = "Tree error"

    def to_dict(self) -> dict[str, str]:
        """Render as an ``{error, message}`` payload."""
        return {"error": self.title, "message": str(self)}


# -- Input errors --------------------------------------------------------------


class InvalidNodeInputError(TreeError, ValueError):
    """Raised when node input is malformed. Checked before any store access."""

    code = "invalid_input"
    title = "Bad request"


@dataclass
class InvalidLabelError(InvalidNodeInputError):
    """Raised when a label is missing, blank, or too long.

    Attributes:
        reason: Which constraint the label failed.
    """

    reason: str

    code = "invalid_label"

    def __post_init__(self) -> None:
        super().__init__(self.reason)


@dataclass
class InvalidParentIdError(InvalidNodeInputError):
    """Raised when a parent id is not a positive integer.

    Attributes:
        parent_id: The rejected value, as given.
    """

    parent_id: object

    code = "invalid_parent"

    def __post_init__(self) -> None:
        super().__init__(f"Parent ID must be a positive integer or null, got {self.parent_id!r}")


# -- Referential errors --------------------------------------------------------


@dataclass
class NodeNotFoundError(TreeError, LookupError):
    """Raised when referencing a node that doesn't exist.

    Attributes:
        node_id: The ID that was referenced but doesn't exist.
        context: Description of where the reference occurred.
    """

    node_id: int
    context: str = ""

    code = "node_not_found"
    title = "Node not found"

    def __post_init__(self) -> None:
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"Node with ID {self.node_id} does not exist"
        if self.context:
            msg += f" ({self.context})"
        return msg


@dataclass
class ParentNotFoundError(NodeNotFoundError):
    """Raised when creating a node under a parent that doesn't exist."""

    code = "parent_not_found"
    title = "Parent not found"

    def _format_message(self) -> str:
        return f"Parent node with ID {self.node_id} does not exist"


# -- Relocation precondition errors --------------------------------------------


class RelocationError(TreeError):
    """Base class for rejected moves. The store is left unchanged."""

    code = "invalid_move"
    title = "Invalid move"


@dataclass
class SourceNotFoundError(RelocationError, NodeNotFoundError):
    """Raised when the node to move doesn't exist."""

    code = "source_not_found"
    title = "Source node not found"

    def _format_message(self) -> str:
        return f"Source node with ID {self.node_id} does not exist"


@dataclass
class TargetParentNotFoundError(RelocationError, NodeNotFoundError):
    """Raised when the new parent of a move doesn't exist."""

    code = "target_not_found"
    title = "Target parent not found"

    def _format_message(self) -> str:
        return f"Target parent node with ID {self.node_id} does not exist"


@dataclass
class SelfMoveError(RelocationError):
    """Raised when a node is moved under itself."""

    node_id: int

    code = "self_move"

    def __post_init__(self) -> None:
        super().__init__(f"Cannot move node {self.node_id} to be its own child")


@dataclass
class DescendantMoveError(RelocationError):
    """Raised when a node is moved under one of its own descendants.

    Attributes:
        node_id: The node being moved.
        target_id: The descendant that was requested as the new parent.
    """

    node_id: int
    target_id: int

    code = "descendant_move"

    def __post_init__(self) -> None:
        super().__init__(
            f"Cannot move node {self.node_id} to be its own descendant "
            f"(node {self.target_id} is in its subtree)"
        )


@dataclass
class NoOpMoveError(RelocationError):
    """Raised when a node is already a child of the requested parent."""

    node_id: int
    parent_id: int | None

    code = "noop_move"

    def __post_init__(self) -> None:
        if self.parent_id is None:
            msg = f"Node {self.node_id} is already a root node"
        else:
            msg = f"Node {self.node_id} is already a child of the specified parent {self.parent_id}"
        super().__init__(msg)
