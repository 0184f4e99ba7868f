"""Node storage backend protocol and dict-based implementation.

The NodeStore protocol defines the low-level row operations the tree engine
delegates to. Implementations handle raw CRUD plus transactions; the engine
(traversal, relocation, validation, ``TreeService``) provides input
validation, error messages, and tree logic on top.

DictNodeStore is an in-memory backend used for auditing detached node sets
and in tests. SqliteNodeStore provides durable SQLite-backed storage.
"""

from __future__ import annotations

import copy
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from arborist.tree.errors import ParentNotFoundError
from arborist.tree.models import Node

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from contextlib import AbstractContextManager


@runtime_checkable
class NodeStore(Protocol):
    """Storage backend protocol for the tree engine.

    Implementations own the persisted rows. The only domain error a store
    raises is ParentNotFoundError from :meth:`insert`; everything else
    (connection loss, constraint violations) propagates as the backend's
    own exception type.
    """

    # -- Reads -----------------------------------------------------------------

    def get_by_id(self, node_id: int) -> Node | None:
        """Get a node by ID, or None if not found."""
        ...

    def exists_by_id(self, node_id: int) -> bool:
        """Check whether a node exists."""
        ...

    def list_all(self) -> list[Node]:
        """Return all nodes ordered by parent_id (roots first), then id."""
        ...

    def list_children(self, parent_id: int) -> list[Node]:
        """Return direct children of *parent_id* ordered by id."""
        ...

    def list_roots(self) -> list[Node]:
        """Return nodes without a parent ordered by id."""
        ...

    def node_count(self) -> int:
        """Return total number of nodes."""
        ...

    # -- Writes ----------------------------------------------------------------

    def insert(self, label: str, parent_id: int | None) -> int:
        """Insert a node and return its new id.

        Raises:
            ParentNotFoundError: If *parent_id* is set and doesn't exist.
        """
        ...

    def update_parent(self, node_id: int, parent_id: int | None) -> None:
        """Point *node_id* at a new parent. No validation."""
        ...

    def update_label(self, node_id: int, label: str) -> bool:
        """Relabel a node. Return False if the node doesn't exist."""
        ...

    def delete_by_ids(self, ids: Iterable[int]) -> int:
        """Delete the given nodes and return how many rows were removed."""
        ...

    def clear(self) -> int:
        """Delete every node and return how many rows were removed."""
        ...

    # -- Transactions ----------------------------------------------------------

    def begin_transaction(self) -> None:
        """Open a transaction (or a nested savepoint)."""
        ...

    def commit(self) -> None:
        """Commit the innermost open transaction."""
        ...

    def rollback(self) -> None:
        """Roll back the innermost open transaction."""
        ...

    def transaction(self) -> AbstractContextManager[None]:
        """Context manager: commit on success, roll back and re-raise on error."""
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...


class DictNodeStore:
    """In-memory dict-based node store.

    Ids are assigned from a running counter, like an autoincrement column.
    Transactions take deep-copy snapshots, so nested transactions roll back
    independently.
    """

    def __init__(self, nodes: Iterable[Node] | None = None) -> None:
        self._nodes: dict[int, Node] = {}
        self._next_id = 1
        self._snapshots: list[tuple[dict[int, Node], int]] = []
        for node in nodes or ():
            self._nodes[node.id] = node
            self._next_id = max(self._next_id, node.id + 1)

    @classmethod
    def from_nodes(cls, nodes: Iterable[Node]) -> DictNodeStore:
        """Create a store holding exactly *nodes*, with no integrity checks.

        Used to audit a detached node set that may contain orphans or cycles.
        """
        return cls(nodes)

    # -- Reads -----------------------------------------------------------------

    def get_by_id(self, node_id: int) -> Node | None:
        return self._nodes.get(node_id)

    def exists_by_id(self, node_id: int) -> bool:
        return node_id in self._nodes

    def list_all(self) -> list[Node]:
        return sorted(
            self._nodes.values(),
            key=lambda n: (n.parent_id is not None, n.parent_id or 0, n.id),
        )

    def list_children(self, parent_id: int) -> list[Node]:
        return sorted(
            (n for n in self._nodes.values() if n.parent_id == parent_id),
            key=lambda n: n.id,
        )

    def list_roots(self) -> list[Node]:
        return sorted(
            (n for n in self._nodes.values() if n.parent_id is None),
            key=lambda n: n.id,
        )

    def node_count(self) -> int:
        return len(self._nodes)

    # -- Writes ----------------------------------------------------------------

    def insert(self, label: str, parent_id: int | None) -> int:
        if parent_id is not None and parent_id not in self._nodes:
            raise ParentNotFoundError(parent_id)
        node_id = self._next_id
        self._next_id += 1
        self._nodes[node_id] = Node(
            id=node_id,
            label=label,
            parent_id=parent_id,
            created_at=datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S"),
        )
        return node_id

    def update_parent(self, node_id: int, parent_id: int | None) -> None:
        node = self._nodes[node_id]
        self._nodes[node_id] = node.model_copy(update={"parent_id": parent_id})

    def update_label(self, node_id: int, label: str) -> bool:
        node = self._nodes.get(node_id)
        if node is None:
            return False
        self._nodes[node_id] = node.model_copy(update={"label": label})
        return True

    def delete_by_ids(self, ids: Iterable[int]) -> int:
        removed = 0
        for node_id in set(ids):
            if self._nodes.pop(node_id, None) is not None:
                removed += 1
        return removed

    def clear(self) -> int:
        removed = len(self._nodes)
        self._nodes.clear()
        return removed

    # -- Transactions (deepcopy-based) -----------------------------------------

    def begin_transaction(self) -> None:
        self._snapshots.append((copy.deepcopy(self._nodes), self._next_id))

    def commit(self) -> None:
        if not self._snapshots:
            raise RuntimeError("No transaction in progress")
        self._snapshots.pop()

    def rollback(self) -> None:
        if not self._snapshots:
            raise RuntimeError("No transaction in progress")
        self._nodes, self._next_id = self._snapshots.pop()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self.begin_transaction()
        try:
            yield
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def close(self) -> None:
        """Nothing to release."""

    def __repr__(self) -> str:
        return f"DictNodeStore(nodes={len(self._nodes)})"
