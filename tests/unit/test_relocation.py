"""Tests for moving a node together with its subtree."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from arborist.tree.errors import (
    DescendantMoveError,
    NodeNotFoundError,
    NoOpMoveError,
    RelocationError,
    SelfMoveError,
    SourceNotFoundError,
    TargetParentNotFoundError,
)
from arborist.tree.hierarchy import build_hierarchy
from arborist.tree.relocation import move_node_and_subtree
from arborist.tree.service import TreeService
from arborist.tree.store import DictNodeStore
from arborist.tree.validation import validate_tree_structure

if TYPE_CHECKING:
    from arborist.tree.sqlite_store import SqliteNodeStore
    from arborist.tree.store import NodeStore


def _parents(store: NodeStore) -> dict[int, int | None]:
    return {n.id: n.parent_id for n in store.list_all()}


def _insert_chain(store: NodeStore, length: int) -> list[int]:
    ids = [store.insert("n1", None)]
    for i in range(2, length + 1):
        ids.append(store.insert(f"n{i}", ids[-1]))
    return ids


class TestSuccessfulMoves:
    """Moves that satisfy every precondition."""

    def test_move_subtree_under_sibling(self, sample_service: TreeService) -> None:
        """bear (with cat) moves under frog; cat's own pointer is untouched."""
        store = sample_service.store
        moved = move_node_and_subtree(store, 2, 4)

        assert moved.id == 2
        assert moved.parent_id == 4
        cat = store.get_by_id(3)
        assert cat is not None
        assert cat.parent_id == 2

        (root,) = build_hierarchy(store.list_all())
        assert [c.id for c in root.children] == [4]
        frog = root.children[0]
        assert [c.id for c in frog.children] == [2]
        assert [c.id for c in frog.children[0].children] == [3]

    def test_detach_as_root(self, sample_service: TreeService) -> None:
        store = sample_service.store
        moved = move_node_and_subtree(store, 2, None)

        assert moved.parent_id is None
        assert [n.id for n in store.list_roots()] == [1, 2]
        assert validate_tree_structure(store).is_valid

    def test_move_root_under_other_tree(self, sample_service: TreeService) -> None:
        store = sample_service.store
        island = store.insert("island", None)
        move_node_and_subtree(store, island, 3)
        assert _parents(store)[island] == 3

    def test_only_source_row_changes(self, sample_service: TreeService) -> None:
        store = sample_service.store
        before = _parents(store)
        move_node_and_subtree(store, 2, 4)
        after = _parents(store)
        assert {k for k in before if before[k] != after[k]} == {2}

    def test_works_on_dict_store(self) -> None:
        store = DictNodeStore()
        a = store.insert("a", None)
        b = store.insert("b", None)
        move_node_and_subtree(store, b, a)
        assert _parents(store) == {a: None, b: a}


class TestRejectedMoves:
    """Each precondition raises its own error and leaves the store unchanged."""

    def test_source_missing(self, sample_service: TreeService) -> None:
        store = sample_service.store
        before = _parents(store)
        with pytest.raises(SourceNotFoundError) as exc_info:
            move_node_and_subtree(store, 99, 1)
        assert isinstance(exc_info.value, NodeNotFoundError)
        assert _parents(store) == before

    def test_self_move(self, sample_service: TreeService) -> None:
        with pytest.raises(SelfMoveError, match="its own child"):
            move_node_and_subtree(sample_service.store, 2, 2)

    def test_move_under_child(self, sample_service: TreeService) -> None:
        with pytest.raises(DescendantMoveError, match="its own descendant"):
            move_node_and_subtree(sample_service.store, 2, 3)

    def test_move_root_under_grandchild(self, sample_service: TreeService) -> None:
        store = sample_service.store
        before = _parents(store)
        with pytest.raises(DescendantMoveError):
            move_node_and_subtree(store, 1, 3)
        assert _parents(store) == before
        assert validate_tree_structure(store).is_valid

    def test_target_missing(self, sample_service: TreeService) -> None:
        with pytest.raises(TargetParentNotFoundError, match="Target parent node with ID 77"):
            move_node_and_subtree(sample_service.store, 2, 77)

    def test_already_child_of_target(self, sample_service: TreeService) -> None:
        with pytest.raises(NoOpMoveError, match="already a child of the specified parent 1"):
            move_node_and_subtree(sample_service.store, 2, 1)

    def test_root_to_root(self, sample_service: TreeService) -> None:
        with pytest.raises(NoOpMoveError, match="already a root node"):
            move_node_and_subtree(sample_service.store, 1, None)

    def test_missing_source_checked_before_self_move(self, sample_service: TreeService) -> None:
        with pytest.raises(SourceNotFoundError):
            move_node_and_subtree(sample_service.store, 50, 50)

    def test_error_codes_are_distinct(self) -> None:
        errors: list[RelocationError] = [
            SourceNotFoundError(1),
            TargetParentNotFoundError(2),
            SelfMoveError(1),
            DescendantMoveError(1, 2),
            NoOpMoveError(1, None),
        ]
        assert len({e.code for e in errors}) == len(errors)

    def test_store_left_outside_transaction(self, sample_service: TreeService) -> None:
        """A rejected move closes its transaction."""
        with pytest.raises(RelocationError):
            move_node_and_subtree(sample_service.store, 2, 3)
        assert not sample_service.store.in_transaction  # type: ignore[attr-defined]


class TestDeepChains:
    """Subtree checks on chains deeper than the depth guard."""

    def test_root_under_last_node_rejected(self, sqlite_store: SqliteNodeStore) -> None:
        """Moving a 6-chain's root under its leaf would close a loop."""
        first, *_, last = _insert_chain(sqlite_store, 6)
        service = TreeService(sqlite_store, max_depth=3)
        before = _parents(sqlite_store)

        with pytest.raises(DescendantMoveError):
            service.move_node(first, last)

        assert _parents(sqlite_store) == before
        assert service.validate().is_valid

    def test_inner_node_under_deep_descendant_rejected(self) -> None:
        store = DictNodeStore()
        ids = _insert_chain(store, 8)
        with pytest.raises(DescendantMoveError):
            move_node_and_subtree(store, ids[1], ids[-1], max_depth=2)
        assert validate_tree_structure(store).is_valid

    def test_leaf_under_chain_root_allowed(self, sqlite_store: SqliteNodeStore) -> None:
        """A leaf may move under its chain's root; only the reverse would loop."""
        first, *_, last = _insert_chain(sqlite_store, 6)
        moved = move_node_and_subtree(sqlite_store, last, first, max_depth=3)
        assert moved.parent_id == first
        assert validate_tree_structure(sqlite_store).is_valid
