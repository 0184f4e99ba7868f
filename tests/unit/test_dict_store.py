"""Tests for DictNodeStore, the in-memory storage backend.

These exercise the NodeStore protocol directly, independent of TreeService.
"""

from __future__ import annotations

import pytest

from arborist.tree.errors import ParentNotFoundError
from arborist.tree.models import Node
from arborist.tree.store import DictNodeStore, NodeStore


class TestDictNodeStoreProtocol:
    """Verify DictNodeStore satisfies the NodeStore protocol."""

    def test_is_runtime_checkable(self) -> None:
        assert isinstance(DictNodeStore(), NodeStore)

    def test_default_state(self) -> None:
        store = DictNodeStore()
        assert store.node_count() == 0
        assert store.list_all() == []
        assert store.list_roots() == []


class TestDictNodeStoreRows:
    """Test row CRUD on DictNodeStore."""

    def test_insert_assigns_increasing_ids(self, dict_store: DictNodeStore) -> None:
        first = dict_store.insert("a", None)
        second = dict_store.insert("b", first)
        assert (first, second) == (1, 2)

        node = dict_store.get_by_id(second)
        assert node is not None
        assert node.label == "b"
        assert node.parent_id == first
        assert node.created_at is not None

    def test_insert_under_missing_parent(self, dict_store: DictNodeStore) -> None:
        with pytest.raises(ParentNotFoundError, match="Parent node with ID 9 does not exist"):
            dict_store.insert("x", 9)
        assert dict_store.node_count() == 0

    def test_ids_not_reused_after_delete(self, dict_store: DictNodeStore) -> None:
        node_id = dict_store.insert("a", None)
        dict_store.delete_by_ids([node_id])
        assert dict_store.insert("b", None) == node_id + 1

    def test_listing_order(self) -> None:
        """list_all puts roots first, then groups by parent; lists sort by id."""
        store = DictNodeStore.from_nodes(
            [
                Node(id=5, label="e", parent_id=1),
                Node(id=3, label="c"),
                Node(id=4, label="d", parent_id=3),
                Node(id=2, label="b", parent_id=1),
                Node(id=1, label="a"),
            ]
        )
        assert [n.id for n in store.list_all()] == [1, 3, 2, 5, 4]
        assert [n.id for n in store.list_roots()] == [1, 3]
        assert [n.id for n in store.list_children(1)] == [2, 5]
        assert store.list_children(99) == []

    def test_from_nodes_keeps_orphans(self) -> None:
        """Detached node sets are taken as-is."""
        store = DictNodeStore.from_nodes([Node(id=7, label="lost", parent_id=3)])
        assert store.exists_by_id(7)
        assert not store.exists_by_id(3)
        assert store.insert("next", None) == 8

    def test_update_parent_and_label(self, dict_store: DictNodeStore) -> None:
        a = dict_store.insert("a", None)
        b = dict_store.insert("b", None)

        dict_store.update_parent(b, a)
        assert dict_store.update_label(b, "renamed")
        node = dict_store.get_by_id(b)
        assert node is not None
        assert (node.parent_id, node.label) == (a, "renamed")

        assert not dict_store.update_label(99, "nope")

    def test_delete_and_clear(self, dict_store: DictNodeStore) -> None:
        ids = [dict_store.insert(f"n{i}", None) for i in range(3)]
        assert dict_store.delete_by_ids([ids[0], ids[0], 99]) == 1
        assert dict_store.clear() == 2
        assert dict_store.node_count() == 0


class TestDictNodeStoreTransactions:
    """Test snapshot-based transactions."""

    def test_commit_keeps_changes(self, dict_store: DictNodeStore) -> None:
        with dict_store.transaction():
            dict_store.insert("a", None)
        assert dict_store.node_count() == 1

    def test_rollback_on_error(self, dict_store: DictNodeStore) -> None:
        dict_store.insert("keep", None)
        with pytest.raises(RuntimeError, match="boom"), dict_store.transaction():
            dict_store.insert("drop", 1)
            dict_store.update_label(1, "changed")
            raise RuntimeError("boom")

        assert dict_store.node_count() == 1
        node = dict_store.get_by_id(1)
        assert node is not None
        assert node.label == "keep"
        assert dict_store.insert("again", None) == 2

    def test_nested_rollback_is_independent(self, dict_store: DictNodeStore) -> None:
        with dict_store.transaction():
            dict_store.insert("outer", None)
            with pytest.raises(ValueError), dict_store.transaction():
                dict_store.insert("inner", None)
                raise ValueError
        assert [n.label for n in dict_store.list_all()] == ["outer"]

    def test_commit_without_transaction(self, dict_store: DictNodeStore) -> None:
        with pytest.raises(RuntimeError, match="No transaction"):
            dict_store.commit()
        with pytest.raises(RuntimeError, match="No transaction"):
            dict_store.rollback()
