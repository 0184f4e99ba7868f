"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from arborist.tree.service import TreeService
from arborist.tree.sqlite_store import SqliteNodeStore
from arborist.tree.store import DictNodeStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep stray ARBORIST_* settings and ./arborist.yaml out of tests."""
    monkeypatch.delenv("ARBORIST_DB", raising=False)
    monkeypatch.delenv("ARBORIST_MAX_DEPTH", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def sqlite_store() -> Iterator[SqliteNodeStore]:
    """Empty in-memory SQLite store."""
    store = SqliteNodeStore()
    yield store
    store.close()


@pytest.fixture
def dict_store() -> DictNodeStore:
    """Empty in-memory dict store."""
    return DictNodeStore()


@pytest.fixture
def service(sqlite_store: SqliteNodeStore) -> TreeService:
    """TreeService over an empty in-memory SQLite store."""
    return TreeService(sqlite_store)


@pytest.fixture
def sample_service(service: TreeService) -> TreeService:
    """TreeService holding the sample forest.

    Layout (ids in brackets)::

        root [1]
        +-- bear [2]
        |   +-- cat [3]
        +-- frog [4]
    """
    service.seed_sample_data()
    return service
