"""SQLite-backed node storage.

SqliteNodeStore implements the NodeStore protocol using stdlib sqlite3.
Rows live in a single ``nodes`` table whose ``parent_id`` column is a
self-referencing foreign key, so the database itself rejects inserts under
a missing parent.

Transactions are managed explicitly (the connection runs in autocommit
mode): the outermost level issues ``BEGIN IMMEDIATE``, nested levels use
SQL savepoints.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from arborist.observability.logging import get_logger
from arborist.tree.errors import ParentNotFoundError
from arborist.tree.models import Node

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

log = get_logger(__name__)

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS nodes (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    label      TEXT NOT NULL,
    parent_id  INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (parent_id) REFERENCES nodes(id)
);
CREATE INDEX IF NOT EXISTS idx_parent_id ON nodes(parent_id);
"""

_COLUMNS = "id, label, parent_id, created_at"

# Stays under SQLITE_MAX_VARIABLE_NUMBER on older builds (999)
_DELETE_BATCH_SIZE = 500


class SqliteNodeStore:
    """SQLite-backed node store.

    Opens (or creates) the database and ensures the schema exists. Use
    :meth:`transaction` to group several writes into one atomic unit.
    """

    def __init__(
        self,
        db_path: str | Path = ":memory:",
        *,
        foreign_keys: bool = True,
        _conn: sqlite3.Connection | None = None,
    ) -> None:
        """Open or create a SQLite node database.

        Args:
            db_path: Path to ``.db`` file, or ``":memory:"`` for in-memory.
            foreign_keys: Enforce the ``parent_id`` foreign key. Only turned
                off to simulate out-of-band corruption in tests.
            _conn: Pre-existing connection (for testing). If provided,
                   *db_path* is ignored.
        """
        if _conn is not None:
            self._conn = _conn
            self._db_path: str = ":memory:"
        else:
            self._db_path = str(db_path) if isinstance(db_path, Path) else db_path
            if self._db_path != ":memory:":
                Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                self._db_path,
                isolation_level=None,  # autocommit; transactions are explicit
            )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute(f"PRAGMA foreign_keys={'ON' if foreign_keys else 'OFF'}")
        self._conn.executescript(_SCHEMA)
        self._depth = 0
        log.debug("node_store_opened", db_path=self._db_path, foreign_keys=foreign_keys)

    @property
    def db_path(self) -> str:
        """Database location, ``":memory:"`` for in-memory stores."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # -- Transactions ----------------------------------------------------------

    def begin_transaction(self) -> None:
        """Begin a transaction, or a savepoint if one is already open."""
        if self._depth == 0:
            self._conn.execute("BEGIN IMMEDIATE")
        else:
            self._conn.execute(f"SAVEPOINT sp_{self._depth}")
        self._depth += 1

    def commit(self) -> None:
        """Commit the innermost transaction level.

        A failed outermost COMMIT (a deferred foreign key violation) rolls
        the transaction back before the error propagates.

        Raises:
            RuntimeError: If no transaction is open.
        """
        if self._depth == 0:
            raise RuntimeError("No transaction in progress")
        self._depth -= 1
        if self._depth == 0:
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error:
                self._conn.execute("ROLLBACK")
                raise
        else:
            self._conn.execute(f"RELEASE SAVEPOINT sp_{self._depth}")

    def rollback(self) -> None:
        """Roll back the innermost transaction level.

        Raises:
            RuntimeError: If no transaction is open.
        """
        if self._depth == 0:
            raise RuntimeError("No transaction in progress")
        self._depth -= 1
        if self._depth == 0:
            self._conn.execute("ROLLBACK")
        else:
            self._conn.execute(f"ROLLBACK TO sp_{self._depth}")
            self._conn.execute(f"RELEASE SAVEPOINT sp_{self._depth}")

    @property
    def in_transaction(self) -> bool:
        """Whether a transaction is currently open."""
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed block atomically.

        Commits when the block exits normally. On any exception the
        transaction is rolled back before the exception propagates.
        """
        self.begin_transaction()
        try:
            yield
        except BaseException:
            self.rollback()
            raise
        self.commit()

    # -- Reads -----------------------------------------------------------------

    def get_by_id(self, node_id: int) -> Node | None:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM nodes WHERE id = ?", (node_id,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_node(row)

    def exists_by_id(self, node_id: int) -> bool:
        row = self._conn.execute("SELECT 1 FROM nodes WHERE id = ?", (node_id,)).fetchone()
        return row is not None

    def list_all(self) -> list[Node]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM nodes ORDER BY parent_id, id"
        ).fetchall()
        return [self._row_to_node(row) for row in rows]

    def list_children(self, parent_id: int) -> list[Node]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM nodes WHERE parent_id = ? ORDER BY id",
            (parent_id,),
        ).fetchall()
        return [self._row_to_node(row) for row in rows]

    def list_roots(self) -> list[Node]:
        rows = self._conn.execute(
            f"SELECT {_COLUMNS} FROM nodes WHERE parent_id IS NULL ORDER BY id"
        ).fetchall()
        return [self._row_to_node(row) for row in rows]

    def node_count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) AS cnt FROM nodes").fetchone()
        return row["cnt"]  # type: ignore[no-any-return]

    # -- Writes ----------------------------------------------------------------

    def insert(self, label: str, parent_id: int | None) -> int:
        if parent_id is not None and not self.exists_by_id(parent_id):
            raise ParentNotFoundError(parent_id)
        cursor = self._conn.execute(
            "INSERT INTO nodes (label, parent_id) VALUES (?, ?)",
            (label, parent_id),
        )
        node_id = cursor.lastrowid
        if node_id is None:
            raise RuntimeError("INSERT did not return a row id")
        return node_id

    def update_parent(self, node_id: int, parent_id: int | None) -> None:
        self._conn.execute(
            "UPDATE nodes SET parent_id = ? WHERE id = ?",
            (parent_id, node_id),
        )

    def update_label(self, node_id: int, label: str) -> bool:
        cursor = self._conn.execute(
            "UPDATE nodes SET label = ? WHERE id = ?",
            (label, node_id),
        )
        return cursor.rowcount > 0

    def delete_by_ids(self, ids: Iterable[int]) -> int:
        """Delete the given rows in batches of bound parameters.

        Runs in its own transaction (a savepoint when one is already open)
        with foreign key checks deferred to commit, so a parent and its
        children may land in different batches.
        """
        id_list = sorted(set(ids))
        if not id_list:
            return 0
        removed = 0
        with self.transaction():
            self._conn.execute("PRAGMA defer_foreign_keys=ON")
            for start in range(0, len(id_list), _DELETE_BATCH_SIZE):
                batch = id_list[start : start + _DELETE_BATCH_SIZE]
                placeholders = ",".join("?" for _ in batch)
                cursor = self._conn.execute(
                    f"DELETE FROM nodes WHERE id IN ({placeholders})",
                    batch,
                )
                removed += cursor.rowcount
        return removed

    def clear(self) -> int:
        cursor = self._conn.execute("DELETE FROM nodes")
        return cursor.rowcount

    @staticmethod
    def _row_to_node(row: sqlite3.Row) -> Node:
        """Convert a ``nodes`` row to a Node model."""
        created_at = row["created_at"]
        return Node(
            id=row["id"],
            label=row["label"],
            parent_id=row["parent_id"],
            created_at=str(created_at) if created_at is not None else None,
        )

    def __repr__(self) -> str:
        return f"SqliteNodeStore(db_path={self._db_path!r})"
