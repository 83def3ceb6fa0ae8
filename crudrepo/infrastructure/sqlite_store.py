from __future__ import annotations

import json
import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Sequence

from crudrepo.domain.errors import StoreError

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqliteRecordStore:
    """SQLite implementation of :class:`crudrepo.domain.ports.RecordStore`.

    Each record table holds ``id INTEGER PRIMARY KEY`` plus the JSON document
    in ``body``; tables are created on first use. The connection is opened
    lazily behind a lock and shared by every caller afterwards. Raw ``where``
    clauses can refer to ``id`` and ``json_extract(body, '$.field')``.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = str(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._init_lock = threading.Lock()
        self._lock = threading.RLock()
        self._tables: set[str] = set()

    @property
    def db_path(self) -> str:
        return self._db_path

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            with self._init_lock:
                if self._conn is None:
                    if self._db_path != ":memory:":
                        try:
                            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
                        except OSError as exc:
                            raise StoreError(f"Cannot open {self._db_path}: {exc}") from exc
                    try:
                        conn = sqlite3.connect(self._db_path, check_same_thread=False)
                    except sqlite3.Error as exc:
                        raise StoreError(f"Cannot open {self._db_path}: {exc}") from exc
                    conn.row_factory = sqlite3.Row
                    logger.debug("Opened record store %s", self._db_path)
                    self._conn = conn
        return self._conn

    def close(self) -> None:
        with self._init_lock, self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                self._tables.clear()

    def ensure_table(self, table: str) -> None:
        if not _TABLE_NAME.match(table):
            raise StoreError(f"Invalid table name: {table!r}")
        if table in self._tables:
            return
        with self._guard():
            conn = self._connection()
            conn.execute(
                f'CREATE TABLE IF NOT EXISTS "{table}" ('
                "id INTEGER PRIMARY KEY, body TEXT NOT NULL)"
            )
            conn.commit()
        self._tables.add(table)

    # -- single records -------------------------------------------------

    def save(self, table: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        self.ensure_table(table)
        with self._guard():
            conn = self._connection()
            item_id = _insert(conn, table, fields)
            conn.commit()
            return self.get_item(table, item_id)

    def replace(self, table: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        item_id = _require_id(fields)
        self.ensure_table(table)
        with self._guard():
            conn = self._connection()
            conn.execute(
                f'INSERT OR REPLACE INTO "{table}" (id, body) VALUES (?, ?)',
                (item_id, _dumps(fields)),
            )
            conn.commit()
        return dict(fields)

    def get_item(self, table: str, item_id: int) -> dict[str, Any]:
        self.ensure_table(table)
        with self._guard():
            row = (
                self._connection()
                .execute(f'SELECT id, body FROM "{table}" WHERE id = ?', (item_id,))
                .fetchone()
            )
        return _row_to_fields(row) if row else {}

    def update(self, table: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        item_id = _require_id(fields)
        self.ensure_table(table)
        with self._guard():
            current = self.get_item(table, item_id)
            if not current:
                return {}
            conn = self._connection()
            conn.execute(
                f'UPDATE "{table}" SET body = ? WHERE id = ?',
                (_dumps({**current, **fields}), item_id),
            )
            conn.commit()
        return {"id": item_id}

    def delete(self, table: str, item_id: int) -> dict[str, Any]:
        self.ensure_table(table)
        with self._guard():
            conn = self._connection()
            cur = conn.execute(f'DELETE FROM "{table}" WHERE id = ?', (item_id,))
            conn.commit()
        return {"id": item_id} if cur.rowcount > 0 else {}

    # -- whole tables ---------------------------------------------------

    def save_all(self, table: str, items: Sequence[Mapping[str, Any]]) -> int:
        """Upsert ``items``; records without an ``id`` are inserted."""
        self.ensure_table(table)
        count = 0
        with self._guard():
            conn = self._connection()
            for item in items:
                if item.get("id") is None:
                    _insert(conn, table, item)
                else:
                    conn.execute(
                        f'INSERT OR REPLACE INTO "{table}" (id, body) VALUES (?, ?)',
                        (int(item["id"]), _dumps(item)),
                    )
                count += 1
            conn.commit()
        return count

    def get_all(self, table: str) -> list[dict[str, Any]]:
        self.ensure_table(table)
        with self._guard():
            rows = self._connection().execute(
                f'SELECT id, body FROM "{table}" ORDER BY id'
            ).fetchall()
        return [_row_to_fields(row) for row in rows]

    def delete_all(self, table: str) -> int:
        self.ensure_table(table)
        with self._guard():
            conn = self._connection()
            cur = conn.execute(f'DELETE FROM "{table}"')
            conn.commit()
        return int(cur.rowcount)

    # -- searches -------------------------------------------------------

    def find(self, table: str, filters: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Equality search over top-level fields, all filters must match."""
        clauses: list[str] = []
        params: list[Any] = []
        for key, value in filters.items():
            column = "id" if key == "id" else "json_extract(body, ?)"
            if column != "id":
                params.append(f'$."{key}"')
            if value is None:
                clauses.append(f"{column} IS NULL")
            elif isinstance(value, (dict, list)):
                clauses.append(f"{column} = json(?)")
                params.append(_dumps(value))
            else:
                clauses.append(f"{column} = ?")
                params.append(value)
        return self.search_all(table, " AND ".join(clauses) or "1", params)

    def search(self, table: str, where: str, params: Sequence[Any] = ()) -> dict[str, Any]:
        self.ensure_table(table)
        with self._guard():
            row = (
                self._connection()
                .execute(
                    f'SELECT id, body FROM "{table}" WHERE {where} ORDER BY id LIMIT 1',
                    tuple(params),
                )
                .fetchone()
            )
        return _row_to_fields(row) if row else {}

    def search_all(
        self, table: str, where: str, params: Sequence[Any] = ()
    ) -> list[dict[str, Any]]:
        self.ensure_table(table)
        with self._guard():
            rows = (
                self._connection()
                .execute(
                    f'SELECT id, body FROM "{table}" WHERE {where} ORDER BY id', tuple(params)
                )
                .fetchall()
            )
        return [_row_to_fields(row) for row in rows]

    def search_update(
        self,
        table: str,
        where: str,
        params: Sequence[Any],
        fields: Mapping[str, Any],
    ) -> int:
        """Merge ``fields`` into every matching record; ``id`` is never rewritten."""
        changes = {k: v for k, v in fields.items() if k != "id"}
        with self._guard():
            matches = self.search_all(table, where, params)
            conn = self._connection()
            for current in matches:
                conn.execute(
                    f'UPDATE "{table}" SET body = ? WHERE id = ?',
                    (_dumps({**current, **changes}), current["id"]),
                )
            conn.commit()
        return len(matches)

    def search_delete(self, table: str, where: str, params: Sequence[Any] = ()) -> int:
        self.ensure_table(table)
        with self._guard():
            conn = self._connection()
            cur = conn.execute(f'DELETE FROM "{table}" WHERE {where}', tuple(params))
            conn.commit()
        return int(cur.rowcount)

    def search_all_raw(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> list[dict[str, Any]]:
        """Run arbitrary SQL; rows carrying a ``body`` column are decoded."""
        with self._guard():
            rows = self._connection().execute(sql, tuple(params or ())).fetchall()
        return [_row_to_fields(row) for row in rows]

    # -- helpers --------------------------------------------------------

    def _guard(self) -> "_Guard":
        return _Guard(self)

    def _rollback(self) -> None:
        if self._conn is None:
            return
        try:
            self._conn.rollback()
        except sqlite3.Error as exc:
            logger.warning("Rollback on %s failed: %s", self._db_path, exc)


class _Guard:
    """Holds the store lock and reports sqlite/JSON/OS failures as StoreError.

    Any exception discards the statements of the open transaction so a later
    commit cannot persist half of a failed write.
    """

    def __init__(self, store: SqliteRecordStore) -> None:
        self._store = store

    def __enter__(self) -> None:
        self._store._lock.acquire()

    def __exit__(self, exc_type: Any, exc: Optional[BaseException], tb: Any) -> bool:
        try:
            if exc is not None:
                self._store._rollback()
        finally:
            self._store._lock.release()
        if exc is None or isinstance(exc, StoreError):
            return False
        if isinstance(exc, (sqlite3.Error, OSError, TypeError, ValueError)):
            raise StoreError(str(exc)) from exc
        return False


def _insert(conn: sqlite3.Connection, table: str, fields: Mapping[str, Any]) -> int:
    """Insert without committing; an absent ``id`` is assigned from the rowid."""
    item_id = fields.get("id")
    if item_id is not None:
        conn.execute(
            f'INSERT INTO "{table}" (id, body) VALUES (?, ?)', (int(item_id), _dumps(fields))
        )
        return int(item_id)
    cur = conn.execute(f'INSERT INTO "{table}" (body) VALUES (?)', (_dumps(fields),))
    rowid = cur.lastrowid
    if rowid is None:
        raise StoreError(f"SQLite insert failed: no lastrowid (table: {table})")
    conn.execute(
        f'UPDATE "{table}" SET body = ? WHERE id = ?',
        (_dumps({**fields, "id": int(rowid)}), int(rowid)),
    )
    return int(rowid)


def _require_id(fields: Mapping[str, Any]) -> int:
    item_id = fields.get("id")
    if item_id is None:
        raise StoreError("Record has no 'id' field")
    try:
        return int(item_id)
    except (TypeError, ValueError) as exc:
        raise StoreError(f"Record id is not an integer: {item_id!r}") from exc


def _dumps(fields: Mapping[str, Any] | list[Any]) -> str:
    return json.dumps(fields, ensure_ascii=False, separators=(",", ":"))


def _row_to_fields(row: sqlite3.Row) -> dict[str, Any]:
    keys = row.keys()
    if "body" not in keys:
        return {key: row[key] for key in keys}
    fields: dict[str, Any] = json.loads(row["body"])
    if "id" in keys:
        fields["id"] = row["id"]
    return fields


def iter_tables(store: SqliteRecordStore) -> Iterator[str]:
    """Yield the record tables present in ``store``'s database."""
    for row in store.search_all_raw(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
        "ORDER BY name"
    ):
        yield str(row["name"])
