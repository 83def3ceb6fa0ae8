from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterator

import pytest

from crudrepo.domain.errors import StoreError
from crudrepo.domain.ports import RecordStore
from crudrepo.infrastructure.sqlite_store import SqliteRecordStore, iter_tables


@pytest.fixture
def store() -> Iterator[SqliteRecordStore]:
    s = SqliteRecordStore(":memory:")
    yield s
    s.close()


def test_satisfies_record_store_protocol(store: SqliteRecordStore) -> None:
    assert isinstance(store, RecordStore)


def test_save_assigns_id_and_keeps_given_one(store: SqliteRecordStore) -> None:
    first = store.save("items", {"name": "a"})
    second = store.save("items", {"id": 50, "name": "b"})

    assert first == {"id": 1, "name": "a"}
    assert second == {"id": 50, "name": "b"}
    assert store.get_item("items", 1) == {"id": 1, "name": "a"}


def test_missing_rows_are_empty_mappings(store: SqliteRecordStore) -> None:
    assert store.get_item("items", 9) == {}
    assert store.update("items", {"id": 9, "name": "x"}) == {}
    assert store.delete("items", 9) == {}
    assert store.search("items", "id = ?", (9,)) == {}


def test_update_merges_fields(store: SqliteRecordStore) -> None:
    store.save("items", {"id": 1, "name": "a", "tags": ["x"]})

    assert store.update("items", {"id": 1, "qty": 3}) == {"id": 1}
    assert store.get_item("items", 1) == {"id": 1, "name": "a", "tags": ["x"], "qty": 3}


def test_replace_and_save_all_upsert(store: SqliteRecordStore) -> None:
    store.save("items", {"id": 1, "name": "a", "old": True})

    store.replace("items", {"id": 1, "name": "a2"})
    assert store.get_item("items", 1) == {"id": 1, "name": "a2"}

    written = store.save_all(
        "items", [{"id": 1, "name": "a3"}, {"id": 2, "name": "b"}, {"name": "c"}]
    )
    assert written == 3
    assert [r["name"] for r in store.get_all("items")] == ["a3", "b", "c"]


def test_delete_and_delete_all(store: SqliteRecordStore) -> None:
    store.save_all("items", [{"id": 1}, {"id": 2}, {"id": 3}])

    assert store.delete("items", 2) == {"id": 2}
    assert store.delete_all("items") == 2
    assert store.get_all("items") == []


def test_find_matches_scalars_null_and_nested(store: SqliteRecordStore) -> None:
    store.save_all(
        "items",
        [
            {"id": 1, "kind": "a", "active": True, "owner": None, "meta": {"k": 1}},
            {"id": 2, "kind": "a", "active": False, "owner": "bob", "meta": {"k": 2}},
            {"id": 3, "kind": "b", "active": True, "owner": None, "meta": {"k": 1}},
        ],
    )

    assert [r["id"] for r in store.find("items", {"kind": "a"})] == [1, 2]
    assert [r["id"] for r in store.find("items", {"kind": "a", "active": True})] == [1]
    assert [r["id"] for r in store.find("items", {"owner": None})] == [1, 3]
    assert [r["id"] for r in store.find("items", {"meta": {"k": 1}})] == [1, 3]
    assert [r["id"] for r in store.find("items", {"id": 3})] == [3]
    assert len(store.find("items", {})) == 3


def test_raw_where_searches(store: SqliteRecordStore) -> None:
    store.save_all("items", [{"id": 1, "qty": 5}, {"id": 2, "qty": 10}, {"id": 3, "qty": 15}])
    where = "json_extract(body, '$.qty') > ?"

    assert store.search("items", where, (7,)) == {"id": 2, "qty": 10}
    assert [r["id"] for r in store.search_all("items", where, (7,))] == [2, 3]
    assert store.search_update("items", where, (7,), {"qty": 0, "id": 99}) == 2
    assert store.get_item("items", 3) == {"id": 3, "qty": 0}
    assert store.search_delete("items", "json_extract(body, '$.qty') = ?", (0,)) == 2
    assert [r["id"] for r in store.get_all("items")] == [1]


def test_search_all_raw_decodes_body_rows(store: SqliteRecordStore) -> None:
    store.save("items", {"id": 1, "name": "a"})

    assert store.search_all_raw('SELECT id, body FROM "items"') == [{"id": 1, "name": "a"}]
    assert store.search_all_raw('SELECT COUNT(*) AS n FROM "items"') == [{"n": 1}]
    assert list(iter_tables(store)) == ["items"]


def test_invalid_input_raises_store_error(store: SqliteRecordStore) -> None:
    with pytest.raises(StoreError):
        store.get_all("items; DROP TABLE x")
    with pytest.raises(StoreError):
        store.replace("items", {"name": "no id"})
    with pytest.raises(StoreError):
        store.save("items", {"id": 1, "blob": object()})
    with pytest.raises(StoreError):
        store.search_all("items", "no_such_column = 1")

    store.save("items", {"id": 1})
    with pytest.raises(StoreError):
        store.save("items", {"id": 1})


def test_file_database_is_created_lazily(tmp_path: Path) -> None:
    db = tmp_path / "nested" / "store.sqlite3"
    s = SqliteRecordStore(db)
    assert not db.exists()

    s.save("items", {"id": 1})
    s.close()

    reopened = SqliteRecordStore(db)
    assert reopened.get_item("items", 1) == {"id": 1}
    reopened.close()


def test_concurrent_first_use_opens_one_connection(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import sqlite3

    opened: list[str] = []
    real_connect = sqlite3.connect

    def counting_connect(*args, **kwargs):  # type: ignore[no-untyped-def]
        opened.append(str(args[0]))
        return real_connect(*args, **kwargs)

    monkeypatch.setattr(sqlite3, "connect", counting_connect)
    s = SqliteRecordStore(tmp_path / "shared.sqlite3")

    def worker(n: int) -> None:
        s.replace("items", {"id": n})

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(1, 9)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(opened) == 1
    assert len(s.get_all("items")) == 8
    s.close()


def test_unusable_path_is_store_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    s = SqliteRecordStore(blocker / "db.sqlite3")

    with pytest.raises(StoreError, match="Cannot open"):
        s.get_all("items")
    with pytest.raises(StoreError):
        s.replace("items", {"id": 1})


def test_failed_bulk_write_is_rolled_back(store: SqliteRecordStore) -> None:
    with pytest.raises(StoreError):
        store.save_all("items", [{"id": 1, "name": "a"}, {"name": "b"}, {"id": "bad"}])

    store.replace("other", {"id": 1})

    assert store.get_all("items") == []
    assert store.get_all("other") == [{"id": 1}]


def test_failed_insert_does_not_leak_into_next_commit(store: SqliteRecordStore) -> None:
    store.save("items", {"id": 1, "name": "a"})
    with pytest.raises(StoreError):
        store.save_all("items", [{"id": 2, "name": "b"}, {"id": 3, "blob": object()}])

    store.update("items", {"id": 1, "name": "a2"})

    assert store.get_all("items") == [{"id": 1, "name": "a2"}]
