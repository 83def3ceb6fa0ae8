from __future__ import annotations

import json
from pathlib import Path
from typing import List

import pytest

from crudrepo.cli import records as records_cli


def _local(db: Path, *argv: str) -> List[str]:
    return ["--table", "books", "--mode", "local", "--db", str(db), *argv]


def test_parse_filters_decodes_json_literals() -> None:
    filters = records_cli.parse_filters(["active=true", "year=1965", "title=Dune", "owner=null"])

    assert filters == {"active": True, "year": 1965, "title": "Dune", "owner": None}


def test_parse_filters_rejects_missing_separator() -> None:
    with pytest.raises(ValueError):
        records_cli.parse_filters(["active"])


def test_local_create_list_and_find(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db = tmp_path / "cli.sqlite3"

    assert records_cli.main(_local(db, "create", '{"title": "Dune", "year": 1965}')) == 0
    created = json.loads(capsys.readouterr().out)
    assert created == {"id": 1, "title": "Dune", "year": 1965}

    records_cli.main(_local(db, "create", '{"title": "Emma", "year": 1815}'))
    capsys.readouterr()

    assert records_cli.main(_local(db, "list")) == 0
    assert [b["title"] for b in json.loads(capsys.readouterr().out)] == ["Dune", "Emma"]

    assert records_cli.main(_local(db, "find", "year=1815")) == 0
    assert json.loads(capsys.readouterr().out) == [{"id": 2, "title": "Emma", "year": 1815}]


def test_local_update_replace_delete_and_clear(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    db = tmp_path / "cli.sqlite3"
    records_cli.main(_local(db, "create", '{"id": 7, "title": "Dune"}'))

    records_cli.main(_local(db, "update", "7", '{"year": 1965}'))
    capsys.readouterr()
    records_cli.main(_local(db, "replace", '{"id": 8, "title": "Emma"}'))
    capsys.readouterr()

    assert records_cli.main(_local(db, "get", "7")) == 0
    assert json.loads(capsys.readouterr().out) == {"id": 7, "title": "Dune", "year": 1965}

    assert records_cli.main(_local(db, "delete", "7")) == 0
    assert capsys.readouterr().out.strip() == "7"

    assert records_cli.main(_local(db, "clear")) == 0
    assert capsys.readouterr().out.strip() == "1"


def test_failure_prints_error_and_returns_one(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    rc = records_cli.main(_local(tmp_path / "cli.sqlite3", "get", "404"))

    assert rc == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error: Item 404 not found in books" in captured.err


def test_bad_json_argument_is_a_usage_error(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc:
        records_cli.main(_local(tmp_path / "cli.sqlite3", "create", "[1, 2]"))

    assert exc.value.code == 2


def test_remote_mode_builds_remote_repository(tmp_path: Path) -> None:
    from crudrepo.repositories.remote import RemoteRepository

    args = records_cli.build_parser().parse_args(
        ["--table", "books", "--mode", "remote", "--url", "http://api.test", "list"]
    )

    repo = records_cli.build_repository(args)

    assert isinstance(repo, RemoteRepository)
    assert repo.table == "books"
