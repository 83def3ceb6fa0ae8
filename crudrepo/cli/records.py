from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Optional, Sequence

from crudrepo.domain.record import Document
from crudrepo.domain.result import Result
from crudrepo.logging_config import FallbackStats, get_logger
from crudrepo.repositories.base import CrudRepository

MODES = ("cached", "remote", "local")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Read and write records of one table")
    p.add_argument("--table", required=True, help="Record table / remote resource name")
    p.add_argument("--mode", choices=MODES, default="cached", help="Storage strategy")
    p.add_argument("--url", help="Remote base URL (default: CRUDREPO_BASE_URL)")
    p.add_argument("--db", help="SQLite file for the local store (default: CRUDREPO_DB_PATH)")
    p.add_argument("--token", help="Bearer token for the remote endpoint")
    p.add_argument(
        "--log", action="store_true", help="Emit JSON logs (stderr and logs/crudrepo.log)"
    )

    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List every record")
    get = sub.add_parser("get", help="Fetch one record")
    get.add_argument("id", type=int)
    find = sub.add_parser("find", help="List records matching KEY=VALUE filters")
    find.add_argument("filters", nargs="+", metavar="KEY=VALUE")
    create = sub.add_parser("create", help="Create a record from a JSON object")
    create.add_argument("json")
    update = sub.add_parser("update", help="Update fields of a record")
    update.add_argument("id", type=int)
    update.add_argument("json")
    replace = sub.add_parser("replace", help="Update the record if it exists, else create it")
    replace.add_argument("json")
    delete = sub.add_parser("delete", help="Delete one record")
    delete.add_argument("id", type=int)
    sub.add_parser("clear", help="Delete every record")
    return p


def parse_filters(pairs: Sequence[str]) -> dict[str, Any]:
    """Turn ``KEY=VALUE`` pairs into filters, decoding JSON literals when possible."""
    out: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Filter must look like KEY=VALUE: {pair!r}")
        try:
            out[key] = json.loads(raw)
        except ValueError:
            out[key] = raw
    return out


def _json_object(text: str) -> dict[str, Any]:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError("Expected a JSON object")
    return value


def build_repository(
    args: argparse.Namespace, stats: Optional[FallbackStats] = None
) -> CrudRepository[Document]:
    # Lazy imports keep --help free from settings/environment requirements
    from crudrepo.config.settings import settings

    url = args.url or settings.base_url
    if args.mode == "local":
        from crudrepo.infrastructure.sqlite_store import SqliteRecordStore
        from crudrepo.repositories.local import LocalRepository

        return LocalRepository(
            SqliteRecordStore(args.db or settings.db_path), args.table, Document.from_json
        )

    from crudrepo.infrastructure.http_client import HttpClient

    client = HttpClient(base_url=url, token=args.token)
    if args.mode == "remote":
        from crudrepo.repositories.remote import RemoteRepository

        return RemoteRepository(client, args.table, url, Document.from_json)

    from crudrepo.infrastructure.sqlite_store import SqliteRecordStore
    from crudrepo.repositories.cached import CachedRepository

    return CachedRepository(
        client,
        SqliteRecordStore(args.db or settings.db_path),
        args.table,
        url,
        Document.from_json,
        stats=stats,
    )


def _run(repo: CrudRepository[Document], args: argparse.Namespace) -> Result[Any]:
    cmd = args.command
    if cmd == "list":
        return repo.get_all_items()
    if cmd == "get":
        return repo.get_item(args.id)
    if cmd == "find":
        return repo.custom_get_items(parse_filters(args.filters))
    if cmd == "create":
        return repo.create_item(Document.from_json(_json_object(args.json)))
    if cmd == "update":
        return repo.update_item(args.id, _json_object(args.json))
    if cmd == "replace":
        return repo.replace_item(Document.from_json(_json_object(args.json)))
    if cmd == "delete":
        return repo.delete_item(args.id)
    return repo.delete_all()


def _render(value: Any) -> Any:
    if isinstance(value, list):
        return [_render(v) for v in value]
    if isinstance(value, Document):
        return value.to_json()
    return value


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    stats: Optional[FallbackStats] = None
    if args.log:
        get_logger()
        stats = FallbackStats()

    try:
        repo = build_repository(args, stats)
        result = _run(repo, args)
    except ValueError as exc:
        parser.error(str(exc))

    if stats is not None:
        stats.log_fallback_rate()

    if result.is_failure:
        print(f"Error: {result.fold(lambda _: '', lambda err: err.message)}", file=sys.stderr)
        return 1
    print(json.dumps(_render(result.unwrap()), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
