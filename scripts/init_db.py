from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path


def main() -> int:
    # Ensure project root (containing 'crudrepo') is importable
    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))

    from crudrepo.infrastructure.sqlite_store import SqliteRecordStore, iter_tables

    parser = argparse.ArgumentParser(description="Create local record store tables")
    parser.add_argument(
        "--db",
        default=os.path.join("data", "crudrepo.sqlite3"),
        help="Path to SQLite DB file (will be created if missing)",
    )
    parser.add_argument("tables", nargs="+", help="Record table names to create")
    args = parser.parse_args()

    db_path = os.path.abspath(args.db)
    store = SqliteRecordStore(db_path)
    try:
        for table in args.tables:
            store.ensure_table(table)
        present = list(iter_tables(store))
    finally:
        store.close()

    print(f"Initialized {db_path}: {', '.join(present)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
