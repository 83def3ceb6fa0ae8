"""URL addressing of remote record tables.

``{base}/{table}`` for collections, ``{base}/{table}/{id}`` for single
records and ``{base}/{table}/{k1}/{v1}/{k2}/{v2}`` for filtered lists, the
filters flattened positionally in mapping order.
"""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote


def collection_url(base_url: str, table: str) -> str:
    return f"{base_url.rstrip('/')}/{table}"


def item_url(base_url: str, table: str, item_id: int) -> str:
    return f"{collection_url(base_url, table)}/{item_id}"


def filter_url(base_url: str, table: str, filters: Mapping[str, Any]) -> str:
    segments = "/".join(
        f"{_segment(key)}/{_segment(value)}" for key, value in filters.items()
    )
    if not segments:
        return collection_url(base_url, table)
    return f"{collection_url(base_url, table)}/{segments}"


def _segment(value: Any) -> str:
    # JSON spelling for literals so servers see true/false/null
    if value is None:
        text = "null"
    elif isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    return quote(text, safe="")
