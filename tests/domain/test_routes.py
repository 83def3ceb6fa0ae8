from __future__ import annotations

from crudrepo.repositories.routes import collection_url, filter_url, item_url

BASE = "http://api.test/"


def test_collection_and_item_urls() -> None:
    assert collection_url(BASE, "users") == "http://api.test/users"
    assert item_url(BASE, "users", 5) == "http://api.test/users/5"


def test_filters_flatten_in_order() -> None:
    url = filter_url(BASE, "users", {"role": "admin", "active": True, "manager": None})

    assert url == "http://api.test/users/role/admin/active/true/manager/null"


def test_filter_values_are_quoted() -> None:
    assert filter_url(BASE, "users", {"name": "Ann B/C"}) == "http://api.test/users/name/Ann%20B%2FC"


def test_empty_filters_address_the_collection() -> None:
    assert filter_url(BASE, "users", {}) == "http://api.test/users"
