"""
tests/test_query.py -- List query parsing and pagination metadata.

Covers:
  - defaults, limit cap, and floor of 1 for page/limit
  - non-integer page raises ValidationError
  - only whitelisted keys become filters
  - pagination() previous/next page arithmetic
  - select_fields() always keeps id
"""

from __future__ import annotations

import pytest

from core.errors import ValidationError
from core.query import DEFAULT_LIMIT, MAX_LIMIT, ListQuery, pagination, parse_list_query, select_fields


class TestParseListQuery:
    def test_defaults(self) -> None:
        query = parse_list_query({})
        assert query == ListQuery()
        assert query.page == 1
        assert query.limit == DEFAULT_LIMIT
        assert query.skip == 0

    def test_limit_is_capped(self) -> None:
        assert parse_list_query({"limit": "5000"}).limit == MAX_LIMIT

    def test_zero_and_negative_values_floor_to_one(self) -> None:
        query = parse_list_query({"page": "0", "limit": "-4"})
        assert query.page == 1
        assert query.limit == 1

    def test_non_integer_page_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_list_query({"page": "two"})

    def test_skip_follows_page_and_limit(self) -> None:
        assert parse_list_query({"page": "3", "limit": "20"}).skip == 40

    def test_fields_and_search_are_trimmed(self) -> None:
        query = parse_list_query({"fields": " name, email ,", "search": "  dhaka "})
        assert query.fields == ("name", "email")
        assert query.search == "dhaka"

    def test_blank_search_is_none(self) -> None:
        assert parse_list_query({"search": "   "}).search is None

    def test_only_filterable_keys_become_filters(self) -> None:
        params = {"role": "admin", "hashed_password": "x", "gender": ""}
        query = parse_list_query(params, ("role", "gender"))
        assert query.filters == {"role": "admin"}


class TestPagination:
    def test_middle_page(self) -> None:
        meta = pagination(45, ListQuery(page=2, limit=10))
        assert meta == {
            "total_documents": 45,
            "total_pages": 5,
            "current_page": 2,
            "previous_page": 1,
            "next_page": 3,
        }

    def test_first_and_last_page(self) -> None:
        first = pagination(20, ListQuery(page=1, limit=10))
        last = pagination(20, ListQuery(page=2, limit=10))
        assert first["previous_page"] is None
        assert first["next_page"] == 2
        assert last["next_page"] is None

    def test_empty_result(self) -> None:
        meta = pagination(0, ListQuery())
        assert meta["total_pages"] == 0
        assert meta["next_page"] is None


def test_select_fields_keeps_id() -> None:
    doc = {"id": 1, "name": "A", "email": "a@kin.org"}
    assert select_fields(doc, ["name"]) == {"id": 1, "name": "A"}
    assert select_fields(doc, []) == doc
