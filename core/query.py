"""
core/query.py -- List-query parsing, SQL statement building, and pagination.

Every paginated list endpoint (users, posts, programs, subscribers, advisors)
accepts the same query string:

    ?page=2&limit=20&search=dhaka&sort=-created_at,name&fields=name,email&role=admin

parse_list_query() turns the raw query params into a ListQuery. Stores pass it
to build_list_statements() together with their Table, which returns a SELECT
(with search, filters, sort, offset, limit applied) and a matching COUNT.
pagination() builds the metadata block returned alongside the data.

Security: filter and sort column names are checked against the table's columns
before use. Values are always bound parameters.

Layer rule: core/ is the kernel. No imports from api/, auth/, content/, storage/.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from sqlalchemy import Integer, Table, and_, func, or_, select
from sqlalchemy.sql import Select

from core.errors import ValidationError

DEFAULT_LIMIT = 10
MAX_LIMIT = 100

_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


@dataclass(frozen=True)
class ListQuery:
    """Normalized list parameters. page and limit are always >= 1."""

    page: int = 1
    limit: int = DEFAULT_LIMIT
    sort: str | None = None
    fields: tuple[str, ...] = ()
    search: str | None = None
    filters: dict[str, str] = field(default_factory=dict)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _parse_positive_int(raw: str | None, name: str, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer.") from exc
    return max(value, 1)


def parse_list_query(params: Mapping[str, str], filterable: Iterable[str] = ()) -> ListQuery:
    """Build a ListQuery from raw query params.

    Only keys named in `filterable` become equality filters; any other unknown
    query parameter is ignored.
    """
    page = _parse_positive_int(params.get("page"), "page", 1)
    limit = min(_parse_positive_int(params.get("limit"), "limit", DEFAULT_LIMIT), MAX_LIMIT)
    raw_fields = params.get("fields") or ""
    fields = tuple(f.strip() for f in raw_fields.split(",") if f.strip())
    search = (params.get("search") or "").strip() or None
    filters = {name: params[name] for name in filterable if params.get(name) not in (None, "")}
    return ListQuery(
        page=page,
        limit=limit,
        sort=(params.get("sort") or "").strip() or None,
        fields=fields,
        search=search,
        filters=filters,
    )


def _coerce(table: Table, name: str, value: str):
    """Convert a query-string value to the column's Python type."""
    column = table.c[name]
    if isinstance(column.type, Integer):
        lowered = value.lower()
        if lowered in _TRUE:
            return 1
        if lowered in _FALSE:
            return 0
        try:
            return int(value)
        except ValueError as exc:
            raise ValidationError(f"{name} must be an integer or boolean.") from exc
    return value


def _order_by(table: Table, sort: str | None) -> list:
    if not sort:
        clauses = []
        if "created_at" in table.c:
            clauses.append(table.c.created_at.desc())
        clauses.append(table.c.id.desc())
        return clauses
    clauses = []
    for part in sort.split(","):
        part = part.strip()
        if not part:
            continue
        descending = part.startswith("-")
        name = part.lstrip("-+")
        if name not in table.c:
            raise ValidationError(f"Cannot sort by unknown field '{name}'.")
        column = table.c[name]
        clauses.append(column.desc() if descending else column.asc())
    return clauses


def build_list_statements(table: Table, query: ListQuery, search_columns: Iterable[str] = ()) -> tuple[Select, Select]:
    """Return (select, count) statements for one page of `table`.

    search is a case-insensitive substring match OR'ed across search_columns.
    filters are AND'ed equality conditions.
    """
    conditions = []
    for name, value in query.filters.items():
        if name not in table.c:
            raise ValidationError(f"Cannot filter by unknown field '{name}'.")
        conditions.append(table.c[name] == _coerce(table, name, value))
    if query.search:
        pattern = f"%{query.search}%"
        conditions.append(or_(*(table.c[name].ilike(pattern) for name in search_columns)))

    where = and_(*conditions) if conditions else None

    stmt = select(table)
    count_stmt = select(func.count()).select_from(table)
    if where is not None:
        stmt = stmt.where(where)
        count_stmt = count_stmt.where(where)
    stmt = stmt.order_by(*_order_by(table, query.sort)).offset(query.skip).limit(query.limit)
    return stmt, count_stmt


def pagination(total: int, query: ListQuery) -> dict:
    """Pagination metadata for a page of results."""
    total_pages = math.ceil(total / query.limit) if total else 0
    return {
        "total_documents": total,
        "total_pages": total_pages,
        "current_page": query.page,
        "previous_page": query.page - 1 if query.page > 1 else None,
        "next_page": query.page + 1 if query.page < total_pages else None,
    }


def select_fields(doc: dict, fields: Iterable[str]) -> dict:
    """Keep `id` plus the requested keys. An empty field list keeps everything."""
    wanted = set(fields)
    if not wanted:
        return doc
    return {k: v for k, v in doc.items() if k == "id" or k in wanted}
