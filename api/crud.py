"""
api/crud.py -- Lookup and listing helpers shared by the content routers.

Thin wrappers over content.store.ContentStore that raise NotFoundError on a
miss and build the paginated success envelope, so each router only states what
is specific to its resource.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from api.responses import success
from content.store import ContentStore, Resource
from core.errors import NotFoundError
from core.query import pagination, parse_list_query, select_fields


def content_store(request: Request) -> ContentStore:
    return request.app.state.content_store


def load_or_404(request: Request, resource: Resource, record_id: int, message: str | None = None):
    record = content_store(request).get(resource, record_id)
    if record is None:
        raise NotFoundError(message)
    return record


def list_response(request: Request, resource: Resource, message: str) -> JSONResponse:
    """Paginated list of `resource` driven by the request's query string."""
    query = parse_list_query(request.query_params, resource.filter_columns)
    records, total = content_store(request).list_page(resource, query)
    if not records:
        raise NotFoundError()
    data = [select_fields(jsonable_encoder(r), query.fields) for r in records]
    return success(message, data=data, pagination=pagination(total, query))


def form_changes(**fields) -> dict:
    """Keep only the form fields the client actually sent."""
    return {name: value for name, value in fields.items() if value is not None}
