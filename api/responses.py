"""
api/responses.py -- JSON envelope builders shared by every router.

Success: {"success": true, "message": "...", "data": ..., "pagination": {...}}
Error:   {"success": false, "error": {"status": 404, "code": "not_found", "message": "..."}}

Route handlers build success envelopes with success(). Error envelopes are
built only by the exception handlers in api/main.py.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse


def success(
    message: str,
    data: Any = None,
    pagination: Optional[dict] = None,
    status_code: int = 200,
) -> JSONResponse:
    content: dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        content["data"] = jsonable_encoder(data)
    if pagination is not None:
        content["pagination"] = pagination
    return JSONResponse(status_code=status_code, content=content)


def error(status_code: int, code: str, message: str, headers: Optional[dict] = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(status=status_code, code=code, message=message))
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)
