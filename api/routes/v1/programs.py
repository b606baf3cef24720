"""
api/routes/v1/programs.py -- Programs and events.

Routes:
  GET    /api/v1/programs        -- paginated list (public)
  POST   /api/v1/programs        -- multipart create, program_photo required (staff)
  GET    /api/v1/programs/{id}   -- one program (public)
  PATCH  /api/v1/programs/{id}   -- multipart update; a new photo replaces the old file (staff)
  DELETE /api/v1/programs/{id}   -- delete program and photo (staff)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from api.crud import content_store, form_changes, list_response, load_or_404
from api.responses import success
from api.uploads import discard_image, require_image, save_optional_image
from auth.dependencies import require_staff
from auth.models import Account
from content.models import Program
from content.store import PROGRAMS
from core.errors import ValidationError

router = APIRouter()

_FOLDER = PROGRAMS.image_folder


@router.get("/programs")
def list_programs(request: Request) -> JSONResponse:
    return list_response(request, PROGRAMS, "Programs data fetched successfully.")


@router.post("/programs", status_code=201)
async def create_program(
    request: Request,
    title: str = Form(..., min_length=1, max_length=255),
    venue: str = Form(..., min_length=1, max_length=255),
    start_date: Optional[str] = Form(None, max_length=32),
    start_time: Optional[str] = Form(None, max_length=32),
    end_date: Optional[str] = Form(None, max_length=32),
    end_time: Optional[str] = Form(None, max_length=32),
    fb_url: Optional[str] = Form(None, max_length=500),
    program_photo: Optional[UploadFile] = File(None),
    actor: Account = Depends(require_staff),
) -> JSONResponse:
    photo = await require_image(request, program_photo, _FOLDER, "program_photo")
    program = Program(
        title=title,
        program_photo=photo,
        venue=venue,
        start_date=start_date,
        start_time=start_time,
        end_date=end_date,
        end_time=end_time,
        fb_url=fb_url,
    )
    store = content_store(request)
    program_id = store.create(PROGRAMS, program)
    return success("Successfully added a new program.", data=store.get(PROGRAMS, program_id), status_code=201)


@router.get("/programs/{program_id}")
def get_program(request: Request, program_id: int) -> JSONResponse:
    return success("Single program data fetched successfully.", data=load_or_404(request, PROGRAMS, program_id))


@router.patch("/programs/{program_id}")
async def update_program(
    request: Request,
    program_id: int,
    title: Optional[str] = Form(None, min_length=1, max_length=255),
    venue: Optional[str] = Form(None, min_length=1, max_length=255),
    start_date: Optional[str] = Form(None, max_length=32),
    start_time: Optional[str] = Form(None, max_length=32),
    end_date: Optional[str] = Form(None, max_length=32),
    end_time: Optional[str] = Form(None, max_length=32),
    fb_url: Optional[str] = Form(None, max_length=500),
    program_photo: Optional[UploadFile] = File(None),
    actor: Account = Depends(require_staff),
) -> JSONResponse:
    program = load_or_404(request, PROGRAMS, program_id)
    changes = form_changes(
        title=title,
        venue=venue,
        start_date=start_date,
        start_time=start_time,
        end_date=end_date,
        end_time=end_time,
        fb_url=fb_url,
    )
    photo = await save_optional_image(request, program_photo, _FOLDER)
    if photo:
        changes["program_photo"] = photo
    if not changes:
        raise ValidationError("Nothing to update.")
    store = content_store(request)
    store.update(PROGRAMS, program_id, **changes)
    if photo:
        discard_image(request, _FOLDER, program.program_photo)
    return success("Program data updated successfully.", data=store.get(PROGRAMS, program_id))


@router.delete("/programs/{program_id}")
def delete_program(request: Request, program_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    program = load_or_404(request, PROGRAMS, program_id)
    content_store(request).delete(PROGRAMS, program_id)
    discard_image(request, _FOLDER, program.program_photo)
    return success("Program data deleted successfully.", data=program)
