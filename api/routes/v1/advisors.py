"""
api/routes/v1/advisors.py -- Advisory panel.

Routes:
  GET    /api/v1/advisors        -- paginated list, ascending by index (public)
  POST   /api/v1/advisors        -- multipart create, advisor_photo required (staff)
  GET    /api/v1/advisors/{id}   -- one advisor (public)
  PATCH  /api/v1/advisors/{id}   -- multipart update (staff)
  DELETE /api/v1/advisors/{id}   -- delete advisor and photo (staff)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import EmailStr

from api.crud import content_store, form_changes, list_response, load_or_404
from api.responses import success
from api.uploads import discard_image, require_image, save_optional_image
from auth.dependencies import require_staff
from auth.models import Account
from content.models import Advisor
from content.store import ADVISORS
from core.errors import ConflictError, ValidationError

router = APIRouter()

_FOLDER = ADVISORS.image_folder
_NOT_FOUND = "Couldn't find any advisor data."


@router.get("/advisors")
def list_advisors(request: Request) -> JSONResponse:
    return list_response(request, ADVISORS, "Advisors data fetched successfully.")


@router.post("/advisors", status_code=201)
async def create_advisor(
    request: Request,
    name: str = Form(..., min_length=1, max_length=255),
    designation: str = Form(..., min_length=1, max_length=255),
    email: EmailStr = Form(...),
    institute: Optional[str] = Form(None, max_length=255),
    cell: Optional[str] = Form(None, max_length=30),
    website: Optional[str] = Form(None, max_length=500),
    index: int = Form(99, ge=0),
    advisor_photo: Optional[UploadFile] = File(None),
    actor: Account = Depends(require_staff),
) -> JSONResponse:
    store = content_store(request)
    if store.exists(ADVISORS, email=email):
        raise ConflictError("Email already exists!")
    photo = await require_image(request, advisor_photo, _FOLDER, "advisor_photo")
    advisor = Advisor(
        name=name.strip(),
        designation=designation.strip(),
        email=email,
        advisor_photo=photo,
        institute=institute,
        cell=cell,
        website=website,
        index=index,
    )
    advisor_id = store.create(ADVISORS, advisor)
    return success("Advisor data created successfully.", data=store.get(ADVISORS, advisor_id), status_code=201)


@router.get("/advisors/{advisor_id}")
def get_advisor(request: Request, advisor_id: int) -> JSONResponse:
    return success("Advisor data fetched successfully.", data=load_or_404(request, ADVISORS, advisor_id, _NOT_FOUND))


@router.patch("/advisors/{advisor_id}")
async def update_advisor(
    request: Request,
    advisor_id: int,
    name: Optional[str] = Form(None, min_length=1, max_length=255),
    designation: Optional[str] = Form(None, min_length=1, max_length=255),
    email: Optional[EmailStr] = Form(None),
    institute: Optional[str] = Form(None, max_length=255),
    cell: Optional[str] = Form(None, max_length=30),
    website: Optional[str] = Form(None, max_length=500),
    index: Optional[int] = Form(None, ge=0),
    advisor_photo: Optional[UploadFile] = File(None),
    actor: Account = Depends(require_staff),
) -> JSONResponse:
    store = content_store(request)
    advisor = load_or_404(request, ADVISORS, advisor_id, _NOT_FOUND)
    changes = form_changes(
        name=name,
        designation=designation,
        email=email,
        institute=institute,
        cell=cell,
        website=website,
        index=index,
    )
    if "email" in changes:
        other = store.find_one(ADVISORS, email=changes["email"])
        if other is not None and other.id != advisor_id:
            raise ConflictError("Email already exists!")
    photo = await save_optional_image(request, advisor_photo, _FOLDER)
    if photo:
        changes["advisor_photo"] = photo
    if not changes:
        raise ValidationError("Nothing to update.")
    store.update(ADVISORS, advisor_id, **changes)
    if photo:
        discard_image(request, _FOLDER, advisor.advisor_photo)
    return success("Advisor data updated successfully.", data=store.get(ADVISORS, advisor_id))


@router.delete("/advisors/{advisor_id}")
def delete_advisor(request: Request, advisor_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    advisor = load_or_404(request, ADVISORS, advisor_id, _NOT_FOUND)
    content_store(request).delete(ADVISORS, advisor_id)
    discard_image(request, _FOLDER, advisor.advisor_photo)
    return success("Advisor data deleted successfully.", data=advisor)
