"""
api/routes/v1/sliders.py -- Home page slider.

Routes:
  GET    /api/v1/sliders        -- all slides, ascending by index (public)
  POST   /api/v1/sliders        -- multipart create, slider_photo required (staff)
  GET    /api/v1/sliders/{id}   -- one slide (auth)
  PATCH  /api/v1/sliders/{id}   -- multipart update (staff)
  DELETE /api/v1/sliders/{id}   -- delete slide and photo (staff)
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse

from api.crud import content_store, form_changes, load_or_404
from api.responses import success
from api.uploads import discard_image, require_image, save_optional_image
from auth.dependencies import get_current_account, require_staff
from auth.models import Account
from content.models import Slider
from content.store import SLIDERS
from core.errors import NotFoundError, ValidationError

router = APIRouter()

_FOLDER = SLIDERS.image_folder


@router.get("/sliders")
def list_sliders(request: Request) -> JSONResponse:
    sliders = content_store(request).list_all(SLIDERS)
    if not sliders:
        raise NotFoundError("No slider data found.")
    return success("All slider data.", data=sliders)


@router.post("/sliders", status_code=201)
async def create_slider(
    request: Request,
    title: str = Form(..., min_length=1, max_length=255),
    link: str = Form(..., min_length=1, max_length=500),
    url: Optional[str] = Form(None, max_length=500),
    index: int = Form(99, ge=0),
    slider_photo: Optional[UploadFile] = File(None),
    actor: Account = Depends(require_staff),
) -> JSONResponse:
    photo = await require_image(request, slider_photo, _FOLDER, "slider_photo")
    store = content_store(request)
    slider_id = store.create(SLIDERS, Slider(title=title, link=link, slider_photo=photo, url=url, index=index))
    return success("Successfully added a new slider.", data=store.get(SLIDERS, slider_id), status_code=201)


@router.get("/sliders/{slider_id}")
def get_slider(request: Request, slider_id: int, account: Account = Depends(get_current_account)) -> JSONResponse:
    return success("Single slider data.", data=load_or_404(request, SLIDERS, slider_id))


@router.patch("/sliders/{slider_id}")
async def update_slider(
    request: Request,
    slider_id: int,
    title: Optional[str] = Form(None, min_length=1, max_length=255),
    link: Optional[str] = Form(None, min_length=1, max_length=500),
    url: Optional[str] = Form(None, max_length=500),
    index: Optional[int] = Form(None, ge=0),
    slider_photo: Optional[UploadFile] = File(None),
    actor: Account = Depends(require_staff),
) -> JSONResponse:
    slider = load_or_404(request, SLIDERS, slider_id)
    changes = form_changes(title=title, link=link, url=url, index=index)
    photo = await save_optional_image(request, slider_photo, _FOLDER)
    if photo:
        changes["slider_photo"] = photo
    if not changes:
        raise ValidationError("Nothing to update.")
    store = content_store(request)
    store.update(SLIDERS, slider_id, **changes)
    if photo:
        discard_image(request, _FOLDER, slider.slider_photo)
    return success("Successfully updated a slider.", data=store.get(SLIDERS, slider_id))


@router.delete("/sliders/{slider_id}")
def delete_slider(request: Request, slider_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    slider = load_or_404(request, SLIDERS, slider_id)
    content_store(request).delete(SLIDERS, slider_id)
    discard_image(request, _FOLDER, slider.slider_photo)
    return success("Successfully deleted a slider.", data=slider)
