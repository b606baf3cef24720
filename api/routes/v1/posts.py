"""
api/routes/v1/posts.py -- News posts.

Routes:
  GET    /api/v1/posts           -- paginated list (public)
  POST   /api/v1/posts           -- multipart create: post_photo required, banner optional (staff)
  PATCH  /api/v1/posts/{id}      -- multipart update; `comment` appends to the comment list (staff)
  GET    /api/v1/posts/{slug}    -- one post by slug (staff)
  DELETE /api/v1/posts/{slug}    -- delete post and its images (staff)
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
from content.models import Post
from content.store import POSTS
from core.errors import AppError, ConflictError, NotFoundError, ValidationError

router = APIRouter()

_FOLDER = POSTS.image_folder
_SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


@router.get("/posts")
def list_posts(request: Request) -> JSONResponse:
    return list_response(request, POSTS, "Post data fetched successfully.")


@router.post("/posts", status_code=201)
async def create_post(
    request: Request,
    title: str = Form(..., min_length=1, max_length=255),
    slug: str = Form(..., pattern=_SLUG_PATTERN, max_length=255),
    details: Optional[str] = Form(None),
    date: Optional[str] = Form(None, max_length=32),
    post_photo: Optional[UploadFile] = File(None),
    banner: Optional[UploadFile] = File(None),
    actor: Account = Depends(require_staff),
) -> JSONResponse:
    store = content_store(request)
    if store.exists(POSTS, slug=slug):
        raise ConflictError("This slug already exists.")
    photo = await require_image(request, post_photo, _FOLDER, "post_photo")
    try:
        banner_name = await save_optional_image(request, banner, _FOLDER)
    except AppError:
        discard_image(request, _FOLDER, photo)
        raise
    post_id = store.create(POSTS, Post(title=title, slug=slug, post_photo=photo, banner=banner_name, details=details, date=date))
    return success("Successfully added a new post.", data=store.get(POSTS, post_id), status_code=201)


@router.patch("/posts/{post_id}")
async def update_post(
    request: Request,
    post_id: int,
    title: Optional[str] = Form(None, min_length=1, max_length=255),
    slug: Optional[str] = Form(None, pattern=_SLUG_PATTERN, max_length=255),
    details: Optional[str] = Form(None),
    date: Optional[str] = Form(None, max_length=32),
    comment: Optional[str] = Form(None, min_length=1, max_length=2000),
    post_photo: Optional[UploadFile] = File(None),
    actor: Account = Depends(require_staff),
) -> JSONResponse:
    store = content_store(request)
    post = load_or_404(request, POSTS, post_id)
    changes = form_changes(title=title, slug=slug, details=details, date=date)
    if slug and slug != post.slug and store.exists(POSTS, slug=slug):
        raise ConflictError("This slug already exists.")
    photo = await save_optional_image(request, post_photo, _FOLDER)
    if photo:
        changes["post_photo"] = photo
    if not changes and comment is None:
        raise ValidationError("Nothing to update.")
    if changes:
        store.update(POSTS, post_id, **changes)
    if comment is not None:
        store.add_comment(post_id, comment, author=actor.name)
    if photo:
        discard_image(request, _FOLDER, post.post_photo)
    return success("Successfully updated the post.", data=store.get(POSTS, post_id))


def _by_slug(request: Request, slug: str) -> Post:
    post = content_store(request).find_one(POSTS, slug=slug)
    if post is None:
        raise NotFoundError()
    return post


@router.get("/posts/{slug}")
def get_post(request: Request, slug: str, actor: Account = Depends(require_staff)) -> JSONResponse:
    return success("Post data fetched successfully.", data=_by_slug(request, slug))


@router.delete("/posts/{slug}")
def delete_post(request: Request, slug: str, actor: Account = Depends(require_staff)) -> JSONResponse:
    post = _by_slug(request, slug)
    content_store(request).delete(POSTS, post.id)
    discard_image(request, _FOLDER, post.post_photo)
    discard_image(request, _FOLDER, post.banner)
    return success("Successfully deleted the post.", data=post)
