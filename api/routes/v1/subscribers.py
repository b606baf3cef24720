"""
api/routes/v1/subscribers.py -- Newsletter subscribers.

Routes:
  POST   /api/v1/subscribers        -- subscribe (public)
  GET    /api/v1/subscribers        -- paginated list (staff)
  PATCH  /api/v1/subscribers/{id}   -- edit (staff)
  DELETE /api/v1/subscribers/{id}   -- remove (staff)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.crud import content_store, list_response, load_or_404
from api.models import SubscriberCreate, SubscriberUpdate
from api.responses import success
from auth.dependencies import require_staff
from auth.models import Account
from content.models import Subscriber
from content.store import SUBSCRIBERS
from core.errors import ConflictError, ValidationError

router = APIRouter()


@router.post("/subscribers", status_code=201)
def subscribe(request: Request, body: SubscriberCreate) -> JSONResponse:
    store = content_store(request)
    if store.exists(SUBSCRIBERS, email=body.email):
        raise ConflictError("You have already subscribed.")
    subscriber_id = store.create(SUBSCRIBERS, Subscriber(email=body.email, name=body.name))
    return success("Successfully subscribed to KIN.", data=store.get(SUBSCRIBERS, subscriber_id), status_code=201)


@router.get("/subscribers")
def list_subscribers(request: Request, actor: Account = Depends(require_staff)) -> JSONResponse:
    return list_response(request, SUBSCRIBERS, "Subscriber data fetched successfully.")


@router.patch("/subscribers/{subscriber_id}")
def update_subscriber(
    request: Request, subscriber_id: int, body: SubscriberUpdate, actor: Account = Depends(require_staff)
) -> JSONResponse:
    store = content_store(request)
    load_or_404(request, SUBSCRIBERS, subscriber_id, "Couldn't find any subscriber data!")
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("Nothing to update.")
    if "email" in changes:
        other = store.find_one(SUBSCRIBERS, email=changes["email"])
        if other is not None and other.id != subscriber_id:
            raise ConflictError("This email is already subscribed.")
    store.update(SUBSCRIBERS, subscriber_id, **changes)
    return success("Successfully updated subscriber data.", data=store.get(SUBSCRIBERS, subscriber_id))


@router.delete("/subscribers/{subscriber_id}")
def delete_subscriber(request: Request, subscriber_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    subscriber = load_or_404(request, SUBSCRIBERS, subscriber_id, "Couldn't find any subscriber data!")
    content_store(request).delete(SUBSCRIBERS, subscriber_id)
    return success("Successfully deleted subscriber data.", data=subscriber)
