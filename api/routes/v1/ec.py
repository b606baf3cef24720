"""
api/routes/v1/ec.py -- Executive committee rosters.

Routes:
  GET    /api/v1/ec                             -- all committees, newest year first (public)
  POST   /api/v1/ec                             -- create committee (staff)
  GET    /api/v1/ec/{id}                        -- one committee (staff)
  PATCH  /api/v1/ec/{id}                        -- rename / change year (staff)
  DELETE /api/v1/ec/{id}                        -- delete committee and roster (staff)
  PATCH  /api/v1/ec/add-member/{id}             -- add an account to the roster (staff)
  PATCH  /api/v1/ec/update-member/{member_id}   -- change designation / order (staff)
  PATCH  /api/v1/ec/remove-member/{member_id}   -- drop a roster entry (staff)

Roster entries reference accounts by id. Each member's account is resolved and
passed through auth.visibility.project() with the requester's role, so the
public listing shows profile fields only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.crud import content_store
from api.models import CommitteeCreate, CommitteeUpdate, MemberAdd, MemberUpdate
from api.responses import success
from auth.dependencies import require_staff, try_get_current_account
from auth.models import Account
from auth.visibility import project
from content.models import Committee, CommitteeMember
from core.errors import ConflictError, NotFoundError, ValidationError

router = APIRouter()


def _serialize(request: Request, committee: Committee, requester_role: str | None) -> dict:
    accounts = request.app.state.account_store
    members = []
    for m in committee.members:
        account = accounts.get_by_id(m.user_id)
        members.append(
            {
                "id": m.id,
                "user": project(account, requester_role) if account else None,
                "designation": m.designation,
                "index": m.index,
            }
        )
    return {
        "id": committee.id,
        "name": committee.name,
        "year": committee.year,
        "members": members,
        "created_at": committee.created_at,
        "updated_at": committee.updated_at,
    }


def _load(request: Request, committee_id: int) -> Committee:
    committee = content_store(request).get_committee(committee_id)
    if committee is None:
        raise NotFoundError()
    return committee


def _load_member(request: Request, member_id: int) -> CommitteeMember:
    member = content_store(request).get_member(member_id)
    if member is None:
        raise NotFoundError("Couldn't find any member data.")
    return member


@router.get("/ec")
def list_committees(request: Request) -> JSONResponse:
    committees = content_store(request).list_committees()
    if not committees:
        raise NotFoundError()
    viewer = try_get_current_account(request)
    role = viewer.role if viewer else None
    return success("EC's data fetched successfully.", data=[_serialize(request, c, role) for c in committees])


@router.post("/ec", status_code=201)
def create_committee(request: Request, body: CommitteeCreate, actor: Account = Depends(require_staff)) -> JSONResponse:
    store = content_store(request)
    if store.committee_name_taken(body.name):
        raise ConflictError("This name already exists.")
    committee_id = store.create_committee(body.name, body.year)
    return success("New EC added successfully.", data=_serialize(request, _load(request, committee_id), actor.role), status_code=201)


@router.patch("/ec/add-member/{committee_id}")
def add_member(request: Request, committee_id: int, body: MemberAdd, actor: Account = Depends(require_staff)) -> JSONResponse:
    store = content_store(request)
    _load(request, committee_id)
    if request.app.state.account_store.get_by_id(body.user_id) is None:
        raise NotFoundError("Couldn't find any user data!")
    if store.has_member(committee_id, body.user_id):
        raise ConflictError("Member already exists!")
    store.add_member(committee_id, CommitteeMember(user_id=body.user_id, designation=body.designation, index=body.index))
    return success("New member added successfully.", data=_serialize(request, _load(request, committee_id), actor.role))


@router.patch("/ec/update-member/{member_id}")
def update_member(request: Request, member_id: int, body: MemberUpdate, actor: Account = Depends(require_staff)) -> JSONResponse:
    member = _load_member(request, member_id)
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("Nothing to update.")
    content_store(request).update_member(member_id, **changes)
    return success("Member data updated.", data=_serialize(request, _load(request, member.committee_id), actor.role))


@router.patch("/ec/remove-member/{member_id}")
def remove_member(request: Request, member_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    member = _load_member(request, member_id)
    content_store(request).remove_member(member_id)
    return success("Member data removed successfully.", data=_serialize(request, _load(request, member.committee_id), actor.role))


@router.get("/ec/{committee_id}")
def get_committee(request: Request, committee_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    return success("EC data fetched successfully.", data=_serialize(request, _load(request, committee_id), actor.role))


@router.patch("/ec/{committee_id}")
def update_committee(request: Request, committee_id: int, body: CommitteeUpdate, actor: Account = Depends(require_staff)) -> JSONResponse:
    store = content_store(request)
    _load(request, committee_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("Nothing to update.")
    if "name" in changes and store.committee_name_taken(changes["name"], exclude_id=committee_id):
        raise ConflictError("This name already exists.")
    store.update_committee(committee_id, **changes)
    return success("EC data is successfully updated.", data=_serialize(request, _load(request, committee_id), actor.role))


@router.delete("/ec/{committee_id}")
def delete_committee(request: Request, committee_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    committee = _load(request, committee_id)
    data = _serialize(request, committee, actor.role)
    content_store(request).delete_committee(committee_id)
    return success("EC data is successfully deleted.", data=data)
