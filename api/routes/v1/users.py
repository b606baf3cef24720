"""
api/routes/v1/users.py -- Account management REST endpoints.

Routes:
  GET    /api/v1/users                             -- paginated list (staff)
  POST   /api/v1/users                             -- create pre-verified account (staff)
  POST   /api/v1/users/bulk-delete                 -- delete an explicit id list (staff)
  PATCH  /api/v1/users/password-update             -- change own password (auth)
  POST   /api/v1/users/forgot-password             -- alias of POST /auth/password-reset-code
  POST   /api/v1/users/reset-password              -- alias of POST /auth/password-reset
  PATCH  /api/v1/users/reset-password/{token}      -- alias of PATCH /auth/password-reset/{token}
  POST   /api/v1/users/resend-password-reset-code  -- new reset code + cookie
  PATCH  /api/v1/users/ban/{id}                    -- ban (staff)
  PATCH  /api/v1/users/unban/{id}                  -- unban (staff)
  PATCH  /api/v1/users/role-update/{id}            -- change role (superAdmin)
  PATCH  /api/v1/users/credential-update/{id}      -- change email/flags/role/password (superAdmin)
  GET    /api/v1/users/{id}                        -- one account, projected for the requester (auth)
  PATCH  /api/v1/users/{id}                        -- profile update (self or staff)
  PATCH  /api/v1/users/{id}/photo                  -- replace profile photo (self or staff)
  DELETE /api/v1/users/{id}                        -- delete (staff; never a superAdmin)

Fixed paths are registered before /users/{id} so they are matched first.

Every account in a response passes through auth.visibility.project() with the
requester's stored role. Role rules live in auth/policy.py.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse

from api.models import AdminUserCreate, BulkDeleteRequest, CredentialUpdate, PasswordRequest, ProfileUpdate, RoleUpdate
from api.responses import success
from api.routes.v1.auth import (
    account_from_registration,
    password_reset_by_code,
    password_reset_by_url,
    password_reset_code,
    resend_password_reset_code,
)
from api.uploads import discard_image, save_image
from auth.dependencies import get_current_account, require_staff, require_super_admin
from auth.models import ROLE_SUPER_ADMIN, ROLE_USER, Account
from auth.policy import (
    ensure_bannable,
    ensure_can_edit_profile,
    ensure_deletable,
    ensure_role_change_allowed,
    ensure_unbannable,
)
from auth.store import FILTER_COLUMNS, AccountStore
from auth.tokens import hash_password
from auth.visibility import project
from core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.query import pagination, parse_list_query, select_fields

logger = logging.getLogger("kin.api")

USER_PHOTO_FOLDER = "users"

router = APIRouter()


def _store(request: Request) -> AccountStore:
    return request.app.state.account_store


def _load(request: Request, user_id: int) -> Account:
    account = _store(request).get_by_id(user_id)
    if account is None:
        raise NotFoundError("Couldn't find any user data!")
    return account


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.get("/users")
def list_users(request: Request, actor: Account = Depends(require_staff)) -> JSONResponse:
    """Paginated account list.

    Query: page, limit, search (name/email/mobile/role), sort, fields, and
    equality filters role, gender, is_verified, is_banned, approved, blood_group.
    """
    query = parse_list_query(request.query_params, FILTER_COLUMNS)
    accounts, total = _store(request).list_accounts(query)
    if not accounts:
        raise NotFoundError()
    data = [select_fields(project(a, actor.role), query.fields) for a in accounts]
    return success("Users data fetched successfully.", data=data, pagination=pagination(total, query))


@router.post("/users", status_code=201)
def create_user(request: Request, body: AdminUserCreate, actor: Account = Depends(require_staff)) -> JSONResponse:
    """Create an account that skips email activation."""
    store = _store(request)
    if body.role.value != ROLE_USER and actor.role != ROLE_SUPER_ADMIN:
        raise ForbiddenError("Only a super admin can create staff accounts.")
    if store.exists(email=body.email):
        raise ConflictError("An account with this email already exists.")
    account = account_from_registration(body)
    account.role = body.role.value
    account.is_verified = True
    account.hashed_password = hash_password(body.password)
    account.user_photo = request.app.state.settings.default_user_photo
    account_id = store.create_account(account)
    logger.info("Account id=%s created by staff id=%s", account_id, actor.id)
    return success(
        "User account created successfully.",
        data=project(store.get_by_id(account_id), actor.role),
        status_code=201,
    )


@router.post("/users/bulk-delete")
def bulk_delete(request: Request, body: BulkDeleteRequest, actor: Account = Depends(require_staff)) -> JSONResponse:
    """Delete every listed account except superAdmins (silently skipped)."""
    deleted = _store(request).delete_many(body.ids)
    request.app.state.content_store.remove_memberships(a.id for a in deleted)
    for account in deleted:
        discard_image(request, USER_PHOTO_FOLDER, account.user_photo)
    deleted_ids = [a.id for a in deleted]
    skipped = [i for i in body.ids if i not in set(deleted_ids)]
    logger.info("Bulk delete by id=%s removed %d account(s)", actor.id, len(deleted_ids))
    return success(
        f"{len(deleted_ids)} user account(s) deleted.",
        data={"deleted_ids": deleted_ids, "skipped_ids": skipped},
    )


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


@router.patch("/users/password-update")
def update_password(request: Request, body: PasswordRequest, actor: Account = Depends(get_current_account)) -> JSONResponse:
    account = request.app.state.auth_service.update_password(actor.id, body.password)
    return success("Password updated successfully.", data=project(account, account.role))


router.add_api_route("/users/forgot-password", password_reset_code, methods=["POST"])
router.add_api_route("/users/reset-password", password_reset_by_code, methods=["POST"])
router.add_api_route("/users/reset-password/{token}", password_reset_by_url, methods=["PATCH"])
router.add_api_route("/users/resend-password-reset-code", resend_password_reset_code, methods=["POST"])


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


@router.patch("/users/ban/{user_id}")
def ban_user(request: Request, user_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    target = _load(request, user_id)
    ensure_bannable(actor, target)
    _store(request).update_account(user_id, is_banned=True)
    logger.info("Account id=%s banned by id=%s", user_id, actor.id)
    return success("User account is successfully banned.", data=project(_load(request, user_id), actor.role))


@router.patch("/users/unban/{user_id}")
def unban_user(request: Request, user_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    target = _load(request, user_id)
    ensure_unbannable(target)
    _store(request).update_account(user_id, is_banned=False)
    logger.info("Account id=%s unbanned by id=%s", user_id, actor.id)
    return success("User account is successfully unbanned.", data=project(_load(request, user_id), actor.role))


@router.patch("/users/role-update/{user_id}")
def update_role(request: Request, user_id: int, body: RoleUpdate, actor: Account = Depends(require_super_admin)) -> JSONResponse:
    target = _load(request, user_id)
    ensure_role_change_allowed(actor, target, body.role.value)
    _store(request).update_account(user_id, role=body.role.value)
    logger.info("Account id=%s role set to %s by id=%s", user_id, body.role.value, actor.id)
    return success("User role updated successfully.", data=project(_load(request, user_id), actor.role))


@router.patch("/users/credential-update/{user_id}")
def update_credentials(
    request: Request, user_id: int, body: CredentialUpdate, actor: Account = Depends(require_super_admin)
) -> JSONResponse:
    """Change login credentials and status flags in one call."""
    store = _store(request)
    target = _load(request, user_id)
    changes = body.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    if not changes:
        raise ValidationError("Nothing to update.")
    if "role" in changes:
        ensure_role_change_allowed(actor, target, changes["role"])
    if changes.get("is_banned") and target.role == ROLE_SUPER_ADMIN:
        raise ForbiddenError("Can't ban this account.")
    if "email" in changes:
        other = store.get_by_email(changes["email"])
        if other is not None and other.id != target.id:
            raise ConflictError("An account with this email already exists.")
    if "password" in changes:
        changes["hashed_password"] = hash_password(changes.pop("password"))
    store.update_account(user_id, **changes)
    logger.info("Credentials of account id=%s updated by id=%s (%s)", user_id, actor.id, ", ".join(sorted(changes)))
    return success("User credentials updated successfully.", data=project(_load(request, user_id), actor.role))


# ---------------------------------------------------------------------------
# Single account
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}")
def get_user(request: Request, user_id: int, actor: Account = Depends(get_current_account)) -> JSONResponse:
    return success("User data fetched successfully.", data=project(_load(request, user_id), actor.role))


@router.patch("/users/{user_id}")
def update_user(request: Request, user_id: int, body: ProfileUpdate, actor: Account = Depends(get_current_account)) -> JSONResponse:
    target = _load(request, user_id)
    changes = body.model_dump(exclude_unset=True, mode="json")
    ensure_can_edit_profile(actor, target, changes)
    unknown = set(changes) - set(ProfileUpdate.model_fields)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}.")
    if not changes:
        raise ValidationError("Nothing to update.")
    _store(request).update_account(user_id, **changes)
    return success("User data is successfully updated.", data=project(_load(request, user_id), actor.role))


@router.patch("/users/{user_id}/photo")
async def update_user_photo(
    request: Request,
    user_id: int,
    user_photo: UploadFile = File(...),
    actor: Account = Depends(get_current_account),
) -> JSONResponse:
    target = _load(request, user_id)
    ensure_can_edit_profile(actor, target)
    filename = await save_image(request, user_photo, USER_PHOTO_FOLDER)
    _store(request).update_account(user_id, user_photo=filename)
    discard_image(request, USER_PHOTO_FOLDER, target.user_photo)
    return success("Profile photo updated successfully.", data=project(_load(request, user_id), actor.role))


@router.delete("/users/{user_id}")
def delete_user(request: Request, user_id: int, actor: Account = Depends(require_staff)) -> JSONResponse:
    target = _load(request, user_id)
    ensure_deletable(target)
    _store(request).delete_account(user_id)
    request.app.state.content_store.remove_memberships([user_id])
    discard_image(request, USER_PHOTO_FOLDER, target.user_photo)
    logger.info("Account id=%s deleted by id=%s", user_id, actor.id)
    return success("User account is successfully deleted.", data=project(target, actor.role))
