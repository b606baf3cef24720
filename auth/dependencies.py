"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two credential transports are checked in priority order:
  1. JWT cookie ("accessToken") -- set by POST /auth/login.
  2. Authorization: Bearer <token> header -- API clients.

try_get_current_account() is the soft variant (returns None on failure).
get_current_account() wraps it and raises AuthError if unauthenticated.
require_roles(*roles) builds a dependency that also checks the stored role.
require_logged_out() rejects clients that already hold a valid session.

The role used for authorization always comes from the database row, never from
the token claim, so a demoted admin loses access on the next request.

Layer rule: no imports from api/, content/, or storage/.
  This module may import from fastapi because it is part of the FastAPI
  dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import ROLE_SUPER_ADMIN, STAFF_ROLES, Account
from auth.policy import authorize
from auth.tokens import ACCESS_COOKIE, decode_session_token
from core.errors import AccountBanned, AppError, AuthError, ValidationError


def _extract_token(request: Request) -> str | None:
    token: str | None = request.cookies.get(ACCESS_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def authenticate(request: Request, token: str | None) -> Account:
    """Resolve a session token to the stored Account.

    Raises AuthError for missing/invalid tokens or deleted accounts and
    AccountBanned for banned accounts.
    """
    if not token:
        raise AuthError()
    payload = decode_session_token(token, request.app.state.settings)
    if payload is None:
        raise AuthError("Invalid or expired session. Please log in again.")
    account = request.app.state.account_store.get_by_id(payload["user_id"])
    # The email claim pins the token to the account it was issued for.
    if account is None or payload.get("sub") != account.email:
        raise AuthError("Account no longer exists. Please log in again.")
    if account.is_banned:
        raise AccountBanned()
    return account


def try_get_current_account(request: Request) -> Account | None:
    """Return the authenticated Account, or None. Never raises."""
    try:
        return authenticate(request, _extract_token(request))
    except AppError:
        return None


def get_current_account(request: Request) -> Account:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(account: Account = Depends(get_current_account)): ...
    """
    return authenticate(request, _extract_token(request))


def require_roles(*roles: str):
    """Build a dependency that requires one of `roles`."""
    allowed = frozenset(roles)

    def dependency(request: Request) -> Account:
        return authorize(get_current_account(request), allowed)

    return dependency


require_staff = require_roles(*STAFF_ROLES)
require_super_admin = require_roles(ROLE_SUPER_ADMIN)


def require_logged_out(request: Request) -> None:
    """Reject register/login/activate/reset requests from a logged-in client."""
    if try_get_current_account(request) is not None:
        raise ValidationError("You are already logged in.")
