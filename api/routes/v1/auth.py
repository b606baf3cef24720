"""
api/routes/v1/auth.py -- Registration, activation, login and password-reset endpoints.

Routes:
  POST  /api/v1/auth/register                -- create unverified account; mails activation code + link
  GET   /api/v1/auth/activate/{token}        -- activate by mailed link
  POST  /api/v1/auth/activate                -- activate by code (token from activationToken cookie)
  POST  /api/v1/auth/resend-active-code      -- new activation code + cookie
  POST  /api/v1/auth/login                   -- password login; sets accessToken cookie
  POST  /api/v1/auth/dashboard-login         -- as login, staff only
  POST  /api/v1/auth/find-account            -- look up an account by email (public fields)
  POST  /api/v1/auth/logout                  -- clears accessToken cookie (requires auth)
  POST  /api/v1/auth/password-reset-code     -- mails reset code + link; sets passwordResetToken cookie
  POST  /api/v1/auth/password-reset          -- reset by code (token from cookie)
  PATCH /api/v1/auth/password-reset/{token}  -- reset by mailed link
  GET   /api/v1/auth/me                      -- current account (requires auth)

Security:
  register, login and dashboard-login are rate-limited per IP (LOGIN_RATE_LIMIT).
  Every endpoint that starts a flow is refused to clients that already hold a
  valid session (require_logged_out).
  Cache-Control: no-store on every response that carries a token.
  All flow logic lives in auth.service.AuthService -- handlers only move data
  between HTTP (bodies, cookies) and the service.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import AUTH_RATE_LIMIT, limiter
from api.models import (
    ActivateRequest,
    EmailRequest,
    LoginRequest,
    PasswordRequest,
    PasswordResetByCodeRequest,
    RegisterRequest,
)
from api.responses import success
from auth.dependencies import get_current_account, require_logged_out
from auth.models import Account, Identity, SocialMedia
from auth.service import AuthService, IssuedChallenge
from auth.tokens import (
    ACCESS_COOKIE,
    ACTIVATION_COOKIE,
    PASSWORD_RESET_COOKIE,
    clear_cookie,
    set_access_cookie,
    set_challenge_cookie,
)
from auth.visibility import project

# Auth policy:
# - logout, me:  requires auth (get_current_account)
# - everything else: requires the client NOT to be logged in (require_logged_out)
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _with_challenge_cookie(request: Request, response: JSONResponse, name: str, issued: IssuedChallenge) -> JSONResponse:
    set_challenge_cookie(response, name, issued.token, issued.max_age, request.app.state.settings)
    response.headers["Cache-Control"] = "no-store"
    return response


def account_from_registration(body: RegisterRequest) -> Account:
    """Map a validated registration body to an unsaved Account."""
    return Account(
        name=body.name,
        email=body.email,
        gender=body.gender.value,
        mobile=body.mobile,
        blood_group=body.blood_group.value if body.blood_group else None,
        age=body.age,
        location=body.location,
        feedback=body.feedback,
        identity=Identity(**body.identity.model_dump()) if body.identity else Identity(),
        social_media=SocialMedia(**body.social_media.model_dump()) if body.social_media else SocialMedia(),
    )


# ---------------------------------------------------------------------------
# Registration and activation
# ---------------------------------------------------------------------------


@limiter.limit(AUTH_RATE_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", status_code=201, dependencies=[Depends(require_logged_out)])
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    account, issued = _service(request).register(account_from_registration(body), body.password)
    response = success(
        f"Email has been sent to {account.email}. Follow the instruction to activate your account.",
        data=project(account, None),
        status_code=201,
    )
    return _with_challenge_cookie(request, response, ACTIVATION_COOKIE, issued)


@router.get("/auth/activate/{token}", dependencies=[Depends(require_logged_out)])
def activate_by_url(request: Request, token: str) -> JSONResponse:
    account = _service(request).activate_by_url(token)
    response = success("Account activated successfully. Please log in.", data=project(account, None))
    clear_cookie(response, ACTIVATION_COOKIE, request.app.state.settings)
    return response


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/auth/activate", dependencies=[Depends(require_logged_out)])
def activate_by_code(request: Request, body: ActivateRequest) -> JSONResponse:
    token = request.cookies.get(ACTIVATION_COOKIE)
    account = _service(request).activate_by_code(token, body.code)
    response = success("Account activated successfully. Please log in.", data=project(account, None))
    clear_cookie(response, ACTIVATION_COOKIE, request.app.state.settings)
    return response


@router.post("/auth/resend-active-code", dependencies=[Depends(require_logged_out)])
def resend_activation_code(request: Request, body: EmailRequest) -> JSONResponse:
    issued = _service(request).resend_activation_code(body.email)
    response = success(f"Email has been sent to {issued.email}. Follow the instruction to activate your account.")
    return _with_challenge_cookie(request, response, ACTIVATION_COOKIE, issued)


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


def _login_response(request: Request, body: LoginRequest, staff_only: bool) -> JSONResponse:
    account, token = _service(request).login(body.email, body.password, staff_only=staff_only)
    response = success(
        "Successfully logged in.",
        data={"user": project(account, account.role), "accessToken": token},
    )
    set_access_cookie(response, token, request.app.state.settings)
    response.headers["Cache-Control"] = "no-store"
    return response


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/auth/login", dependencies=[Depends(require_logged_out)])
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the accessToken cookie.

    The token is also returned in the body for clients that prefer the
    Authorization: Bearer header.
    """
    return _login_response(request, body, staff_only=False)


@limiter.limit(AUTH_RATE_LIMIT)
@router.post("/auth/dashboard-login", dependencies=[Depends(require_logged_out)])
def dashboard_login(request: Request, body: LoginRequest) -> JSONResponse:
    return _login_response(request, body, staff_only=True)


@router.post("/auth/logout")
def logout(request: Request, account: Account = Depends(get_current_account)) -> JSONResponse:
    response = success("Successfully logged out.")
    clear_cookie(response, ACCESS_COOKIE, request.app.state.settings)
    return response


@router.post("/auth/find-account", dependencies=[Depends(require_logged_out)])
def find_account(request: Request, body: EmailRequest) -> JSONResponse:
    account = _service(request).find_account(body.email)
    return success("Account found.", data=project(account, None))


@router.get("/auth/me")
def me(account: Account = Depends(get_current_account)) -> JSONResponse:
    return success("Logged in user data.", data=project(account, account.role))


# ---------------------------------------------------------------------------
# Password reset
#
# These handlers are also mounted under /users (forgot-password,
# reset-password, ...) by api/routes/v1/users.py.
# ---------------------------------------------------------------------------


def password_reset_code(request: Request, body: EmailRequest) -> JSONResponse:
    issued = _service(request).forgot_password(body.email)
    response = success("Password reset code has been sent to your email.")
    return _with_challenge_cookie(request, response, PASSWORD_RESET_COOKIE, issued)


def resend_password_reset_code(request: Request, body: EmailRequest) -> JSONResponse:
    issued = _service(request).resend_password_reset_code(body.email)
    response = success(f"Email has been sent to {issued.email}. Follow the instruction to reset your password.")
    return _with_challenge_cookie(request, response, PASSWORD_RESET_COOKIE, issued)


@limiter.limit(AUTH_RATE_LIMIT)
def password_reset_by_code(request: Request, body: PasswordResetByCodeRequest) -> JSONResponse:
    token = request.cookies.get(PASSWORD_RESET_COOKIE)
    account = _service(request).reset_password_by_code(token, body.code, body.password)
    response = success("Password updated successfully.", data=project(account, None))
    clear_cookie(response, PASSWORD_RESET_COOKIE, request.app.state.settings)
    return response


def password_reset_by_url(request: Request, token: str, body: PasswordRequest) -> JSONResponse:
    account = _service(request).reset_password_by_url(token, body.password)
    return success("Password updated successfully.", data=project(account, None))


_logged_out = [Depends(require_logged_out)]
router.add_api_route("/auth/password-reset-code", password_reset_code, methods=["POST"], dependencies=_logged_out)
router.add_api_route("/auth/password-reset", password_reset_by_code, methods=["POST"], dependencies=_logged_out)
router.add_api_route("/auth/password-reset/{token}", password_reset_by_url, methods=["PATCH"], dependencies=_logged_out)
