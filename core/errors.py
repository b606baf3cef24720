"""
core/errors.py -- Domain error taxonomy for the KIN API.

Every failure a handler can report is one of these classes. Route handlers,
dependencies and services raise them; a single set of exception handlers in
api/main.py translates them into the JSON error envelope:

    {"success": false, "error": {"status": 404, "code": "not_found", "message": "..."}}

Each class carries its HTTP status and a machine-readable code so the translator
never has to inspect messages.

Layer rule: core/ is the kernel. No imports from api/, auth/, content/, storage/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for all errors surfaced to API clients."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Generic categories
# ---------------------------------------------------------------------------


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request."


class AuthError(AppError):
    status_code = 401
    code = "unauthorized"
    default_message = "Authentication required. Please log in."


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "You do not have permission to perform this action."


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Couldn't find any data!"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    default_message = "The resource already exists."


class PayloadTooLargeError(AppError):
    status_code = 413
    code = "file_too_large"
    default_message = "Uploaded file is too large."


# ---------------------------------------------------------------------------
# Auth flow errors
# ---------------------------------------------------------------------------


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid email or password."


class TokenError(AuthError):
    """Raised by auth.tokens.verify_token(). Never retried -- the client re-requests."""

    code = "token_invalid"
    default_message = "Invalid token. Please request a new one."


class TokenExpired(TokenError):
    code = "token_expired"
    default_message = "Token expired. Please request a new one."


class TokenInvalid(TokenError):
    pass


class CodeMismatch(ValidationError):
    code = "code_mismatch"
    default_message = "Invalid code. Please try again."


class AccountBanned(ForbiddenError):
    code = "account_banned"
    default_message = "Your account has been banned. Please contact an administrator."


class NotVerified(ForbiddenError):
    code = "not_verified"
    default_message = "Your account is not activated yet. Please check your email."


class AccountNotFound(NotFoundError):
    code = "account_not_found"
    default_message = "Couldn't find any user account. Please register first."
