"""
auth/tokens.py -- JWT, password hashing, and cookie utilities.

Security design decisions:
  JWT: python-jose with HS256. Every token carries a "purpose" claim and is
       signed with the secret for that purpose (session, activation, cookie
       reset, link reset -- see core/config.py). A token minted for one flow
       fails verification in every other flow because both the key and the
       purpose differ.

       issue_token() / verify_token() raise on failure (TokenExpired or
       TokenInvalid) so the auth service can tell the two apart.
       decode_session_token() is the soft variant used by the access guard:
       it returns None on any failure and the guard turns that into a 401.

  Passwords: bcrypt, used directly (no passlib wrapper). The _DUMMY_HASH
       constant enables timing equalization in authenticate_account() so
       response time does not reveal whether an email is registered.

  Reset tokens are single-use: they embed password_fingerprint() of the hash
       they were issued against. Once the password changes, the fingerprint no
       longer matches and the token is rejected.

Layer rule: no imports from api/, content/, or storage/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from core.errors import TokenExpired, TokenInvalid

if TYPE_CHECKING:
    from auth.models import Account
    from auth.store import AccountStore
    from core.config import Settings

logger = logging.getLogger("kin.auth")

_ALGORITHM = "HS256"

# Claims added by issue_token() and stripped again by verify_token()
_REGISTERED_CLAIMS = ("exp", "iat", "purpose")

PURPOSE_SESSION = "session"
PURPOSE_ACTIVATE = "activate"
PURPOSE_ACTIVATE_LINK = "activate_link"
PURPOSE_RESET = "reset"
PURPOSE_RESET_LINK = "reset_link"

ACCESS_COOKIE = "accessToken"
ACTIVATION_COOKIE = "activationToken"
PASSWORD_RESET_COOKIE = "passwordResetToken"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext.

    bcrypt truncates input beyond 72 bytes. The API layer caps passwords at
    64 characters, which keeps ASCII input below the threshold.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("kin_timing_dummy")


def password_fingerprint(secret: str, hashed_password: str) -> str:
    """Short HMAC of the current password hash, embedded in reset tokens."""
    digest = hmac.new(secret.encode(), hashed_password.encode(), hashlib.sha256).hexdigest()
    return digest[:16]


def fingerprint_matches(secret: str, hashed_password: str, fingerprint: str) -> bool:
    return hmac.compare_digest(password_fingerprint(secret, hashed_password), fingerprint or "")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def issue_token(payload: dict, secret: str, ttl_seconds: int, purpose: str) -> str:
    """Sign `payload` with `secret`, adding iat, exp and the purpose claim.

    A negative ttl_seconds yields an already-expired token (used in tests).
    """
    now = datetime.now(timezone.utc)
    claims = dict(payload)
    claims["purpose"] = purpose
    claims["iat"] = now
    claims["exp"] = now + timedelta(seconds=ttl_seconds)
    return jwt.encode(claims, secret, algorithm=_ALGORITHM)


def verify_token(token: str | None, secret: str, purpose: str) -> dict:
    """Verify signature, expiry and purpose. Returns the original payload.

    Raises:
        TokenExpired: the signature is valid but exp has passed.
        TokenInvalid: missing, malformed, wrongly signed, or minted for
                      another purpose.
    """
    if not token:
        raise TokenInvalid()
    try:
        claims = jwt.decode(token, secret, algorithms=[_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except JWTError as exc:
        raise TokenInvalid() from exc
    if claims.get("purpose") != purpose:
        raise TokenInvalid()
    return {k: v for k, v in claims.items() if k not in _REGISTERED_CLAIMS}


def create_session_token(account: Account, settings: Settings) -> str:
    payload = {"sub": account.email, "user_id": account.id, "role": account.role}
    return issue_token(payload, settings.secret_key, settings.session_expire_seconds, PURPOSE_SESSION)


def decode_session_token(token: str, settings: Settings) -> dict | None:
    """Decode a session JWT. Returns the payload or None on any failure.

    Returning None (rather than raising) keeps the access guard simple: any
    invalid token is treated as unauthenticated.
    """
    try:
        payload = verify_token(token, settings.secret_key, PURPOSE_SESSION)
    except TokenInvalid:
        return None
    except TokenExpired:
        return None
    if "user_id" not in payload:
        return None
    return payload


# ---------------------------------------------------------------------------
# Account authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_account(store: AccountStore, email: str, password: str) -> Account | None:
    """Check an email/password pair with timing equalization.

    Always runs bcrypt whether or not the account exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as a real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the Account when the password matches, None otherwise. Banned and
    unverified accounts are returned too; the caller decides what to report.
    """
    account = store.get_by_email(email)
    if account is None or account.hashed_password is None:
        # Equalize timing -- do NOT return early before running bcrypt
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, account.hashed_password):
        return None
    return account


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_access_cookie(response, token: str, settings: Settings) -> None:
    """Write the session JWT as an httpOnly cookie.

    samesite="lax": sent on same-site navigations and cross-site GET links,
        not on cross-site POST.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age matches the JWT expiry so both expire together.
    """
    response.set_cookie(
        ACCESS_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.session_expire_seconds,
    )


def set_challenge_cookie(response, name: str, token: str, max_age: int, settings: Settings) -> None:
    """Write an activation or password-reset token cookie (strict same-site)."""
    response.set_cookie(
        name,
        value=token,
        httponly=True,
        samesite="strict",
        secure=settings.secure_cookies,
        max_age=max_age,
    )


def clear_cookie(response, name: str, settings: Settings) -> None:
    response.delete_cookie(name, httponly=True, secure=settings.secure_cookies)
