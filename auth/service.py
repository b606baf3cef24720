"""
auth/service.py -- Registration, activation, login and password-reset flows.

Account states: PendingVerification -> Active -> Banned/Active. Password reset
is an overlay on an existing account and does not change the state.

Every challenge (activation or reset) is issued twice:
  - a code token: carries the bcrypt hash of a short numeric code, handed to
    the client in an httpOnly cookie. The plaintext code is mailed.
  - a link token: carries only the email, mailed as a link to the client app.

Both are signed with the secret for their purpose. Tokens are single-use by
state: activation tokens stop working once the account is verified, and reset
tokens embed a fingerprint of the password hash they were issued against, so
they stop working once the password changes. Issuing a new token never revokes
an older one that is still within its TTL.

AuthService holds no per-request state. The app lifespan builds one instance
and stores it on app.state.auth_service.

Layer rule: no imports from api/, content/, or storage/.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from auth.codes import generate_code, verify_code
from auth.mailer import MailMessage
from auth.models import ROLE_USER, Account
from auth.store import normalize_email
from auth.tokens import (
    PURPOSE_ACTIVATE,
    PURPOSE_ACTIVATE_LINK,
    PURPOSE_RESET,
    PURPOSE_RESET_LINK,
    authenticate_account,
    create_session_token,
    fingerprint_matches,
    hash_password,
    issue_token,
    password_fingerprint,
    verify_token,
)
from core.errors import (
    AccountBanned,
    AccountNotFound,
    CodeMismatch,
    ConflictError,
    ForbiddenError,
    InvalidCredentials,
    NotVerified,
    TokenInvalid,
    ValidationError,
)

if TYPE_CHECKING:
    from auth.mailer import Mailer
    from auth.store import AccountStore
    from core.config import Settings

logger = logging.getLogger("kin.auth")


@dataclass(frozen=True)
class IssuedChallenge:
    """Result of issuing an activation or reset challenge.

    token goes into the challenge cookie (max_age seconds); link_token was
    mailed inside a link. delivered is False when the mailer reported failure.
    """

    email: str
    token: str
    link_token: str
    max_age: int
    delivered: bool


class AuthService:
    def __init__(self, store: AccountStore, mailer: Mailer, settings: Settings) -> None:
        self._store = store
        self._mailer = mailer
        self._settings = settings

    # ------------------------------------------------------------------
    # Registration and activation
    # ------------------------------------------------------------------

    def register(self, account: Account, password: str) -> tuple[Account, IssuedChallenge]:
        """Create an unverified account and send it an activation challenge.

        Raises ConflictError if the email is already registered.
        """
        account.email = normalize_email(account.email)
        if self._store.exists(email=account.email):
            raise ConflictError("An account with this email already exists. Please log in.")
        account.hashed_password = hash_password(password)
        account.role = ROLE_USER
        account.is_verified = False
        account.is_banned = False
        if not account.user_photo:
            account.user_photo = self._settings.default_user_photo
        account_id = self._store.create_account(account)
        created = self._store.get_by_id(account_id)
        logger.info("Registered account id=%s", account_id)
        return created, self._issue_activation(created)

    def resend_activation_code(self, email: str) -> IssuedChallenge:
        account = self._store.get_by_email(email)
        if account is None:
            raise AccountNotFound()
        if account.is_verified:
            raise ValidationError("Account is already activated.")
        return self._issue_activation(account)

    def activate_by_code(self, token: str | None, code: str) -> Account:
        """Verify the cookie token and the mailed code, then mark the account verified."""
        payload = self._verify(token, self._settings.verify_secret_key, PURPOSE_ACTIVATE)
        account = self._pending_account(payload)
        if not verify_code(code, payload.get("code", "")):
            raise CodeMismatch()
        return self._mark_verified(account)

    def activate_by_url(self, token: str | None) -> Account:
        payload = self._verify(token, self._settings.verify_secret_key, PURPOSE_ACTIVATE_LINK)
        account = self._pending_account(payload)
        return self._mark_verified(account)

    def _pending_account(self, payload: dict) -> Account:
        account = self._store.get_by_email(payload.get("email", ""))
        if account is None:
            raise AccountNotFound()
        if account.is_verified:
            raise ValidationError("Account is already activated.")
        return account

    def _mark_verified(self, account: Account) -> Account:
        self._store.update_account(account.id, is_verified=True)
        logger.info("Activated account id=%s", account.id)
        return self._store.get_by_id(account.id)

    def _issue_activation(self, account: Account) -> IssuedChallenge:
        s = self._settings
        code, hashed = generate_code(s.code_length)
        token = issue_token(
            {"email": account.email, "code": hashed},
            s.verify_secret_key,
            s.verify_expire_seconds,
            PURPOSE_ACTIVATE,
        )
        link_token = issue_token({"email": account.email}, s.verify_secret_key, s.verify_expire_seconds, PURPOSE_ACTIVATE_LINK)
        message = MailMessage(
            to=account.email,
            subject="Account Activation",
            code=code,
            token=link_token,
            link=f"{s.client_url.rstrip('/')}/activate/{link_token}",
            expires_minutes=max(s.verify_expire_seconds // 60, 1),
        )
        delivered = self._dispatch(message)
        return IssuedChallenge(account.email, token, link_token, s.verify_expire_seconds, delivered)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str, staff_only: bool = False) -> tuple[Account, str]:
        """Check credentials and account state, then mint a session token.

        Checks run in a fixed order: credentials, ban, verification, and for the
        dashboard, staff role. A banned account never receives a token.
        """
        account = authenticate_account(self._store, email, password)
        if account is None:
            logger.warning("Failed login attempt")
            raise InvalidCredentials()
        if account.is_banned:
            logger.warning("Login refused for banned account id=%s", account.id)
            raise AccountBanned()
        if not account.is_verified:
            raise NotVerified()
        if staff_only and not account.is_staff:
            raise ForbiddenError("Only admins can log in to the dashboard.")
        self._store.update_last_login(account.id)
        account = self._store.get_by_id(account.id)
        return account, create_session_token(account, self._settings)

    def find_account(self, email: str) -> Account:
        account = self._store.get_by_email(email)
        if account is None:
            raise AccountNotFound()
        return account

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def forgot_password(self, email: str) -> IssuedChallenge:
        """Send a reset challenge. Unknown emails raise AccountNotFound and send nothing."""
        account = self._store.get_by_email(email)
        if account is None:
            raise AccountNotFound("Email not found. Please register first.")
        return self._issue_password_reset(account)

    def resend_password_reset_code(self, email: str) -> IssuedChallenge:
        return self.forgot_password(email)

    def reset_password_by_code(self, token: str | None, code: str, password: str) -> Account:
        s = self._settings
        payload = self._verify(token, s.password_reset_secret_key, PURPOSE_RESET)
        account = self._reset_target(payload, s.password_reset_secret_key)
        if not verify_code(code, payload.get("code", "")):
            raise CodeMismatch()
        return self._set_password(account, password)

    def reset_password_by_url(self, token: str | None, password: str) -> Account:
        s = self._settings
        payload = self._verify(token, s.reset_password_secret_key, PURPOSE_RESET_LINK)
        account = self._reset_target(payload, s.reset_password_secret_key)
        return self._set_password(account, password)

    def update_password(self, account_id: int, password: str) -> Account:
        account = self._store.get_by_id(account_id)
        if account is None:
            raise AccountNotFound()
        return self._set_password(account, password)

    def _reset_target(self, payload: dict, secret: str) -> Account:
        account = self._store.get_by_email(payload.get("email", ""))
        if account is None:
            raise AccountNotFound()
        if not fingerprint_matches(secret, account.hashed_password or "", payload.get("pwd", "")):
            raise TokenInvalid("This reset token has already been used.")
        return account

    def _set_password(self, account: Account, password: str) -> Account:
        self._store.update_account(account.id, hashed_password=hash_password(password))
        logger.info("Password changed for account id=%s", account.id)
        return self._store.get_by_id(account.id)

    def _issue_password_reset(self, account: Account) -> IssuedChallenge:
        s = self._settings
        code, hashed = generate_code(s.code_length)
        token = issue_token(
            {
                "email": account.email,
                "code": hashed,
                "pwd": password_fingerprint(s.password_reset_secret_key, account.hashed_password or ""),
            },
            s.password_reset_secret_key,
            s.password_reset_expire_seconds,
            PURPOSE_RESET,
        )
        link_token = issue_token(
            {
                "email": account.email,
                "pwd": password_fingerprint(s.reset_password_secret_key, account.hashed_password or ""),
            },
            s.reset_password_secret_key,
            s.reset_link_expire_seconds,
            PURPOSE_RESET_LINK,
        )
        message = MailMessage(
            to=account.email,
            subject="Password Reset",
            code=code,
            token=link_token,
            link=f"{s.client_url.rstrip('/')}/reset-password/{link_token}",
            expires_minutes=max(s.password_reset_expire_seconds // 60, 1),
        )
        delivered = self._dispatch(message)
        logger.info("Password reset requested for account id=%s", account.id)
        return IssuedChallenge(account.email, token, link_token, s.password_reset_expire_seconds, delivered)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _verify(token: str | None, secret: str, purpose: str) -> dict:
        if not token:
            raise TokenInvalid("Token not found. Please request a new one.")
        return verify_token(token, secret, purpose)

    def _dispatch(self, message: MailMessage) -> bool:
        delivered = self._mailer.send(message)
        if not delivered:
            logger.warning("Mail delivery failed for %s; the token was still issued", message.to)
        return delivered
