"""Unit tests for auth/tokens.py -- signed tokens, password hashing, login check.

Covers:
- issue_token()/verify_token() round trip returns the original payload
- expired, wrongly signed, tampered, and wrong-purpose tokens are rejected
- decode_session_token() returns None instead of raising
- password_fingerprint() changes with the password hash
- authenticate_account() for unknown email, wrong password, and success
"""

from __future__ import annotations

import pytest

from auth.tokens import (
    PURPOSE_RESET,
    PURPOSE_RESET_LINK,
    PURPOSE_SESSION,
    authenticate_account,
    create_session_token,
    decode_session_token,
    fingerprint_matches,
    hash_password,
    issue_token,
    password_fingerprint,
    verify_password,
    verify_token,
)
from core.errors import TokenExpired, TokenInvalid
from conftest import make_account

SECRET = "x" * 40
OTHER_SECRET = "y" * 40


class TestIssueAndVerify:
    def test_round_trip_returns_original_payload(self) -> None:
        payload = {"email": "a@kin.org", "code": "hashed"}
        token = issue_token(payload, SECRET, 60, PURPOSE_RESET)
        assert verify_token(token, SECRET, PURPOSE_RESET) == payload

    def test_issue_does_not_mutate_payload(self) -> None:
        payload = {"email": "a@kin.org"}
        issue_token(payload, SECRET, 60, PURPOSE_RESET)
        assert payload == {"email": "a@kin.org"}

    def test_expired_token_raises_token_expired(self) -> None:
        token = issue_token({"email": "a@kin.org"}, SECRET, -10, PURPOSE_RESET)
        with pytest.raises(TokenExpired):
            verify_token(token, SECRET, PURPOSE_RESET)

    def test_wrong_secret_raises_token_invalid(self) -> None:
        token = issue_token({"email": "a@kin.org"}, SECRET, 60, PURPOSE_RESET)
        with pytest.raises(TokenInvalid):
            verify_token(token, OTHER_SECRET, PURPOSE_RESET)

    def test_tampered_token_raises_token_invalid(self) -> None:
        """Swapping in another token's payload breaks the signature."""
        mine = issue_token({"email": "a@kin.org"}, SECRET, 60, PURPOSE_RESET)
        theirs = issue_token({"email": "b@kin.org"}, SECRET, 60, PURPOSE_RESET)
        head, _body, sig = mine.split(".")
        tampered = ".".join([head, theirs.split(".")[1], sig])
        with pytest.raises(TokenInvalid):
            verify_token(tampered, SECRET, PURPOSE_RESET)

    def test_garbage_raises_token_invalid(self) -> None:
        with pytest.raises(TokenInvalid):
            verify_token("not-a-token", SECRET, PURPOSE_RESET)

    def test_missing_token_raises_token_invalid(self) -> None:
        with pytest.raises(TokenInvalid):
            verify_token(None, SECRET, PURPOSE_RESET)

    def test_purpose_mismatch_raises_token_invalid(self) -> None:
        """A link token must not pass as a code token even under the same key."""
        token = issue_token({"email": "a@kin.org"}, SECRET, 60, PURPOSE_RESET_LINK)
        with pytest.raises(TokenInvalid):
            verify_token(token, SECRET, PURPOSE_RESET)


class TestSessionTokens:
    def test_session_token_decodes(self, account_store, settings) -> None:
        account = make_account(account_store, "s@kin.org", role="admin")
        payload = decode_session_token(create_session_token(account, settings), settings)
        assert payload == {"sub": "s@kin.org", "user_id": account.id, "role": "admin"}

    def test_invalid_session_token_returns_none(self, settings) -> None:
        assert decode_session_token("garbage", settings) is None

    def test_expired_session_token_returns_none(self, settings) -> None:
        token = issue_token({"user_id": 1}, settings.secret_key, -5, PURPOSE_SESSION)
        assert decode_session_token(token, settings) is None

    def test_reset_token_is_not_a_session_token(self, settings) -> None:
        token = issue_token({"user_id": 1}, settings.secret_key, 60, PURPOSE_RESET)
        assert decode_session_token(token, settings) is None


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("hunter23", hashed)

    def test_verify_against_malformed_hash_is_false(self) -> None:
        assert verify_password("hunter22", "not-a-bcrypt-hash") is False

    def test_fingerprint_tracks_password_hash(self) -> None:
        first = hash_password("first-pass")
        second = hash_password("second-pass")
        fp = password_fingerprint(SECRET, first)
        assert fingerprint_matches(SECRET, first, fp)
        assert not fingerprint_matches(SECRET, second, fp)
        assert not fingerprint_matches(SECRET, first, "")


class TestAuthenticateAccount:
    def test_unknown_email_returns_none(self, account_store) -> None:
        assert authenticate_account(account_store, "ghost@kin.org", "whatever") is None

    def test_wrong_password_returns_none(self, account_store) -> None:
        make_account(account_store, "m@kin.org", password="right-pass")
        assert authenticate_account(account_store, "m@kin.org", "wrong-pass") is None

    def test_correct_password_returns_account(self, account_store) -> None:
        make_account(account_store, "m@kin.org", password="right-pass")
        account = authenticate_account(account_store, "  M@Kin.org ", "right-pass")
        assert account is not None
        assert account.email == "m@kin.org"

    def test_banned_account_is_still_returned(self, account_store) -> None:
        """The state check belongs to the service, which reports AccountBanned."""
        make_account(account_store, "b@kin.org", password="right-pass", banned=True)
        account = authenticate_account(account_store, "b@kin.org", "right-pass")
        assert account is not None and account.is_banned
