"""
tests/test_auth_routes.py -- Integration tests for /api/v1/auth/*.

These tests run the full stack: routing -> require_logged_out / session guards
-> AuthService -> AccountStore, with the RecordingMailer standing in for SMTP so
the mailed codes and link tokens can be read back.

Covers:
  - register: 201 envelope, public projection, activationToken cookie, mail sent
  - activation by cookie + code and by link; wrong code; reuse; missing cookie
  - login / dashboard-login: accessToken cookie and body token, state errors
  - the session guard: cookie and Bearer transports, banned and deleted accounts
  - logged-in clients are refused by the flow endpoints
  - password reset by cookie + code, by link, and through the /users aliases
  - code submission endpoints are rate limited

Fixtures used (from conftest.py):
  - env: TestEnv with client, stores and RecordingMailer
  - admin / member: pre-verified accounts, password DEFAULT_PASSWORD
"""

from __future__ import annotations

import pytest

from api.limiter import limiter
from conftest import DEFAULT_PASSWORD, auth_headers, make_account

REGISTER_BODY = {
    "name": "Farhana Akter",
    "email": "Farhana@KIN.org",
    "password": "farhana-pass",
    "gender": "female",
    "blood_group": "B+",
    "identity": {"department": "Pharmacy", "session": "2017-18"},
}


def _register(env, body: dict | None = None):
    return env.client.post("/api/v1/auth/register", json=body or REGISTER_BODY)


def _login(env, email: str, password: str = DEFAULT_PASSWORD, path: str = "/api/v1/auth/login"):
    return env.client.post(path, json={"email": email, "password": password})


class TestRegister:
    def test_register_returns_201_and_sets_activation_cookie(self, env) -> None:
        resp = _register(env)
        assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
        body = resp.json()
        assert body["success"] is True
        assert "farhana@kin.org" in body["message"]
        assert body["data"]["email"] == "farhana@kin.org"
        assert body["data"]["identity"]["department"] == "Pharmacy"
        assert "role" not in body["data"]
        assert "hashed_password" not in body["data"]
        assert "activationToken" in resp.cookies
        assert resp.headers["cache-control"] == "no-store"

        msg = env.mailer.last_to("farhana@kin.org")
        assert msg.subject == "Account Activation"

    def test_register_cookie_is_http_only_and_strict(self, env) -> None:
        set_cookie = _register(env).headers["set-cookie"]
        assert "HttpOnly" in set_cookie
        assert "SameSite=strict" in set_cookie

    def test_duplicate_registration_is_409(self, env, member) -> None:
        resp = _register(env, {**REGISTER_BODY, "email": "MEMBER@kin.org"})
        assert resp.status_code == 409, resp.text
        assert resp.json()["error"]["code"] == "conflict"

    def test_invalid_body_is_400_envelope(self, env) -> None:
        resp = _register(env, {**REGISTER_BODY, "email": "not-an-email"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["error"]["code"] == "validation_error"
        assert body["error"]["message"].startswith("email")

    def test_short_password_is_rejected(self, env) -> None:
        resp = _register(env, {**REGISTER_BODY, "password": "123"})
        assert resp.status_code == 400

    def test_registered_account_cannot_log_in_yet(self, env) -> None:
        _register(env)
        resp = _login(env, "farhana@kin.org", "farhana-pass")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "not_verified"


class TestActivation:
    def test_activate_with_cookie_and_code(self, env) -> None:
        _register(env)
        code = env.mailer.last_to("farhana@kin.org").code
        resp = env.client.post("/api/v1/auth/activate", json={"code": code})
        assert resp.status_code == 200, resp.text
        assert "Max-Age=0" in resp.headers["set-cookie"]
        assert env.accounts.get_by_email("farhana@kin.org").is_verified is True

        login = _login(env, "farhana@kin.org", "farhana-pass")
        assert login.status_code == 200, login.text

    def test_wrong_code(self, env) -> None:
        _register(env)
        code = env.mailer.last_to("farhana@kin.org").code
        wrong = "0000" if code != "0000" else "1111"
        resp = env.client.post("/api/v1/auth/activate", json={"code": wrong})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "code_mismatch"

    def test_missing_cookie(self, env) -> None:
        _register(env)
        env.client.cookies.clear()
        resp = env.client.post("/api/v1/auth/activate", json={"code": "1234"})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_invalid"

    def test_malformed_code(self, env) -> None:
        _register(env)
        resp = env.client.post("/api/v1/auth/activate", json={"code": "12ab"})
        assert resp.status_code == 400

    def test_activate_by_link_once(self, env) -> None:
        _register(env)
        token = env.mailer.last_to("farhana@kin.org").token
        first = env.client.get(f"/api/v1/auth/activate/{token}")
        assert first.status_code == 200, first.text
        assert first.json()["data"]["email"] == "farhana@kin.org"
        second = env.client.get(f"/api/v1/auth/activate/{token}")
        assert second.status_code == 400
        assert second.json()["error"]["message"] == "Account is already activated."

    def test_garbage_link_token(self, env) -> None:
        resp = env.client.get("/api/v1/auth/activate/not-a-token")
        assert resp.status_code == 401

    def test_resend_activation_code(self, env) -> None:
        _register(env)
        resp = env.client.post("/api/v1/auth/resend-active-code", json={"email": "farhana@kin.org"})
        assert resp.status_code == 200, resp.text
        assert "activationToken" in resp.cookies
        assert len(env.mailer.messages) == 2

        code = env.mailer.last_to("farhana@kin.org").code
        assert env.client.post("/api/v1/auth/activate", json={"code": code}).status_code == 200

    def test_resend_for_unknown_or_active_account(self, env, member) -> None:
        unknown = env.client.post("/api/v1/auth/resend-active-code", json={"email": "ghost@kin.org"})
        assert unknown.status_code == 404
        active = env.client.post("/api/v1/auth/resend-active-code", json={"email": member.email})
        assert active.status_code == 400


class TestLogin:
    def test_login_sets_cookie_and_returns_token(self, env, member) -> None:
        resp = _login(env, "MEMBER@kin.org")
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["user"]["email"] == "member@kin.org"
        assert data["accessToken"]
        assert resp.cookies.get("accessToken") == data["accessToken"]
        assert resp.headers["cache-control"] == "no-store"
        assert "SameSite=lax" in resp.headers["set-cookie"]

    def test_cookie_session_reaches_me(self, env, member) -> None:
        _login(env, member.email)
        resp = env.client.get("/api/v1/auth/me")
        assert resp.status_code == 200, resp.text
        assert resp.json()["data"]["id"] == member.id

    def test_bearer_session_reaches_me(self, env, admin) -> None:
        resp = env.client.get("/api/v1/auth/me", headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["data"]["role"] == "admin"

    def test_wrong_password(self, env, member) -> None:
        resp = _login(env, member.email, "wrong-password")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_credentials"
        assert "accessToken" not in resp.cookies

    def test_unknown_email_looks_like_wrong_password(self, env) -> None:
        resp = _login(env, "ghost@kin.org")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_credentials"

    def test_banned_account(self, env) -> None:
        make_account(env.accounts, "banned@kin.org", banned=True)
        resp = _login(env, "banned@kin.org")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "account_banned"
        assert "accessToken" not in resp.cookies

    def test_dashboard_login_is_staff_only(self, env, member, admin) -> None:
        refused = _login(env, member.email, path="/api/v1/auth/dashboard-login")
        assert refused.status_code == 403
        allowed = _login(env, admin.email, path="/api/v1/auth/dashboard-login")
        assert allowed.status_code == 200, allowed.text
        assert allowed.json()["data"]["user"]["role"] == "admin"

    def test_logged_in_client_cannot_log_in_again(self, env, member) -> None:
        _login(env, member.email)
        resp = _login(env, member.email)
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "You are already logged in."
        assert _register(env).status_code == 400

    def test_logout_clears_cookie(self, env, member) -> None:
        _login(env, member.email)
        resp = env.client.post("/api/v1/auth/logout")
        assert resp.status_code == 200, resp.text
        assert "Max-Age=0" in resp.headers["set-cookie"]
        assert env.client.get("/api/v1/auth/me").status_code == 401

    def test_logout_requires_session(self, env) -> None:
        assert env.client.post("/api/v1/auth/logout").status_code == 401


class TestSessionGuard:
    def test_me_without_credentials(self, env) -> None:
        resp = env.client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json() == {
            "success": False,
            "error": {"status": 401, "code": "unauthorized", "message": "Authentication required. Please log in."},
        }

    def test_invalid_bearer_token(self, env) -> None:
        resp = env.client.get("/api/v1/auth/me", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_banned_after_login_loses_access(self, env, member) -> None:
        headers = auth_headers(member)
        env.accounts.update_account(member.id, is_banned=True)
        resp = env.client.get("/api/v1/auth/me", headers=headers)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "account_banned"

    def test_deleted_account_loses_access(self, env, member) -> None:
        headers = auth_headers(member)
        env.accounts.delete_account(member.id)
        assert env.client.get("/api/v1/auth/me", headers=headers).status_code == 401

    def test_deleted_account_token_never_reaches_newcomer(self, env, admin) -> None:
        old = make_account(env.accounts, "old@kin.org")
        old_headers = auth_headers(old)
        resp = env.client.delete(f"/api/v1/users/{old.id}", headers=auth_headers(admin))
        assert resp.status_code == 200, resp.text

        newcomer = make_account(env.accounts, "new@kin.org")
        assert newcomer.id != old.id, "ids of deleted accounts must not be handed out again"
        resp = env.client.get("/api/v1/auth/me", headers=old_headers)
        assert resp.status_code == 401, resp.text

    def test_token_is_bound_to_account_email(self, env, member) -> None:
        headers = auth_headers(member)
        env.accounts.update_account(member.id, email="renamed@kin.org")
        assert env.client.get("/api/v1/auth/me", headers=headers).status_code == 401

    def test_role_comes_from_the_database(self, env, admin) -> None:
        """A demoted admin loses staff access even though the token says admin."""
        headers = auth_headers(admin)
        env.accounts.update_account(admin.id, role="user")
        assert env.client.get("/api/v1/users", headers=headers).status_code == 403


class TestFindAccount:
    def test_find_account_returns_public_fields(self, env, member) -> None:
        resp = env.client.post("/api/v1/auth/find-account", json={"email": "Member@kin.org"})
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["email"] == "member@kin.org"
        assert "role" not in data

    def test_find_unknown_account(self, env) -> None:
        resp = env.client.post("/api/v1/auth/find-account", json={"email": "ghost@kin.org"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "account_not_found"


class TestPasswordReset:
    def test_reset_by_cookie_and_code(self, env, member) -> None:
        resp = env.client.post("/api/v1/auth/password-reset-code", json={"email": member.email})
        assert resp.status_code == 200, resp.text
        assert "passwordResetToken" in resp.cookies

        code = env.mailer.last_to(member.email).code
        reset = env.client.post("/api/v1/auth/password-reset", json={"code": code, "password": "fresh-pass"})
        assert reset.status_code == 200, reset.text
        assert "Max-Age=0" in reset.headers["set-cookie"]

        assert _login(env, member.email).status_code == 401
        assert _login(env, member.email, "fresh-pass").status_code == 200

    def test_reset_by_link_is_single_use(self, env, member) -> None:
        env.client.post("/api/v1/auth/password-reset-code", json={"email": member.email})
        token = env.mailer.last_to(member.email).token
        first = env.client.patch(f"/api/v1/auth/password-reset/{token}", json={"password": "fresh-pass"})
        assert first.status_code == 200, first.text
        again = env.client.patch(f"/api/v1/auth/password-reset/{token}", json={"password": "other-pass"})
        assert again.status_code == 401
        assert again.json()["error"]["message"] == "This reset token has already been used."

    def test_reset_for_unknown_email(self, env) -> None:
        resp = env.client.post("/api/v1/auth/password-reset-code", json={"email": "ghost@kin.org"})
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "Email not found. Please register first."
        assert env.mailer.messages == []

    def test_wrong_reset_code(self, env, member) -> None:
        env.client.post("/api/v1/auth/password-reset-code", json={"email": member.email})
        code = env.mailer.last_to(member.email).code
        wrong = "0000" if code != "0000" else "1111"
        resp = env.client.post("/api/v1/auth/password-reset", json={"code": wrong, "password": "fresh-pass"})
        assert resp.status_code == 400
        assert _login(env, member.email).status_code == 200

    def test_users_aliases(self, env, member) -> None:
        resp = env.client.post("/api/v1/users/forgot-password", json={"email": member.email})
        assert resp.status_code == 200, resp.text
        resend = env.client.post("/api/v1/users/resend-password-reset-code", json={"email": member.email})
        assert resend.status_code == 200, resend.text
        assert len(env.mailer.messages) == 2

        code = env.mailer.last_to(member.email).code
        reset = env.client.post("/api/v1/users/reset-password", json={"code": code, "password": "fresh-pass"})
        assert reset.status_code == 200, reset.text
        assert _login(env, member.email, "fresh-pass").status_code == 200


class TestCodeGuessing:
    """Code submission shares the login rate limit so 4-digit codes can't be brute forced."""

    @pytest.fixture
    def rate_limited(self):
        limiter.reset()
        limiter.enabled = True
        yield
        limiter.enabled = False
        limiter.reset()

    @pytest.mark.parametrize("path", ["/api/v1/auth/activate", "/api/v1/auth/password-reset", "/api/v1/users/reset-password"])
    def test_code_submission_is_rate_limited(self, env, settings, rate_limited, path: str) -> None:
        allowed = int(settings.login_rate_limit.split("/")[0])
        body = {"code": "0000", "password": "fresh-pass"}
        for _ in range(allowed):
            assert env.client.post(path, json=body).status_code != 429
        resp = env.client.post(path, json=body)
        assert resp.status_code == 429
        assert resp.json()["error"]["code"] == "rate_limited"
