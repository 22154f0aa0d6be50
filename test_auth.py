"""
Authentication API tests.

Covers registration, login, token refresh and rotation, logout, profile
updates, password changes and the emailed-code password reset flow.
"""

import re
from datetime import timedelta

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, login_headers
from edumanage.services import auth_service, mailer
from edumanage.storage import Collection, store

NEW_PASSWORD = "Changed@5678"


def _login(client, email=ADMIN_EMAIL, password=ADMIN_PASSWORD):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def _reset_code() -> str:
    """
    Pull the six-digit code out of the last queued email.

    Returns:
        The reset code.
    """
    assert mailer.outbox, "no reset email was sent"
    match = re.search(r"\b(\d{6})\b", mailer.outbox[-1]["body"])
    assert match, mailer.outbox[-1]["body"]
    return match.group(1)


# --- REGISTRATION AND LOGIN ---
def test_first_registration_is_admin_then_guests(client, admin_headers):
    response = client.post(
        "/api/auth/register",
        json={"name": "Second", "email": "Second@Example.com", "password": "Second@123"},
    )
    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "guest"
    assert body["email"] == "second@example.com"
    assert "passwordHash" not in body


def test_register_duplicate_email_conflicts(client, admin_headers):
    response = client.post(
        "/api/auth/register",
        json={"name": "Again", "email": ADMIN_EMAIL, "password": "Again@1234"},
    )
    assert response.status_code == 409


def test_register_rejects_weak_password(client):
    response = client.post(
        "/api/auth/register",
        json={"name": "Weak", "email": "weak@example.com", "password": "password"},
    )
    assert response.status_code == 400
    assert "Bad request" in response.json()["detail"]


def test_login_returns_tokens_and_user(client, admin_headers):
    response = _login(client)
    assert response.status_code == 200
    body = response.json()
    assert body["token"] and body["refreshToken"]
    assert body["user"]["email"] == ADMIN_EMAIL
    assert body["user"]["lastLoginAt"] is not None


def test_login_with_wrong_password_is_unauthorized(client, admin_headers):
    response = _login(client, password="Wrong@1234")
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_inactive_user_cannot_log_in(client, admin_headers, make_user):
    user, _ = make_user("instructor")
    client.patch(f"/api/users/{user['id']}/status", json={"status": "suspended"}, headers=admin_headers)
    response = _login(client, user["email"], "Member@123")
    assert response.status_code == 403


# --- TOKENS ---
def test_protected_route_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_me_and_check(client, admin_headers):
    me = client.get("/api/auth/me", headers=admin_headers)
    assert me.status_code == 200
    assert me.json()["role"] == "admin"

    check = client.get("/api/auth/check", headers=admin_headers)
    assert check.json()["authenticated"] is True
    assert check.json()["user"]["id"] == me.json()["id"]


def test_refresh_token_rotates(client, admin_headers):
    refresh_token = _login(client).json()["refreshToken"]

    first = client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token})
    assert first.status_code == 200
    assert first.json()["refreshToken"] != refresh_token

    replay = client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token})
    assert replay.status_code == 401


def test_access_token_is_not_a_refresh_token(client, admin_headers):
    access_token = _login(client).json()["token"]
    response = client.post("/api/auth/refresh-token", json={"refreshToken": access_token})
    assert response.status_code == 401


def test_expired_refresh_token_is_unauthorized(client, admin_headers, monkeypatch):
    issued_at = auth_service._now() - timedelta(days=auth_service.REFRESH_TOKEN_DAYS, minutes=1)
    monkeypatch.setattr(auth_service, "_now", lambda: issued_at)
    refresh_token = _login(client).json()["refreshToken"]
    monkeypatch.undo()

    response = client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired token"


def test_logout_revokes_refresh_tokens(client, admin_headers):
    refresh_token = _login(client).json()["refreshToken"]
    response = client.post("/api/auth/logout", headers=admin_headers)
    assert response.json() == {"message": "Logged out"}

    assert client.post("/api/auth/refresh-token", json={"refreshToken": refresh_token}).status_code == 401


# --- PROFILE AND PASSWORD ---
def test_update_profile(client, admin_headers):
    response = client.put(
        "/api/auth/profile", json={"name": "  Renamed Admin ", "phone": "+91 98765-43210"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Renamed Admin"
    assert response.json()["phone"] == "+919876543210"


def test_change_password(client, admin_headers):
    wrong = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "Nope@1234", "newPassword": NEW_PASSWORD},
        headers=admin_headers,
    )
    assert wrong.status_code == 400

    same = client.post(
        "/api/auth/change-password",
        json={"currentPassword": ADMIN_PASSWORD, "newPassword": ADMIN_PASSWORD},
        headers=admin_headers,
    )
    assert same.status_code == 400

    changed = client.post(
        "/api/auth/change-password",
        json={"currentPassword": ADMIN_PASSWORD, "newPassword": NEW_PASSWORD},
        headers=admin_headers,
    )
    assert changed.status_code == 200
    assert _login(client).status_code == 401
    assert _login(client, password=NEW_PASSWORD).status_code == 200


# --- PASSWORD RESET ---
def test_forgot_password_is_silent_for_unknown_email(client, admin_headers):
    response = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})
    assert response.status_code == 200
    assert response.json()["message"].startswith("If an account exists")
    assert len(mailer.outbox) == 0


def test_password_reset_flow(client, admin_headers):
    response = client.post("/api/auth/forgot-password", json={"email": ADMIN_EMAIL})
    assert response.status_code == 200
    assert mailer.outbox[-1]["to"] == ADMIN_EMAIL

    verified = client.post("/api/auth/verify-reset-code", json={"email": ADMIN_EMAIL, "code": _reset_code()})
    assert verified.status_code == 200
    token = verified.json()["token"]

    reset = client.post("/api/auth/reset-password", json={"token": token, "password": NEW_PASSWORD})
    assert reset.status_code == 200

    assert _login(client).status_code == 401
    login_headers(client, ADMIN_EMAIL, NEW_PASSWORD)

    again = client.post("/api/auth/reset-password", json={"token": token, "password": "Another@999"})
    assert again.status_code == 400


def test_reset_code_resend_cooldown(client, admin_headers):
    assert client.post("/api/auth/forgot-password", json={"email": ADMIN_EMAIL}).status_code == 200
    response = client.post("/api/auth/forgot-password", json={"email": ADMIN_EMAIL})
    assert response.status_code == 429
    assert len(mailer.outbox) == 1


def test_reset_code_is_single_use(client, admin_headers):
    client.post("/api/auth/forgot-password", json={"email": ADMIN_EMAIL})
    code = _reset_code()
    first = client.post("/api/auth/verify-reset-code", json={"email": ADMIN_EMAIL, "code": code})
    assert first.status_code == 200
    second = client.post("/api/auth/verify-reset-code", json={"email": ADMIN_EMAIL, "code": code})
    assert second.status_code == 400


def test_expired_reset_code_is_rejected(client, admin_headers):
    client.post("/api/auth/forgot-password", json={"email": ADMIN_EMAIL})
    code = _reset_code()
    record = store.find_one(Collection.PASSWORD_RESETS, {"email": ADMIN_EMAIL})
    expired = auth_service._now() - timedelta(seconds=1)
    store.update(Collection.PASSWORD_RESETS, record["id"], {"expires_at": expired.isoformat()})

    response = client.post("/api/auth/verify-reset-code", json={"email": ADMIN_EMAIL, "code": code})
    assert response.status_code == 400
    assert "expired" in response.json()["detail"]
    assert store.count(Collection.PASSWORD_RESETS) == 0


def test_too_many_wrong_codes_invalidate_the_reset(client, admin_headers):
    client.post("/api/auth/forgot-password", json={"email": ADMIN_EMAIL})
    code = _reset_code()
    wrong = "000000" if code != "000000" else "111111"

    for _ in range(5):
        response = client.post("/api/auth/verify-reset-code", json={"email": ADMIN_EMAIL, "code": wrong})
        assert response.json()["detail"] == "Invalid verification code"

    locked = client.post("/api/auth/verify-reset-code", json={"email": ADMIN_EMAIL, "code": code})
    assert locked.status_code == 400
    assert "Too many" in locked.json()["detail"]

    gone = client.post("/api/auth/verify-reset-code", json={"email": ADMIN_EMAIL, "code": code})
    assert gone.json()["detail"] == "Invalid or expired verification code"


def test_verify_reset_code_requires_six_digits(client, admin_headers):
    response = client.post("/api/auth/verify-reset-code", json={"email": ADMIN_EMAIL, "code": "12ab"})
    assert response.status_code == 400
