from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import PASSWORD, RecordingMailer, add_pizza, add_user, fetch, login, make_settings
from pizzashop.auth import create_access_token, create_refresh_token, create_reset_token
from pizzashop.errors import TooManyRequests
from pizzashop.main import create_app
from pizzashop.models import User
from pizzashop.ratelimit import LoginLimiter
from pizzashop.roles import Role

USERS = "/api/v1/users"
NEW_USER = {"name": "Erin", "email": "erin@example.com", "phone": "555-0199", "password": "pizzapizza"}


def _register(client, **overrides):
    return client.post(f"{USERS}/register", json={**NEW_USER, **overrides})


# -------------------
# Registration + verification
# -------------------
def test_register_sends_verification_mail(client, app, mailer):
    r = _register(client)
    assert r.status_code == 201, r.text
    user = r.json()["user"]
    assert user["email"] == NEW_USER["email"]
    assert user["role"] == "customer"
    assert user["is_verified"] is False
    assert "password_hash" not in user

    token = mailer.token_for(NEW_USER["email"], "Verify Your Email")
    assert fetch(app, User, user["id"]).verification_token == token


def test_register_ignores_requested_role(client):
    r = _register(client, role="admin")
    assert r.json()["user"]["role"] == "customer"


def test_register_duplicate_email(client):
    _register(client)
    r = _register(client, email="ERIN@example.com")
    assert r.status_code == 409
    assert r.json()["error"] == "Email already registered"


@pytest.mark.parametrize(
    "field,value",
    [("email", "not-an-email"), ("password", "short"), ("name", ""), ("phone", "  ")],
)
def test_register_validation(client, field, value):
    r = _register(client, **{field: value})
    assert r.status_code == 422
    assert r.json()["success"] is False
    assert r.json()["error"] == "Validation failed"


def test_register_survives_mail_failure(client, mailer):
    mailer.fail = True
    assert _register(client).status_code == 201


def test_verify_then_login(client, app, mailer):
    uid = _register(client).json()["user"]["id"]
    token = mailer.token_for(NEW_USER["email"], "Verify Your Email")

    r = client.get(f"{USERS}/verify-email", params={"token": token})
    assert r.status_code == 200
    assert r.json()["message"] == "Email verified successfully"

    u = fetch(app, User, uid)
    assert u.is_verified is True
    assert u.verification_token is None

    # the token is single use
    assert client.get(f"{USERS}/verify-email", params={"token": token}).status_code == 400

    r = client.post(f"{USERS}/login", json={"email": NEW_USER["email"], "password": NEW_USER["password"]})
    assert r.status_code == 200


def test_verify_with_garbage_token(client):
    assert client.get(f"{USERS}/verify-email", params={"token": "nope"}).status_code == 400
    assert client.get(f"{USERS}/verify-email").status_code == 400


# -------------------
# Login / refresh / logout
# -------------------
@pytest.mark.parametrize("password", [PASSWORD, "wrong-password"])
def test_unverified_login_is_forbidden(client, app, password):
    add_user(app, "new@example.com", verified=False)
    r = client.post(f"{USERS}/login", json={"email": "new@example.com", "password": password})
    assert r.status_code == 403


def test_login_bad_credentials(client, app):
    add_user(app, "frank@example.com")
    r = client.post(f"{USERS}/login", json={"email": "frank@example.com", "password": "wrong-password"})
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Invalid credentials"}

    r = client.post(f"{USERS}/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert r.status_code == 401


def test_login_stores_refresh_token_and_sets_cookie(client, app):
    uid = add_user(app, "gina@example.com")
    r = client.post(f"{USERS}/login", json={"email": "gina@example.com", "password": PASSWORD})
    body = r.json()
    assert body["success"] is True
    assert body["accessToken"]
    assert body["user"]["id"] == uid

    cookie = r.cookies.get("refresh_token")
    assert cookie
    assert fetch(app, User, uid).refresh_token == cookie


def test_refresh_issues_new_access_token(client, app):
    add_user(app, "hank@example.com")
    login(client, "hank@example.com")

    r = client.get(f"{USERS}/token/refresh")
    assert r.status_code == 200
    headers = {"Authorization": f"Bearer {r.json()['accessToken']}"}
    assert client.get(f"{USERS}/profile", headers=headers).status_code == 200


def test_refresh_without_cookie(client):
    assert client.get(f"{USERS}/token/refresh").status_code == 401


def test_second_login_invalidates_first_refresh_token(client, app):
    uid = add_user(app, "ivy@example.com")
    login(client, "ivy@example.com")
    old = client.cookies.get("refresh_token")
    login(client, "ivy@example.com")

    client.cookies.clear()
    assert client.get(f"{USERS}/token/refresh", headers={"Cookie": f"refresh_token={old}"}).status_code == 403
    assert fetch(app, User, uid).refresh_token != old


def test_logout_clears_refresh_token(client, app, customer):
    token = fetch(app, User, customer["id"]).refresh_token
    assert token

    r = client.post(f"{USERS}/logout", headers=customer["headers"])
    assert r.status_code == 200
    assert fetch(app, User, customer["id"]).refresh_token is None

    client.cookies.clear()
    assert client.get(f"{USERS}/token/refresh", headers={"Cookie": f"refresh_token={token}"}).status_code == 403


def test_refresh_token_is_not_an_access_token(client, customer):
    headers = {"Authorization": f"Bearer {create_refresh_token(customer['id'])}"}
    assert client.get(f"{USERS}/profile", headers=headers).status_code == 401


def test_expired_access_token(client, customer, monkeypatch):
    monkeypatch.setenv("JWT_EXPIRE_MIN", "-1")
    headers = {"Authorization": f"Bearer {create_access_token(customer['id'], 'customer')}"}
    assert client.get(f"{USERS}/profile", headers=headers).status_code == 401


def test_token_for_deleted_user(client, app):
    headers = {"Authorization": f"Bearer {create_access_token(4242, 'admin')}"}
    assert client.get(f"{USERS}/profile", headers=headers).status_code == 401


# -------------------
# Password reset
# -------------------
def test_forgot_password_is_silent_for_unknown_email(client, mailer):
    r = client.post(f"{USERS}/forgot-password", json={"email": "nobody@example.com"})
    assert r.status_code == 200
    assert mailer.sent == []


def test_reset_password_flow(client, app, mailer, customer):
    refresh_before = fetch(app, User, customer["id"]).refresh_token

    r = client.post(f"{USERS}/forgot-password", json={"email": customer["email"]})
    assert r.status_code == 200
    token = mailer.token_for(customer["email"], "Password Reset Request")

    # asking for a reset does not touch the login session
    assert fetch(app, User, customer["id"]).refresh_token == refresh_before
    assert fetch(app, User, customer["id"]).reset_token == token

    r = client.post(f"{USERS}/reset-password", json={"token": token, "newPassword": "brand-new-pass"})
    assert r.status_code == 200

    u = fetch(app, User, customer["id"])
    assert u.reset_token is None
    assert u.refresh_token is None

    assert client.post(f"{USERS}/login", json={"email": customer["email"], "password": PASSWORD}).status_code == 401
    login(client, customer["email"], "brand-new-pass")

    # single use
    r = client.post(f"{USERS}/reset-password", json={"token": token, "newPassword": "another-pass"})
    assert r.status_code == 400


def test_login_does_not_clobber_pending_reset(client, app, mailer, customer):
    client.post(f"{USERS}/forgot-password", json={"email": customer["email"]})
    token = mailer.token_for(customer["email"], "Password Reset Request")

    login(client, customer["email"])

    r = client.post(f"{USERS}/reset-password", json={"token": token, "newPassword": "brand-new-pass"})
    assert r.status_code == 200


def test_reset_with_unissued_token(client, customer):
    token = create_reset_token(customer["id"])
    r = client.post(f"{USERS}/reset-password", json={"token": token, "newPassword": "brand-new-pass"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid or expired reset token"


# -------------------
# Profile + admin
# -------------------
def test_profile_roundtrip(client, customer):
    r = client.get(f"{USERS}/profile", headers=customer["headers"])
    assert r.json()["user"]["email"] == customer["email"]

    r = client.put(f"{USERS}/profile", json={"name": "Alice B", "phone": "555-0101"}, headers=customer["headers"])
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Alice B"
    assert r.json()["user"]["phone"] == "555-0101"


def test_profile_requires_login(client):
    r = client.get(f"{USERS}/profile")
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_admin_deletes_user(client, app, admin):
    uid = add_user(app, "leaving@example.com")
    assert client.delete(f"{USERS}/{uid}", headers=admin["headers"]).status_code == 200
    assert fetch(app, User, uid) is None
    assert client.delete(f"{USERS}/{uid}", headers=admin["headers"]).status_code == 404


def test_user_with_orders_is_not_deleted(client, app, admin, customer):
    pid = add_pizza(app, "Calzone")
    client.post(
        "/api/v1/orders",
        json={"items": [{"pizza_id": pid, "quantity": 1, "price": 8}], "delivery_address": "x"},
        headers=customer["headers"],
    )
    assert client.delete(f"{USERS}/{customer['id']}", headers=admin["headers"]).status_code == 409


def test_only_admins_delete_users(client, app, staff, customer):
    assert client.delete(f"{USERS}/{customer['id']}", headers=staff["headers"]).status_code == 403
    assert fetch(app, User, customer["id"]).role == Role.customer


# -------------------
# Login throttling
# -------------------
def _limited_app(max_attempts=3):
    return create_app(make_settings(login_max_attempts=max_attempts, login_window_seconds=60), mailer=RecordingMailer())


def test_failed_logins_beyond_the_limit_are_refused():
    app = _limited_app()
    with TestClient(app) as client:
        add_user(app, "mallory@example.com")
        bad = {"email": "mallory@example.com", "password": "wrong-password"}
        for _ in range(3):
            assert client.post(f"{USERS}/login", json=bad).status_code == 401

        r = client.post(f"{USERS}/login", json=bad)
        assert r.status_code == 429
        assert r.json() == {"success": False, "error": "Too many login attempts, please try again later"}

        # the right password does not get through either while blocked
        r = client.post(f"{USERS}/login", json={"email": "mallory@example.com", "password": PASSWORD})
        assert r.status_code == 429


def test_successful_logins_do_not_count():
    app = _limited_app(max_attempts=2)
    with TestClient(app) as client:
        add_user(app, "nina@example.com")
        for _ in range(4):
            login(client, "nina@example.com")


def test_zero_attempts_disables_the_limit():
    app = _limited_app(max_attempts=0)
    with TestClient(app) as client:
        bad = {"email": "ghost@example.com", "password": "wrong-password"}
        for _ in range(10):
            assert client.post(f"{USERS}/login", json=bad).status_code == 401


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_limiter_window_slides():
    clock = FakeClock()
    limiter = LoginLimiter(max_attempts=2, window_seconds=60, clock=clock)

    limiter.record_failure("10.0.0.1")
    clock.now += 30
    limiter.record_failure("10.0.0.1")
    with pytest.raises(TooManyRequests):
        limiter.check("10.0.0.1")

    # other addresses are unaffected
    limiter.check("10.0.0.2")

    # the first failure ages out, one slot frees up
    clock.now += 30
    limiter.check("10.0.0.1")
    limiter.record_failure("10.0.0.1")
    with pytest.raises(TooManyRequests):
        limiter.check("10.0.0.1")
