"""End-to-end tests for the authentication API through the Flask test client."""

from __future__ import annotations

import pytest
from authkit.core.config import TestingConfig
from werkzeug.http import parse_cookie

from tests.factories.user import DEFAULT_PASSWORD, UserFactory

API = "/api/v1"
COOKIE = "refresh_token"


def _set_cookie(resp, name: str = COOKIE) -> str | None:
    """Return the raw Set-Cookie header for ``name``."""
    for header in resp.headers.getlist("Set-Cookie"):
        if header.startswith(f"{name}="):
            return header
    return None


def _cookie_value(resp) -> str:
    header = _set_cookie(resp)
    assert header is not None, "refresh cookie not set"
    return parse_cookie(header.split(";", 1)[0])[COOKIE]


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register(client, username="alice", email="alice@example.com", password="wonderland"):
    return client.post(
        f"{API}/auth/register",
        json={"username": username, "email": email, "password": password},
    )


def _login(client, username="alice", password="wonderland", **kwargs):
    return client.post(f"{API}/auth/login", json={"username": username, "password": password}, **kwargs)


# ------------------------------- Flow ------------------------------------- #
def test_full_cookie_flow(app, client):
    assert _register(client).status_code == 201

    resp = _login(client)
    assert resp.status_code == 200
    body = resp.get_json()["data"]
    assert body["subject"] == "alice"
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 900
    assert "refresh_token" not in body
    cookie_header = _set_cookie(resp)
    assert "HttpOnly" in cookie_header
    assert "Path=/api/v1/auth" in cookie_header
    first_secret = _cookie_value(resp)

    dash = client.get(f"{API}/dashboard", headers=_bearer(body["access_token"]))
    assert dash.status_code == 200
    assert dash.get_json()["data"]["username"] == "alice"
    assert dash.get_json()["data"]["capabilities"] == ["ROLE_USER"]

    # refresh with the cookie the client stored
    refreshed = client.post(f"{API}/auth/refresh")
    assert refreshed.status_code == 200
    second_secret = _cookie_value(refreshed)
    assert second_secret != first_secret

    # replaying the rotated secret from another client fails
    outsider = app.test_client(use_cookies=False)
    replay = outsider.post(f"{API}/auth/refresh", json={"refresh_token": first_secret})
    assert replay.status_code == 401
    assert replay.get_json()["code"] == "token_revoked"
    assert replay.mimetype == "application/problem+json"

    out = client.post(f"{API}/auth/logout")
    assert out.status_code == 200
    assert "Max-Age=0" in _set_cookie(out)

    after = outsider.post(f"{API}/auth/refresh", json={"refresh_token": second_secret})
    assert after.status_code == 401
    assert after.get_json()["code"] == "token_revoked"


def test_refresh_without_secret_is_unauthorized(app):
    client = app.test_client(use_cookies=False)
    resp = client.post(f"{API}/auth/refresh")

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_token"


def test_refresh_with_unknown_secret(app):
    client = app.test_client(use_cookies=False)
    resp = client.post(f"{API}/auth/refresh", json={"refresh_token": "nope"})

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_token"


def test_logout_is_always_ok(app):
    client = app.test_client(use_cookies=False)

    assert client.post(f"{API}/auth/logout").status_code == 200
    assert client.post(f"{API}/auth/logout", json={"refresh_token": "junk"}).status_code == 200


def test_logout_all_sessions(app, client):
    user = UserFactory()
    first = _cookie_value(_login(client, user.username, DEFAULT_PASSWORD))
    second = _cookie_value(_login(client, user.username, DEFAULT_PASSWORD))

    outsider = app.test_client(use_cookies=False)
    resp = outsider.post(
        f"{API}/auth/logout", json={"refresh_token": first, "all_sessions": True}
    )
    assert resp.status_code == 200

    again = outsider.post(f"{API}/auth/refresh", json={"refresh_token": second})
    assert again.get_json()["code"] == "token_revoked"


# ------------------------------ Login errors ------------------------------ #
@pytest.mark.parametrize("username,password", [("alice", "bad-password"), ("ghost", "whatever")])
def test_bad_credentials_share_one_response(client, username, password):
    _register(client)

    resp = _login(client, username, password)

    assert resp.status_code == 401
    assert resp.get_json()["code"] == "invalid_credentials"
    assert resp.get_json()["detail"] == "Invalid credentials"
    assert _set_cookie(resp) is None


def test_disabled_user_cannot_login(client):
    user = UserFactory(enabled=False)

    assert _login(client, user.username, DEFAULT_PASSWORD).status_code == 401


# ---------------------------- Registration -------------------------------- #
def test_register_validation_error(client):
    resp = client.post(f"{API}/auth/register", json={"username": "al", "email": "bad"})

    assert resp.status_code == 422
    errors = resp.get_json()["details"]["errors"]
    assert set(errors) == {"username", "email", "password"}


def test_register_duplicate_conflicts(client):
    _register(client)

    resp = _register(client, email="second@example.com")

    assert resp.status_code == 409
    assert resp.get_json()["code"] == "conflict"


# ------------------------------ Rate limit -------------------------------- #
def test_login_is_rate_limited_per_client(client):
    for _ in range(5):
        assert _login(client, "ghost", "x").status_code == 401

    denied = _login(client, "ghost", "x")
    assert denied.status_code == 429
    assert denied.get_json()["code"] == "too_many_requests"
    assert 0 < int(denied.headers["Retry-After"]) <= 60

    # another client identity has its own window
    other = _login(client, "ghost", "x", headers={"X-Forwarded-For": "203.0.113.50"})
    assert other.status_code == 401


def test_refresh_is_not_rate_limited(app):
    client = app.test_client(use_cookies=False)
    for _ in range(8):
        resp = client.post(f"{API}/auth/refresh", json={"refresh_token": "nope"})
        assert resp.status_code == 401


def test_register_shares_limit_window_only_with_itself(client):
    for i in range(5):
        _register(client, username=f"user{i}x", email=f"u{i}@example.com")

    assert _register(client, username="late", email="late@example.com").status_code == 429
    assert _login(client, "user0x", "wonderland").status_code == 200


# ------------------------------ Protected --------------------------------- #
def test_dashboard_requires_bearer(client):
    assert client.get(f"{API}/dashboard").status_code == 401

    resp = client.get(f"{API}/dashboard", headers=_bearer("garbage"))
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "malformed_token"


def test_admin_overview_requires_capability(client):
    UserFactory(username="root", roles="ROLE_ADMIN,ROLE_USER")
    UserFactory(username="pleb")

    admin_token = _login(client, "root", DEFAULT_PASSWORD).get_json()["data"]["access_token"]
    user_token = _login(client, "pleb", DEFAULT_PASSWORD).get_json()["data"]["access_token"]

    assert client.get(f"{API}/admin/overview", headers=_bearer(user_token)).status_code == 403
    resp = client.get(f"{API}/admin/overview", headers=_bearer(admin_token))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["users"] == 2


def test_health(client):
    resp = client.get(f"{API}/health")

    assert resp.status_code == 200
    assert resp.get_json()["db"] == "ok"
    assert resp.headers.get("X-Request-ID")


# ------------------------ Alternative configuration ----------------------- #
class BodyTokenConfig(TestingConfig):
    REFRESH_TOKEN_IN_BODY = True
    REFRESH_STORE_BACKEND = "memory"


@pytest.mark.parametrize("app_config", [BodyTokenConfig])
def test_body_tokens_with_memory_backend(app, app_config):
    client = app.test_client(use_cookies=False)
    _register(client)

    pair = _login(client).get_json()["data"]
    rotated = client.post(f"{API}/auth/refresh", json={"refresh_token": pair["refresh_token"]})

    assert rotated.status_code == 200
    assert rotated.get_json()["data"]["refresh_token"] != pair["refresh_token"]
