"""Authentication endpoints: register, login, refresh, logout."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from authkit.api.cookies import clear_refresh_cookie, read_refresh_cookie, set_refresh_cookie
from authkit.api.deps import json_response, timing
from authkit.core.auth import get_auth_service, request_context
from authkit.schemas import (
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterSchema,
    TokenResponseSchema,
    UserSchema,
)
from authkit.services._shared.errors import InvalidTokenError
from authkit.services.auth.dto import LoginIn, LogoutIn, RefreshIn, TokenPairOut
from authkit.services.identity.dto import UserRegisterIn
from authkit.services.identity.service import IdentityService

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
user_schema = UserSchema()
token_schema = TokenResponseSchema()
token_schema_cookie_only = TokenResponseSchema(exclude=("refresh_token",))


def _token_response(pair: TokenPairOut):
    """Serialize a token pair and set the refresh cookie."""
    schema = (
        token_schema
        if current_app.config.get("REFRESH_TOKEN_IN_BODY", False)
        else token_schema_cookie_only
    )
    response = json_response({"data": schema.dump(pair)})
    return set_refresh_cookie(response, pair.refresh_token)


@bp.post("/register")
@timing
def register():
    """Create an account with the default role."""

    data = register_schema.load(request.get_json(silent=True) or {})
    user = IdentityService(ctx=request_context()).register_user(UserRegisterIn(**data))
    return json_response({"data": user_schema.dump(user)}, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    pair = get_auth_service().login(LoginIn(username=data["username"], password=data["password"]))
    return _token_response(pair)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh secret (cookie first, then JSON body)."""

    body = refresh_schema.load(request.get_json(silent=True) or {})
    raw = read_refresh_cookie(request) or body.get("refresh_token")
    if not raw:
        raise InvalidTokenError("Missing refresh token")
    pair = get_auth_service().refresh(RefreshIn(refresh_token=raw))
    return _token_response(pair)


@bp.post("/logout")
@timing
def logout():
    """Revoke the presented refresh secret; always succeeds."""

    body = logout_schema.load(request.get_json(silent=True) or {})
    raw = read_refresh_cookie(request) or body.get("refresh_token") or ""
    get_auth_service().logout(LogoutIn(refresh_token=raw, all_sessions=body["all_sessions"]))
    response = json_response({"data": {"logged_out": True}})
    return clear_refresh_cookie(response)
