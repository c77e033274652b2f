"""Refresh secret cookie helpers."""

from __future__ import annotations

from flask import Request, Response, current_app


def _cookie_options() -> dict:
    config = current_app.config
    return {
        "path": config.get("REFRESH_COOKIE_PATH", "/api/v1/auth"),
        "secure": bool(config.get("REFRESH_COOKIE_SECURE", False)),
        "httponly": True,
        "samesite": config.get("REFRESH_COOKIE_SAMESITE", "Lax"),
    }


def cookie_name() -> str:
    return str(current_app.config.get("REFRESH_COOKIE_NAME", "refresh_token"))


def set_refresh_cookie(response: Response, raw_secret: str) -> Response:
    """Attach the refresh secret as an HttpOnly cookie living as long as the token."""
    max_age = int(current_app.config.get("REFRESH_TOKEN_TTL", 1209600))
    response.set_cookie(cookie_name(), raw_secret, max_age=max_age, **_cookie_options())
    return response


def clear_refresh_cookie(response: Response) -> Response:
    """Expire the refresh cookie on the client (``Max-Age=0``)."""
    response.set_cookie(cookie_name(), "", max_age=0, expires=0, **_cookie_options())
    return response


def read_refresh_cookie(request: Request) -> str | None:
    return request.cookies.get(cookie_name()) or None
