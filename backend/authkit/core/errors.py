"""Centralized JSON (RFC 7807) error handling for the API."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from authkit.core.logger import ensure_request_id
from authkit.services._shared.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    RateLimitedError,
)

log = logging.getLogger(__name__)

RETRY_AFTER_HEADER = "Retry-After"


def _http_status_to_code(status_code: int) -> str:
    """Map common HTTP status codes to canonical, stable error codes."""
    mapping = {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        415: "unsupported_media_type",
        422: "unprocessable_entity",
        429: "too_many_requests",
        500: "internal_server_error",
        503: "service_unavailable",
    }
    return mapping.get(status_code, "error")


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build an RFC 7807 Problem Details dict.

    :param status: HTTP status code.
    :param code: Stable machine-consumable error code.
    :param message: Human-readable error summary (safe for clients).
    :param details: Optional safe, structured details.
    :returns: Problem+JSON dictionary.
    :rtype: dict
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
    }
    if details:
        problem["details"] = details
    problem["request_id"] = ensure_request_id()
    return problem


def _problem_response(problem: dict[str, Any], status: int) -> Response:
    """
    Return a Flask response with ``application/problem+json`` media type.

    :param problem: Problem details payload.
    :param status: HTTP status code.
    :rtype: flask.Response
    """
    resp = jsonify(problem)
    resp.status_code = int(status)
    resp.mimetype = "application/problem+json"
    return resp


class APIError(Exception):
    """
    Represent a JSON-serializable API error.

    Parameters
    ----------
    message : str
        Human-readable description presented to clients.
    status_code : int, optional
        HTTP status code to return. Defaults to ``400``.
    code : str, optional
        Machine-readable identifier. Defaults to ``"bad_request"``.
    details : dict[str, Any] | None, optional
        Optional structured payload included in the response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "bad_request",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = int(status_code)
        self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return _as_problem(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


class Unauthorized(APIError):
    """401 when no usable credentials were presented."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=HTTPStatus.UNAUTHORIZED, code="unauthorized")


class Forbidden(APIError):
    """403 when the principal lacks a required capability."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message, status_code=HTTPStatus.FORBIDDEN, code="forbidden")


def init_app(app: Flask) -> None:
    """
    Attach JSON error handlers to the Flask app.

    Notes
    -----
    - Service errors are translated here, never inside the services:
      :class:`AuthError` → 401, :class:`RateLimitedError` → 429 with
      ``Retry-After``, :class:`ConflictError` → 409, :class:`NotFoundError` → 404.
    - 5xx are logged with ``exc_info``; 4xx as warnings without traceback.
    - Internal details never reach the client.
    """

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        problem = err.to_problem()
        level = log.error if err.status_code >= 500 else log.warning
        level("APIError: code=%s status=%s", err.code, err.status_code)
        return _problem_response(problem, err.status_code)

    @app.errorhandler(RateLimitedError)
    def handle_rate_limited(err: RateLimitedError):
        problem = _as_problem(
            status=HTTPStatus.TOO_MANY_REQUESTS,
            code=err.code,
            message=str(err),
            details={"retry_after": err.retry_after},
        )
        resp = _problem_response(problem, HTTPStatus.TOO_MANY_REQUESTS)
        resp.headers[RETRY_AFTER_HEADER] = str(err.retry_after)
        return resp

    @app.errorhandler(AuthError)
    def handle_auth_error(err: AuthError):
        problem = _as_problem(status=HTTPStatus.UNAUTHORIZED, code=err.code, message=str(err))
        log.warning("AuthError: code=%s", err.code)
        resp = _problem_response(problem, HTTPStatus.UNAUTHORIZED)
        resp.headers["WWW-Authenticate"] = "Bearer"
        return resp

    @app.errorhandler(ConflictError)
    def handle_conflict(err: ConflictError):
        problem = _as_problem(status=HTTPStatus.CONFLICT, code="conflict", message=err.detail)
        log.warning("ConflictError: entity=%s", err.entity)
        return _problem_response(problem, HTTPStatus.CONFLICT)

    @app.errorhandler(NotFoundError)
    def handle_not_found(err: NotFoundError):
        problem = _as_problem(
            status=HTTPStatus.NOT_FOUND, code="not_found", message=f"{err.entity} not found"
        )
        return _problem_response(problem, HTTPStatus.NOT_FOUND)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        error_code = _http_status_to_code(status)
        message = (err.description or error_code.replace("_", " ").capitalize()).strip()
        if status == HTTPStatus.NOT_FOUND and request:
            message = f"Route '{request.path}' not found"
        problem = _as_problem(status=status, code=error_code, message=message)
        level = log.error if status >= 500 else log.warning
        level("HTTPException: code=%s status=%s", error_code, status)
        return _problem_response(problem, status)

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        problem = _as_problem(
            status=HTTPStatus.UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": err.messages},
        )
        log.warning("ValidationError: fields=%s", sorted(err.messages_dict))
        return _problem_response(problem, HTTPStatus.UNPROCESSABLE_ENTITY)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        # Do not leak raw DB error to clients
        problem = _as_problem(status=HTTPStatus.CONFLICT, code="conflict", message="Resource conflict")
        log.error("IntegrityError", exc_info=True)
        return _problem_response(problem, HTTPStatus.CONFLICT)

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        problem = _as_problem(
            status=HTTPStatus.SERVICE_UNAVAILABLE,
            code="service_unavailable",
            message="Service temporarily unavailable",
        )
        log.error("OperationalError", exc_info=True)
        return _problem_response(problem, HTTPStatus.SERVICE_UNAVAILABLE)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        problem = _as_problem(
            status=HTTPStatus.INTERNAL_SERVER_ERROR,
            code="internal_server_error",
            message="Unexpected error",
        )
        log.error("Unhandled exception", exc_info=True)
        return _problem_response(problem, HTTPStatus.INTERNAL_SERVER_ERROR)
