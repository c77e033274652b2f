"""Protected resources used to exercise bearer authentication."""

from __future__ import annotations

from flask import Blueprint

from authkit.api.deps import (
    current_principal,
    json_response,
    require_auth,
    require_capability,
    timing,
)
from authkit.schemas import PrincipalSchema
from authkit.services.identity.service import IdentityService

dashboard_bp = Blueprint("dashboard", __name__)
admin_bp = Blueprint("admin", __name__)

principal_schema = PrincipalSchema()

ADMIN_CAPABILITY = "ROLE_ADMIN"


@dashboard_bp.get("")
@require_auth
@timing
def dashboard():
    """Return the caller's identity."""

    return json_response({"data": principal_schema.dump(current_principal())})


@admin_bp.get("/overview")
@require_capability(ADMIN_CAPABILITY)
@timing
def overview():
    """Admin-only summary of accounts."""

    users = IdentityService().count_users()
    return json_response(
        {"data": {"principal": principal_schema.dump(current_principal()), "users": users}}
    )
