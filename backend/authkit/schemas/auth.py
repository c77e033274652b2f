"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate


class RegisterSchema(Schema):
    """Input payload for account registration."""

    class Meta:
        unknown = EXCLUDE

    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))


class LoginSchema(Schema):
    """Input payload for authenticating a user.

    Password length is not validated here: a short password is simply a
    wrong one and must fail like any other credential error.
    """

    class Meta:
        unknown = EXCLUDE

    username = fields.String(required=True, validate=validate.Length(min=1, max=50))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Optional JSON body for refresh; the cookie takes precedence."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None, allow_none=True)


class LogoutSchema(RefreshSchema):
    all_sessions = fields.Boolean(load_default=False)


class TokenResponseSchema(Schema):
    """Response payload carrying the access token.

    The refresh secret is only exposed when the caller asked for it in the
    body; otherwise it travels in the HttpOnly cookie alone.
    """

    access_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
    expires_in = fields.Integer(required=True)
    subject = fields.String(required=True)
    refresh_token = fields.String()


class UserSchema(Schema):
    id = fields.Integer(required=True)
    username = fields.String(required=True)
    email = fields.Email(required=True)
    roles = fields.List(fields.String())


class PrincipalSchema(Schema):
    """Identity details of the authenticated caller."""

    user_id = fields.Integer(required=True)
    username = fields.String(required=True)
    capabilities = fields.Method("_sorted_capabilities")

    def _sorted_capabilities(self, obj) -> list[str]:
        return sorted(obj.capabilities)
