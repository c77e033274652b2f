# authkit/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param username: Account username (subject identity).
    :type username: str
    :param password: Raw password (to be verified, never stored).
    :type password: str
    """

    username: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Raw refresh secret held by the client.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout.

    :param refresh_token: Raw refresh secret (may be unknown or empty).
    :type refresh_token: str
    :param all_sessions: If True, revoke every refresh token of the owner.
    :type all_sessions: bool
    """

    refresh_token: str
    all_sessions: bool = False


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Output DTO with a signed access token and a raw refresh secret.

    :param access_token: Encoded access JWT.
    :type access_token: str
    :param refresh_token: Raw refresh secret; only ever handed to the client.
    :type refresh_token: str
    :param subject: Subject identity the tokens were issued for.
    :type subject: str
    :param expires_in: Access token lifetime in seconds.
    :type expires_in: int
    """

    access_token: str
    refresh_token: str
    subject: str
    expires_in: int
    token_type: str = "bearer"
