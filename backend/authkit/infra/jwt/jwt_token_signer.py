# authkit/infra/jwt/jwt_token_signer.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import jwt

from authkit.core.config import AuthSettings
from authkit.services._shared.clock import Clock, utcnow
from authkit.services._shared.errors import (
    AccessTokenExpiredError,
    InvalidSignatureError,
    MalformedTokenError,
)
from authkit.services._shared.ports import TokenSigner, VerifiedToken

# Token type identifier carried in the "type" claim
ACCESS_TOKEN_TYPE = "access"

REQUIRED_CLAIMS = ("sub", "uid", "iat", "exp", "type")


@dataclass(slots=True)
class JWTTokenSigner(TokenSigner):
    """
    Access token signer backed by PyJWT.

    The key comes from an explicit :class:`AuthSettings` instance rather than
    from the Flask config, so two signers with different keys can coexist.

    .. note::
       Expiry is compared against the injected ``clock`` instead of PyJWT's
       own ``datetime.now`` so token lifetime can be simulated in tests.
    """

    settings: AuthSettings
    clock: Clock = field(default=utcnow)

    def issue_access_token(self, subject: str, user_id: int) -> str:
        """
        Sign a new access token.

        :param subject: Subject identity (username) stored in ``sub``.
        :param user_id: User id stored in ``uid``.
        :returns: Compact JWS string.
        """
        now = self.clock()
        claims: dict[str, Any] = {
            "sub": str(subject),
            "uid": int(user_id),
            "iat": int(now.timestamp()),
            # rounded up so the token never lives shorter than its TTL
            "exp": math.ceil((now + self.settings.access_token_ttl).timestamp()),
            "jti": uuid4().hex,
            "type": ACCESS_TOKEN_TYPE,
        }
        return jwt.encode(claims, self.settings.signing_key, algorithm=self.settings.algorithm)

    def verify(self, token: str) -> VerifiedToken:
        """
        Verify signature and expiry of an access token.

        :param token: Compact JWS string.
        :returns: Verified claims.
        :raises MalformedTokenError: If the token cannot be parsed or lacks claims.
        :raises InvalidSignatureError: If the signature does not match the key.
        :raises AccessTokenExpiredError: If the clock is strictly past ``exp``.
        """
        try:
            claims = jwt.decode(
                token,
                self.settings.signing_key,
                algorithms=[self.settings.algorithm],
                options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignatureError() from exc
        except jwt.InvalidTokenError as exc:
            # DecodeError, InvalidAlgorithmError, ...: anything that is not a signature mismatch
            raise MalformedTokenError() from exc

        missing = [name for name in REQUIRED_CLAIMS if name not in claims]
        if missing or claims["type"] != ACCESS_TOKEN_TYPE:
            raise MalformedTokenError()

        try:
            issued_at = datetime.fromtimestamp(int(claims["iat"]), tz=UTC)
            expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=UTC)
            user_id = int(claims["uid"])
        except (TypeError, ValueError, OverflowError) as exc:
            raise MalformedTokenError() from exc

        if expires_at < self.clock():
            raise AccessTokenExpiredError()

        return VerifiedToken(
            valid=True,
            subject=str(claims["sub"]),
            user_id=user_id,
            issued_at=issued_at,
            expires_at=expires_at,
            jti=str(claims.get("jti", "")),
        )
