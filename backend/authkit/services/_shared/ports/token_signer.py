from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class VerifiedToken:
    """
    Outcome of a successful access token verification.

    :ivar valid: Always ``True``; failures are raised, never returned.
    :ivar subject: Subject identity (username) carried in ``sub``.
    :ivar user_id: User id carried in ``uid``.
    :ivar issued_at: ``iat`` claim (UTC).
    :ivar expires_at: ``exp`` claim (UTC).
    :ivar jti: Token identifier.
    """

    valid: bool
    subject: str
    user_id: int
    issued_at: datetime
    expires_at: datetime
    jti: str


class TokenSigner(Protocol):
    """Port for issuing and verifying signed access tokens."""

    def issue_access_token(self, subject: str, user_id: int) -> str: ...

    def verify(self, token: str) -> VerifiedToken: ...
