# authkit/services/auth/service.py
from __future__ import annotations

import logging

from authkit.core.config import AuthSettings
from authkit.services._shared.base import BaseService, ServiceContext
from authkit.services._shared.clock import Clock, utcnow
from authkit.services._shared.errors import (
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    RefreshTokenExpiredError,
    RefreshTokenRevokedError,
)
from authkit.services._shared.ports import (
    CredentialVerifier,
    Principal,
    RefreshTokenRecord,
    TokenSigner,
)
from authkit.services.auth.dto import LoginIn, LogoutIn, RefreshIn, TokenPairOut
from authkit.services.tokens.refresh_store import RefreshTokenStore

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Authentication lifecycle service (login / refresh / logout).

    Issues access tokens through a :class:`TokenSigner`, keeps refresh tokens in
    a :class:`RefreshTokenStore` (hashed, single-use, rotated atomically) and
    delegates password checks to a :class:`CredentialVerifier`.

    A refresh token record is ``Active`` until it is rotated or logged out
    (``Revoked``) or its expiry passes (``Expired``, detected at lookup time).
    Both end states are terminal.
    """

    def __init__(
        self,
        *,
        signer: TokenSigner,
        refresh_store: RefreshTokenStore,
        verifier: CredentialVerifier,
        settings: AuthSettings,
        clock: Clock = utcnow,
        ctx: ServiceContext | None = None,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param signer: Access token signer.
        :param refresh_store: Hashed refresh token store (atomic rotation).
        :param verifier: Credential verifier and owner resolver.
        :param settings: Token lifetimes and reuse policy.
        :param clock: Wall-clock source used for expiry checks.
        :param ctx: Request-scoped context, used for log correlation only.
        """
        super().__init__(ctx=ctx)
        self.signer = signer
        self.refresh_store = refresh_store
        self.verifier = verifier
        self.settings = settings
        self.clock = clock

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> TokenPairOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :param dto: Login input.
        :returns: Access token, raw refresh secret and subject.
        :raises InvalidCredentialsError: If the verifier rejects the credentials.
        """
        try:
            principal = self.verifier.verify(dto.username, dto.password)
        except InvalidCredentialsError:
            log.warning("auth.login.failed", extra=self.ctx.log_extra())
            raise

        raw_refresh = self.refresh_store.generate_and_store(principal.user_id)
        pair = self._issue_pair(principal, raw_refresh)
        log.info("auth.login.ok", extra=self.ctx.log_extra(user_id=principal.user_id))
        return pair

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Exchange a refresh secret for a new token pair.

        Security
        --------
        - The presented secret is revoked and replaced in one atomic step; it
          can never be exchanged twice.
        - Of several concurrent exchanges of the same secret exactly one wins;
          the others raise :class:`RefreshTokenRevokedError`.
        - With ``reuse_revokes_family`` enabled, presenting an already rotated
          secret revokes the whole rotation chain.

        :raises InvalidTokenError: Unknown secret, or its owner no longer exists.
        :raises RefreshTokenRevokedError: Secret already rotated or logged out.
        :raises RefreshTokenExpiredError: Secret past its expiry (record deleted).
        """
        try:
            record = self.refresh_store.lookup_by_raw(dto.refresh_token)
        except NotFoundError:
            raise InvalidTokenError() from None

        if record.revoked:
            self._on_revoked_reuse(record)
            raise RefreshTokenRevokedError()

        if record.is_expired(self.clock()):
            self._discard_expired(record)
            raise RefreshTokenExpiredError()

        principal = self.verifier.get_principal(record.user_id)
        if principal is None:
            raise InvalidTokenError()

        try:
            new_raw = self.refresh_store.rotate(record)
        except RefreshTokenRevokedError:
            log.info(
                "auth.refresh.lost_race",
                extra=self.ctx.log_extra(user_id=record.user_id, family_id=record.family_id),
            )
            raise

        log.info(
            "auth.refresh.ok",
            extra=self.ctx.log_extra(user_id=record.user_id, family_id=record.family_id),
        )
        return self._issue_pair(principal, new_raw)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the presented refresh secret.

        Succeeds silently for unknown secrets so callers cannot learn whether
        a secret ever existed.
        """
        if not dto.refresh_token:
            return
        try:
            record = self.refresh_store.lookup_by_raw(dto.refresh_token)
        except NotFoundError:
            return

        self.refresh_store.revoke(record)
        if dto.all_sessions:
            self.refresh_store.revoke_all_for_user(record.user_id)
        log.info("auth.logout", extra=self.ctx.log_extra(user_id=record.user_id))

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    def _issue_pair(self, principal: Principal, raw_refresh: str) -> TokenPairOut:
        access = self.signer.issue_access_token(principal.username, principal.user_id)
        return TokenPairOut(
            access_token=access,
            refresh_token=raw_refresh,
            subject=principal.username,
            expires_in=int(self.settings.access_token_ttl.total_seconds()),
        )

    def _on_revoked_reuse(self, record: RefreshTokenRecord) -> None:
        if not self.settings.reuse_revokes_family:
            log.warning("auth.refresh.revoked", extra=self.ctx.log_extra(user_id=record.user_id))
            return
        affected = self.refresh_store.revoke_family(record.family_id)
        log.warning(
            "auth.refresh.reuse family revoked (%d tokens)",
            affected,
            extra=self.ctx.log_extra(user_id=record.user_id, family_id=record.family_id),
        )

    def _discard_expired(self, record: RefreshTokenRecord) -> None:
        """Best-effort removal of an expired record; never masks the expiry error."""
        try:
            self.refresh_store.delete(record)
        except Exception:
            log.warning(
                "auth.refresh.expired_cleanup_failed",
                extra=self.ctx.log_extra(user_id=record.user_id),
                exc_info=True,
            )
        else:
            log.info("auth.refresh.expired", extra=self.ctx.log_extra(user_id=record.user_id))
