"""Refresh token repository: row-level reads and conditional writes."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, or_, select, update
from sqlalchemy.engine import CursorResult

from authkit.models.refresh_token import RefreshToken
from authkit.repositories.base import BaseRepository


class RefreshTokenRowRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken` rows.

    Lookups are by full-hash equality only. State changes are issued as
    conditional ``UPDATE`` statements so that concurrent transactions race on
    the row, not on a previously loaded snapshot.
    """

    model = RefreshToken

    def get_by_hash(self, token_hash: str) -> RefreshToken | None:
        stmt = select(RefreshToken).where(RefreshToken.token_hash == token_hash)
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def revoke_if_active(self, token_hash: str) -> bool:
        """Flip ``revoked`` only if it is still false.

        :returns: ``True`` when this call performed the flip.
        """
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token_hash == token_hash, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return result.rowcount == 1

    def revoke_where_family(self, family_id: str) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.family_id == family_id, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return cast(CursorResult, self.session.execute(stmt)).rowcount

    def revoke_where_user(self, user_id: int) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        return cast(CursorResult, self.session.execute(stmt)).rowcount

    def delete_by_hash(self, token_hash: str) -> bool:
        stmt = delete(RefreshToken).where(RefreshToken.token_hash == token_hash)
        return cast(CursorResult, self.session.execute(stmt)).rowcount > 0

    def delete_stale(self, now: datetime) -> int:
        """Delete revoked rows and rows whose expiry is before ``now``."""
        stmt = delete(RefreshToken).where(
            or_(RefreshToken.revoked.is_(True), RefreshToken.expires_at < now)
        )
        return cast(CursorResult, self.session.execute(stmt)).rowcount

    def list_by_user(self, user_id: int) -> list[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .order_by(RefreshToken.issued_at.asc(), RefreshToken.id.asc())
        )
        return list(self.session.execute(stmt).scalars())
