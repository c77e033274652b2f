"""Refresh token table. Only the SHA-256 digest of a secret is ever stored."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column

from authkit.core.extensions import db
from authkit.services._shared.clock import as_utc
from authkit.services._shared.ports import RefreshTokenRecord

from .base import PKMixin, ReprMixin


class RefreshToken(PKMixin, ReprMixin, db.Model):
    """
    Persisted refresh token.

    Fields
    ------
    token_hash : str
        Hex SHA-256 of the raw secret. Unique; the only lookup key.
    user_id : int
        Owning user.
    family_id : str
        Rotation chain shared by the token issued at login and its successors.
    issued_at, expires_at : datetime
        Issue instant and absolute expiry (UTC).
    revoked : bool
        Flipped to ``True`` on rotation or logout; never flipped back.
    """

    __tablename__ = "refresh_tokens"
    __repr_attrs__ = ("user_id", "family_id", "revoked")

    token_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    family_id: Mapped[str] = mapped_column(String(64), nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    __table_args__ = (
        UniqueConstraint("token_hash", name="uq_refresh_tokens_token_hash"),
        Index("ix_refresh_tokens_user_id", "user_id"),
        Index("ix_refresh_tokens_family_id", "family_id"),
    )

    @classmethod
    def from_record(cls, record: RefreshTokenRecord) -> RefreshToken:
        return cls(
            token_hash=record.token_hash,
            user_id=record.user_id,
            family_id=record.family_id,
            issued_at=record.issued_at,
            expires_at=record.expires_at,
            revoked=record.revoked,
        )

    def to_record(self) -> RefreshTokenRecord:
        # SQLite drops tzinfo; label values back as UTC
        return RefreshTokenRecord(
            token_hash=self.token_hash,
            user_id=self.user_id,
            family_id=self.family_id,
            issued_at=as_utc(self.issued_at),
            expires_at=as_utc(self.expires_at),
            revoked=bool(self.revoked),
        )
