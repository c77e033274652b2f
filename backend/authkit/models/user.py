"""User account model backing the credential verifier."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, String, UniqueConstraint, true
from sqlalchemy.orm import Mapped, mapped_column, validates
from werkzeug.security import check_password_hash, generate_password_hash

from authkit.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

DEFAULT_ROLE = "ROLE_USER"


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Account holding login credentials and role names.

    Fields
    ------
    username : str
        Login name and access token subject. Unique, trimmed.
    email : str
        Contact email. Stored normalized (lowercase, trimmed). Unique.
    password_hash : str
        Hashed password (write-only setter via ``password``).
    roles : str
        Comma-separated role names (e.g. ``"ROLE_USER,ROLE_ADMIN"``).
    enabled : bool
        Disabled accounts cannot log in or refresh.
    """

    __tablename__ = "users"
    __repr_attrs__ = ("username", "enabled")

    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    roles: Mapped[str] = mapped_column(String(200), nullable=False, default=DEFAULT_ROLE)
    enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
        UniqueConstraint("email", name="uq_users_email"),
    )

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """
        Hash and set the password.

        :param raw: Plain text password to hash.
        :type raw: str
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash.

        :param raw: Plain text password candidate.
        :returns: ``True`` if it matches; otherwise ``False``.
        """
        if not self.password_hash:
            return False
        return bool(check_password_hash(self.password_hash, raw))

    # -------------------- Roles --------------------
    @property
    def capabilities(self) -> frozenset[str]:
        """Role names as a set, attached to the principal at login."""
        return frozenset(r.strip() for r in (self.roles or "").split(",") if r.strip())

    def grant(self, role: str) -> None:
        self.roles = ",".join(sorted(self.capabilities | {role.strip()}))

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize and validate email.

        :raises ValueError: If email is missing or malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        # Minimal sanity check; full validation happens at API layer.
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()
