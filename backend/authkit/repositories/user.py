"""User repository for persistence and credential lookups."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from authkit.models.user import User
from authkit.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER handles tokens; it only reads and writes account rows.
    """

    model = User

    def get_by_username(self, username: str) -> User | None:
        """Fetch a user by exact (trimmed) username.

        :param username: Login name.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.username == username.strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_username(self, username: str) -> bool:
        stmt = select(User.id).where(User.username == username.strip())
        return bool(self.session.execute(stmt).first())

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())
