"""
IdentityService
===============

Account management used by the registration endpoint and the CLI.

- ``register_user``: create a user with the default role.
- ``get_user``: public view of an account.
- ``grant_role``: add a role name (e.g. ``ROLE_ADMIN``).
- ``set_enabled``: enable or disable an account (disabled users cannot log in
  or refresh).
- ``count_users``: number of accounts.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from authkit.models.user import DEFAULT_ROLE, User
from authkit.services._shared.base import BaseService
from authkit.services._shared.errors import ConflictError, NotFoundError, violates
from authkit.services.identity.dto import UserPublicOut, UserRegisterIn

log = logging.getLogger(__name__)


class IdentityService(BaseService):
    """Application service for user accounts."""

    def register_user(self, dto: UserRegisterIn) -> UserPublicOut:
        """
        Create a new account.

        :param dto: Registration input.
        :type dto: :class:`UserRegisterIn`
        :returns: Public view of the created user.
        :rtype: :class:`UserPublicOut`
        :raises ConflictError: If the username or email is already taken.
        """
        try:
            with self.rw_uow() as uow:
                if uow.users.exists_by_username(dto.username):
                    raise ConflictError("User", "username already in use")
                if uow.users.exists_by_email(dto.email):
                    raise ConflictError("User", "email already in use")

                user = User(username=dto.username, email=dto.email)
                user.password = dto.password  # model setter hashes
                user.grant(DEFAULT_ROLE)
                uow.users.add(user)
                out = self._to_public(user)
        except IntegrityError as exc:
            # concurrent registration won the unique constraint race
            if violates(exc, "uq_users_email"):
                raise ConflictError("User", "email already in use") from exc
            raise ConflictError("User", "username already in use") from exc

        log.info("identity.registered", extra=self.ctx.log_extra(user_id=out.id))
        return out

    def get_user(self, user_id: int) -> UserPublicOut:
        """
        :raises NotFoundError: If the user does not exist.
        """
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return self._to_public(user)

    def count_users(self) -> int:
        with self.rw_uow() as uow:
            return uow.users.count()

    def grant_role(self, user_id: int, role: str) -> UserPublicOut:
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            user.grant(role)
            return self._to_public(user)

    def set_enabled(self, user_id: int, enabled: bool) -> UserPublicOut:
        with self.rw_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            user.enabled = enabled
            return self._to_public(user)

    @staticmethod
    def _to_public(user: User) -> UserPublicOut:
        return UserPublicOut(
            id=user.id,
            username=user.username,
            email=user.email,
            roles=tuple(sorted(user.capabilities)),
        )
