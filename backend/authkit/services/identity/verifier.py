"""Password verification against the ``users`` table."""

from __future__ import annotations

from functools import cache

from werkzeug.security import check_password_hash, generate_password_hash

from authkit.models.user import User
from authkit.services._shared.errors import InvalidCredentialsError
from authkit.services._shared.ports import CredentialVerifier, Principal
from authkit.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


@cache
def _dummy_hash() -> str:
    # Hashed once; checked against for unknown usernames.
    return generate_password_hash("authkit-dummy-password")


def to_principal(user: User) -> Principal:
    return Principal(user_id=user.id, username=user.username, capabilities=user.capabilities)


class UserCredentialVerifier(CredentialVerifier):
    """
    :class:`CredentialVerifier` backed by :class:`~authkit.models.user.User` rows.

    Unknown users and wrong passwords are indistinguishable to the caller:
    both raise :class:`InvalidCredentialsError`, and an unknown username still
    pays for one hash check. Disabled accounts are rejected the same way.

    :param uow_factory: Callable returning a fresh Unit of Work.
    """

    def __init__(self, uow_factory=SQLAlchemyUnitOfWork) -> None:
        self.uow_factory = uow_factory

    def verify(self, username: str, password: str) -> Principal:
        with self.uow_factory() as uow:
            user = uow.users.get_by_username(username or "")
            if user is None:
                check_password_hash(_dummy_hash(), password or "")
                raise InvalidCredentialsError()
            if not user.verify_password(password or "") or not user.enabled:
                raise InvalidCredentialsError()
            return to_principal(user)

    def get_principal(self, user_id: int) -> Principal | None:
        with self.uow_factory() as uow:
            user = uow.users.get(user_id)
            if user is None or not user.enabled:
                return None
            return to_principal(user)
