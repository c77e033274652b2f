# authkit/infra/sqlalchemy/sql_refresh_token_repository.py
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from authkit.models.refresh_token import RefreshToken
from authkit.services._shared.clock import as_utc
from authkit.services._shared.ports import RefreshTokenRecord, RefreshTokenRepository
from authkit.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


class SQLAlchemyRefreshTokenRepository(RefreshTokenRepository):
    """
    Relational refresh token repository.

    Every call runs in its own :class:`SQLAlchemyUnitOfWork`. ``rotate`` issues
    ``UPDATE ... WHERE revoked = false`` on the parent and inserts the child in
    the same transaction: if the insert fails the transaction rolls back and
    the parent is left unrevoked.

    :param uow_factory: Builds a fresh Unit of Work (defaults to the
        Flask-scoped session, so calls need an application context).
    """

    def __init__(
        self, uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork
    ) -> None:
        self.uow_factory = uow_factory

    def add(self, record: RefreshTokenRecord) -> None:
        with self.uow_factory() as uow:
            uow.refresh_tokens.add(RefreshToken.from_record(record))

    def get_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        with self.uow_factory() as uow:
            row = uow.refresh_tokens.get_by_hash(token_hash)
            return row.to_record() if row is not None else None

    def mark_revoked(self, token_hash: str) -> bool:
        with self.uow_factory() as uow:
            if uow.refresh_tokens.get_by_hash(token_hash) is None:
                return False
            uow.refresh_tokens.revoke_if_active(token_hash)
            return True

    def rotate(self, old_hash: str, child: RefreshTokenRecord) -> bool:
        with self.uow_factory() as uow:
            if not uow.refresh_tokens.revoke_if_active(old_hash):
                return False
            uow.refresh_tokens.add(RefreshToken.from_record(child))
            return True

    def delete(self, token_hash: str) -> bool:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.delete_by_hash(token_hash)

    def revoke_family(self, family_id: str) -> int:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.revoke_where_family(family_id)

    def revoke_all_for_user(self, user_id: int) -> int:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.revoke_where_user(int(user_id))

    def list_for_user(self, user_id: int) -> list[RefreshTokenRecord]:
        with self.uow_factory() as uow:
            return [row.to_record() for row in uow.refresh_tokens.list_by_user(int(user_id))]

    def purge(self, now: datetime) -> int:
        with self.uow_factory() as uow:
            return uow.refresh_tokens.delete_stale(as_utc(now))
