"""
SQLAlchemy Unit of Work over the Flask-scoped session.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from authkit.core.extensions import db
from authkit.repositories import RefreshTokenRowRepository, UserRepository
from authkit.uow.base import UnitOfWork

log = logging.getLogger(__name__)


class SQLAlchemyUnitOfWork(UnitOfWork):
    """
    Account and refresh token repositories sharing one session.

    A refresh token rotation (conditional revoke of the parent, insert of the
    child) therefore commits or rolls back as a whole. A failing commit is
    rolled back before the error propagates, so the scoped session stays usable
    for the rest of the request.

    :param session: Explicit session; defaults to ``db.session``.
    """

    def __init__(self, session: Session | None = None) -> None:
        self.session: Session = session if session is not None else db.session
        self.users = UserRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRowRepository(session=self.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            log.debug("uow.rollback error=%s", exc_type.__name__)
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
