"""Unit of Work package."""

from __future__ import annotations

from authkit.uow.base import UnitOfWork
from authkit.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork

__all__ = ["UnitOfWork", "SQLAlchemyUnitOfWork"]
