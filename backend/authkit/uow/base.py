"""
Abstract Unit of Work contract for account and session persistence.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authkit.repositories import RefreshTokenRowRepository, UserRepository


class UnitOfWork(ABC):
    """
    Transaction boundary around the ``users`` and ``refresh_tokens`` tables.

    Both repositories share one transaction: revoking a parent refresh token
    and inserting its child either land together or not at all.

    :ivar users: Account repository bound to this unit.
    :ivar refresh_tokens: Refresh token row repository bound to this unit.
    """

    users: UserRepository
    refresh_tokens: RefreshTokenRowRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None:
        """Commit when the block exits cleanly, roll back otherwise."""

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
