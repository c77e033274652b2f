# authkit/services/_shared/base.py
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from authkit.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


@dataclass(slots=True)
class ServiceContext:
    """
    Request-scoped data the services only use for log correlation.

    :param actor_id: Authenticated user identifier, when the caller presented a token.
    :param request_id: Correlation id (``X-Request-ID``).
    :param client: Client identity (first forwarded-for entry or remote address).
    """

    actor_id: int | None = None
    request_id: str | None = None
    client: str | None = None

    def log_extra(self, **fields: Any) -> dict[str, Any]:
        """Merge ``fields`` with the known client for a logging ``extra`` dict."""
        extra: dict[str, Any] = {"client": self.client} if self.client else {}
        extra.update(fields)
        return extra


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Open read-write units of work (``rw_uow``).
    * Carry the request-scoped :class:`ServiceContext`.

    Notes
    -----
    - Services never touch the global session; every write runs in a Unit of Work.
    - HTTP translation of service errors happens in :mod:`authkit.core.errors`.
    """

    def __init__(
        self,
        *,
        ctx: ServiceContext | None = None,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
    ) -> None:
        """
        :param ctx: Optional request-scoped context.
        :param uow_factory: Callable returning a fresh Unit of Work.
        """
        self.ctx = ctx or ServiceContext()
        self._uow_factory = uow_factory

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Return a new read-write Unit of Work; commit happens on clean exit."""
        return self._uow_factory()
