"""Factory Boy helpers wired to the Flask-scoped SQLAlchemy session."""

from __future__ import annotations

import factory
from authkit.core.extensions import db


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Base class persisting through ``db.session`` (requires an app context)."""

    class Meta:
        abstract = True
        # Callable keeps Factory Boy lazy: the session belongs to the current app.
        sqlalchemy_session_factory = lambda: db.session  # noqa: E731
        sqlalchemy_session_persistence = "commit"
