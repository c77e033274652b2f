"""Factory Boy definition for :class:`authkit.models.user.User`."""

from __future__ import annotations

import factory
from authkit.models.user import DEFAULT_ROLE, User

from tests.factories import BaseFactory

DEFAULT_PASSWORD = "Passw0rd!"


class UserFactory(BaseFactory):
    """
    Build persisted :class:`User` instances.

    Pass ``password="..."`` to choose the raw password (hashed by the model
    setter) and ``roles="ROLE_ADMIN,ROLE_USER"`` for administrators.
    """

    class Meta:
        model = User

    id = None  # let autoincrement handle it
    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    roles = DEFAULT_ROLE
    enabled = True
    password_hash = factory.LazyFunction(lambda: "")  # set via postgen

    @factory.post_generation
    def password(obj, create, extracted, **kwargs):
        """Set password using model setter (ensures hashing)."""
        obj.password = extracted or DEFAULT_PASSWORD
