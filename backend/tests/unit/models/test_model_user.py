"""Unit tests for the ``User`` model."""

from __future__ import annotations

import pytest
from authkit.models.user import User
from sqlalchemy.exc import IntegrityError

from tests.factories.user import UserFactory


def test_password_is_write_only_and_hashed(session):
    user = User(username="carol", email="carol@example.com")
    user.password = "s3cret-pass"

    assert user.password_hash != "s3cret-pass"
    assert user.verify_password("s3cret-pass") is True
    assert user.verify_password("nope") is False
    with pytest.raises(AttributeError):
        _ = user.password


def test_empty_password_is_rejected():
    user = User(username="carol", email="carol@example.com")
    with pytest.raises(ValueError):
        user.password = ""


def test_email_and_username_are_normalized():
    user = User(username="  carol ", email="  Carol@Example.COM ")
    assert user.username == "carol"
    assert user.email == "carol@example.com"


@pytest.mark.parametrize("email", ["", "no-at-sign", "a@nodot"])
def test_invalid_email_is_rejected(email):
    with pytest.raises(ValueError):
        User(username="carol", email=email)


def test_capabilities_and_grant():
    user = User(username="carol", email="carol@example.com", roles="ROLE_USER")
    user.grant("ROLE_ADMIN")
    user.grant("ROLE_ADMIN")

    assert user.roles == "ROLE_ADMIN,ROLE_USER"
    assert user.capabilities == frozenset({"ROLE_ADMIN", "ROLE_USER"})


def test_username_is_unique(session):
    UserFactory(username="dup")

    with pytest.raises(IntegrityError):
        UserFactory(username="dup")
    session.rollback()


def test_repr_lists_safe_columns_only():
    user = User(username="carol", email="carol@example.com", enabled=True)
    user.password = "Passw0rd!"

    text = repr(user)

    assert text.startswith("<User id=None username='carol'")
    assert user.password_hash not in text
