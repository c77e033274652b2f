# tests/unit/services/test_identity_service.py
from __future__ import annotations

import pytest
from authkit.services._shared.errors import ConflictError, InvalidCredentialsError, NotFoundError
from authkit.services.identity.dto import UserRegisterIn
from authkit.services.identity.service import IdentityService
from authkit.services.identity.verifier import UserCredentialVerifier

from tests.factories.user import DEFAULT_PASSWORD, UserFactory


@pytest.fixture()
def service(app) -> IdentityService:
    return IdentityService()


@pytest.fixture()
def verifier(app) -> UserCredentialVerifier:
    return UserCredentialVerifier()


# ----------------------------- Registration ------------------------------- #
def test_register_user_grants_default_role(service):
    out = service.register_user(
        UserRegisterIn(username="alice", email="Alice@Example.com", password="wonderland")
    )

    assert out.id is not None
    assert out.username == "alice"
    assert out.email == "alice@example.com"
    assert out.roles == ("ROLE_USER",)
    assert service.count_users() == 1


@pytest.mark.parametrize(
    "username,email",
    [("alice", "other@example.com"), ("other", "ALICE@example.com")],
)
def test_register_duplicate_conflicts(service, username, email):
    service.register_user(UserRegisterIn("alice", "alice@example.com", "wonderland"))

    with pytest.raises(ConflictError):
        service.register_user(UserRegisterIn(username, email, "wonderland"))
    assert service.count_users() == 1


def test_grant_role_and_disable(service):
    user = UserFactory()

    assert service.grant_role(user.id, "ROLE_ADMIN").roles == ("ROLE_ADMIN", "ROLE_USER")
    service.set_enabled(user.id, False)

    assert service.get_user(user.id).username == user.username


def test_unknown_user_is_not_found(service):
    with pytest.raises(NotFoundError):
        service.get_user(999)


# ------------------------------ Verifier ---------------------------------- #
def test_verify_returns_principal_with_capabilities(verifier):
    user = UserFactory(roles="ROLE_ADMIN,ROLE_USER")

    principal = verifier.verify(user.username, DEFAULT_PASSWORD)

    assert principal.user_id == user.id
    assert principal.username == user.username
    assert principal.capabilities == frozenset({"ROLE_ADMIN", "ROLE_USER"})


@pytest.mark.parametrize("password", ["wrong-password", ""])
def test_verify_rejects_wrong_password(verifier, password):
    user = UserFactory()

    with pytest.raises(InvalidCredentialsError):
        verifier.verify(user.username, password)


def test_verify_rejects_unknown_user(verifier):
    with pytest.raises(InvalidCredentialsError):
        verifier.verify("nobody", DEFAULT_PASSWORD)


def test_disabled_user_cannot_verify_or_resolve(verifier):
    user = UserFactory(enabled=False)

    with pytest.raises(InvalidCredentialsError):
        verifier.verify(user.username, DEFAULT_PASSWORD)
    assert verifier.get_principal(user.id) is None


def test_get_principal(verifier):
    user = UserFactory()

    assert verifier.get_principal(user.id).username == user.username
    assert verifier.get_principal(999) is None
