"""Pytest fixtures: one application and in-memory database per test.

Every test builds its own app so process-level state (the rate limiter's
windows, the refresh token store) never leaks between cases.
"""

from __future__ import annotations

import os

import pytest
from authkit.core.config import AuthSettings, TestingConfig
from authkit.core.extensions import db as _db
from authkit.factory import create_app

from tests.helpers.clocks import FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> AuthSettings:
    """Settings matching the documented defaults with a test signing key."""
    return AuthSettings(signing_key="unit-test-signing-key-with-32-bytes!!")


@pytest.fixture()
def app_config():
    """Config class for the ``app`` fixture; override in a module to customize."""
    return TestingConfig


@pytest.fixture()
def app(app_config):
    """Create a Flask application with its tables created.

    Yields
    ------
    flask.Flask
        Application with an active app context.
    """
    # Ensure env-based config does not leak into tests
    os.environ.pop("DATABASE_URL", None)
    app = create_app(app_config, instance_relative_config=False)
    app.logger.setLevel("WARNING")
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture()
def session(app):
    """The Flask-scoped SQLAlchemy session of ``app``."""
    return _db.session


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Provide a :class:`faker.Faker` instance seeded for deterministic tests."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk
