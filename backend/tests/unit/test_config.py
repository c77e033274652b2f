"""Unit tests for configuration selection and AuthSettings validation."""

from __future__ import annotations

from datetime import timedelta

import pytest
from authkit.core.config import (
    AuthSettings,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
)


@pytest.mark.parametrize(
    "env,expected",
    [
        ("development", DevelopmentConfig),
        ("testing", TestingConfig),
        ("production", ProductionConfig),
        ("  Production ", ProductionConfig),
    ],
)
def test_get_config_follows_app_env(monkeypatch, env, expected):
    monkeypatch.setenv("APP_ENV", env)
    assert get_config() is expected


def test_from_mapping_reads_flask_keys():
    settings = AuthSettings.from_mapping(
        {
            "JWT_SECRET_KEY": "k" * 32,
            "ACCESS_TOKEN_TTL": 60,
            "REFRESH_TOKEN_TTL": 3600,
            "RATE_LIMIT_MAX": 3,
            "RATE_LIMIT_WINDOW": 30,
            "REFRESH_REUSE_REVOKES_FAMILY": True,
        }
    )

    assert settings.access_token_ttl == timedelta(minutes=1)
    assert settings.refresh_token_ttl == timedelta(hours=1)
    assert settings.rate_limit_max == 3
    assert settings.rate_limit_window == timedelta(seconds=30)
    assert settings.reuse_revokes_family is True
    assert settings.algorithm == "HS256"


def test_defaults_match_documented_values():
    settings = AuthSettings.from_mapping({"JWT_SECRET_KEY": "k"})

    assert settings.access_token_ttl == timedelta(minutes=15)
    assert settings.refresh_token_ttl == timedelta(days=14)
    assert settings.rate_limit_max == 5
    assert settings.rate_limit_window == timedelta(seconds=60)


@pytest.mark.parametrize(
    "overrides",
    [
        {"JWT_SECRET_KEY": ""},
        {"ACCESS_TOKEN_TTL": 0},
        {"REFRESH_TOKEN_TTL": -1},
        {"RATE_LIMIT_MAX": 0},
        {"RATE_LIMIT_WINDOW": 0},
        {"JWT_ALGORITHM": "RS256"},
        {"JWT_ALGORITHM": "none"},
    ],
)
def test_invalid_settings_are_rejected(overrides):
    config = {"JWT_SECRET_KEY": "k" * 32, **overrides}
    with pytest.raises(ValueError):
        AuthSettings.from_mapping(config)


def test_settings_are_immutable():
    settings = AuthSettings(signing_key="k")
    with pytest.raises(AttributeError):
        settings.signing_key = "other"  # type: ignore[misc]


@pytest.mark.parametrize("algorithm", ["HS256", "HS384", "HS512"])
def test_hmac_algorithms_are_accepted(algorithm):
    settings = AuthSettings.from_mapping({"JWT_SECRET_KEY": "k" * 64, "JWT_ALGORITHM": algorithm})

    assert settings.algorithm == algorithm
