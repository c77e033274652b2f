"""Unit tests for the logging utility."""

from __future__ import annotations

import json
import logging

from authkit.core.logger import REDACTED, JSONFormatter, configure_logging, redact


def test_configure_logging_sets_level() -> None:
    """``configure_logging`` should set the root logger level."""

    configure_logging("DEBUG")

    assert logging.getLogger().level == logging.DEBUG


def test_json_formatter_copies_known_extras() -> None:
    record = logging.LogRecord(
        "authkit.test", logging.INFO, __file__, 1, "auth.login.ok", None, None
    )
    record.user_id = 7
    record.client = "203.0.113.9"
    record.password = "must-not-appear"

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "auth.login.ok"
    assert payload["level"] == "INFO"
    assert payload["user_id"] == 7
    assert payload["client"] == "203.0.113.9"
    assert "password" not in payload


def test_redact_masks_bearer_and_refresh_values() -> None:
    line = redact("Authorization: Bearer eyJhbGciOi.abc.def cookie refresh_token=s3cr3t-value")

    assert "eyJhbGciOi" not in line
    assert "s3cr3t-value" not in line
    assert line.count(REDACTED) == 2


def test_json_formatter_redacts_message() -> None:
    record = logging.LogRecord(
        "authkit.test", logging.WARNING, __file__, 1, "bad header %s", ("Bearer abc.def.ghi",), None
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == f"bad header Bearer {REDACTED}"
