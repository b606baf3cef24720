"""
tests/test_config.py -- Settings loading and the signing-secret policy.

Covers:
  - DEBUG=true fills every missing signing secret with a distinct random key
  - production mode refuses to start without secrets
  - secrets shorter than 32 characters are rejected
  - empty SMTP values count as unset
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings

LONG_KEY = "k" * 32


def test_debug_generates_distinct_secrets() -> None:
    s = Settings(_env_file=None, debug=True)
    keys = {s.secret_key, s.verify_secret_key, s.password_reset_secret_key, s.reset_password_secret_key}
    assert len(keys) == 4
    assert all(len(k) >= 32 for k in keys)


def test_production_requires_secrets() -> None:
    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None, debug=False)
    assert "SECRET_KEY" in str(exc_info.value)


def test_production_with_all_secrets() -> None:
    s = Settings(
        _env_file=None,
        debug=False,
        secret_key=LONG_KEY,
        verify_secret_key=LONG_KEY + "v",
        password_reset_secret_key=LONG_KEY + "p",
        reset_password_secret_key=LONG_KEY + "r",
    )
    assert s.secret_key == LONG_KEY


def test_short_secret_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, debug=True, secret_key="too-short")


def test_smtp_configuration() -> None:
    assert Settings(_env_file=None, debug=True, smtp_host="").smtp_configured is False
    s = Settings(_env_file=None, debug=True, smtp_host="smtp.kin.test", smtp_user="u", smtp_password="p")
    assert s.smtp_configured is True


def test_settings_are_frozen() -> None:
    s = Settings(_env_file=None, debug=True)
    with pytest.raises(ValidationError):
        s.debug = False
