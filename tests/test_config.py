"""
tests/test_config.py -- Tests for core/config.py Settings.

Covers:
  - defaults for token TTLs, bcrypt cost and request timeout
  - environment overrides
  - the model validator rejecting unusable values
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("BCRYPT_ROUNDS", raising=False)
    settings = Settings(_env_file=None)
    assert settings.access_token_ttl_seconds == 900
    assert settings.refresh_token_ttl_seconds == 86400
    assert settings.bcrypt_rounds == 10
    assert settings.request_timeout_seconds == 10.0
    assert settings.database_url.startswith("sqlite:///")


def test_env_override(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_TTL_SECONDS", "60")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    settings = Settings(_env_file=None)
    assert settings.access_token_ttl_seconds == 60
    assert settings.database_url == "sqlite:///:memory:"


@pytest.mark.parametrize(
    "overrides",
    [
        {"access_token_ttl_seconds": 0},
        {"refresh_token_ttl_seconds": -1},
        {"request_timeout_seconds": 0},
        {"bcrypt_rounds": 3},
        {"bcrypt_rounds": 32},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)


def test_short_refresh_ttl_only_warns(caplog):
    with caplog.at_level("WARNING", logger="sso.config"):
        Settings(_env_file=None, access_token_ttl_seconds=600, refresh_token_ttl_seconds=600)
    assert "REFRESH_TOKEN_TTL_SECONDS" in caplog.text
