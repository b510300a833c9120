"""Tests for environment-driven settings validation."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from ticket_notifier.config import Settings


def _settings(**overrides) -> Settings:
    values = {"resend_api_key": "re_test", "cron_secret": "s3cret", "_env_file": None}
    values.update(overrides)
    return Settings(**values)


@pytest.mark.parametrize("secret", ["", "  ", "change-me", "CHANGEME"])
def test_placeholder_cron_secret_is_rejected(secret):
    with pytest.raises(ValidationError, match="CRON_SECRET"):
        _settings(cron_secret=secret)


def test_log_level_is_normalised():
    assert _settings(log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        _settings(log_level="verbose")


def test_supabase_backend_requires_access_key():
    with pytest.raises(ValidationError, match="DATABASE_ACCESS_KEY"):
        _settings(ticket_store_backend="supabase", database_url="https://abc.supabase.co")

    settings = _settings(
        ticket_store_backend="supabase",
        database_url="https://abc.supabase.co",
        database_access_key="service-role-key",
    )
    assert settings.database_access_key == "service-role-key"


def test_defaults():
    settings = _settings()

    assert settings.ticket_store_backend == "sql"
    assert settings.ticket_code_width == 4
    assert settings.email_from == "Tickets <noreply@example.com>"
