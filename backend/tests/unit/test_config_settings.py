import pytest
from pydantic import ValidationError

from app.core.config import Settings, override_settings
from app.core.enums import ResolverMode


def test_defaults_match_documented_values():
    settings = Settings(_env_file=None)
    assert settings.hold_ttl_minutes == 10
    assert settings.pending_confirmation_ttl_minutes == 1440
    assert settings.cancelled_retention_minutes == 15
    assert settings.lead_time_minutes == 120
    assert settings.slot_granularity_minutes == 30
    assert settings.resolver_mode == ResolverMode.STRICT_OVERLAP


def test_rejects_non_positive_ttl():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, hold_ttl_minutes=0)


def test_rejects_unknown_timezone():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, schedule_timezone="Mars/Olympus_Mons")


def test_override_settings_returns_copy():
    changed = override_settings(lead_time_minutes=0)
    assert changed.lead_time_minutes == 0
    assert changed is not override_settings()


def test_get_database_url_uses_in_memory_sqlite_under_tests(monkeypatch):
    monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
    settings = Settings(_env_file=None, is_testing=True, database_url="postgresql://prod/db")
    assert settings.get_database_url() == "sqlite://"
