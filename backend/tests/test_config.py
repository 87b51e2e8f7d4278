"""Tests for configuration validation.

Invalid configurations must be rejected at startup.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from sessionvault.core.config import DEFAULT_AUDIENCE, DEFAULT_ISSUER, Settings

VALID_KEY = "k" * 48


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Drop the test-suite overrides so defaults are observable."""
    for name in ("JWT_ISSUER", "JWT_AUDIENCE", "DATABASE_URL", "LOGIN_RATE_LIMIT_PER_MINUTE"):
        monkeypatch.delenv(name, raising=False)


def _settings(**overrides) -> Settings:
    values = {"jwt_secret_key": VALID_KEY, **overrides}
    return Settings(_env_file=None, **values)


class TestSecretKeyValidation:
    def test_valid_key_accepted(self):
        assert _settings().jwt_secret_key == VALID_KEY

    def test_short_key_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            _settings(jwt_secret_key="too-short")

        assert "32" in str(exc_info.value)

    def test_blank_key_rejected(self):
        with pytest.raises(ValidationError):
            _settings(jwt_secret_key="   ")


class TestTokenSettingsValidation:
    @pytest.mark.parametrize("field", ["jwt_issuer", "jwt_audience"])
    def test_blank_issuer_or_audience_rejected(self, field):
        with pytest.raises(ValidationError):
            _settings(**{field: "  "})

    @pytest.mark.parametrize("minutes", [0, 1441])
    def test_access_token_lifetime_bounds(self, minutes):
        with pytest.raises(ValidationError):
            _settings(jwt_access_token_expire_minutes=minutes)

    @pytest.mark.parametrize("limit", [0, 21])
    def test_refresh_token_quota_bounds(self, limit):
        with pytest.raises(ValidationError):
            _settings(max_refresh_tokens_per_user=limit)

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            _settings(log_level="LOUD")

    def test_log_level_is_normalized(self):
        assert _settings(log_level="debug").log_level == "DEBUG"


class TestTokenSettings:
    def test_defaults(self):
        config = _settings().token_settings()

        assert config.secret_key == VALID_KEY
        assert config.issuer == DEFAULT_ISSUER
        assert config.audience == DEFAULT_AUDIENCE
        assert config.access_token_ttl == timedelta(minutes=15)
        assert config.refresh_token_ttl == timedelta(days=7)
        assert config.clock_skew == timedelta(0)
        assert config.max_refresh_tokens_per_user == 5
        assert config.cleanup_interval == timedelta(hours=6)
        assert config.algorithm == "HS256"

    def test_overrides_are_mapped(self):
        config = _settings(
            jwt_issuer="issuer",
            jwt_audience="audience",
            jwt_access_token_expire_minutes=5,
            jwt_clock_skew_minutes=2,
            jwt_refresh_token_expire_days=30,
            max_refresh_tokens_per_user=10,
            refresh_token_cleanup_interval_minutes=60,
        ).token_settings()

        assert config.issuer == "issuer"
        assert config.audience == "audience"
        assert config.access_token_ttl == timedelta(minutes=5)
        assert config.clock_skew == timedelta(minutes=2)
        assert config.refresh_token_ttl == timedelta(days=30)
        assert config.max_refresh_tokens_per_user == 10
        assert config.cleanup_interval == timedelta(hours=1)

    def test_token_settings_are_immutable(self):
        config = _settings().token_settings()

        with pytest.raises(AttributeError):
            config.secret_key = "other"


class TestSecurityConfigurationWarnings:
    def test_default_issuer_and_sqlite_warn(self):
        warnings = _settings(database_url="sqlite+aiosqlite:///./x.db").check_security_configuration()

        assert any("issuer/audience" in w for w in warnings)
        assert any("SQLite" in w for w in warnings)

    def test_debug_mode_warns(self):
        warnings = _settings(debug=True).check_security_configuration()

        assert any("Debug mode" in w for w in warnings)

    def test_production_configuration_has_no_warnings(self):
        warnings = _settings(
            jwt_issuer="https://auth.example.com",
            jwt_audience="example-api",
            database_url="postgresql+asyncpg://user:pass@db/sessions",
        ).check_security_configuration()

        assert warnings == []


class TestAdminSeedSettings:
    def test_disabled_by_default(self):
        config = _settings()

        assert config.admin_seed_enabled is False
        assert config.admin_seed_email is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"admin_seed_password": "admin-password"},
            {"admin_seed_email": "admin@example.com"},
            {"admin_seed_email": "  ", "admin_seed_password": "admin-password"},
            {"admin_seed_email": "admin@example.com", "admin_seed_password": "short"},
        ],
    )
    def test_enabled_requires_email_and_password(self, overrides):
        with pytest.raises(ValidationError, match="ADMIN_SEED"):
            _settings(admin_seed_enabled=True, **overrides)

    def test_enabled_with_credentials(self):
        config = _settings(
            admin_seed_enabled=True,
            admin_seed_email="admin@example.com",
            admin_seed_password="admin-password",
        )

        assert config.admin_seed_enabled is True
