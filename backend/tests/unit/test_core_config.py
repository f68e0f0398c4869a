"""Tests for application configuration.

Defaults, environment variable loading and production security validation.
"""

import pytest
from pydantic import SecretStr, ValidationError

from portal.core.config import Settings

_SECRET = "a" * 64
_PRODUCTION = "production"


def _production(**overrides) -> Settings:
    values = {
        "environment": _PRODUCTION,
        "invitation_token_secret": SecretStr(_SECRET),
        "use_mock": False,
    }
    values.update(overrides)
    return Settings(**values)


class TestDefaults:
    def test_token_and_pin_lifetimes(self):
        s = Settings()
        assert s.invitation_token_ttl_seconds == 86400
        assert s.access_code_ttl_minutes == 15

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("ACCESS_CODE_TTL_MINUTES", "5")
        monkeypatch.setenv("RATE_LIMIT_VERIFY_PIN", "3/minute")

        s = Settings()

        assert s.access_code_ttl_minutes == 5
        assert s.rate_limit_verify_pin == "3/minute"


class TestValidation:
    def test_rejects_wildcard_cors(self):
        with pytest.raises(ValidationError, match="wildcard"):
            Settings(allowed_origins=["*"])

    @pytest.mark.parametrize(
        "field", ["invitation_token_ttl_seconds", "access_code_ttl_minutes"]
    )
    @pytest.mark.parametrize("value", [0, -1])
    def test_rejects_non_positive_ttl(self, field, value):
        with pytest.raises(ValidationError, match="must be positive"):
            Settings(**{field: value})


class TestProductionSecurityValidation:
    def test_accepts_secure_production_config(self):
        s = _production()
        assert s.environment == _PRODUCTION

    def test_rejects_mock_mode_in_production(self):
        with pytest.raises(ValidationError, match="USE_MOCK"):
            _production(use_mock=True)

    @pytest.mark.parametrize("secret", ["", "short-secret"])
    def test_rejects_weak_invitation_secret(self, secret):
        with pytest.raises(ValidationError, match="INVITATION_TOKEN_SECRET"):
            _production(invitation_token_secret=SecretStr(secret))

    def test_rejects_weak_auth_secret_when_auth_enabled(self):
        with pytest.raises(ValidationError, match="AUTH_SECRET"):
            _production(auth_enabled=True, auth_secret=SecretStr("short"))

    def test_auth_secret_not_required_when_auth_disabled(self):
        s = _production(auth_enabled=False)
        assert s.auth_secret.get_secret_value() == ""

    def test_weak_secrets_allowed_in_development(self):
        s = Settings(environment="development", use_mock=True)
        assert s.invitation_token_secret.get_secret_value() == ""
