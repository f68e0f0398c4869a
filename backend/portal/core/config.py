"""Application configuration loaded from environment variables.

Settings for the API, session cookie validation, invitation tokens, access
codes, email delivery and rate limiting. Uses pydantic-settings for validation
and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Minimum length for HMAC secrets in production (256 bits = 32 bytes)
_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS
    # Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Mock backing data: record endpoints serve the bundled JSON fixtures and
    # PIN-issuing endpoints echo the PIN back (demo only).
    use_mock: bool = False

    # Session cookie issued by the external identity provider.
    # auth_enabled=False synthesises a development user instead.
    auth_enabled: bool = False
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "bond-portal-idp"
    auth_audience: str = "bond-portal"
    auth_cookie_name: str = "bond-portal.session-token"
    dev_user_email: str = "dev@bondportal.local"
    dev_user_role: Literal[
        "admin", "agent", "broker", "policyholder", "wholesale"
    ] = "admin"

    # Invitation links and one-time PINs
    invitation_token_secret: SecretStr = SecretStr("")
    invitation_token_ttl_seconds: int = 86400
    access_code_ttl_minutes: int = 15

    # Email
    email_from: str = "noreply@bondportal.com"
    resend_api_key: SecretStr = SecretStr("")

    # Frontend URL (registration and acceptance pages)
    frontend_url: str = "http://localhost:3000"

    # Rate limiting
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_access_code: str = "5/hour"
    rate_limit_verify_pin: str = "10/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate production security requirements.

        Checks:
        - CORS must not use wildcard origin (all environments)
        - Token TTLs must be positive (all environments)
        - Mock mode is not allowed in production (it echoes PINs)
        - INVITATION_TOKEN_SECRET must be >= 32 chars in production
        - AUTH_SECRET must be >= 32 chars when auth is enabled in production
        """
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        if self.invitation_token_ttl_seconds <= 0:
            msg = (
                "INVITATION_TOKEN_TTL_SECONDS must be positive. "
                f"Got: {self.invitation_token_ttl_seconds}"
            )
            raise ValueError(msg)
        if self.access_code_ttl_minutes <= 0:
            msg = (
                "ACCESS_CODE_TTL_MINUTES must be positive. "
                f"Got: {self.access_code_ttl_minutes}"
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.use_mock:
                msg = "USE_MOCK must be false in production."
                raise ValueError(msg)

            token_secret = self.invitation_token_secret.get_secret_value()
            if len(token_secret) < _MIN_SECRET_LENGTH:
                msg = (
                    "INVITATION_TOKEN_SECRET must be set to at least "
                    f"{_MIN_SECRET_LENGTH} characters in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

            if self.auth_enabled:
                auth_secret = self.auth_secret.get_secret_value()
                if len(auth_secret) < _MIN_SECRET_LENGTH:
                    msg = (
                        f"AUTH_SECRET must be at least {_MIN_SECRET_LENGTH} "
                        "characters when AUTH_ENABLED=true in production."
                    )
                    raise ValueError(msg)

        return self


settings = Settings()
