"""Centralized application configuration via environment variables."""

import re
from enum import StrEnum
from functools import lru_cache

from pydantic import BaseModel, PositiveFloat, PositiveInt, SecretStr, computed_field
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class RateLimitPreset(BaseModel):
    """Requests allowed per fixed window for one endpoint category."""

    limit: PositiveInt
    window_seconds: PositiveFloat


# Category name -> preset. Keys match RateLimitCategory values.
DEFAULT_RATE_LIMITS: dict[str, RateLimitPreset] = {
    "analytics": RateLimitPreset(limit=100, window_seconds=60),
    "email_code": RateLimitPreset(limit=5, window_seconds=60),
    "verify_code": RateLimitPreset(limit=10, window_seconds=60),
    "parse_cv": RateLimitPreset(limit=5, window_seconds=300),
    "analyze_cv": RateLimitPreset(limit=5, window_seconds=300),
    "username_check": RateLimitPreset(limit=30, window_seconds=60),
    "domain_verify": RateLimitPreset(limit=10, window_seconds=60),
    "default": RateLimitPreset(limit=60, window_seconds=60),
}

_HOSTNAME_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)+$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Routing values (root domain, reserved names, suffix lists) are static
    configuration; an invalid root domain fails at construction time so the
    app never starts with a broken routing table.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App ---
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "DEBUG"
    # --- CORS ---
    cors_allowed_origins: list[str] = []
    cors_allow_credentials: bool = False
    cors_allowed_methods: list[str] = ["GET", "POST"]
    cors_allowed_headers: list[str] = ["Content-Type"]

    # --- PostgreSQL ---
    postgres_user: str = "profyld"
    postgres_password: SecretStr = SecretStr("secret")
    postgres_db: str = "profyld"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    @computed_field(repr=False)  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Assemble database URL from components (psycopg v3 driver)."""
        password = self.postgres_password.get_secret_value()
        return (
            f"postgresql+psycopg://{self.postgres_user}:{password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # --- Routing ---
    root_domain: str = "profyld.com"
    reserved_subdomains: list[str] = [
        "www", "app", "api", "admin", "mail", "smtp", "ftp",
        "cdn", "assets", "static", "dashboard", "auth", "login",
    ]  # fmt: skip
    local_dev_suffixes: list[str] = [".localhost", ".lvh.me"]
    preview_suffixes: list[str] = [".vercel.app"]
    authenticated_prefix: str = "/dashboard"
    login_path: str = "/login"
    signup_path: str = "/signup"
    excluded_path_prefixes: list[str] = [
        "/_next", "/api", "/static", "/docs", "/openapi.json", "/redoc", "/health",
    ]  # fmt: skip
    # None: inherit whatever the database driver does.
    lookup_timeout_seconds: float | None = None

    # --- Sessions ---
    session_cookie_name: str = "profyld_session"
    session_ttl_days: int = 30

    # --- Custom domains ---
    domain_challenge_label: str = "_profyld"
    domain_dns_timeout_seconds: PositiveFloat = 5.0

    # --- Rate limiting ---
    rate_limits: dict[str, RateLimitPreset] = DEFAULT_RATE_LIMITS
    rate_limit_sweep_seconds: int = 300

    @field_validator("root_domain")
    @classmethod
    def _validate_root_domain(cls, value: str) -> str:
        domain = value.strip().lower().rstrip(".")
        if not _HOSTNAME_RE.match(domain):
            raise ValueError(
                f"root_domain must be a bare hostname like 'example.com', got {value!r}"
            )
        return domain

    @field_validator("reserved_subdomains")
    @classmethod
    def _lowercase_reserved(cls, value: list[str]) -> list[str]:
        return [name.strip().lower() for name in value if name.strip()]

    # --- Convenience properties ---
    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    def rate_limit_for(self, category: str) -> RateLimitPreset:
        """Preset for ``category``, falling back to the ``default`` preset."""
        preset = self.rate_limits.get(category)
        if preset is None:
            preset = self.rate_limits.get("default", DEFAULT_RATE_LIMITS["default"])
        return preset


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton.

    Usage::

        from profyld.config import get_settings
        settings = get_settings()
    """
    return Settings()


settings = get_settings()
