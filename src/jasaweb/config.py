"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
An optional config.yaml provides defaults; environment variables override it.
"""

import json
import os
import re
from functools import lru_cache
from typing import Any, Dict, List, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .core.exceptions import ConfigurationError

JWT_SECRET_MIN_LENGTH = 32
JWT_SECRET_PATTERN = re.compile(r"^[A-Za-z0-9+/=_-]+$")


def load_config_file(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    if config_path is None:
        config_path = os.environ.get("JASAWEB_CONFIG_FILE", "config.yaml")

    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            return yaml.safe_load(f) or {}
    return {}


class SecuritySettings(BaseSettings):
    """Token, cookie and CSRF configuration."""

    jwt_secret: str = Field(default="", description="HS256 signing secret for session tokens")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    token_lifetime_seconds: int = Field(default=60 * 60 * 24 * 7, description="Session token lifetime (7 days)")
    auth_cookie_name: str = Field(default="jasaweb_auth", description="Cookie holding the session token")
    csrf_cookie_name: str = Field(default="jasaweb_csrf", description="Cookie holding the CSRF secret")
    csrf_header_name: str = Field(default="X-CSRF-Token", description="Header that must echo the CSRF cookie")
    csrf_protected_prefixes: List[str] = Field(
        default=["/api/admin", "/api/client", "/dashboard"],
        description="Path prefixes where cookie sessions need a CSRF token for mutations",
    )
    cookie_secure: bool = Field(default=False, description="Mark cookies Secure (production)")

    model_config = SettingsConfigDict(env_prefix="JASAWEB_SECURITY_")


class DatabaseSettings(BaseSettings):
    """Relational database configuration."""

    url: str = Field(default="", description="SQLAlchemy database URL")
    echo: bool = Field(default=False, description="Echo SQL statements")

    model_config = SettingsConfigDict(env_prefix="JASAWEB_DATABASE_")


class RateLimitSettings(BaseSettings):
    """Sliding-window rate limit defaults."""

    default_limit: int = Field(default=5, description="Requests allowed per window")
    default_window_seconds: int = Field(default=60, description="Window length in seconds")
    cleanup_probability: float = Field(default=0.01, description="Chance per request of a full sweep")

    model_config = SettingsConfigDict(env_prefix="JASAWEB_RATE_LIMIT_")


class PaginationSettings(BaseSettings):
    """Listing defaults shared by every paginated endpoint."""

    default_limit: int = Field(default=10, description="Page size when none is given")
    max_limit: int = Field(default=100, description="Largest accepted page size")

    model_config = SettingsConfigDict(env_prefix="JASAWEB_PAGINATION_")


class PaymentSettings(BaseSettings):
    """Midtrans payment gateway configuration."""

    midtrans_server_key: str = Field(default="", description="Midtrans server key")
    midtrans_is_production: bool = Field(default=False, description="Use the production API")
    timeout_seconds: int = Field(default=30, description="Gateway request timeout")

    @property
    def base_url(self) -> str:
        if self.midtrans_is_production:
            return "https://api.midtrans.com"
        return "https://api.sandbox.midtrans.com"

    model_config = SettingsConfigDict(env_prefix="JASAWEB_PAYMENT_")


class Settings(BaseSettings):
    """Main application settings."""

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Log level")
    environment: str = Field(default="development", description="Deployment environment")
    cors_origins: List[str] = Field(default=["*"], description="Origins allowed by CORS")

    # Component settings
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    pagination: PaginationSettings = Field(default_factory=PaginationSettings)
    payment: PaymentSettings = Field(default_factory=PaymentSettings)

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level '{v}'")
        return level

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    model_config = SettingsConfigDict(env_prefix="JASAWEB_", case_sensitive=False)


def validate_settings(settings: Settings) -> None:
    """
    Fail fast when required secrets are missing or malformed.

    Raises ConfigurationError listing every problem found.
    """
    problems = []

    secret = settings.security.jwt_secret
    if not secret:
        problems.append("JASAWEB_SECURITY_JWT_SECRET is required")
    elif len(secret) < JWT_SECRET_MIN_LENGTH:
        problems.append(
            f"JASAWEB_SECURITY_JWT_SECRET must be at least {JWT_SECRET_MIN_LENGTH} characters"
        )
    elif not JWT_SECRET_PATTERN.match(secret):
        problems.append("JASAWEB_SECURITY_JWT_SECRET contains invalid characters")

    url = settings.database.url
    if not url:
        problems.append("JASAWEB_DATABASE_URL is required")
    else:
        try:
            make_url(url)
        except ArgumentError:
            problems.append("JASAWEB_DATABASE_URL is not a valid database URL")

    if problems:
        raise ConfigurationError("Invalid configuration: " + "; ".join(problems), problems=problems)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance with config file and env support."""
    config_data = load_config_file()

    # Config file provides defaults, env vars override
    if config_data:
        _set_env_from_config(config_data)

    return Settings()


def _set_env_from_config(config_data: Dict[str, Any]) -> None:
    """Set environment variables from config file if not already set."""
    mappings = {
        ("server", "host"): "JASAWEB_HOST",
        ("server", "port"): "JASAWEB_PORT",
        ("server", "debug"): "JASAWEB_DEBUG",
        ("server", "log_level"): "JASAWEB_LOG_LEVEL",
        ("server", "environment"): "JASAWEB_ENVIRONMENT",
        ("security", "jwt_secret"): "JASAWEB_SECURITY_JWT_SECRET",
        ("security", "token_lifetime_seconds"): "JASAWEB_SECURITY_TOKEN_LIFETIME_SECONDS",
        ("security", "cookie_secure"): "JASAWEB_SECURITY_COOKIE_SECURE",
        ("database", "url"): "JASAWEB_DATABASE_URL",
        ("database", "echo"): "JASAWEB_DATABASE_ECHO",
        ("rate_limit", "default_limit"): "JASAWEB_RATE_LIMIT_DEFAULT_LIMIT",
        ("rate_limit", "default_window_seconds"): "JASAWEB_RATE_LIMIT_DEFAULT_WINDOW_SECONDS",
        ("rate_limit", "cleanup_probability"): "JASAWEB_RATE_LIMIT_CLEANUP_PROBABILITY",
        ("pagination", "default_limit"): "JASAWEB_PAGINATION_DEFAULT_LIMIT",
        ("pagination", "max_limit"): "JASAWEB_PAGINATION_MAX_LIMIT",
        ("payment", "midtrans_server_key"): "JASAWEB_PAYMENT_MIDTRANS_SERVER_KEY",
        ("payment", "midtrans_is_production"): "JASAWEB_PAYMENT_MIDTRANS_IS_PRODUCTION",
    }

    for (section, key), env_var in mappings.items():
        if env_var not in os.environ:
            value = config_data.get(section, {}).get(key)
            if value is not None:
                os.environ[env_var] = str(value)

    # List values go through JSON so pydantic-settings can decode them
    if "JASAWEB_SECURITY_CSRF_PROTECTED_PREFIXES" not in os.environ:
        prefixes = config_data.get("security", {}).get("csrf_protected_prefixes")
        if prefixes:
            os.environ["JASAWEB_SECURITY_CSRF_PROTECTED_PREFIXES"] = json.dumps(prefixes)


def reload_settings() -> Settings:
    """Reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
