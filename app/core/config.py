"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_RATE_LIMIT_MAX = 5

_LEADING_INT = re.compile(r"\s*[+-]?[0-9]+")


def parse_csv_values(raw: str | None) -> list[str]:
    """Parse a comma-separated setting into an ordered, de-duplicated list.

    Args:
        raw: Comma-separated string, or None.

    Returns:
        Trimmed, non-empty values in their original order.

    Examples:
        >>> parse_csv_values("10.0.0.1, 192.168.0.0/24 ,10.0.0.1")
        ['10.0.0.1', '192.168.0.0/24']
        >>> parse_csv_values(None)
        []
    """
    if not raw:
        return []

    values: list[str] = []
    for item in raw.split(","):
        item = item.strip()
        if item and item not in values:
            values.append(item)
    return values


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LogSettings()  # type: ignore[call-arg]


def _build_netsuite_settings() -> "NetSuiteSettings":
    """Build NetSuite settings from environment.

    See _build_log_settings() for rationale about the type ignore.
    """

    return NetSuiteSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()  # type: ignore[call-arg]


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="Output format: structured JSON or plain text",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where to write logs",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (defaults to logs/app.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read/propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class NetSuiteSettings(BaseSettings):
    """NetSuite RESTlet and Token-Based Authentication credentials."""

    account_id: str = Field(..., description="NetSuite account id (e.g. 1234567_SB1)")
    consumer_key: str = Field(..., description="Integration record consumer key")
    consumer_secret: str = Field(..., description="Integration record consumer secret")
    token_id: str = Field(..., description="Access token id")
    token_secret: str = Field(..., description="Access token secret")
    restlet_url: str = Field(
        ...,
        description="Base RESTlet URL, including its script/deploy query segment",
    )

    model_config = SettingsConfigDict(
        env_prefix="NETSUITE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    host: str = Field("0.0.0.0", description="Interface the server binds to")
    port: int = Field(3000, description="Port the server listens on")
    cors_allow_origins: str = Field(
        "*",
        description="Comma-separated list of allowed CORS origins",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting per client IP",
    )
    rate_limit_max: int = Field(
        DEFAULT_RATE_LIMIT_MAX,
        description="Maximum number of requests allowed per window (per client IP)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        15 * 60,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    trust_forwarded_for: bool = Field(
        True,
        description="Resolve the client IP from the first X-Forwarded-For entry",
    )
    exempt_ips: str = Field(
        "127.0.0.1",
        description="Comma-separated IPs, CIDR ranges or wildcards exempt from rate limiting",
    )
    exempt_hostname: str | None = Field(
        None,
        description="Dynamic DNS hostname resolved once at startup and exempted",
    )

    validation_policy: Literal["strict", "permissive"] = Field(
        "permissive",
        description="strict: allow-lists and a fixed date range; permissive: format checks only",
    )
    allowed_transaction_ids: str | None = Field(
        None,
        description="Comma-separated transaction ids authorized under the strict policy",
    )
    allowed_customer_ids: str | None = Field(
        None,
        description="Comma-separated customer ids authorized under the strict policy",
    )
    allowed_start_date: str | None = Field(
        None,
        description="Only statement start date accepted under the strict policy",
    )
    allowed_end_date: str | None = Field(
        None,
        description="Only statement end date accepted under the strict policy",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )

    @field_validator("rate_limit_max", mode="before")
    @classmethod
    def _default_rate_limit_max(cls, value: Any) -> Any:
        # Leading digits are read ("10abc" -> 10); unset, non-numeric or
        # non-positive values fall back to the default.
        if value is None or isinstance(value, bool):
            return DEFAULT_RATE_LIMIT_MAX
        if isinstance(value, int):
            return value if value >= 1 else DEFAULT_RATE_LIMIT_MAX
        match = _LEADING_INT.match(str(value))
        if match is None:
            return DEFAULT_RATE_LIMIT_MAX
        parsed = int(match.group(0))
        return parsed if parsed >= 1 else DEFAULT_RATE_LIMIT_MAX

    @model_validator(mode="after")
    def _check_strict_policy(self) -> "AppSettings":
        if self.validation_policy != "strict":
            return self

        missing = [
            name
            for name in (
                "allowed_transaction_ids",
                "allowed_customer_ids",
                "allowed_start_date",
                "allowed_end_date",
            )
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(
                "strict validation policy requires: " + ", ".join(missing)
            )
        return self


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing.
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=_build_log_settings)
    netsuite: NetSuiteSettings = Field(default_factory=_build_netsuite_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
