"""
Client settings loaded from environment variables.

Uses Pydantic Settings for type-safe configuration with validation.
All settings can be overridden via KMS_-prefixed environment variables or a
.env file (e.g. KMS_BACKEND=aws, KMS_CACHE_TTL_SECONDS=120).
"""

import logging
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kms_secrets.models import (
    DEFAULT_CACHE_KEY_PREFIX,
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_CLEANUP_INTERVAL_SECONDS,
)
from kms_secrets.retry import DEFAULT_BASE_DELAY_SECONDS, DEFAULT_MAX_ATTEMPTS


class Settings(BaseSettings):
    """
    KMS secrets client configuration.

    All settings are loaded from environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="KMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extraneous env vars from broader platform configs
    )

    # Backend Selection
    backend: str = Field(
        default="env",
        description="Secret backend: 'aws' (Secrets Manager) or 'env' (local development)",
    )
    deployment_env: str = Field(
        default="local",
        description="Deployment environment (local, staging, production)",
    )
    allow_env_in_non_local: bool = Field(
        default=False,
        description="Allow the env backend outside local (emergency rollback only)",
    )
    dotenv_path: str | None = Field(
        default=None,
        description="Optional .env file loaded by the env backend",
    )

    # KMS Connection
    region_id: str = Field(default="us-east-1", description="KMS region")
    endpoint: str | None = Field(
        default=None,
        description="Custom endpoint (https:// assumed when no scheme is given)",
    )
    access_key_id: str | None = Field(
        default=None,
        description="Access key ID (omit to use IAM role credentials)",
    )
    access_key_secret: SecretStr | None = Field(
        default=None,
        description="Access key secret (omit to use IAM role credentials)",
    )
    ca_cert: str | None = Field(default=None, description="CA bundle path for TLS verification")
    ignore_ssl: bool = Field(default=False, description="Disable TLS verification (testing only)")
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Connect/read timeout for KMS calls",
    )

    # Client Behaviour
    default_secret_name: str | None = Field(
        default=None,
        description="Secret used by fetch_default_secret() and connectivity checks",
    )
    enable_logging: bool = Field(default=True, description="Emit INFO-level client logs")
    max_retries: int = Field(
        default=DEFAULT_MAX_ATTEMPTS,
        ge=1,
        le=10,
        description="Total attempts per remote fetch (including the first)",
    )
    retry_base_delay_seconds: float = Field(
        default=DEFAULT_BASE_DELAY_SECONDS,
        ge=0,
        description="Base delay for exponential backoff",
    )

    # Cache Configuration
    cache_enabled: bool = Field(default=True, description="Enable the in-memory secret cache")
    cache_ttl_seconds: float = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        gt=0,
        description="Default cache entry TTL",
    )
    cache_max_size: int = Field(
        default=DEFAULT_CACHE_MAX_SIZE,
        ge=1,
        description="Maximum number of cached secrets",
    )
    cache_key_prefix: str = Field(
        default=DEFAULT_CACHE_KEY_PREFIX,
        description="Prefix applied to cache keys",
    )
    cache_cleanup_interval_seconds: float = Field(
        default=DEFAULT_CLEANUP_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between background expiration sweeps",
    )
    enable_metrics: bool = Field(
        default=True,
        description="Count cache events in Prometheus",
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="kms_secrets package logger level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower() or "env"
        return v

    @field_validator("deployment_env", mode="before")
    @classmethod
    def normalize_deployment_env(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().lower() or "local"
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        if isinstance(v, str):
            level = v.strip().upper()
            if not isinstance(getattr(logging, level, None), int):
                raise ValueError(f"Invalid log level: {v}")
            return level
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.

    Example:
        >>> settings = get_settings()
        >>> settings.cache_ttl_seconds
        300
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
