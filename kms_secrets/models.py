"""
Pydantic models for cache options, client connection settings and
config-driven batch fetching.

Example:
    >>> from kms_secrets.models import SecretConfig, SecretValidationRule
    >>> config = SecretConfig(
    ...     name="prod/database",
    ...     alias="db_password",
    ...     is_json=True,
    ...     json_path="credentials.password",
    ...     validation=SecretValidationRule(min_length=12),
    ... )
"""

import re
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_CACHE_MAX_SIZE = 1000
DEFAULT_CACHE_KEY_PREFIX = "kms_secret:"
DEFAULT_CLEANUP_INTERVAL_SECONDS = 60.0


class SecretCacheOptions(BaseModel):
    """
    Immutable configuration for a SecretCache instance.

    Falsy values for ttl, max_size and key_prefix (None, 0, "") fall back to
    the defaults, so partially-filled option dicts behave predictably.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(..., description="If False the cache is a complete no-op")
    ttl: float = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        gt=0,
        description="Default time-to-live for entries (seconds)",
    )
    max_size: int = Field(
        default=DEFAULT_CACHE_MAX_SIZE,
        ge=1,
        description="Maximum number of resident entries",
    )
    key_prefix: str = Field(
        default=DEFAULT_CACHE_KEY_PREFIX,
        description="Prefix prepended to every logical key",
    )
    cleanup_interval: float = Field(
        default=DEFAULT_CLEANUP_INTERVAL_SECONDS,
        gt=0,
        description="Seconds between background expiration sweeps",
    )

    @field_validator("ttl", mode="before")
    @classmethod
    def default_ttl_when_falsy(cls, v: Any) -> Any:
        return v or DEFAULT_CACHE_TTL_SECONDS

    @field_validator("max_size", mode="before")
    @classmethod
    def default_max_size_when_falsy(cls, v: Any) -> Any:
        return v or DEFAULT_CACHE_MAX_SIZE

    @field_validator("key_prefix", mode="before")
    @classmethod
    def default_prefix_when_falsy(cls, v: Any) -> Any:
        return v or DEFAULT_CACHE_KEY_PREFIX


class SecretValidationRule(BaseModel):
    """
    Rules applied to a fetched secret value before it is accepted.

    Each violated rule raises a SecretValidationError with a distinct message
    (see kms_secrets.validation.validate_secret_value).

    Attributes:
        required: Value must contain non-whitespace characters
        min_length: Minimum length in characters
        max_length: Maximum length in characters
        pattern: Regular expression the value must match (re.search semantics)
        validator: Predicate; False or a string result means failure
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    required: bool = False
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    pattern: re.Pattern[str] | None = None
    validator: Callable[[str], bool | str] | None = None


class SecretConfig(BaseModel):
    """
    One entry of a config-driven batch fetch.

    Attributes:
        name: Secret name in the KMS
        alias: Output key (defaults to the mapping key)
        required: Abort the batch if this secret cannot be fetched
        default_value: Substituted when an optional secret fails to fetch
        is_json: Parse the secret as JSON
        json_path: Dot-delimited path to extract from the parsed JSON
        validation: Rules applied to the final value
    """

    model_config = ConfigDict(frozen=True)

    name: str
    alias: str | None = None
    required: bool = False
    default_value: str | None = None
    is_json: bool = False
    json_path: str | None = None
    validation: SecretValidationRule | None = None


class BatchSecretResult(BaseModel):
    """Outcome of a config-driven batch fetch."""

    success: dict[str, str] = Field(default_factory=dict)
    failed: dict[str, str] = Field(default_factory=dict)
    total: int = 0
    success_count: int = 0
    failure_count: int = 0


class KmsClientConfig(BaseModel):
    """
    Connection parameters passed through to the remote fetch layer.

    The client core treats these as opaque; only fetchers read them.
    """

    model_config = ConfigDict(frozen=True)

    access_key_id: str | None = None
    access_key_secret: SecretStr | None = None
    region_id: str = "us-east-1"
    endpoint: str | None = None
    ca_cert: str | None = None
    ignore_ssl: bool = False
    timeout_seconds: float = Field(default=30.0, gt=0)


__all__ = [
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_CACHE_MAX_SIZE",
    "DEFAULT_CACHE_KEY_PREFIX",
    "DEFAULT_CLEANUP_INTERVAL_SECONDS",
    "SecretCacheOptions",
    "SecretValidationRule",
    "SecretConfig",
    "BatchSecretResult",
    "KmsClientConfig",
]
