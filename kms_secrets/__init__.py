"""
KMS secrets client library.

Async client for fetching secrets from a key management service, with an
in-memory TTL/LRU cache, retry with exponential backoff and jitter, bounded
batch fetching and config-driven fetching (aliases, defaults, JSON path
extraction, validation rules).

Backends:
    - AWSSecretsFetcher: AWS Secrets Manager via boto3
    - EnvSecretFetcher: Environment variables / .env (local development only)

Usage Example:
    >>> from kms_secrets import create_secrets_client
    >>> client = create_secrets_client()  # KMS_* environment variables
    >>> db_password = await client.fetch_secret("database/password")
    >>> result = await client.fetch_secrets_by_config(
    ...     {"db": {"name": "prod/database", "is_json": True, "json_path": "password", "required": True}}
    ... )
    >>> client.close()
"""

from kms_secrets.aws_backend import AWSSecretsFetcher
from kms_secrets.cache import CacheEventType, CacheStats, SecretCache
from kms_secrets.client import KmsSecretsClient
from kms_secrets.config import Settings, get_settings
from kms_secrets.env_backend import EnvSecretFetcher
from kms_secrets.exceptions import (
    BatchFetchError,
    ConfigurationError,
    JsonPathError,
    KmsSecretsError,
    SecretFetchError,
    SecretParseError,
    SecretValidationError,
)
from kms_secrets.factory import create_fetcher, create_secrets_client
from kms_secrets.fetcher import SecretFetcher
from kms_secrets.models import (
    BatchSecretResult,
    KmsClientConfig,
    SecretCacheOptions,
    SecretConfig,
    SecretValidationRule,
)
from kms_secrets.retry import RetryPolicy

__all__ = [
    # Client
    "KmsSecretsClient",
    "create_secrets_client",
    "create_fetcher",
    "RetryPolicy",
    # Cache
    "SecretCache",
    "CacheEventType",
    "CacheStats",
    # Fetchers
    "SecretFetcher",
    "AWSSecretsFetcher",
    "EnvSecretFetcher",
    # Configuration
    "Settings",
    "get_settings",
    "SecretCacheOptions",
    "SecretConfig",
    "SecretValidationRule",
    "BatchSecretResult",
    "KmsClientConfig",
    # Exceptions
    "KmsSecretsError",
    "SecretValidationError",
    "JsonPathError",
    "SecretFetchError",
    "BatchFetchError",
    "ConfigurationError",
    "SecretParseError",
]
