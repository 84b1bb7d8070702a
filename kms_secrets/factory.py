"""
Factory for creating KmsSecretsClient instances from Settings.

Backend selection:
    - KMS_BACKEND="aws" -> AWSSecretsFetcher (staging/production)
    - KMS_BACKEND="env" -> EnvSecretFetcher (local development only)

Production Guardrails:
    - EnvSecretFetcher is ONLY allowed when KMS_DEPLOYMENT_ENV="local" (default)
    - Other environments MUST use the aws backend unless
      KMS_ALLOW_ENV_IN_NON_LOCAL is set
    - Factory raises ConfigurationError if configuration is invalid

Example Usage:
    >>> client = create_secrets_client()
    >>> db_password = await client.fetch_secret("database/password")

    >>> settings = Settings(backend="aws", deployment_env="production", region_id="eu-west-1")
    >>> client = create_secrets_client(settings)
"""

import logging

from kms_secrets.aws_backend import AWSSecretsFetcher
from kms_secrets.cache import SecretCache
from kms_secrets.client import KmsSecretsClient
from kms_secrets.config import Settings, get_settings
from kms_secrets.env_backend import EnvSecretFetcher
from kms_secrets.exceptions import ConfigurationError
from kms_secrets.fetcher import SecretFetcher
from kms_secrets.metrics import attach_cache_metrics
from kms_secrets.models import KmsClientConfig, SecretCacheOptions
from kms_secrets.retry import RetryPolicy

logger = logging.getLogger(__name__)

PACKAGE_LOGGER_NAME = "kms_secrets"


def create_fetcher(settings: Settings) -> SecretFetcher:
    """
    Build the SecretFetcher for ``settings.backend``.

    Raises:
        ConfigurationError: Unknown backend, or env backend used outside local
            without the override flag
    """
    backend = settings.backend
    deployment_env = settings.deployment_env

    if backend == "env":
        if deployment_env != "local" and not settings.allow_env_in_non_local:
            raise ConfigurationError(
                f"Env secret backend not allowed in {deployment_env} environment. "
                f"Plain-text .env files are LOCAL DEVELOPMENT ONLY. "
                f"Set KMS_BACKEND='aws' for staging/production.",
                backend=backend,
            )
        if deployment_env != "local":
            logger.warning(
                "Env secret backend override enabled for %s environment. "
                "Use only for rollback/emergency scenarios.",
                deployment_env,
            )
        return EnvSecretFetcher(dotenv_path=settings.dotenv_path)

    if backend == "aws":
        return AWSSecretsFetcher(
            KmsClientConfig(
                access_key_id=settings.access_key_id,
                access_key_secret=settings.access_key_secret,
                region_id=settings.region_id,
                endpoint=settings.endpoint,
                ca_cert=settings.ca_cert,
                ignore_ssl=settings.ignore_ssl,
                timeout_seconds=settings.timeout_seconds,
            )
        )

    raise ConfigurationError(
        f"Invalid KMS_BACKEND: '{backend}'. Valid options: 'aws', 'env'.",
        backend=str(backend),
    )


def create_secrets_client(
    settings: Settings | None = None,
    fetcher: SecretFetcher | None = None,
) -> KmsSecretsClient:
    """
    Create a fully wired KmsSecretsClient.

    Also applies ``settings.log_level`` to the ``kms_secrets`` package logger.

    Args:
        settings: Configuration. If None, uses get_settings() (environment).
        fetcher: Override the backend fetcher (e.g. a test double). If None,
                 one is built with create_fetcher().

    Returns:
        KmsSecretsClient owning its cache (closed by client.close())

    Raises:
        ConfigurationError: Invalid backend selection
        SecretValidationError: default_secret_name is malformed
    """
    settings = settings or get_settings()
    logging.getLogger(PACKAGE_LOGGER_NAME).setLevel(getattr(logging, settings.log_level))

    if fetcher is None:
        fetcher = create_fetcher(settings)

    cache: SecretCache[str] | None = None
    if settings.cache_enabled:
        cache = SecretCache(
            SecretCacheOptions(
                enabled=True,
                ttl=settings.cache_ttl_seconds,
                max_size=settings.cache_max_size,
                key_prefix=settings.cache_key_prefix,
                cleanup_interval=settings.cache_cleanup_interval_seconds,
            )
        )
        if settings.enable_metrics:
            attach_cache_metrics(cache)

    logger.info(
        "Creating KMS secrets client",
        extra={
            "backend": settings.backend,
            "deployment_env": settings.deployment_env,
            "cache_enabled": settings.cache_enabled,
        },
    )

    try:
        return KmsSecretsClient(
            fetcher,
            cache=cache,
            default_secret_name=settings.default_secret_name,
            enable_logging=settings.enable_logging,
            retry_policy=RetryPolicy(
                max_attempts=settings.max_retries,
                base_delay=settings.retry_base_delay_seconds,
            ),
        )
    except Exception:
        if cache is not None:
            cache.close()
        raise


__all__ = ["create_fetcher", "create_secrets_client"]
