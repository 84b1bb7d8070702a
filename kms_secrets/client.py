"""
Async KMS secrets client with caching, retry and batch fetching.

KmsSecretsClient fetches named secrets through a SecretFetcher, serves
repeated reads from an optional SecretCache, and wraps every remote call in
the RetryPolicy (exponential backoff + jitter, permanent errors not retried).

Architecture:
    caller -> validate name -> cache.get (unless bypassed)
           -> RetryPolicy.call(fetcher.fetch) on miss
           -> cache.set (unless bypassed) -> caller

Batch operations:
    - fetch_multiple_secrets: de-duplicated, at most 10 fetches in flight,
      chunks awaited sequentially, one aggregate error after all attempts
    - fetch_secrets_by_config: alias/default/JSON path/validation per entry

Security Requirements:
    - Secret values NEVER logged (only names)
    - Validation failures are hard failures (never replaced by defaults)

Usage Example:
    >>> cache = SecretCache(SecretCacheOptions(enabled=True, ttl=300))
    >>> async with KmsSecretsClient(fetcher, cache=cache, default_secret_name="app/config") as client:
    ...     db_password = await client.fetch_secret("database/password")
    ...     settings = await client.fetch_default_secret_as_json()
"""

import asyncio
import json
import logging
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any, Final

from kms_secrets.cache import CacheStats, SecretCache
from kms_secrets.exceptions import (
    BatchFetchError,
    ConfigurationError,
    SecretParseError,
    SecretValidationError,
)
from kms_secrets.fetcher import SecretFetcher, extract_secret_data
from kms_secrets.models import BatchSecretResult, SecretConfig
from kms_secrets.retry import RetryPolicy
from kms_secrets.utils import get_error_message
from kms_secrets.validation import extract_json_path, validate_secret_name, validate_secret_value

_module_logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY_LIMIT: Final[int] = 10


class KmsSecretsClient:
    """
    Fetch secrets from a KMS with caching and retry.

    Thread Safety:
        Designed for a single asyncio event loop. The attached SecretCache is
        itself thread-safe.

    Caching:
        - Optional; pass cache=None (or a disabled cache) to run uncached
        - skip_cache=True bypasses both the cache read and the cache write

    Example:
        >>> client = KmsSecretsClient(EnvSecretFetcher(), cache=cache)
        >>> await client.fetch_multiple_secrets(["database/password", "redis/password"])
        {'database/password': '...', 'redis/password': '...'}
    """

    def __init__(
        self,
        fetcher: SecretFetcher,
        *,
        cache: SecretCache[str] | None = None,
        default_secret_name: str | None = None,
        secrets_config: Mapping[str, SecretConfig | Mapping[str, Any]] | None = None,
        enable_logging: bool = True,
        retry_policy: RetryPolicy | None = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            fetcher: Remote fetch capability (see kms_secrets.fetcher)
            cache: Optional cache; the client tears it down in close()
            default_secret_name: Name used by fetch_default_secret() and
                                 check_connectivity()
            secrets_config: Default mapping for fetch_configured_secrets()
            enable_logging: Emit INFO-level progress logs (warnings and errors
                            are always logged)
            retry_policy: Retry behaviour. Default: 3 attempts, 1s base delay
            concurrency_limit: Max in-flight fetches per batch chunk. Default: 10
            logger: Logger to use instead of the module logger

        Raises:
            SecretValidationError: default_secret_name is malformed
            ValueError: concurrency_limit < 1
        """
        if default_secret_name:
            validate_secret_name(default_secret_name)
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")

        self._fetcher = fetcher
        self._cache = cache
        self._default_secret_name = default_secret_name
        self._secrets_config = dict(secrets_config) if secrets_config else None
        self._enable_logging = enable_logging
        self._retry_policy = retry_policy or RetryPolicy()
        self._concurrency_limit = concurrency_limit
        self._logger = logger or _module_logger

        self._info(
            "KMS secrets client initialized",
            cache_enabled=self._cache_enabled(),
            default_secret_name=default_secret_name,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _info(self, message: str, **context: Any) -> None:
        if self._enable_logging:
            self._logger.info(message, extra=context)

    def _cache_enabled(self) -> bool:
        return self._cache is not None and self._cache.is_enabled()

    def _require_default_secret_name(self) -> str:
        if not self._default_secret_name:
            raise ConfigurationError("Default secret name is not configured")
        return self._default_secret_name

    # ------------------------------------------------------------------
    # Single secret
    # ------------------------------------------------------------------

    async def fetch_secret(self, secret_name: str, skip_cache: bool = False) -> str:
        """
        Fetch one secret, serving from cache when possible.

        Args:
            secret_name: Secret name (letters, digits, "_", "-", ".", "/")
            skip_cache: Bypass cache read and write, always hit the KMS

        Returns:
            Secret string ("" when the response carries no secret data)

        Raises:
            SecretValidationError: secret_name is malformed
            Exception: Whatever the fetcher raised, after retry handling
        """
        validate_secret_name(secret_name)

        use_cache = not skip_cache and self._cache_enabled()
        if use_cache:
            assert self._cache is not None
            cached_value = self._cache.get(secret_name)
            if cached_value is not None:
                self._info("Cache hit for secret", secret_name=secret_name)
                return cached_value

        async def fetch_once() -> str:
            self._info("Fetching secret from KMS", secret_name=secret_name)
            response = await self._fetcher.fetch(secret_name)
            return extract_secret_data(response)

        secret_data = await self._retry_policy.call(fetch_once, f"fetch secret {secret_name}")

        if use_cache:
            assert self._cache is not None
            self._cache.set(secret_name, secret_data)
            self._info("Cached secret", secret_name=secret_name)

        self._info("Secret fetched successfully", secret_name=secret_name)
        return secret_data

    async def fetch_default_secret(self) -> str:
        """
        Raises:
            ConfigurationError: No default secret name configured
        """
        return await self.fetch_secret(self._require_default_secret_name())

    async def fetch_secret_as_json(self, secret_name: str) -> Any:
        """
        Fetch a secret and parse it as JSON.

        Raises:
            SecretParseError: Secret is empty/whitespace or not valid JSON; the
                message names the secret and includes the parser detail
        """
        secret_data = await self.fetch_secret(secret_name)

        if not secret_data.strip():
            raise SecretParseError(
                f"Secret {secret_name} is empty or contains only whitespace",
                secret_name=secret_name,
            )

        try:
            return json.loads(secret_data)
        except json.JSONDecodeError as e:
            self._logger.error(
                "Unable to parse secret as JSON",
                extra={"secret_name": secret_name, "error": str(e)},
            )
            raise SecretParseError(
                f"Invalid JSON format in secret {secret_name}: {e}",
                secret_name=secret_name,
                detail=str(e),
            ) from e

    async def fetch_default_secret_as_json(self) -> Any:
        return await self.fetch_secret_as_json(self._require_default_secret_name())

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def fetch_multiple_secrets(
        self, secret_names: list[str] | tuple[str, ...]
    ) -> dict[str, str]:
        """
        Fetch several secrets with bounded concurrency.

        Names are validated up front and de-duplicated (first occurrence
        wins). Work is split into chunks of ``concurrency_limit`` names; each
        chunk is fetched concurrently and fully awaited before the next one
        starts. A failure never cancels sibling fetches.

        Args:
            secret_names: Secret names as a list or tuple. Other iterables
                (sets, generators, a bare string) are rejected.

        Returns:
            Mapping of secret name to value, in first-seen order

        Raises:
            SecretValidationError: secret_names is not a list/tuple, or a name
                is malformed
            BatchFetchError: One or more fetches failed; raised after every
                name was attempted, listing each failed name and its message
        """
        if not isinstance(secret_names, list | tuple):
            raise SecretValidationError("Secret names must be a list or tuple")

        if not secret_names:
            return {}

        for secret_name in secret_names:
            validate_secret_name(secret_name)

        unique_names = list(dict.fromkeys(secret_names))
        results: dict[str, str] = {}
        errors: dict[str, str] = {}

        for start in range(0, len(unique_names), self._concurrency_limit):
            chunk = unique_names[start : start + self._concurrency_limit]
            outcomes = await asyncio.gather(
                *(self.fetch_secret(name) for name in chunk),
                return_exceptions=True,
            )
            for name, outcome in zip(chunk, outcomes, strict=True):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    errors[name] = get_error_message(outcome)
                    self._logger.error(
                        "Failed to fetch secret",
                        extra={"secret_name": name, "error": errors[name]},
                    )
                else:
                    results[name] = outcome

        if errors:
            details = "; ".join(f"{name}: {message}" for name, message in errors.items())
            raise BatchFetchError(f"Failed to fetch {len(errors)} secret(s): {details}", errors)

        return results

    async def fetch_secrets_by_config(
        self, secrets_config: Mapping[str, SecretConfig | Mapping[str, Any]]
    ) -> BatchSecretResult:
        """
        Fetch secrets described by a config mapping.

        Entries are processed in order. Each successful value is stored under
        its alias (default: the mapping key). On failure:
            - validation-class errors (SecretValidationError, including JSON
              path errors) are re-raised immediately, even for optional
              entries with a default value
            - a required entry aborts the batch with BatchFetchError
            - an optional entry with default_value gets the default
            - any other optional failure is recorded in ``failed``

        Returns:
            BatchSecretResult with success/failed maps and counts

        Raises:
            SecretValidationError: A fetched value failed validation
            BatchFetchError: A required secret could not be fetched
        """
        configs = {
            key: config if isinstance(config, SecretConfig) else SecretConfig.model_validate(config)
            for key, config in secrets_config.items()
        }
        if not configs:
            return BatchSecretResult()

        success: dict[str, str] = {}
        failed: dict[str, str] = {}

        for key, config in configs.items():
            alias = config.alias or key
            try:
                success[alias] = await self._resolve_config_value(config)
            except Exception as e:
                message = get_error_message(e)

                if isinstance(e, SecretValidationError):
                    self._logger.error(
                        "Secret failed validation",
                        extra={"config_key": key, "required": config.required, "error": message},
                    )
                    raise

                if config.required:
                    self._logger.error(
                        "Failed to fetch required secret",
                        extra={"config_key": key, "error": message},
                    )
                    raise BatchFetchError(
                        f"Failed to fetch required secrets: {key}", {key: message}
                    ) from e

                if config.default_value is not None:
                    success[alias] = config.default_value
                    self._logger.warning(
                        "Using default value for optional secret",
                        extra={"config_key": key, "error": message},
                    )
                    continue

                failed[key] = message
                self._logger.warning(
                    "Failed to fetch optional secret",
                    extra={"config_key": key, "error": message},
                )

        failed_required = [key for key, config in configs.items() if config.required and key in failed]
        if failed_required:
            raise BatchFetchError(
                f"Failed to fetch required secrets: {', '.join(failed_required)}",
                {key: failed[key] for key in failed_required},
            )

        result = BatchSecretResult(
            success=success,
            failed=failed,
            total=len(configs),
            success_count=len(success),
            failure_count=len(failed),
        )
        self._info(
            f"Batch secret retrieval completed: {result.success_count}/{result.total} successful",
            success_count=result.success_count,
            total=result.total,
        )
        return result

    async def fetch_configured_secrets(self) -> BatchSecretResult:
        """
        Run fetch_secrets_by_config() with the mapping given at construction.

        Raises:
            ConfigurationError: No secrets_config was configured
        """
        if self._secrets_config is None:
            raise ConfigurationError("Secrets config mapping is not configured")
        return await self.fetch_secrets_by_config(self._secrets_config)

    async def _resolve_config_value(self, config: SecretConfig) -> str:
        if config.is_json:
            data = await self.fetch_secret_as_json(config.name)
            if config.json_path:
                value = extract_json_path(data, config.json_path)
            else:
                value = json.dumps(data, separators=(",", ":"))
        else:
            value = await self.fetch_secret(config.name)

        if config.validation is not None:
            validate_secret_value(value, config.validation)
        return value

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def check_connectivity(self) -> bool:
        """
        Probe the KMS by fetching the default secret (cache bypassed).

        Returns:
            True on success, or when no default secret is configured (nothing
            to probe, logged as a warning); False if the probe failed
        """
        if not self._default_secret_name:
            self._logger.warning("Connectivity check skipped: no default secret configured")
            return True

        try:
            await self.fetch_secret(self._default_secret_name, skip_cache=True)
        except Exception as e:
            self._logger.error(
                "KMS connectivity check failed",
                extra={"secret_name": self._default_secret_name, "error": get_error_message(e)},
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    @property
    def cache(self) -> SecretCache[str] | None:
        return self._cache

    def clear_secret_cache(self, secret_name: str) -> bool:
        """Drop one cached secret; False if caching is off or it was not cached."""
        if not self._cache_enabled():
            return False
        assert self._cache is not None
        return self._cache.delete(secret_name)

    def clear_all_cache(self) -> None:
        if not self._cache_enabled():
            return
        assert self._cache is not None
        self._cache.clear()
        self._info("All secret cache cleared")

    async def refresh_secret(self, secret_name: str) -> str:
        """Drop the cached value and fetch it again (re-caching the result)."""
        self.clear_secret_cache(secret_name)
        return await self.fetch_secret(secret_name)

    async def warmup_cache(self, secret_names: Sequence[str], force: bool = False) -> int:
        """
        Preload secrets into the cache.

        Args:
            secret_names: Names to load
            force: Re-fetch names that are already cached

        Returns:
            Number of secrets loaded (0 when caching is disabled or nothing
            needed loading)

        Raises:
            BatchFetchError: One or more secrets could not be fetched
        """
        if not self._cache_enabled():
            self._logger.warning("Cache is not enabled, skipping warmup")
            return 0
        assert self._cache is not None

        if force:
            to_load = list(secret_names)
            self._cache.mdel(to_load)
        else:
            to_load = [name for name in secret_names if not self._cache.has(name)]

        if not to_load:
            self._info("All secrets already cached, skipping warmup")
            return 0

        self._info("Warming up secret cache", count=len(to_load))
        try:
            results = await self.fetch_multiple_secrets(to_load)
        except Exception as e:
            self._logger.error("Failed to warm up cache", extra={"error": get_error_message(e)})
            raise

        self._info(
            f"Cache warmup completed: {len(results)}/{len(to_load)} secrets cached",
            cached=len(results),
        )
        return len(results)

    def get_cache_stats(self) -> CacheStats | None:
        """Current cache statistics, or None when caching is disabled."""
        if not self._cache_enabled():
            return None
        assert self._cache is not None
        return self._cache.get_stats()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Tear down the attached cache (stop sweep, clear, drop listeners)."""
        if self._cache is not None:
            self._cache.close()
        self._info("KMS secrets client closed")

    async def __aenter__(self) -> "KmsSecretsClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["KmsSecretsClient", "DEFAULT_CONCURRENCY_LIMIT"]
