"""
KMS Secrets Exception Hierarchy.

This module defines all exceptions raised by the KMS secrets client, giving
callers clear error semantics for validation, fetch, batch, configuration and
parse failures.

Exception hierarchy:
    KmsSecretsError (base)
    ├── SecretValidationError - Malformed name/argument or failed validation rule
    │   └── JsonPathError - JSON path could not be resolved in a secret
    ├── SecretFetchError - Remote fetch failed (backend-level translation)
    ├── BatchFetchError - Aggregate of per-secret failures in a batch
    ├── ConfigurationError - Required configuration missing or invalid
    └── SecretParseError - Secret content could not be parsed as JSON

All exceptions carry structured context (secret name, backend type) without
exposing secret values. Secret values MUST NOT appear in messages.
"""


class KmsSecretsError(Exception):
    """
    Base exception for all KMS secrets errors.

    Attributes:
        secret_name: Name/path of the secret (e.g., "database/password")
        backend: Backend type ("aws", "env") when known
        message: Human-readable error message (MUST NOT include secret value)

    Example:
        >>> try:
        ...     value = await client.fetch_secret("database/password")
        ... except KmsSecretsError as e:
        ...     logger.error("Secret error", extra={"secret_name": e.secret_name})
    """

    def __init__(
        self,
        message: str,
        secret_name: str | None = None,
        backend: str | None = None,
    ) -> None:
        super().__init__(message)
        self.secret_name = secret_name
        self.backend = backend
        self.message = message

    def __str__(self) -> str:
        """
        Format error message with context (secret name + backend).

        Example:
            >>> str(KmsSecretsError("Timeout", "db/password", "aws"))
            'Timeout (secret: db/password, backend: aws)'
        """
        context_parts = []
        if self.secret_name:
            context_parts.append(f"secret: {self.secret_name}")
        if self.backend:
            context_parts.append(f"backend: {self.backend}")

        if context_parts:
            context = ", ".join(context_parts)
            return f"{self.message} ({context})"
        return self.message


class SecretValidationError(KmsSecretsError):
    """
    Raised when input or a fetched value fails validation.

    Covers malformed secret names, a non-list argument to batch fetching, and
    any violated SecretValidationRule. Validation errors are never retried and
    are always hard failures in config-driven batch fetching, even for
    optional secrets that declare a default value.

    Example:
        >>> validate_secret_name("bad name!")
        SecretValidationError: Secret name can only contain letters, numbers, ...
    """


class JsonPathError(SecretValidationError):
    """
    Raised when a dot-delimited JSON path cannot be resolved.

    Two messages are used so callers can distinguish the cases:
        - "Invalid JSON path: <path>" - an intermediate value is not an object
        - "Path not found in JSON: <path>" - the final value is missing
    """

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class SecretFetchError(KmsSecretsError):
    """
    Raised by fetchers when the remote backend call fails.

    The message is chosen so that the retry classifier can tell permanent
    failures ("Secret not found", "Access denied", ...) from transient ones.

    Attributes:
        attempts: Number of attempts made before giving up; set by RetryPolicy
            once retries end (0 if the error never went through a policy)
    """

    def __init__(
        self,
        message: str,
        secret_name: str | None = None,
        backend: str | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message, secret_name=secret_name, backend=backend)
        self.attempts = attempts


class BatchFetchError(KmsSecretsError):
    """
    Raised when one or more secrets in a batch operation failed.

    The error is raised only after every secret in the batch has been
    attempted (fetch_multiple_secrets) or when a required secret failed
    (fetch_secrets_by_config).

    Attributes:
        errors: Mapping of secret name (or config key) to failure message

    Example:
        >>> try:
        ...     await client.fetch_multiple_secrets(["a", "b"])
        ... except BatchFetchError as e:
        ...     for name, reason in e.errors.items():
        ...         logger.error("Secret failed", extra={"secret_name": name, "error": reason})
    """

    def __init__(self, message: str, errors: dict[str, str]) -> None:
        super().__init__(message)
        self.errors = dict(errors)

    @property
    def failed_names(self) -> list[str]:
        """Names (or config keys) that failed, in insertion order."""
        return list(self.errors)


class ConfigurationError(KmsSecretsError):
    """
    Raised when required configuration is missing or invalid.

    Example:
        >>> await client.fetch_default_secret()
        ConfigurationError: Default secret name is not configured
    """


class SecretParseError(KmsSecretsError):
    """
    Raised when a secret cannot be parsed as JSON.

    Attributes:
        detail: Low-level parser message (None for empty secrets)
    """

    def __init__(self, message: str, secret_name: str, detail: str | None = None) -> None:
        super().__init__(message, secret_name=secret_name)
        self.detail = detail


__all__ = [
    "KmsSecretsError",
    "SecretValidationError",
    "JsonPathError",
    "SecretFetchError",
    "BatchFetchError",
    "ConfigurationError",
    "SecretParseError",
]
