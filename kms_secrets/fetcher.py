"""
Remote secret-fetch capability consumed by KmsSecretsClient.

A fetcher exposes a single coroutine, ``fetch(secret_name)``, returning a
response shaped like ``{"body": {"secretData": "<secret>"}}``. Responses may
be mappings or attribute-style objects (SDK response classes); a missing
``body`` or ``secretData`` is treated as an empty secret rather than a
structural error.

Implementations:
    - AWSSecretsFetcher - AWS Secrets Manager via boto3 (aws_backend.py)
    - EnvSecretFetcher - Environment variables / .env (env_backend.py)
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SecretFetcher(Protocol):
    """Asynchronous "fetch secret bytes for a name" capability. May raise."""

    async def fetch(self, secret_name: str) -> Any: ...


def _lookup(container: Any, *names: str) -> Any:
    for name in names:
        if isinstance(container, dict):
            if name in container:
                return container[name]
        elif hasattr(container, name):
            return getattr(container, name)
    return None


def extract_secret_data(response: Any) -> str:
    """
    Pull the secret string out of a fetch response.

    Example:
        >>> extract_secret_data({"body": {"secretData": "s3cr3t"}})
        's3cr3t'
        >>> extract_secret_data({})
        ''
    """
    body = _lookup(response, "body")
    if body is None:
        return ""
    secret_data = _lookup(body, "secretData", "secret_data")
    if secret_data is None:
        return ""
    return secret_data if isinstance(secret_data, str) else str(secret_data)


def make_response(secret_data: str) -> dict[str, dict[str, str]]:
    """Build the canonical response shape returned by in-tree fetchers."""
    return {"body": {"secretData": secret_data}}


__all__ = ["SecretFetcher", "extract_secret_data", "make_response"]
