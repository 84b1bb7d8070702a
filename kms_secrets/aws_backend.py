"""
AWS Secrets Manager fetcher.

This module implements AWSSecretsFetcher, a SecretFetcher that reads secrets
from AWS Secrets Manager via boto3. The blocking boto3 call runs in a worker
thread so the client's batch fetching stays concurrent.

Architecture:
    - boto3 client created once at construction
    - botocore's own retries disabled; KmsSecretsClient owns retry/backoff
    - IAM role-based authentication (recommended) or access key authentication
    - AWS error codes translated into SecretFetchError messages that the retry
      classifier understands (not-found/permission/bad-request are permanent,
      throttling and network errors are transient)

Security Considerations:
    - Secret values NEVER logged (only names)
    - IAM permission required: secretsmanager:GetSecretValue

Usage Example:
    >>> fetcher = AWSSecretsFetcher(KmsClientConfig(region_id="us-east-1"))
    >>> client = KmsSecretsClient(fetcher, cache=cache)
    >>> db_password = await client.fetch_secret("prod/database/password")
"""

import asyncio
import logging
from typing import Any, Final

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from kms_secrets.exceptions import SecretFetchError
from kms_secrets.fetcher import make_response
from kms_secrets.models import KmsClientConfig

logger = logging.getLogger(__name__)

BACKEND: Final[str] = "aws"

# Error code -> message prefix; every prefix matches a non-retryable pattern
_PERMANENT_ERROR_MESSAGES: Final[dict[str, str]] = {
    "ResourceNotFoundException": "Secret not found",
    "AccessDeniedException": "Access denied",
    "InvalidParameterException": "Invalid parameter",
    "InvalidRequestException": "Bad request",
    "UnrecognizedClientException": "Invalid access key",
    "InvalidSignatureException": "Invalid signature",
    "DecryptionFailure": "Forbidden: unable to decrypt secret",
}


class AWSSecretsFetcher:
    """
    SecretFetcher backed by AWS Secrets Manager.

    Example:
        >>> # IAM role authentication (recommended)
        >>> fetcher = AWSSecretsFetcher(KmsClientConfig(region_id="us-east-1"))
        >>>
        >>> # Access key authentication (local testing only)
        >>> fetcher = AWSSecretsFetcher(
        ...     KmsClientConfig(
        ...         region_id="us-east-1",
        ...         access_key_id="AKIA...",
        ...         access_key_secret="...",
        ...     )
        ... )
    """

    def __init__(self, config: KmsClientConfig) -> None:
        """
        Create the boto3 Secrets Manager client.

        Args:
            config: Connection parameters (region, endpoint, credentials,
                    timeout, TLS options)

        Raises:
            SecretFetchError: boto3 client could not be created
        """
        self._config = config
        client_kwargs: dict[str, Any] = {
            "region_name": config.region_id,
            "config": Config(
                connect_timeout=config.timeout_seconds,
                read_timeout=config.timeout_seconds,
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        }
        if config.endpoint:
            client_kwargs["endpoint_url"] = _normalize_endpoint(config.endpoint)
        if config.ignore_ssl:
            client_kwargs["verify"] = False
        elif config.ca_cert:
            client_kwargs["verify"] = config.ca_cert

        if config.access_key_id and config.access_key_secret is not None:
            client_kwargs["aws_access_key_id"] = config.access_key_id
            client_kwargs["aws_secret_access_key"] = config.access_key_secret.get_secret_value()
            logger.info(
                "Initializing AWS Secrets Manager fetcher with access key authentication",
                extra={"region": config.region_id, "backend": BACKEND},
            )
        else:
            logger.info(
                "Initializing AWS Secrets Manager fetcher with IAM role authentication",
                extra={"region": config.region_id, "backend": BACKEND},
            )

        try:
            self._client = boto3.client("secretsmanager", **client_kwargs)
        except (BotoCoreError, ValueError) as e:
            raise SecretFetchError(
                f"AWS SDK error during initialization: {e}",
                secret_name="aws_initialization",
                backend=BACKEND,
            ) from e

    async def fetch(self, secret_name: str) -> dict[str, dict[str, str]]:
        """
        Retrieve one secret from AWS Secrets Manager.

        Returns:
            {"body": {"secretData": <SecretString>}}

        Raises:
            SecretFetchError: Translated AWS/botocore failure
        """
        try:
            response = await asyncio.to_thread(self._client.get_secret_value, SecretId=secret_name)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            prefix = _PERMANENT_ERROR_MESSAGES.get(error_code)
            if prefix is not None:
                raise SecretFetchError(
                    f"{prefix}: {error_code} for secret '{secret_name}'",
                    secret_name=secret_name,
                    backend=BACKEND,
                ) from e
            raise SecretFetchError(
                f"AWS API error: {error_code}",
                secret_name=secret_name,
                backend=BACKEND,
            ) from e
        except BotoCoreError as e:
            raise SecretFetchError(
                f"AWS SDK error retrieving secret: {e}",
                secret_name=secret_name,
                backend=BACKEND,
            ) from e

        # Secrets Manager stores either SecretString or SecretBinary; only text is supported
        if "SecretString" not in response:
            raise SecretFetchError(
                "Bad request: secret is binary, expected text (SecretString)",
                secret_name=secret_name,
                backend=BACKEND,
            )

        logger.debug(
            "Secret loaded from AWS Secrets Manager",
            extra={"secret_name": secret_name, "backend": BACKEND},
        )
        return make_response(response["SecretString"])


def _normalize_endpoint(endpoint: str) -> str:
    """Endpoints without a scheme default to https://."""
    endpoint = endpoint.strip()
    return endpoint if "://" in endpoint else f"https://{endpoint}"


__all__ = ["AWSSecretsFetcher"]
