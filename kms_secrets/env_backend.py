"""
Environment variable fetcher for local development.

EnvSecretFetcher reads secrets from os.environ, optionally loading a .env
file first via python-dotenv. Hierarchical names map to UPPERCASE variable
names: "database/password" -> "DATABASE_PASSWORD",
"alpaca.api-key" -> "ALPACA_API_KEY".

**WARNING**: LOCAL DEVELOPMENT ONLY. create_secrets_client() refuses this
backend outside DEPLOYMENT_ENV=local unless explicitly overridden.
"""

import logging
import os
import re
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

from kms_secrets.exceptions import ConfigurationError, SecretFetchError
from kms_secrets.fetcher import make_response

logger = logging.getLogger(__name__)

BACKEND: Final[str] = "env"
_SEPARATORS: Final[re.Pattern[str]] = re.compile(r"[/.\-]")


def env_var_name(secret_name: str) -> str:
    """
    Convert a hierarchical secret name to its environment variable name.

    Example:
        >>> env_var_name("database/password")
        'DATABASE_PASSWORD'
    """
    return _SEPARATORS.sub("_", secret_name.strip()).upper()


class EnvSecretFetcher:
    """SecretFetcher reading from environment variables."""

    def __init__(self, dotenv_path: str | Path | None = None) -> None:
        """
        Args:
            dotenv_path: Optional .env file loaded (with override) at construction

        Raises:
            ConfigurationError: dotenv_path was given but does not exist
        """
        self._dotenv_path = dotenv_path
        if dotenv_path is not None:
            dotenv_file = Path(dotenv_path)
            if not dotenv_file.is_file():
                raise ConfigurationError(f".env file not found: {dotenv_path}", backend=BACKEND)
            load_dotenv(dotenv_path=dotenv_file, override=True)
            logger.info(
                "Loaded .env file for secret fetching",
                extra={"dotenv_path": str(dotenv_file), "backend": BACKEND},
            )
        else:
            logger.info(
                "Using environment variables without .env file",
                extra={"backend": BACKEND},
            )

    async def fetch(self, secret_name: str) -> dict[str, dict[str, str]]:
        """
        Raises:
            SecretFetchError: "Secret not found" when the variable is unset
        """
        variable = env_var_name(secret_name)
        value = os.environ.get(variable)
        if value is None:
            raise SecretFetchError(
                f"Secret not found: environment variable '{variable}' is not set",
                secret_name=secret_name,
                backend=BACKEND,
            )
        return make_response(value)


__all__ = ["EnvSecretFetcher", "env_var_name"]
