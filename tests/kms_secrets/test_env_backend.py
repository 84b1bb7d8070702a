"""
Tests for EnvSecretFetcher (kms_secrets/env_backend.py).

This module validates:
1. Secret name to environment variable mapping
2. Initialization with/without .env file
3. fetch() response shape and not-found handling
"""

from pathlib import Path

import pytest

from kms_secrets.env_backend import EnvSecretFetcher, env_var_name
from kms_secrets.exceptions import ConfigurationError, SecretFetchError
from kms_secrets.retry import is_non_retryable_error


class TestEnvVarName:
    """Test secret name to variable name conversion."""

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        ("secret_name", "variable"),
        [
            ("database/password", "DATABASE_PASSWORD"),
            ("alpaca.api-key", "ALPACA_API_KEY"),
            (" redis/password ", "REDIS_PASSWORD"),
            ("ALREADY_UPPER", "ALREADY_UPPER"),
        ],
    )
    def test_mapping(self, secret_name: str, variable: str) -> None:
        """Secret names map to upper-case underscore environment variable names."""
        assert env_var_name(secret_name) == variable


class TestEnvSecretFetcher:
    """Test EnvSecretFetcher initialization and fetch()."""

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_fetch_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Fetch reads the mapped environment variable."""
        monkeypatch.setenv("DATABASE_PASSWORD", "db_pass_123")

        response = await EnvSecretFetcher().fetch("database/password")

        assert response == {"body": {"secretData": "db_pass_123"}}

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_dotenv_file_loaded(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Variables from the configured .env file are visible to fetch."""
        monkeypatch.delenv("KMS_TEST_DOTENV_SECRET", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("KMS_TEST_DOTENV_SECRET=from_file\n")

        fetcher = EnvSecretFetcher(dotenv_path=env_file)
        try:
            response = await fetcher.fetch("kms_test/dotenv-secret")
        finally:
            monkeypatch.delenv("KMS_TEST_DOTENV_SECRET", raising=False)

        assert response["body"]["secretData"] == "from_file"

    @pytest.mark.unit()
    def test_missing_dotenv_file_raises(self, tmp_path: Path) -> None:
        """A dotenv_path that does not exist is a configuration error."""
        with pytest.raises(ConfigurationError, match=".env file not found"):
            EnvSecretFetcher(dotenv_path=tmp_path / "missing.env")

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_unset_variable_is_non_retryable_not_found(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """An unset variable is reported as "Secret not found".

        Verifies that the message names the variable and is not retried.
        """
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)

        with pytest.raises(SecretFetchError) as exc_info:
            await EnvSecretFetcher().fetch("not/set-anywhere")

        assert exc_info.value.message.startswith("Secret not found")
        assert "NOT_SET_ANYWHERE" in exc_info.value.message
        assert is_non_retryable_error(exc_info.value)
