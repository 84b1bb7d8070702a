"""
Tests for kms_secrets/factory.py - Client factory and backend selection.

Test Organization:
    - TestCreateFetcher: Backend selection and production guardrail
    - TestCreateSecretsClient: Wiring of cache, retry policy and client options
"""

import logging
from unittest.mock import Mock, patch

import pytest

from kms_secrets.config import Settings
from kms_secrets.env_backend import EnvSecretFetcher
from kms_secrets.exceptions import ConfigurationError, SecretValidationError
from kms_secrets.factory import PACKAGE_LOGGER_NAME, create_fetcher, create_secrets_client
from tests.kms_secrets.conftest import FakeFetcher


def _settings(**overrides: object) -> Settings:
    return Settings(_env_file=None, **overrides)  # type: ignore[arg-type]


@pytest.fixture(autouse=True)
def restore_package_log_level():
    """Restore the kms_secrets logger level changed by create_secrets_client."""
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    original_level = package_logger.level
    yield
    package_logger.setLevel(original_level)


class TestCreateFetcher:
    """Test backend selection."""

    @pytest.mark.unit()
    def test_env_backend_in_local(self) -> None:
        """The env backend is built for local deployments."""
        fetcher = create_fetcher(_settings(backend="env", deployment_env="local"))

        assert isinstance(fetcher, EnvSecretFetcher)

    @pytest.mark.unit()
    def test_env_backend_refused_outside_local(self) -> None:
        """The env backend is refused in production without the override."""
        with pytest.raises(ConfigurationError, match="not allowed in production"):
            create_fetcher(_settings(backend="env", deployment_env="production"))

    @pytest.mark.unit()
    def test_env_backend_override_outside_local(self, caplog: pytest.LogCaptureFixture) -> None:
        """The override flag allows the env backend and logs a warning."""
        fetcher = create_fetcher(
            _settings(backend="env", deployment_env="staging", allow_env_in_non_local=True)
        )

        assert isinstance(fetcher, EnvSecretFetcher)
        assert any("override enabled" in r.getMessage() for r in caplog.records)

    @pytest.mark.unit()
    @patch("kms_secrets.factory.AWSSecretsFetcher")
    def test_aws_backend(self, mock_aws_fetcher: Mock) -> None:
        """AWS connection settings are passed through to the fetcher config."""
        create_fetcher(
            _settings(
                backend=" AWS ",
                region_id="eu-west-1",
                endpoint="kms.internal",
                access_key_id="AKIATEST",
                access_key_secret="s3cr3t",
                timeout_seconds=5,
            )
        )

        config = mock_aws_fetcher.call_args.args[0]
        assert config.region_id == "eu-west-1"
        assert config.endpoint == "kms.internal"
        assert config.access_key_id == "AKIATEST"
        assert config.access_key_secret.get_secret_value() == "s3cr3t"
        assert config.timeout_seconds == 5

    @pytest.mark.unit()
    def test_invalid_backend(self) -> None:
        """Unknown backends raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Invalid KMS_BACKEND: 'vault'"):
            create_fetcher(_settings(backend="vault"))


class TestCreateSecretsClient:
    """Test client wiring."""

    @pytest.mark.unit()
    def test_cache_built_from_settings(self) -> None:
        """Cache TTL, size and prefix come from settings."""
        client = create_secrets_client(
            _settings(cache_ttl_seconds=60, cache_max_size=10, cache_key_prefix="svc:"),
            fetcher=FakeFetcher(),
        )
        try:
            assert client.cache is not None
            options = client.cache.get_config()
            assert options.ttl == 60
            assert options.max_size == 10
            assert options.key_prefix == "svc:"
        finally:
            client.close()

    @pytest.mark.unit()
    def test_cache_disabled(self) -> None:
        """cache_enabled=False builds a client without a cache."""
        client = create_secrets_client(_settings(cache_enabled=False), fetcher=FakeFetcher())

        assert client.cache is None

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_retry_policy_from_settings(self) -> None:
        """max_retries controls the number of fetch attempts."""
        fetcher = FakeFetcher(errors={"flaky": TimeoutError("timeout")})
        client = create_secrets_client(
            _settings(max_retries=2, retry_base_delay_seconds=0, cache_enabled=False),
            fetcher=fetcher,
        )
        client._retry_policy.max_jitter = 0

        with pytest.raises(TimeoutError):
            await client.fetch_secret("flaky")

        assert fetcher.call_count("flaky") == 2

    @pytest.mark.unit()
    @pytest.mark.asyncio()
    async def test_default_secret_name_from_settings(self) -> None:
        """default_secret_name is passed to the client."""
        fetcher = FakeFetcher(secrets={"app/config": "{}"})
        client = create_secrets_client(
            _settings(default_secret_name="app/config", cache_enabled=False), fetcher=fetcher
        )

        assert await client.fetch_default_secret() == "{}"

    @pytest.mark.unit()
    def test_log_level_applied_to_package_logger(self) -> None:
        """Settings.log_level sets the level of the kms_secrets logger tree.

        Verifies that module loggers such as kms_secrets.client inherit it.
        """
        client = create_secrets_client(
            _settings(log_level="warning", cache_enabled=False), fetcher=FakeFetcher()
        )

        assert client is not None
        assert logging.getLogger(PACKAGE_LOGGER_NAME).level == logging.WARNING
        assert logging.getLogger("kms_secrets.client").getEffectiveLevel() == logging.WARNING

    @pytest.mark.unit()
    def test_invalid_default_name_closes_cache(self) -> None:
        """The cache is closed when client construction fails."""
        with patch("kms_secrets.factory.SecretCache") as mock_cache_cls:
            with pytest.raises(SecretValidationError):
                create_secrets_client(
                    _settings(default_secret_name="bad name!", enable_metrics=False),
                    fetcher=FakeFetcher(),
                )

        mock_cache_cls.return_value.close.assert_called_once()
