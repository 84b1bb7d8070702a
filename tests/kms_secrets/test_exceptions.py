"""Tests for kms_secrets/exceptions.py - Exception hierarchy and formatting."""

import pytest

from kms_secrets.exceptions import (
    BatchFetchError,
    ConfigurationError,
    JsonPathError,
    KmsSecretsError,
    SecretFetchError,
    SecretParseError,
    SecretValidationError,
)


class TestExceptionHierarchy:
    """Test inheritance relationships callers rely on."""

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        "exc_type",
        [SecretValidationError, SecretFetchError, BatchFetchError, ConfigurationError, SecretParseError],
    )
    def test_all_errors_derive_from_base(self, exc_type: type[Exception]) -> None:
        """Every library error can be caught as KmsSecretsError."""
        assert issubclass(exc_type, KmsSecretsError)

    @pytest.mark.unit()
    def test_json_path_error_is_validation_error(self) -> None:
        """JsonPathError is a SecretValidationError and keeps the path."""
        error = JsonPathError("Path not found in JSON: a.b", path="a.b")

        assert isinstance(error, SecretValidationError)
        assert error.path == "a.b"


class TestExceptionFormatting:
    """Test message and context formatting."""

    @pytest.mark.unit()
    def test_str_without_context(self) -> None:
        """str() is the bare message when no context is set."""
        assert str(KmsSecretsError("Timeout")) == "Timeout"

    @pytest.mark.unit()
    def test_str_with_partial_context(self) -> None:
        """Only the context fields that are set are appended."""
        assert str(KmsSecretsError("Timeout", secret_name="db/password")) == (
            "Timeout (secret: db/password)"
        )
        assert str(KmsSecretsError("Timeout", backend="aws")) == "Timeout (backend: aws)"

    @pytest.mark.unit()
    def test_fetch_error_attempts(self) -> None:
        """SecretFetchError keeps an explicit attempt count."""
        error = SecretFetchError("AWS API error: Throttling", "db/password", "aws", attempts=3)

        assert error.attempts == 3
        assert error.message == "AWS API error: Throttling"

    @pytest.mark.unit()
    def test_batch_error_copies_errors(self) -> None:
        """BatchFetchError keeps its own copy of the per-name errors."""
        errors = {"a": "Secret not found", "b": "Access denied"}
        error = BatchFetchError("Failed to fetch 2 secret(s)", errors)
        errors["c"] = "later mutation"

        assert error.failed_names == ["a", "b"]
        assert "c" not in error.errors

    @pytest.mark.unit()
    def test_parse_error_detail(self) -> None:
        """SecretParseError keeps the parser detail and secret name."""
        error = SecretParseError("Invalid JSON format in secret s: x", secret_name="s", detail="x")

        assert error.detail == "x"
        assert error.secret_name == "s"
