"""
Tests for kms_secrets/validation.py - Secret name/value validation and JSON paths.

Test Organization:
    - TestValidateSecretName: Name rules
    - TestValidateSecretValue: SecretValidationRule checks
    - TestExtractJsonPath: Dot-delimited path extraction
"""

import re

import pytest

from kms_secrets.exceptions import JsonPathError, SecretValidationError
from kms_secrets.models import SecretValidationRule
from kms_secrets.validation import (
    extract_json_path,
    validate_secret_name,
    validate_secret_value,
)


class TestValidateSecretName:
    """Test secret name validation."""

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        "name",
        ["database/password", "prod/app.config", "api-key_v2", "a", "x" * 255, "  padded/name  "],
    )
    def test_valid_names(self, name: str) -> None:
        """Well-formed names pass validation."""
        validate_secret_name(name)

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        ("name", "message"),
        [
            (None, "must be a non-empty string"),
            (123, "must be a non-empty string"),
            ("", "must be a non-empty string"),
            (" \t ", "cannot be empty or whitespace only"),
            ("x" * 256, "cannot exceed 255 characters"),
            ("name with space", "can only contain letters"),
            ("secret$name", "can only contain letters"),
        ],
    )
    def test_invalid_names(self, name: object, message: str) -> None:
        """Each malformed name is rejected with its own message."""
        with pytest.raises(SecretValidationError, match=message):
            validate_secret_name(name)


class TestValidateSecretValue:
    """Test SecretValidationRule enforcement."""

    @pytest.mark.unit()
    def test_empty_rule_accepts_anything(self) -> None:
        """A rule with no constraints accepts any value, even an empty one."""
        validate_secret_value("", SecretValidationRule())

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        ("value", "rule", "message"),
        [
            ("   ", SecretValidationRule(required=True), "required but empty"),
            ("abc", SecretValidationRule(min_length=4), "at least 4"),
            ("abcdef", SecretValidationRule(max_length=5), "must not exceed 5"),
            ("abc", SecretValidationRule(pattern=re.compile(r"^\d+$")), "does not match"),
            ("abc", SecretValidationRule(validator=lambda v: False), "failed custom validation"),
        ],
    )
    def test_each_rule_has_distinct_message(
        self, value: str, rule: SecretValidationRule, message: str
    ) -> None:
        """Each violated rule produces a message naming that rule."""
        with pytest.raises(SecretValidationError, match=message):
            validate_secret_value(value, rule)

    @pytest.mark.unit()
    def test_pattern_uses_search_semantics(self) -> None:
        """Patterns match anywhere in the value, not only at the start."""
        validate_secret_value("prefix-123", SecretValidationRule(pattern=re.compile(r"\d{3}")))

    @pytest.mark.unit()
    def test_validator_string_result_is_failure_detail(self) -> None:
        """A validator returning a string fails with that string as detail."""
        rule = SecretValidationRule(validator=lambda v: "not a UUID")

        with pytest.raises(SecretValidationError) as exc_info:
            validate_secret_value("abc", rule)

        assert exc_info.value.message == "Secret value failed custom validation: not a UUID"

    @pytest.mark.unit()
    def test_first_violation_wins(self) -> None:
        """Rules are checked in order and the first failure is reported."""
        rule = SecretValidationRule(required=True, min_length=5)

        with pytest.raises(SecretValidationError, match="required but empty"):
            validate_secret_value("", rule)


class TestExtractJsonPath:
    """Test dot-delimited JSON path extraction."""

    @pytest.mark.unit()
    def test_nested_string(self) -> None:
        """A dotted path reaches a nested string value."""
        assert extract_json_path({"a": {"b": {"c": "x"}}}, "a.b.c") == "x"

    @pytest.mark.unit()
    def test_missing_final_key(self) -> None:
        """A missing last segment reports "Path not found"."""
        with pytest.raises(JsonPathError, match="Path not found in JSON: a.b.z") as exc_info:
            extract_json_path({"a": {"b": {"c": "x"}}}, "a.b.z")

        assert exc_info.value.path == "a.b.z"

    @pytest.mark.unit()
    def test_missing_intermediate_key(self) -> None:
        """A missing intermediate segment reports "Invalid JSON path"."""
        with pytest.raises(JsonPathError, match="Invalid JSON path: a.x.c"):
            extract_json_path({"a": {"b": {"c": "x"}}}, "a.x.c")

    @pytest.mark.unit()
    def test_walking_through_scalar(self) -> None:
        """Descending into a scalar is an invalid path."""
        with pytest.raises(JsonPathError, match="Invalid JSON path: a.b"):
            extract_json_path({"a": "scalar"}, "a.b")

    @pytest.mark.unit()
    def test_root_not_object(self) -> None:
        """A non-object document cannot be walked."""
        with pytest.raises(JsonPathError, match="Invalid JSON path"):
            extract_json_path(["a"], "a")

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        ("leaf", "expected"),
        [
            (5432, "5432"),
            (True, "true"),
            (None, "null"),
            ([1, 2], "[1,2]"),
            ({"k": "v"}, '{"k":"v"}'),
        ],
    )
    def test_non_string_leaves_reserialized(self, leaf: object, expected: str) -> None:
        """Non-string leaves are returned as compact JSON text."""
        assert extract_json_path({"value": leaf}, "value") == expected
