"""
Validation of secret names and fetched values, plus JSON path extraction.

Every failure raises SecretValidationError (or its JsonPathError subclass) so
that callers can tell validation failures apart from remote fetch failures.
"""

import json
import re
from typing import Any, Final

from kms_secrets.exceptions import JsonPathError, SecretValidationError
from kms_secrets.models import SecretValidationRule

MAX_SECRET_NAME_LENGTH: Final[int] = 255
_SECRET_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z0-9/_.-]+$")


def validate_secret_name(secret_name: Any) -> None:
    """
    Check that a secret name is usable with the KMS.

    Rules: non-empty string, not whitespace-only, at most 255 characters after
    trimming, and only letters, digits, underscores, hyphens, periods and
    forward slashes.

    Raises:
        SecretValidationError: If any rule is violated
    """
    if not secret_name or not isinstance(secret_name, str):
        raise SecretValidationError("Secret name must be a non-empty string")

    trimmed = secret_name.strip()
    if not trimmed:
        raise SecretValidationError("Secret name cannot be empty or whitespace only")

    if len(trimmed) > MAX_SECRET_NAME_LENGTH:
        raise SecretValidationError(
            f"Secret name cannot exceed {MAX_SECRET_NAME_LENGTH} characters"
        )

    if not _SECRET_NAME_PATTERN.match(trimmed):
        raise SecretValidationError(
            "Secret name can only contain letters, numbers, underscores, hyphens, "
            "periods, and forward slashes",
            secret_name=trimmed[:MAX_SECRET_NAME_LENGTH],
        )


def validate_secret_value(value: str, rule: SecretValidationRule) -> None:
    """
    Apply a SecretValidationRule to a fetched value.

    Rules are checked in order: required, min_length, max_length, pattern,
    validator. The first violation raises.

    Raises:
        SecretValidationError: With a message specific to the violated rule
    """
    if rule.required and not value.strip():
        raise SecretValidationError("Secret value is required but empty")

    if rule.min_length is not None and len(value) < rule.min_length:
        raise SecretValidationError(f"Secret value length must be at least {rule.min_length}")

    if rule.max_length is not None and len(value) > rule.max_length:
        raise SecretValidationError(f"Secret value length must not exceed {rule.max_length}")

    if rule.pattern is not None and not rule.pattern.search(value):
        raise SecretValidationError("Secret value does not match required pattern")

    if rule.validator is not None:
        outcome = rule.validator(value)
        if isinstance(outcome, str):
            raise SecretValidationError(f"Secret value failed custom validation: {outcome}")
        if not outcome:
            raise SecretValidationError("Secret value failed custom validation")


def extract_json_path(data: Any, path: str) -> str:
    """
    Walk a dot-delimited path through parsed JSON objects.

    Example:
        >>> extract_json_path({"a": {"b": {"c": "x"}}}, "a.b.c")
        'x'
        >>> extract_json_path({"a": {"port": 5432}}, "a.port")
        '5432'

    Raises:
        JsonPathError: If an intermediate value is not an object, or the final
            value is missing
    """
    current = data
    missing = False
    for segment in path.split("."):
        if missing or not isinstance(current, dict):
            raise JsonPathError(f"Invalid JSON path: {path}", path=path)
        if segment in current:
            current = current[segment]
        else:
            missing = True
            current = None

    if missing:
        raise JsonPathError(f"Path not found in JSON: {path}", path=path)

    if isinstance(current, str):
        return current
    return json.dumps(current, separators=(",", ":"))


__all__ = [
    "MAX_SECRET_NAME_LENGTH",
    "validate_secret_name",
    "validate_secret_value",
    "extract_json_path",
]
