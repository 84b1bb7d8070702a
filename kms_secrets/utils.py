"""Configuration and logging helpers shared across the client."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kms_secrets.exceptions import ConfigurationError

SENSITIVE_KEY_MARKERS = ("secret", "password", "token", "key")
REDACTED = "[REDACTED]"


def get_error_message(error: object) -> str:
    """Return a printable message for any raised value."""
    if isinstance(error, BaseException):
        # KmsSecretsError.__str__ appends context; the bare message is what callers match on
        message = getattr(error, "message", None)
        if isinstance(message, str):
            return message
        return str(error)
    if isinstance(error, str):
        return error
    return str(error)


def sanitize_for_logging(data: Any) -> Any:
    """Redact values whose key looks sensitive, recursing into dicts and lists.

    Example:
        >>> sanitize_for_logging({"region": "us-east-1", "access_key_id": "AKIA..."})
        {'region': 'us-east-1', 'access_key_id': '[REDACTED]'}
    """
    if isinstance(data, list | tuple):
        return [sanitize_for_logging(item) for item in data]
    if not isinstance(data, Mapping):
        return data

    sanitized: dict[str, Any] = {}
    for key, value in data.items():
        lower_key = str(key).lower()
        if any(marker in lower_key for marker in SENSITIVE_KEY_MARKERS):
            sanitized[key] = REDACTED
        elif isinstance(value, Mapping | list | tuple):
            sanitized[key] = sanitize_for_logging(value)
        else:
            sanitized[key] = value
    return sanitized


def merge_config(
    target: Mapping[str, Any] | None, source: Mapping[str, Any] | None
) -> dict[str, Any]:
    """Shallow-merge two config dicts; non-None values in ``source`` win."""
    if not target and not source:
        return {}
    if not target:
        return dict(source or {})
    if not source:
        return dict(target)

    result: dict[str, Any] = {}
    for key in {**target, **source}:
        source_value = source.get(key)
        target_value = target.get(key)
        if source_value is not None:
            result[key] = source_value
        elif target_value is not None:
            result[key] = target_value
    return result


def merge_multiple_configs(*configs: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge configs left to right; later configs take precedence."""
    result: dict[str, Any] = {}
    for config in configs:
        result = merge_config(result, config or {})
    return result


def validate_required_keys(config: Mapping[str, Any], required_keys: list[str]) -> None:
    """Raise ConfigurationError if any required key is missing, None or empty."""
    missing = [key for key in required_keys if config.get(key) in (None, "")]
    if missing:
        raise ConfigurationError(f"Missing required configuration keys: {', '.join(missing)}")


def filter_empty_values(config: Mapping[str, Any]) -> dict[str, Any]:
    """Drop None and empty-string values."""
    return {key: value for key, value in config.items() if value is not None and value != ""}


def unflatten_config(flat_config: Mapping[str, Any], separator: str = ".") -> dict[str, Any]:
    """Turn ``{"database.host": "x"}`` into ``{"database": {"host": "x"}}``."""
    result: dict[str, Any] = {}
    for flat_key, value in flat_config.items():
        parts = flat_key.split(separator)
        current = result
        for part in parts[:-1]:
            current = current.setdefault(part, {})
        current[parts[-1]] = value
    return result


def flatten_config(
    nested_config: Mapping[str, Any], separator: str = ".", prefix: str = ""
) -> dict[str, Any]:
    """Inverse of unflatten_config; lists are treated as leaf values."""
    result: dict[str, Any] = {}
    for key, value in nested_config.items():
        full_key = f"{prefix}{separator}{key}" if prefix else key
        if isinstance(value, Mapping):
            result.update(flatten_config(value, separator, full_key))
        else:
            result[full_key] = value
    return result


__all__ = [
    "get_error_message",
    "sanitize_for_logging",
    "merge_config",
    "merge_multiple_configs",
    "validate_required_keys",
    "filter_empty_values",
    "unflatten_config",
    "flatten_config",
]
