"""Logging setup for services embedding the KMS secrets client.

Example:
    >>> from kms_secrets.logging import configure_logging
    >>> logger = configure_logging(service_name="billing_api", log_level="INFO")
    >>> logger.info("Service started", extra={"port": 8000})
"""

import logging
import sys

from kms_secrets.logging.formatter import JSONFormatter


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    include_context: bool = True,
) -> logging.Logger:
    """Install a JSON stdout handler on the root logger.

    Existing root handlers are removed so repeated calls do not duplicate
    output. Call once at service startup.

    Args:
        service_name: Name written into every record's "service" field
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_context: Whether to include extra fields in output

    Returns:
        Configured root logger

    Raises:
        ValueError: If log_level is invalid
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter(service_name=service_name, include_context=include_context))
    root_logger.addHandler(handler)

    return root_logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``logging.getLogger(name)``; the root logger when name is None."""
    return logging.getLogger(name)
