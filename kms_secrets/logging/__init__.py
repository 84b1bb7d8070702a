"""Structured JSON logging for the KMS secrets client.

Usage:
    # At service startup
    from kms_secrets.logging import configure_logging
    configure_logging(service_name="billing_api", log_level="INFO")

    # Anywhere else
    from kms_secrets.logging import get_logger
    logger = get_logger(__name__)
"""

from kms_secrets.logging.config import configure_logging, get_logger
from kms_secrets.logging.formatter import JSONFormatter

__all__ = [
    "configure_logging",
    "get_logger",
    "JSONFormatter",
]
