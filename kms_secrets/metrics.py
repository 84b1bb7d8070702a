"""Prometheus metrics for the secret cache and remote fetch retries."""

from __future__ import annotations

from typing import Any

from prometheus_client import Counter

from kms_secrets.cache import CacheEventListener, CacheEventType, SecretCache

secret_cache_events_total = Counter(
    "kms_secret_cache_events_total",
    "Secret cache events by type",
    ["event"],
)

secret_fetch_retries_total = Counter(
    "kms_secret_fetch_retries_total",
    "Retries scheduled for failed remote secret fetches",
)

secret_fetch_failures_total = Counter(
    "kms_secret_fetch_failures_total",
    "Remote secret fetches that failed after retry handling",
    ["retryable"],
)


def _record_cache_event(event: CacheEventType, key: str, value: Any = None) -> None:
    secret_cache_events_total.labels(event=event.value).inc()


def attach_cache_metrics(cache: SecretCache[Any]) -> CacheEventListener:
    """Count every event emitted by ``cache``.

    Returns the registered listener so callers can detach it with
    ``cache.remove_event_listener``. Attaching twice is a no-op.
    """
    cache.add_event_listener(_record_cache_event)
    return _record_cache_event


__all__ = [
    "secret_cache_events_total",
    "secret_fetch_retries_total",
    "secret_fetch_failures_total",
    "attach_cache_metrics",
]
