"""Shared fixtures for kms_secrets tests."""

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from kms_secrets.cache import SecretCache
from kms_secrets.fetcher import make_response
from kms_secrets.models import SecretCacheOptions
from kms_secrets.retry import RetryPolicy


class FakeClock:
    """Manually advanced time source for TTL tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Awaitable sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeFetcher:
    """
    In-memory SecretFetcher.

    ``secrets`` maps names to values. ``failures`` maps names to exceptions
    raised on successive calls (one per call) before the value is returned.
    ``errors`` maps names to an exception raised on every call. Unknown names
    raise "Secret not found".
    """

    def __init__(
        self,
        secrets: dict[str, str] | None = None,
        failures: dict[str, list[Exception]] | None = None,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.secrets = dict(secrets or {})
        self.failures = {name: list(queue) for name, queue in (failures or {}).items()}
        self.errors = dict(errors or {})
        self.calls: list[str] = []

    async def fetch(self, secret_name: str) -> dict[str, Any]:
        self.calls.append(secret_name)
        if secret_name in self.errors:
            raise self.errors[secret_name]
        queue = self.failures.get(secret_name)
        if queue:
            raise queue.pop(0)
        if secret_name not in self.secrets:
            raise RuntimeError(f"Secret not found: {secret_name}")
        return make_response(self.secrets[secret_name])

    def call_count(self, secret_name: str) -> int:
        return self.calls.count(secret_name)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def retry_policy(recording_sleep: RecordingSleep) -> RetryPolicy:
    """Default policy (3 attempts) that never actually sleeps."""
    return RetryPolicy(sleep=recording_sleep)


@pytest.fixture()
def make_cache(clock: FakeClock) -> Iterator[Callable[..., SecretCache[Any]]]:
    """Build caches bound to the fake clock; every cache is closed on teardown."""
    created: list[SecretCache[Any]] = []

    def _make(**options: Any) -> SecretCache[Any]:
        options.setdefault("enabled", True)
        cache: SecretCache[Any] = SecretCache(SecretCacheOptions(**options), clock=clock)
        created.append(cache)
        return cache

    yield _make

    for cache in created:
        cache.close()
