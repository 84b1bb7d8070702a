"""
Retry policy for remote secret fetches.

Errors are classified by message: a fixed set of case-insensitive substrings
(authentication, permission, not-found and bad-request families) marks an
error as permanent, and it is raised after the first attempt. Every other
error is retried with exponential backoff plus jitter:

    delay = base_delay * 2 ** (attempt - 1) + uniform(0, max_jitter)

Defaults: 3 total attempts, base_delay 1s, max_jitter 1s. After the last
attempt the original exception is re-raised (not a tenacity RetryError).

Example:
    >>> policy = RetryPolicy(max_attempts=3, base_delay=1.0)
    >>> value = await policy.call(lambda: fetcher.fetch("db/password"), "fetch secret db/password")
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Final, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from kms_secrets.exceptions import SecretFetchError
from kms_secrets.metrics import secret_fetch_failures_total, secret_fetch_retries_total
from kms_secrets.utils import get_error_message

logger = logging.getLogger(__name__)

T = TypeVar("T")

NON_RETRYABLE_PATTERNS: Final[tuple[str, ...]] = (
    "unauthorized",
    "forbidden",
    "access denied",
    "invalid signature",
    "invalid access key",
    "invalid parameter",
    "secret not found",
    "bad request",
)

DEFAULT_MAX_ATTEMPTS: Final[int] = 3
DEFAULT_BASE_DELAY_SECONDS: Final[float] = 1.0
DEFAULT_MAX_JITTER_SECONDS: Final[float] = 1.0


def is_non_retryable_error(error: BaseException) -> bool:
    """Return True if the error message matches a permanent-failure pattern."""
    message = get_error_message(error).lower()
    return any(pattern in message for pattern in NON_RETRYABLE_PATTERNS)


def is_retryable_error(error: BaseException) -> bool:
    """Retry ordinary exceptions unless they are classified as permanent.

    BaseExceptions such as asyncio.CancelledError are never retried.
    """
    if not isinstance(error, Exception):
        return False
    return not is_non_retryable_error(error)


class RetryPolicy:
    """
    Exponential backoff with jitter around an async operation.

    Attributes:
        max_attempts: Total attempts including the first (>= 1)
        base_delay: Delay before the first retry, in seconds
        max_jitter: Upper bound of the random jitter added to every delay
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        max_jitter: float = DEFAULT_MAX_JITTER_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Args:
            max_attempts: Total attempts. Default: 3 (up to 2 retries)
            base_delay: Base backoff delay in seconds. Default: 1.0
            max_jitter: Maximum jitter in seconds. Default: 1.0
            sleep: Awaitable sleep used between attempts (injectable for tests)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_jitter = max_jitter
        self._sleep = sleep

    def _retrying(self, description: str) -> AsyncRetrying:
        def log_before_sleep(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome
            error = outcome.exception() if outcome is not None else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            secret_fetch_retries_total.inc()
            logger.warning(
                f"Attempt {retry_state.attempt_number} failed for {description}, "
                f"retrying in {round(delay * 1000)}ms",
                extra={
                    "attempt": retry_state.attempt_number,
                    "max_attempts": self.max_attempts,
                    "error": get_error_message(error) if error is not None else None,
                },
            )

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=2)
            + wait_random(0, self.max_jitter),
            retry=retry_if_exception(is_retryable_error),
            before_sleep=log_before_sleep,
            sleep=self._sleep,
            reraise=True,
        )

    async def call(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        """
        Run ``operation`` under this policy.

        Args:
            operation: Zero-argument callable returning a fresh awaitable per attempt
            description: Human-readable action for log messages
                        (e.g., "fetch secret db/password")

        Returns:
            The operation's result

        Raises:
            Exception: The permanent error immediately, or the last transient
                error once all attempts are exhausted
        """
        attempts = 0
        try:
            async for attempt in self._retrying(description):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    return await operation()
        except Exception as e:
            if isinstance(e, SecretFetchError):
                e.attempts = attempts
            if is_non_retryable_error(e):
                secret_fetch_failures_total.labels(retryable="false").inc()
                logger.error(
                    f"Failed to {description} (non-retryable)",
                    extra={"attempts": attempts, "error": get_error_message(e)},
                )
            else:
                secret_fetch_failures_total.labels(retryable="true").inc()
                logger.error(
                    f"Failed to {description} after {attempts} attempts",
                    extra={"attempts": attempts, "error": get_error_message(e)},
                )
            raise
        raise AssertionError("unreachable: retry loop exited without result")  # pragma: no cover


__all__ = [
    "NON_RETRYABLE_PATTERNS",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_BASE_DELAY_SECONDS",
    "DEFAULT_MAX_JITTER_SECONDS",
    "is_non_retryable_error",
    "is_retryable_error",
    "RetryPolicy",
]
