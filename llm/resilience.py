"""
Timeout and retry combinators for the Intent Router.

This is the only place network fallibility is handled. Callers wrap a
fallible async operation once and see either its result or one final
error.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Error taxonomy ────────────────────────────────────────────────

class RouterError(Exception):
    """Base class for routing pipeline errors."""


class RetryableError(RouterError):
    """An error worth retrying (timeouts, network, rate limits)."""


class NonRetryableError(RouterError):
    """An error that retrying cannot fix (auth, validation)."""


class ClassifierError(RouterError):
    """The classifier call failed."""


class ClassifierTimeout(ClassifierError, RetryableError):
    """The classifier did not answer in time."""

    def __init__(self, seconds: float, label: str = "operation"):
        self.seconds = seconds
        self.label = label
        super().__init__(f"Timeout after {seconds:g}s ({label})")


class ClassifierUnavailable(ClassifierError, RetryableError):
    """Network error, rate limit or 5xx from the classifier provider."""


class ClassifierAuthError(ClassifierError, NonRetryableError):
    """Credentials rejected by the classifier provider."""


def is_retryable_error(error: BaseException) -> bool:
    """Default retryability predicate."""
    if isinstance(error, NonRetryableError):
        return False
    return isinstance(error, (RetryableError, asyncio.TimeoutError, TimeoutError, ConnectionError))


# ── Backoff ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff with optional full jitter."""
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter: bool = True

    def delay(self, attempt: int) -> float:
        """
        Delay before the retry that follows a failed attempt.

        Args:
            attempt: Zero-based index of the attempt that just failed
        """
        capped = min(self.base_delay * (2 ** attempt), self.max_delay)
        if self.jitter:
            return random.uniform(0, capped)
        return capped

    @classmethod
    def from_settings(cls, settings) -> "BackoffPolicy":
        return cls(
            base_delay=settings.retry_base_delay_seconds,
            max_delay=settings.retry_max_delay_seconds,
            jitter=settings.retry_jitter_enabled,
        )


# ── Combinators ───────────────────────────────────────────────────

Operation = Union[Awaitable[T], Callable[[], Awaitable[T]]]


async def with_timeout(op: Operation, seconds: float, label: str = "operation") -> T:
    """
    Await op, failing with ClassifierTimeout if it takes longer than seconds.

    Args:
        op: An awaitable, or a zero-argument callable returning one
        seconds: Time budget
        label: Name used in the error message and logs
    """
    awaitable = op() if callable(op) else op
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        logger.warning(f"{label} timed out after {seconds:g}s")
        raise ClassifierTimeout(seconds, label) from None


async def with_retry(
    op: Callable[[], Awaitable[T]],
    label: str = "operation",
    max_attempts: int = 3,
    backoff: Optional[BackoffPolicy] = None,
    is_retryable: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    Run op until it succeeds, retrying retryable errors.

    Args:
        op: Zero-argument callable returning a fresh awaitable per attempt
        label: Name used in logs
        max_attempts: Total attempts including the first
        backoff: Delay policy between attempts
        is_retryable: Predicate deciding which errors are retried
        sleep: Sleep function (injectable for tests)

    Returns:
        The first successful result.

    Raises:
        The last error once attempts are exhausted, or the first
        non-retryable error immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    backoff = backoff or BackoffPolicy()

    for attempt in range(max_attempts):
        try:
            return await op()
        except Exception as e:
            if not is_retryable(e):
                logger.error(f"{label} failed with non-retryable error: {e}")
                raise
            if attempt + 1 >= max_attempts:
                logger.error(f"{label} failed after {max_attempts} attempts: {e}")
                raise

            delay = backoff.delay(attempt)
            logger.warning(
                f"{label} attempt {attempt + 1}/{max_attempts} failed: {e}; "
                f"retrying in {delay:.2f}s"
            )
            await sleep(delay)

    raise AssertionError("unreachable")
