"""Tests for the timeout and retry combinators."""

import asyncio

import pytest

from llm.resilience import (
    BackoffPolicy,
    ClassifierAuthError,
    ClassifierTimeout,
    ClassifierUnavailable,
    is_retryable_error,
    with_retry,
    with_timeout,
)


class FlakyOperation:
    """Fails with the given errors, then returns "ok"."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds)
    return _sleep


NO_JITTER = BackoffPolicy(base_delay=1.0, max_delay=10.0, jitter=False)


# ── with_retry ────────────────────────────────────────────────

class TestWithRetry:
    def test_succeeds_after_retryable_failures(self, fake_sleep, sleeps):
        op = FlakyOperation(ClassifierUnavailable("503"), ClassifierTimeout(1.0))
        result = asyncio.run(with_retry(op, "test", max_attempts=3, backoff=NO_JITTER, sleep=fake_sleep))
        assert result == "ok"
        assert op.calls == 3
        assert sleeps == [1.0, 2.0]

    def test_gives_up_with_last_error(self, fake_sleep, sleeps):
        last = ClassifierUnavailable("still down")
        op = FlakyOperation(ClassifierUnavailable("down"), ClassifierUnavailable("down"), last)
        with pytest.raises(ClassifierUnavailable) as exc_info:
            asyncio.run(with_retry(op, "test", max_attempts=3, backoff=NO_JITTER, sleep=fake_sleep))
        assert exc_info.value is last
        assert op.calls == 3
        assert len(sleeps) == 2

    def test_non_retryable_propagates_immediately(self, fake_sleep, sleeps):
        op = FlakyOperation(ClassifierAuthError("bad key"))
        with pytest.raises(ClassifierAuthError):
            asyncio.run(with_retry(op, "test", max_attempts=3, sleep=fake_sleep))
        assert op.calls == 1
        assert sleeps == []

    def test_unclassified_errors_are_not_retried(self, fake_sleep):
        op = FlakyOperation(ValueError("bug"))
        with pytest.raises(ValueError):
            asyncio.run(with_retry(op, "test", max_attempts=3, sleep=fake_sleep))
        assert op.calls == 1

    def test_custom_predicate(self, fake_sleep):
        op = FlakyOperation(ValueError("flaky"))
        result = asyncio.run(
            with_retry(op, "test", max_attempts=2, is_retryable=lambda e: True, sleep=fake_sleep)
        )
        assert result == "ok"
        assert op.calls == 2

    def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            asyncio.run(with_retry(FlakyOperation(), "test", max_attempts=0))


# ── with_timeout ──────────────────────────────────────────────

class TestWithTimeout:
    def test_returns_result(self):
        async def fast():
            return 42
        assert asyncio.run(with_timeout(fast, 1.0)) == 42

    def test_accepts_awaitable(self):
        async def run():
            return await with_timeout(asyncio.sleep(0, result="done"), 1.0)
        assert asyncio.run(run()) == "done"

    def test_raises_classifier_timeout(self):
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(ClassifierTimeout) as exc_info:
            asyncio.run(with_timeout(slow, 0.01, label="classifier"))
        assert "Timeout after 0.01s" in str(exc_info.value)
        assert exc_info.value.seconds == 0.01

    def test_timeout_is_retried(self, fake_sleep):
        calls = []

        async def sometimes_slow():
            calls.append(1)
            if len(calls) == 1:
                await asyncio.sleep(1)
            return "ok"

        result = asyncio.run(
            with_retry(lambda: with_timeout(sometimes_slow, 0.01), "test", sleep=fake_sleep)
        )
        assert result == "ok"
        assert len(calls) == 2


# ── Backoff & predicate ───────────────────────────────────────

class TestBackoff:
    def test_exponential_and_capped(self):
        assert [NO_JITTER.delay(a) for a in range(5)] == [1.0, 2.0, 4.0, 8.0, 10.0]

    def test_jitter_stays_within_cap(self):
        policy = BackoffPolicy(base_delay=1.0, max_delay=10.0, jitter=True)
        for attempt in range(6):
            assert 0 <= policy.delay(attempt) <= min(2 ** attempt, 10.0)

    def test_retryability(self):
        assert is_retryable_error(ClassifierTimeout(1.0))
        assert is_retryable_error(ClassifierUnavailable("x"))
        assert is_retryable_error(asyncio.TimeoutError())
        assert is_retryable_error(ConnectionError())
        assert not is_retryable_error(ClassifierAuthError("x"))
        assert not is_retryable_error(ValueError())
