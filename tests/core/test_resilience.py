"""
Tests for the store retry policy.
"""
import pytest

from core.errors import FatalStoreError, StoreError, TransientStoreError
from core.resilience import RetryConfig, RetryPolicy


class Flaky:
    def __init__(self, failures, error=TransientStoreError):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("boom")
        return value


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def policy(sleeps):
    return RetryPolicy(
        RetryConfig(max_attempts=3, base_delay=0.1, max_delay=1.0, jitter=False),
        sleep=sleeps.append,
    )


class TestRetryConfig:

    def test_defaults(self):
        config = RetryConfig()
        assert config.max_attempts == 5
        assert TransientStoreError in config.retryable_exceptions

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"base_delay": -1},
        {"base_delay": 2.0, "max_delay": 1.0},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_success_first_time(self, policy, sleeps):
        outcome = policy.call(Flaky(0), "ok", operation="upsert")
        assert outcome.value == "ok"
        assert outcome.attempts == 1
        assert outcome.retries == 0
        assert sleeps == []

    def test_fails_twice_then_succeeds(self, policy, sleeps):
        func = Flaky(2)
        outcome = policy.call(func, "ok", operation="upsert")
        assert outcome.value == "ok"
        assert outcome.retries == 2
        assert func.calls == 3
        assert sleeps == [0.1, 0.2]

    def test_ceiling_raises_fatal(self, policy):
        func = Flaky(5)
        with pytest.raises(FatalStoreError) as exc_info:
            policy.call(func, "ok", operation="upsert", version_code="KJV")
        assert func.calls == 3
        assert exc_info.value.attempts == 3
        assert exc_info.value.version_code == "KJV"
        assert exc_info.value.operation == "upsert"
        assert isinstance(exc_info.value.cause, TransientStoreError)

    def test_non_retryable_propagates(self, policy):
        func = Flaky(1, error=StoreError)
        with pytest.raises(StoreError):
            policy.call(func, "ok")
        assert func.calls == 1

    def test_delay_is_capped(self):
        policy = RetryPolicy(RetryConfig(base_delay=1.0, max_delay=3.0, jitter=False))
        assert policy.calculate_delay(0) == 1.0
        assert policy.calculate_delay(1) == 2.0
        assert policy.calculate_delay(5) == 3.0

    def test_jitter_stays_within_cap(self):
        policy = RetryPolicy(RetryConfig(base_delay=1.0, max_delay=3.0, jitter=True))
        for attempt in range(6):
            assert 0 < policy.calculate_delay(attempt) <= 3.0

