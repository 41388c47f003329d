"""
LECTIO - Resilience Patterns

Retry with bounded exponential backoff for store I/O.

Only TransientStoreError is retried by default. Every write the engine
issues is an upsert on the verse key, so repeating a partially applied
batch converges to the same stored state.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Optional,
    Set,
    Type,
    TypeVar,
)

from opentelemetry import trace

from core.errors import FatalStoreError, TransientStoreError

T = TypeVar("T")

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("lectio.core.resilience")


@dataclass
class RetryConfig:
    """Configuration for retry policy."""

    max_attempts: int = 5
    base_delay: float = 0.5
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: Set[Type[BaseException]] = field(
        default_factory=lambda: {TransientStoreError}
    )
    non_retryable_exceptions: Set[Type[BaseException]] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")


@dataclass
class RetryOutcome:
    """Result of a retried call plus how many attempts it took."""

    value: Any
    attempts: int

    @property
    def retries(self) -> int:
        return self.attempts - 1


class RetryPolicy:
    """
    Configurable retry policy with exponential backoff.

    Features:
    - Exponential backoff with optional jitter
    - Configurable retryable exceptions
    - Maximum delay cap
    - OpenTelemetry tracing

    Usage:
        policy = RetryPolicy(RetryConfig(max_attempts=3))
        outcome = policy.call(store.upsert, batch, operation="upsert")
    """

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay after the given zero-based attempt."""
        delay = min(
            self.config.base_delay * (self.config.exponential_base ** attempt),
            self.config.max_delay
        )

        if self.config.jitter:
            delay *= (0.5 + random.random())

        return min(delay, self.config.max_delay)

    def is_retryable(self, exception: BaseException) -> bool:
        """Check if exception should trigger retry."""
        exc_type = type(exception)

        if any(issubclass(exc_type, t) for t in self.config.non_retryable_exceptions):
            return False

        return any(issubclass(exc_type, t) for t in self.config.retryable_exceptions)

    def call(
        self,
        func: Callable[..., T],
        *args: Any,
        operation: str = "call",
        version_code: Optional[str] = None,
        **kwargs: Any,
    ) -> RetryOutcome:
        """
        Invoke ``func`` until it succeeds or the attempt ceiling is reached.

        Non-retryable exceptions propagate untouched. Exhausting the ceiling
        raises FatalStoreError chained to the last underlying error.
        """
        last_exception: Optional[BaseException] = None

        for attempt in range(self.config.max_attempts):
            with tracer.start_as_current_span(f"retry.{operation}") as span:
                span.set_attribute("retry.attempt", attempt)
                span.set_attribute("retry.max_attempts", self.config.max_attempts)

                try:
                    return RetryOutcome(func(*args, **kwargs), attempt + 1)
                except Exception as e:
                    last_exception = e
                    span.set_attribute("retry.exception", type(e).__name__)

                    if not self.is_retryable(e):
                        raise

                    if attempt < self.config.max_attempts - 1:
                        delay = self.calculate_delay(attempt)
                        span.set_attribute("retry.delay_seconds", delay)
                        logger.warning(
                            "%s failed with %s (attempt %d/%d), retrying in %.2fs",
                            operation, type(e).__name__, attempt + 1,
                            self.config.max_attempts, delay,
                        )
                        self._sleep(delay)

        raise FatalStoreError(
            f"{operation} failed after {self.config.max_attempts} attempts",
            version_code=version_code,
            attempts=self.config.max_attempts,
            operation=operation,
            cause=last_exception,
        ) from last_exception

