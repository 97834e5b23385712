"""Circuit breaker for calls to external collaborators: CLOSED, OPEN, HALF_OPEN."""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from gitguard.observability.metrics import MetricsCollector

T = TypeVar("T")

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(Exception):
    """Raised without calling through while the circuit is OPEN."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Circuit breaker {name} is OPEN")


class CircuitBreaker:
    """
    After failure_threshold consecutive failures, open for recovery_timeout_seconds,
    then half-open for one probe. Async-safe via asyncio.Lock.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout_seconds: float = 30.0,
        name: str = "default",
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._threshold = failure_threshold
        self._recovery_timeout = recovery_timeout_seconds
        self._name = name
        self._metrics = metrics
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._last_failure_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    def _record_success(self) -> None:
        self._failures = 0
        self._state = CircuitState.CLOSED

    def _record_failure(self) -> None:
        self._last_failure_time = time.monotonic()
        self._failures += 1
        if self._metrics:
            self._metrics.increment("circuit_breaker_failure", category=self._name)
        if self._failures >= self._threshold or self._state == CircuitState.HALF_OPEN:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    "circuit_opened",
                    extra={"breaker": self._name, "failures": self._failures},
                )
            self._state = CircuitState.OPEN

    async def call(
        self,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """Execute func through the circuit. Raises CircuitOpenError while OPEN."""
        async with self._lock:
            if self._state == CircuitState.OPEN:
                elapsed = (
                    time.monotonic() - self._last_failure_time
                    if self._last_failure_time is not None
                    else 0.0
                )
                if elapsed < self._recovery_timeout:
                    raise CircuitOpenError(self._name)
                self._state = CircuitState.HALF_OPEN
        try:
            result = await func(*args, **kwargs)
        except Exception:
            async with self._lock:
                self._record_failure()
            raise
        async with self._lock:
            self._record_success()
        return result
