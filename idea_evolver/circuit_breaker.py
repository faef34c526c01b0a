"""
Circuit breaker guarding outbound LLM calls.

One breaker is owned by one resilient client. After a run of consecutive
failures the circuit opens and calls are rejected without touching the
network; once the cooldown has elapsed a single trial call is let through.

Usage:
    breaker = CircuitBreaker("llm", failure_threshold=5, cooldown_seconds=60)

    breaker.before_call()      # raises CircuitOpenError while open
    try:
        result = await call()
    except Exception:
        breaker.record_failure()
        raise
    breaker.record_success()
"""

import logging
import time
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"        # Normal operation, requests pass through
    OPEN = "open"            # Failing, requests are rejected
    HALF_OPEN = "half_open"  # One trial request is in flight


class CircuitOpenError(RuntimeError):
    """Raised when the breaker rejects a call without contacting the provider."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = max(0.0, retry_after)
        super().__init__(
            f"Circuit breaker '{name}' is OPEN - service unavailable, "
            f"retry in {self.retry_after:.0f}s"
        )


class CircuitBreaker:
    """Three-state breaker with a consecutive-failure threshold.

    The counters are guarded by a lock so the breaker stays correct if a
    provider call is ever moved onto a worker thread.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        cooldown_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock

        self._lock = Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: Optional[float] = None
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def is_open(self) -> bool:
        return self._state == CircuitState.OPEN

    def before_call(self) -> None:
        """Admit a call or raise CircuitOpenError."""
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return

            now = self._clock()
            if self._last_failure_time is None:
                elapsed = 0.0
            else:
                elapsed = now - self._last_failure_time

            if self._state == CircuitState.OPEN:
                if elapsed < self.cooldown_seconds:
                    raise CircuitOpenError(self.name, self.cooldown_seconds - elapsed)
                logger.info(
                    "Circuit %s: transitioning to HALF_OPEN after %.1fs", self.name, elapsed
                )
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = True
                return

            # HALF_OPEN: only the single trial call may proceed
            if self._trial_in_flight:
                raise CircuitOpenError(self.name, 0.0)
            self._trial_in_flight = True

    def record_success(self) -> None:
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("Circuit %s: closing after successful call", self.name)
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._trial_in_flight = False

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = self._clock()
            self._trial_in_flight = False

            if self._state == CircuitState.HALF_OPEN:
                logger.warning("Circuit %s: reopening after failed trial call", self.name)
                self._state = CircuitState.OPEN
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                logger.warning(
                    "Circuit %s: opening after %d consecutive failures",
                    self.name,
                    self._failure_count,
                )
                self._state = CircuitState.OPEN

    def release_trial(self) -> None:
        """Give back an admitted call that ended with neither success nor failure."""
        with self._lock:
            if self._trial_in_flight:
                logger.info("Circuit %s: trial call abandoned, next call may probe", self.name)
            self._trial_in_flight = False

    def reset(self) -> None:
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._trial_in_flight = False
        logger.info("Circuit %s: manually reset", self.name)

    def get_status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "failure_threshold": self.failure_threshold,
                "cooldown_seconds": self.cooldown_seconds,
            }
