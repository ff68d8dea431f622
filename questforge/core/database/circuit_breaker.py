"""
Circuit Breaker Pattern for Unreliable Dependencies
====================================================

Purpose
-------
Implements the circuit breaker pattern to prevent cascading failures when a
dependency becomes unavailable or slow. Used by DatabaseService for write
transactions and by OracleGuard for each external oracle (NFT ownership,
social graph, marketplace log, access rules).

Circuit States
--------------
**CLOSED** (Normal Operation):
- All requests pass through
- Track failure count
- Open circuit if consecutive failures reach the threshold

**OPEN** (Fail-Fast):
- Immediately reject all requests
- Transition to HALF_OPEN after the recovery timeout

**HALF_OPEN** (Recovery Testing):
- Allow a limited number of test requests
- Close circuit if a test succeeds, re-open if one fails

Configuration
-------------
All values sourced from Config with safe defaults:
- CIRCUIT_BREAKER_FAILURE_THRESHOLD (default: 5)
- CIRCUIT_BREAKER_RECOVERY_TIMEOUT_MS (default: 60000)
- CIRCUIT_BREAKER_HALF_OPEN_MAX_REQUESTS (default: 3)

Usage Example
-------------
>>> breaker = CircuitBreaker(name="nft_ownership")
>>> if not await breaker.allow_request():
...     raise CircuitBreakerOpenError("nft_ownership circuit is open")
>>> try:
...     result = await call_dependency()
...     await breaker.record_success()
... except Exception:
...     await breaker.record_failure()
...     raise
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from questforge.core.config.config import Config
from questforge.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# CIRCUIT BREAKER EXCEPTIONS
# ============================================================================


class CircuitBreakerOpenError(Exception):
    """Raised when circuit breaker is open and requests are rejected."""

    def __init__(self, message: str = "Circuit breaker is open"):
        super().__init__(message)


# ============================================================================
# CIRCUIT BREAKER STATES
# ============================================================================


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation, requests pass through
    OPEN = "open"  # Fail-fast, all requests rejected
    HALF_OPEN = "half_open"  # Testing recovery, limited requests allowed


@dataclass
class CircuitBreakerMetrics:
    """Metrics for circuit breaker monitoring."""

    name: str
    state: CircuitState
    failure_count: int
    success_count: int
    consecutive_failures: int
    last_failure_time: Optional[float]
    last_state_change_time: float
    total_requests: int
    rejected_requests: int
    half_open_test_count: int


# ============================================================================
# CIRCUIT BREAKER IMPLEMENTATION
# ============================================================================


class CircuitBreaker:
    """
    Async circuit breaker.

    State is guarded by an asyncio.Lock. Transitions happen automatically
    based on the recorded success/failure pattern.
    """

    def __init__(
        self,
        name: str = "database",
        failure_threshold: Optional[int] = None,
        recovery_timeout_ms: Optional[int] = None,
        half_open_max_requests: Optional[int] = None,
    ) -> None:
        self.name = name
        self._failure_threshold = failure_threshold or int(
            getattr(Config, "CIRCUIT_BREAKER_FAILURE_THRESHOLD", 5)
        )
        self._recovery_timeout_ms = recovery_timeout_ms or int(
            getattr(Config, "CIRCUIT_BREAKER_RECOVERY_TIMEOUT_MS", 60_000)
        )
        self._half_open_max_requests = half_open_max_requests or int(
            getattr(Config, "CIRCUIT_BREAKER_HALF_OPEN_MAX_REQUESTS", 3)
        )

        self._state = CircuitState.CLOSED
        self._lock = asyncio.Lock()

        self._consecutive_failures = 0
        self._failure_count = 0
        self._success_count = 0

        self._last_failure_time: Optional[float] = None
        self._last_state_change_time = time.perf_counter()

        self._total_requests = 0
        self._rejected_requests = 0
        self._half_open_test_count = 0

        logger.debug(
            "Circuit breaker initialized",
            extra={
                "breaker": self.name,
                "failure_threshold": self._failure_threshold,
                "recovery_timeout_ms": self._recovery_timeout_ms,
                "half_open_max_requests": self._half_open_max_requests,
            },
        )

    # ========================================================================
    # STATE MANAGEMENT
    # ========================================================================

    @property
    def state(self) -> CircuitState:
        """Current circuit state."""
        return self._state

    async def allow_request(self) -> bool:
        """
        Check if a request should be allowed through the circuit breaker.

        Returns
        -------
        bool
            True if request is allowed, False if circuit is open.
        """
        async with self._lock:
            self._total_requests += 1

            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self._should_attempt_recovery():
                    self._transition_to_half_open()
                    self._half_open_test_count += 1
                    return True
                self._rejected_requests += 1
                logger.debug(
                    "Request rejected: circuit breaker is OPEN",
                    extra={
                        "breaker": self.name,
                        "consecutive_failures": self._consecutive_failures,
                    },
                )
                return False

            # HALF_OPEN: allow limited test requests
            if self._half_open_test_count < self._half_open_max_requests:
                self._half_open_test_count += 1
                return True

            self._rejected_requests += 1
            logger.debug(
                "Request rejected: HALF_OPEN test limit reached",
                extra={
                    "breaker": self.name,
                    "half_open_test_count": self._half_open_test_count,
                },
            )
            return False

    def _should_attempt_recovery(self) -> bool:
        """Check if enough time has passed to attempt recovery."""
        if self._last_failure_time is None:
            return True

        elapsed_ms = (time.perf_counter() - self._last_failure_time) * 1000
        return elapsed_ms >= self._recovery_timeout_ms

    # ========================================================================
    # REQUEST RECORDING
    # ========================================================================

    async def record_success(self) -> None:
        """Record a successful request; closes a HALF_OPEN circuit."""
        async with self._lock:
            self._success_count += 1
            self._consecutive_failures = 0

            if self._state == CircuitState.HALF_OPEN:
                self._transition_to_closed()
                logger.info(
                    "Circuit breaker recovery successful",
                    extra={
                        "breaker": self.name,
                        "total_failures": self._failure_count,
                        "total_successes": self._success_count,
                    },
                )

    async def record_failure(self) -> None:
        """Record a failed request; may open the circuit."""
        async with self._lock:
            self._failure_count += 1
            self._consecutive_failures += 1
            self._last_failure_time = time.perf_counter()

            logger.warning(
                "Circuit breaker recorded failure",
                extra={
                    "breaker": self.name,
                    "state": self._state.value,
                    "consecutive_failures": self._consecutive_failures,
                    "failure_threshold": self._failure_threshold,
                },
            )

            if self._state == CircuitState.CLOSED:
                if self._consecutive_failures >= self._failure_threshold:
                    self._transition_to_open()

            elif self._state == CircuitState.HALF_OPEN:
                self._transition_to_open()
                logger.warning(
                    "Circuit breaker recovery failed",
                    extra={"breaker": self.name},
                )

    # ========================================================================
    # STATE TRANSITIONS
    # ========================================================================

    def _transition_to_open(self) -> None:
        if self._state != CircuitState.OPEN:
            old_state = self._state
            self._state = CircuitState.OPEN
            self._last_state_change_time = time.perf_counter()

            logger.error(
                "Circuit breaker opened (fail-fast mode)",
                extra={
                    "breaker": self.name,
                    "old_state": old_state.value,
                    "consecutive_failures": self._consecutive_failures,
                    "recovery_timeout_ms": self._recovery_timeout_ms,
                },
            )

    def _transition_to_half_open(self) -> None:
        if self._state != CircuitState.HALF_OPEN:
            old_state = self._state
            self._state = CircuitState.HALF_OPEN
            self._half_open_test_count = 0
            self._last_state_change_time = time.perf_counter()

            logger.info(
                "Circuit breaker entering recovery mode (HALF_OPEN)",
                extra={"breaker": self.name, "old_state": old_state.value},
            )

    def _transition_to_closed(self) -> None:
        if self._state != CircuitState.CLOSED:
            old_state = self._state
            self._state = CircuitState.CLOSED
            self._consecutive_failures = 0
            self._half_open_test_count = 0
            self._last_state_change_time = time.perf_counter()

            logger.info(
                "Circuit breaker closed (normal operation resumed)",
                extra={"breaker": self.name, "old_state": old_state.value},
            )

    # ========================================================================
    # METRICS & MONITORING
    # ========================================================================

    def get_metrics(self) -> CircuitBreakerMetrics:
        """Snapshot of current circuit breaker state and counters."""
        return CircuitBreakerMetrics(
            name=self.name,
            state=self._state,
            failure_count=self._failure_count,
            success_count=self._success_count,
            consecutive_failures=self._consecutive_failures,
            last_failure_time=self._last_failure_time,
            last_state_change_time=self._last_state_change_time,
            total_requests=self._total_requests,
            rejected_requests=self._rejected_requests,
            half_open_test_count=self._half_open_test_count,
        )

    async def reset(self) -> None:
        """Manually reset to CLOSED. Administrative/testing use only."""
        async with self._lock:
            logger.warning(
                "Circuit breaker manually reset",
                extra={"breaker": self.name, "old_state": self._state.value},
            )
            self._transition_to_closed()
            self._failure_count = 0
            self._success_count = 0
            self._total_requests = 0
            self._rejected_requests = 0
