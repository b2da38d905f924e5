"""
Reliability Utilities.

Circuit breaker in front of outbound message delivery, so a dead mail or
SMS transport fails a notification run quickly instead of timing out once
per guest.
"""

import logging
import time
from typing import Callable, Any

from dinkup.app.core.config import settings

logger = logging.getLogger("dinkup.reliability")


class CircuitOpenError(Exception):
    pass


class CircuitBreaker:
    """
    Simple Circuit Breaker implementation.

    After 'failure_threshold' consecutive failures the circuit opens and
    rejects calls for 'reset_timeout' seconds. The first call after that
    runs as a trial (HALF_OPEN): success closes the circuit, failure
    reopens it.
    """
    def __init__(self, failure_threshold: int = 5, reset_timeout: int = 60, name: str = "default"):
        self.name = name
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.failures = 0
        self.last_failure_time = 0
        self.state = "CLOSED" # CLOSED, OPEN, HALF_OPEN

    async def call(self, func: Callable, *args, **kwargs) -> Any:
        if self.state == "OPEN":
            if time.time() - self.last_failure_time > self.reset_timeout:
                logger.info("Circuit %s half-open, trying one call", self.name)
                self.state = "HALF_OPEN"
            else:
                raise CircuitOpenError(f"Circuit {self.name} is OPEN")

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self.record_failure()
            raise
        if self.state == "HALF_OPEN" or self.failures:
            self.reset_state()
        return result

    def record_failure(self):
        self.failures += 1
        self.last_failure_time = time.time()
        if self.state == "HALF_OPEN" or self.failures >= self.failure_threshold:
            if self.state != "OPEN":
                logger.warning("Circuit %s opened after %s failure(s)", self.name, self.failures)
            self.state = "OPEN"

    def reset_state(self):
        if self.state != "CLOSED":
            logger.info("Circuit %s closed", self.name)
        self.failures = 0
        self.state = "CLOSED"


# Shared by every notification run in the process
notification_circuit_breaker = CircuitBreaker(
    failure_threshold=settings.notification_failure_threshold,
    reset_timeout=settings.notification_reset_timeout,
    name="notifications",
)
