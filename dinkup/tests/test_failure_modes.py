"""
Failure Injection Tests.

Validates resilience against message delivery failures.
"""

import pytest
from dinkup.app.core.reliability import CircuitBreaker, CircuitOpenError
from dinkup.app.core.exceptions import NotificationDeliveryError

@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=1)

    async def failing_send():
        raise NotificationDeliveryError("Boom")

    # Fail 1
    try:
        await cb.call(failing_send)
    except NotificationDeliveryError:
        pass

    # Fail 2 (Threshold reached)
    try:
        await cb.call(failing_send)
    except NotificationDeliveryError:
        pass

    # Call 3 (Should be CircuitOpenError)
    try:
        await cb.call(failing_send)
        assert False, "Circuit should be open"
    except CircuitOpenError:
        pass # Success


@pytest.mark.asyncio
async def test_circuit_breaker_recovers_after_timeout():
    """A successful call after the reset timeout closes the circuit again."""
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=60)

    async def failing_send():
        raise NotificationDeliveryError("Boom")

    async def working_send():
        return "ok"

    with pytest.raises(NotificationDeliveryError):
        await cb.call(failing_send)
    assert cb.state == "OPEN"

    with pytest.raises(CircuitOpenError):
        await cb.call(working_send)

    # Pretend the timeout elapsed
    cb.last_failure_time -= 120

    assert await cb.call(working_send) == "ok"
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_half_open_failure_reopens():
    cb = CircuitBreaker(failure_threshold=3, reset_timeout=60)
    cb.state = "OPEN"
    cb.last_failure_time -= 120

    async def failing_send():
        raise NotificationDeliveryError("still down")

    with pytest.raises(NotificationDeliveryError):
        await cb.call(failing_send)
    assert cb.state == "OPEN"
