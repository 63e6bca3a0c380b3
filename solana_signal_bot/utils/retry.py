"""
Retry decorator and circuit breaker for network operations.
"""

import asyncio
import logging
import time
from functools import wraps
from enum import Enum
from typing import TypeVar, Callable

logger = logging.getLogger(__name__)

T = TypeVar('T')


def async_retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple = (Exception,)
):
    """
    Retry async function with exponential backoff.
    
    Args:
        max_attempts: Maximum number of retry attempts
        delay: Initial delay between retries (seconds)
        backoff: Multiplier for delay on each retry
        exceptions: Tuple of exception types to catch
    
    Example:
        @async_retry(max_attempts=3, delay=0.5)
        async def fetch_data():
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts - 1:
                        logger.error(f"{func.__name__} failed after {max_attempts} attempts: {e}")
                        raise
                    
                    current_delay = delay * (backoff ** attempt)
                    logger.warning(
                        f"{func.__name__} failed ({e}), retrying in {current_delay:.1f}s "
                        f"[{attempt + 1}/{max_attempts}]"
                    )
                    await asyncio.sleep(current_delay)
        
        return wrapper
    return decorator


class BreakerState(str, Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """
    Stops hammering an upstream that keeps failing.

    CLOSED passes every request. After `failure_threshold` consecutive
    failures the breaker OPENs and blocks requests for `recovery_timeout`
    seconds, then lets a single trial request through (HALF_OPEN). The trial's
    outcome closes or re-opens it; a trial that never reports back (e.g.
    cancelled) frees its slot after another `recovery_timeout`.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self._clock = clock

        self.failures = 0
        self.opened_at = 0.0
        self.state = BreakerState.CLOSED
        self._trial_pending = False
        self._trial_started = 0.0

    def record_success(self):
        if self.state is not BreakerState.CLOSED:
            logger.info(f"Circuit breaker '{self.name}' closed")
        self.failures = 0
        self.state = BreakerState.CLOSED
        self._trial_pending = False

    def record_failure(self):
        self.failures += 1
        self._trial_pending = False

        if self.state is BreakerState.HALF_OPEN or self.failures >= self.failure_threshold:
            if self.state is not BreakerState.OPEN:
                logger.warning(f"Circuit breaker '{self.name}' OPENED after {self.failures} failures")
            self.state = BreakerState.OPEN
            self.opened_at = self._clock()

    def can_execute(self) -> bool:
        if self.state is BreakerState.CLOSED:
            return True

        if self.state is BreakerState.OPEN:
            if self._clock() - self.opened_at < self.recovery_timeout:
                return False
            self.state = BreakerState.HALF_OPEN
            logger.info(f"Circuit breaker '{self.name}' half-open, allowing a trial request")

        # Half-open: one trial request at a time
        now = self._clock()
        if self._trial_pending and now - self._trial_started < self.recovery_timeout:
            return False
        self._trial_pending = True
        self._trial_started = now
        return True
