"""Per-model request pacing for LLM calls.

Keeps the start of two calls for the same model at least ``60 / RPM``
seconds apart. Callers block until their slot; nothing is queued, dropped
or batched.
"""

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_RPM = 15


class RateGovernor:
    """Enforce a minimum interval between calls per model name."""

    def __init__(
        self,
        rate_limits: dict[str, int] | None = None,
        default_rpm: int = DEFAULT_RPM,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize governor.

        Args:
            rate_limits: Requests-per-minute ceiling per model name
            default_rpm: Ceiling for models missing from rate_limits
            clock: Monotonic clock in seconds
            sleep: Blocking sleep in seconds
        """
        self.rate_limits = dict(rate_limits or {})
        self.default_rpm = default_rpm
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: dict[str, float] = {}

    def min_interval(self, model: str) -> float:
        """Minimum seconds between two call starts for a model."""
        rpm = self.rate_limits.get(model) or self.default_rpm
        return 60.0 / rpm

    def wait(self, model: str) -> float:
        """Block until the model may be called again and claim the slot.

        The slot is reserved under the lock, so concurrent callers for the
        same model get distinct, correctly spaced start times.

        Returns:
            Seconds spent waiting
        """
        interval = self.min_interval(model)
        with self._lock:
            now = self._clock()
            last = self._last_call.get(model)
            start_at = now if last is None else max(now, last + interval)
            self._last_call[model] = start_at

        delay = start_at - now
        if delay > 0:
            logger.info(f"Rate limiting for {model}: waiting {delay * 1000:.0f}ms before next request")
            self._sleep(delay)
        return delay

    def last_call(self, model: str) -> float | None:
        """Start time of the most recent call slot claimed for a model."""
        with self._lock:
            return self._last_call.get(model)
