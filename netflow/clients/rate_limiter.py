# netflow/clients/rate_limiter.py

import threading
import time
from typing import Callable


class RateLimiter:
    """
    Process-wide gate enforcing a minimum delay between upstream calls.

    One instance is shared by every component that talks to the node, so
    all of them together stay under the configured request rate.
    """

    def __init__(self,
                 min_interval: float,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call = None

    def acquire(self) -> float:
        """Block until the next call is allowed. Returns the time waited."""
        with self._lock:
            waited = 0.0
            now = self._clock()
            if self._last_call is not None:
                wait = self._last_call + self.min_interval - now
                if wait > 0:
                    self._sleep(wait)
                    waited = wait
                    now = self._clock()
            self._last_call = now
            return waited
