"""Thread-safe token bucket shared by every request the client makes."""

from __future__ import annotations

import threading
import time


class RateLimiter:
    """Token bucket rate limiter for API requests

    One limiter is shared by all copy workers, so the bucket is refilled
    and drained under a lock. Tokens are replenished at a constant rate
    and one token is consumed per request.
    """

    def __init__(self, requests_per_second: float, burst_allowance: int = 5):
        """
        Args:
            requests_per_second: Sustained rate limit (tokens added per second)
            burst_allowance: Maximum tokens in bucket (allows short bursts)
        """
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if burst_allowance < 1:
            raise ValueError("burst_allowance must be at least 1")

        self.rate = requests_per_second
        self.burst_allowance = burst_allowance
        self.tokens = float(burst_allowance)
        self.last_update = time.monotonic()
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        elapsed = now - self.last_update
        self.tokens = min(float(self.burst_allowance), self.tokens + elapsed * self.rate)
        self.last_update = now

    def acquire(self, timeout: float = 5.0) -> bool:
        """
        Block until a token is available or timeout is reached.

        Args:
            timeout: Maximum time to wait for permission (seconds)

        Returns:
            True if permission granted, False if timeout
        """
        deadline = time.monotonic() + timeout

        while True:
            with self._lock:
                now = time.monotonic()
                self._refill(now)

                if self.tokens >= 1.0:
                    self.tokens -= 1.0
                    return True

                # Time until the next whole token arrives
                wait = (1.0 - self.tokens) / self.rate

            if now + wait > deadline:
                return False
            time.sleep(min(wait, 0.05))

    @property
    def available_tokens(self) -> float:
        with self._lock:
            self._refill(time.monotonic())
            return self.tokens
