"""Deadline-based cancellation for blocking requests."""

import time

from .errors import RequestTimeoutError

# requests rejects a zero timeout, so an almost-expired token still gets a sliver
_MIN_SOCKET_TIMEOUT = 0.001


class CancelToken:
    """
    Cancellation signal that fires once ``timeout_ms`` has elapsed.

    The deadline starts when the token is created. Every blocking call made
    under the token receives ``remaining()`` as its socket timeout and checks
    the token before and after, so an expired budget always surfaces as a
    RequestTimeoutError rather than a generic I/O failure.
    """

    def __init__(self, timeout_ms: int, clock=time.monotonic):
        self.timeout_ms = timeout_ms
        self._clock = clock
        self._deadline = clock() + timeout_ms / 1000.0
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled or self._clock() >= self._deadline

    def remaining(self) -> float:
        """Seconds left before the deadline, suitable for a requests timeout."""
        return max(self._deadline - self._clock(), _MIN_SOCKET_TIMEOUT)

    def raise_if_cancelled(self, action: str):
        if self.cancelled:
            raise RequestTimeoutError(action, self.timeout_ms)
