"""Cooperative cancellation for waits."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class CancelToken:
    """Cancellation signal shared by every wait of one operation.

    A token fires when :meth:`cancel` is called or when its own optional
    deadline passes. The deadline is independent of any ``WaitSpec.timeout``
    and is usually the outer, overall operation deadline.

    Sleeping through :meth:`sleep` wakes up as soon as the token fires.
    """

    def __init__(
        self,
        *,
        timeout: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._event = threading.Event()
        self._clock = clock
        self._deadline = clock() + timeout if timeout is not None else None
        self._reason = "canceled"

    def cancel(self, reason: str = "canceled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def reason(self) -> str:
        if not self._event.is_set() and self._deadline_passed():
            return "deadline exceeded"
        return self._reason

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self._deadline_passed()

    def _deadline_passed(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds until the token's own deadline, or ``None`` without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def sleep(self, seconds: float) -> bool:
        """Block for up to *seconds*. Return True if the token fired."""
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            # Sleep only until the outer deadline, then report it.
            self._event.wait(remaining)
            return True
        return self._event.wait(seconds) or self.cancelled
