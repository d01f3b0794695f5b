"""Caller-supplied deadline and cancellation for publish operations."""

import threading
import time

from bbpublish.exceptions import Cancelled


class Deadline:
    """
    Bounds the wall-clock time of one invocation.

    Every outbound HTTP call and git command checks the deadline before it
    starts and is given at most the remaining time to finish. Setting
    ``cancel_event`` aborts the invocation at the next check.

    Example:
        ```python
        deadline = Deadline(seconds=120)
        publisher.push("bitbucket.example.com?project=TEAM&repo=svc", deadline=deadline)
        ```
    """

    def __init__(
        self,
        seconds: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self._expires_at = None if seconds is None else time.monotonic() + seconds
        self.cancel_event = cancel_event or threading.Event()

    def cancel(self) -> None:
        """Request cancellation of the invocation."""
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def remaining(self) -> float | None:
        """Seconds left, or None when there is no time limit."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def check(self, step: str) -> None:
        """
        Raise ``Cancelled`` if the invocation must stop before ``step``.

        Raises:
            Cancelled: If cancellation was requested or the deadline passed
        """
        if self.cancelled:
            raise Cancelled(f"Cancelled before {step}")
        if self.expired:
            raise Cancelled(f"Deadline exceeded before {step}")

    def timeout_for(self, default: float | None) -> float | None:
        """Clamp a per-call timeout to the time remaining."""
        remaining = self.remaining()
        if remaining is None:
            return default
        if default is None:
            return remaining
        return min(default, remaining)
