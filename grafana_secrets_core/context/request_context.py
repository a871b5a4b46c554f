"""
Request context supplied by the host for each incoming request.

The engine never owns timers: the deadline and cancellation flag come from
the host and are propagated to every upstream round-trip, which is bounded
by ``remaining_seconds()``. Calls already in flight are woken through
``on_cancel()`` callbacks when the host cancels the request.
"""

import threading
import time
import uuid
from typing import Callable, List, Optional

from ..exceptions import RequestCancelledError


class RequestContext:
    """Deadline, cancellation and correlation for one host request."""

    def __init__(
        self,
        timeout_seconds: Optional[float] = None,
        correlation_id: Optional[str] = None,
    ):
        """
        Create a request context.

        Args:
            timeout_seconds: Optional deadline relative to now
            correlation_id: Correlation ID to tag logs and errors with
        """
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self._deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        self._cancelled = threading.Event()
        self._callbacks: List[Callable[[], None]] = []
        self._callbacks_lock = threading.Lock()

    @classmethod
    def background(cls) -> "RequestContext":
        """A context with no deadline, for callers without one."""
        return cls()

    def cancel(self) -> None:
        """Cancel the request and wake every call waiting on it."""
        with self._callbacks_lock:
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run ``callback`` when the request is cancelled.

        The callback runs immediately if the request is already cancelled.

        Returns:
            A function unregistering the callback
        """
        with self._callbacks_lock:
            if not self._cancelled.is_set():
                self._callbacks.append(callback)
                return lambda: self._remove_callback(callback)
        callback()
        return lambda: None

    def _remove_callback(self, callback: Callable[[], None]) -> None:
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining_seconds(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def bounded_timeout(self, upper_bound: float) -> float:
        """The smaller of ``upper_bound`` and the time left before the deadline."""
        remaining = self.remaining_seconds()
        if remaining is None:
            return upper_bound
        return min(upper_bound, remaining)

    def raise_if_cancelled(self, stage: str = "") -> None:
        """
        Raise when the request was cancelled or its deadline passed.

        Args:
            stage: Name of the step about to run, for the error message

        Raises:
            RequestCancelledError: If the request can no longer proceed
        """
        if not self.cancelled:
            return
        reason = "cancelled" if self._cancelled.is_set() else "deadline exceeded"
        message = f"request {reason}"
        if stage:
            message = f"{message} before {stage}"
        raise RequestCancelledError(message, correlation_id=self.correlation_id, stage=stage)
