"""Per-invocation deadline and cancellation signal."""

from __future__ import annotations

import asyncio
import time

from .errors import RunTimeoutError


class Deadline:
    """Monotonic deadline shared by every step of one invocation.

    ``cancel_event`` is set by the caller (e.g. when the HTTP client
    disconnects). Both the deadline and the event are honored inside
    :meth:`sleep`, not only between poll iterations.
    """

    def __init__(self, seconds: float, cancel_event: asyncio.Event | None = None):
        self.seconds = seconds
        self.cancel_event = cancel_event or asyncio.Event()
        self._expires_at = time.monotonic() + seconds

    @classmethod
    def after(cls, seconds: float, cancel_event: asyncio.Event | None = None) -> Deadline:
        return cls(seconds, cancel_event)

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def check(self, step: str) -> None:
        """Raise before starting ``step`` if the caller is gone or time is up."""
        if self.cancelled:
            raise RunTimeoutError(f"Request cancelled before {step}", step=step)
        if self.expired:
            raise RunTimeoutError(
                f"Request deadline of {self.seconds:g}s exceeded before {step}", step=step
            )

    def bound(self, timeout: float) -> float:
        """Clamp a per-call timeout to what is left of the deadline."""
        return min(timeout, self.remaining())

    async def sleep(self, interval: float) -> None:
        """Sleep up to ``interval`` seconds, waking early on cancel or deadline."""
        delay = self.bound(interval)
        if delay <= 0 or self.cancelled:
            return
        try:
            await asyncio.wait_for(self.cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
