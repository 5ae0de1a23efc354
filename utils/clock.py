"""Time source and cooperative cancellation token."""

from __future__ import annotations

import asyncio
import time
from typing import Optional


class Clock:
    """Monotonic clock with an awaitable sleep; replaced by a fake in tests."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)


class CancellationToken:
    """Wall-clock deadline plus shutdown flag, checked before each unit of work."""

    def __init__(self, clock: Clock, *, deadline_s: Optional[float] = None) -> None:
        self._clock = clock
        self._deadline = clock.now() + deadline_s if deadline_s is not None else None
        self._shutdown = False
        self.reason: Optional[str] = None

    @classmethod
    def unbounded(cls, clock: Optional[Clock] = None) -> "CancellationToken":
        return cls(clock or Clock())

    @property
    def clock(self) -> Clock:
        return self._clock

    def request_shutdown(self, reason: str = "shutdown") -> None:
        self._shutdown = True
        self.reason = self.reason or reason

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, None when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock.now())

    @property
    def expired(self) -> bool:
        if self._shutdown:
            return True
        if self._deadline is not None and self._clock.now() >= self._deadline:
            self.reason = self.reason or "deadline"
            return True
        return False

    async def sleep(self, seconds: float) -> None:
        """Sleep without overshooting the deadline."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        await self._clock.sleep(seconds)
