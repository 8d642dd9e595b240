"""Timer capability used by poll sessions.

Sessions never sleep on their own; they ask a :class:`Scheduler` to call
them back after a delay and keep the returned :class:`CancelToken`. Tests
substitute a simulated clock.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Protocol


class CancelToken(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def after(self, delay: float, callback: Callable[[], None]) -> CancelToken:
        """Invoke ``callback`` once after ``delay`` seconds."""


class AsyncioScheduler:
    """Scheduler backed by the running event loop's ``call_later``."""

    def after(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback)


__all__ = ["AsyncioScheduler", "CancelToken", "Scheduler"]
