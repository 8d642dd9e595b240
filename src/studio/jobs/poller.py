"""Bounded fixed-interval polling of an asynchronous provider job.

A :class:`PollSession` owns the status-check loop for one job handle. Checks
are strictly sequential: the next one is scheduled only after the previous
one has been handled, so a session never has more than one status request
in flight. The session ends on the first terminal state, on a local error,
on cancellation, or once the attempt budget is spent (``EXHAUSTED``, which
is a timeout and not a provider-reported failure).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from ..errors import StudioError
from ..providers.operations import MediaKind
from ..providers.results import JobHandle
from .scheduler import AsyncioScheduler, CancelToken, Scheduler
from .status import JobState, JobStatus, normalize_status

logger = structlog.get_logger(__name__)

StatusChecker = Callable[[str], Awaitable[Any]]

DEFAULT_INTERVAL_SECONDS = 2.0
DEFAULT_MAX_ATTEMPTS = 60


class PollOutcomeKind(StrEnum):
    """How a poll session ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    EXHAUSTED = "exhausted"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class PollOutcome:
    """Final result of a poll session."""

    kind: PollOutcomeKind
    # status checks actually issued
    attempts: int
    status: JobStatus | None = None
    error: Exception | None = None

    @property
    def reference(self) -> str | None:
        return self.status.result_reference if self.status else None


class PollSession:
    """Repeated status checks for one job handle."""

    def __init__(
        self,
        *,
        status_url: str,
        check_status: StatusChecker,
        media_kind: MediaKind | str = MediaKind.IMAGE,
        scheduler: Scheduler | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.status_url = status_url
        self.media_kind = MediaKind(media_kind)
        self.interval_seconds = max(0.0, interval_seconds)
        self.max_attempts = max_attempts
        self.attempt_count = 0
        self.checks_issued = 0
        self.outcome: PollOutcome | None = None
        self._check_status = check_status
        self._scheduler = scheduler or AsyncioScheduler()
        self._timer: CancelToken | None = None
        self._waiter: asyncio.Future[bool] | None = None
        self._cancelled = False
        self._started = False

    @classmethod
    def for_handle(
        cls,
        handle: JobHandle,
        *,
        status_url_template: str,
        check_status: StatusChecker,
        media_kind: MediaKind | str = MediaKind.IMAGE,
        scheduler: Scheduler | None = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> "PollSession":
        """Build a session polling the status URL resolved from ``handle``."""

        return cls(
            status_url=handle.resolve(status_url_template),
            check_status=check_status,
            media_kind=media_kind,
            scheduler=scheduler,
            interval_seconds=interval_seconds,
            max_attempts=max_attempts,
        )

    @property
    def is_active(self) -> bool:
        return self._started and self.outcome is None

    def cancel(self) -> None:
        """Stop observing the job; an in-flight status request is not aborted."""

        if self._cancelled:
            return
        self._cancelled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._waiter is not None and not self._waiter.done():
            self._waiter.set_result(False)

    async def run(self) -> PollOutcome:
        """Drive the session to its end and return the outcome."""

        async for _status in self.statuses():
            pass
        if self.outcome is None:
            raise RuntimeError("poll session ended without an outcome")
        return self.outcome

    async def statuses(self) -> AsyncIterator[JobStatus]:
        """Yield every normalised status until the session ends.

        Closing the iterator early ends the session as ``CANCELLED``.
        """

        if self._started:
            raise RuntimeError("poll session already started")
        self._started = True
        logger.info(
            "poller.session.start",
            status_url=self.status_url,
            interval_seconds=self.interval_seconds,
            max_attempts=self.max_attempts,
        )
        try:
            while self.outcome is None:
                status = await self._next_status()
                if status is not None:
                    yield status
        finally:
            if self.outcome is None:
                self.cancel()
                self._finish(PollOutcomeKind.CANCELLED)

    async def _next_status(self) -> JobStatus | None:
        """Run one attempt; returns ``None`` once the session has ended."""

        self.attempt_count += 1
        if self.attempt_count > self.max_attempts:
            self._finish(PollOutcomeKind.EXHAUSTED)
            return None
        if not await self._wait():
            self._finish(PollOutcomeKind.CANCELLED)
            return None
        self.checks_issued += 1
        try:
            body = await self._check_status(self.status_url)
            if self._cancelled:
                self._finish(PollOutcomeKind.CANCELLED)
                return None
            status = normalize_status(body, self.media_kind)
        except StudioError as exc:
            logger.warning(
                "poller.check.failed",
                status_url=self.status_url,
                attempt=self.attempt_count,
                error=str(exc),
            )
            self._finish(PollOutcomeKind.ERROR, error=exc)
            return None

        # terminal outcomes are settled before the status is handed out
        if status.state is JobState.COMPLETED:
            self._finish(PollOutcomeKind.COMPLETED, status=status)
        elif status.state is JobState.FAILED:
            self._finish(PollOutcomeKind.FAILED, status=status)
        return status

    async def _wait(self) -> bool:
        if self._cancelled:
            return False
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[bool] = loop.create_future()
        self._waiter = waiter

        def _fire() -> None:
            if not waiter.done():
                waiter.set_result(True)

        self._timer = self._scheduler.after(self.interval_seconds, _fire)
        try:
            return await waiter
        finally:
            self._timer = None
            self._waiter = None

    def _finish(
        self,
        kind: PollOutcomeKind,
        *,
        status: JobStatus | None = None,
        error: Exception | None = None,
    ) -> None:
        self.outcome = PollOutcome(
            kind=kind, attempts=self.checks_issued, status=status, error=error
        )
        logger.info(
            "poller.session.end",
            status_url=self.status_url,
            outcome=kind.value,
            attempts=self.attempt_count,
        )


__all__ = [
    "PollOutcome",
    "PollOutcomeKind",
    "PollSession",
    "StatusChecker",
]
