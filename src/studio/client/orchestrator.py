"""Client orchestrator: one user-initiated action from submission to result.

State machine per action::

    IDLE -> SUBMITTING -> (immediate result | POLLING) -> SUCCESS | ERROR

Only one action is observed per controller. Starting a new action, or
closing the controller, abandons the previous poll session; a superseded
action never touches the controller state again.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any, Protocol

import structlog

from ..config import AppConfig
from ..errors import (
    ConfigurationError,
    ExtractionError,
    PayloadValidationError,
    ProviderTransportError,
    StudioError,
    UpstreamError,
)
from ..history.recorder import HistoryRecorder
from ..history.repository import GenerationEntry, GenerationType
from ..jobs.poller import PollOutcome, PollOutcomeKind, PollSession
from ..jobs.scheduler import Scheduler
from ..providers.normalizer import UNEXPECTED_FORMAT
from ..providers.operations import MediaKind, OperationKind, OperationSpec, get_operation
from ..providers.results import Deferred, Failed, GatewayResult, Immediate

logger = structlog.get_logger(__name__)

TIMEOUT_MESSAGE = "Timed out waiting for the result"
PROCESSING_FAILED_MESSAGE = "Processing failed"


class ActionState(StrEnum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    SUCCESS = "success"
    ERROR = "error"


class JobSubmitter(Protocol):
    """Anything that can submit operations and check job status.

    Implemented in-process by :class:`~src.studio.providers.gateway.ProviderGateway`
    and over HTTP by :class:`~src.studio.client.client.StudioClient`.
    """

    async def submit(
        self, kind: OperationKind | str, payload: Mapping[str, Any]
    ) -> GatewayResult: ...

    async def check_status(self, status_url: str) -> Any: ...


def _upstream_message(error: UpstreamError) -> str:
    detail = error.body
    try:
        data = json.loads(error.body)
    except (TypeError, ValueError):
        data = None
    if isinstance(data, Mapping):
        detail = str(data.get("details") or data.get("error") or error.body)
    if detail:
        return f"Request failed ({error.status_code}): {detail}"
    return f"Request failed ({error.status_code})"


def describe_error(error: Exception | PollOutcome) -> str:
    """Turn the most specific available error into a user-facing message.

    Checked in order: validation, configuration, HTTP status with body,
    transport, extraction, provider-reported failure and finally exhaustion.
    """

    if isinstance(error, PollOutcome):
        if error.kind is PollOutcomeKind.ERROR and error.error is not None:
            return describe_error(error.error)
        if error.kind is PollOutcomeKind.FAILED:
            detail = error.status.error_detail if error.status else None
            if detail and detail != PROCESSING_FAILED_MESSAGE:
                return f"{PROCESSING_FAILED_MESSAGE}: {detail}"
            return PROCESSING_FAILED_MESSAGE
        return TIMEOUT_MESSAGE
    if isinstance(error, (PayloadValidationError, ConfigurationError)):
        return str(error)
    if isinstance(error, UpstreamError):
        return _upstream_message(error)
    if isinstance(error, ProviderTransportError):
        return f"Network error: {error}"
    if isinstance(error, ExtractionError):
        return UNEXPECTED_FORMAT
    return str(error) or "An error occurred"


class EditorController:
    """Drive one action at a time through the gateway and the poller."""

    def __init__(
        self,
        submitter: JobSubmitter,
        *,
        status_url_template: str,
        poll_interval_seconds: float = 2.0,
        poll_max_attempts: int = 60,
        scheduler: Scheduler | None = None,
        recorder: HistoryRecorder | None = None,
        user_id: str | None = None,
        on_change: Callable[["EditorController"], None] | None = None,
    ) -> None:
        self._submitter = submitter
        self._status_url_template = status_url_template
        self._poll_interval_seconds = poll_interval_seconds
        self._poll_max_attempts = poll_max_attempts
        self._scheduler = scheduler
        self._recorder = recorder
        self._on_change = on_change
        self.user_id = user_id
        self.state = ActionState.IDLE
        self.result_reference: str | None = None
        self.error_message: str | None = None
        self.session: PollSession | None = None
        self._action_id = 0
        self._history_tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def from_config(
        cls, submitter: JobSubmitter, config: AppConfig, **kwargs: Any
    ) -> "EditorController":
        return cls(
            submitter,
            status_url_template=config.resolved_status_template(),
            poll_interval_seconds=config.poll_interval_seconds,
            poll_max_attempts=config.poll_max_attempts,
            **kwargs,
        )

    @property
    def busy(self) -> bool:
        return self.state in (ActionState.SUBMITTING, ActionState.POLLING)

    async def run(
        self, kind: OperationKind | str, payload: Mapping[str, Any]
    ) -> ActionState:
        """Run one action to a terminal state and return the controller state.

        A superseded action returns the state of the action that replaced it.
        """

        spec = get_operation(kind)
        self._abandon()
        self._action_id += 1
        action_id = self._action_id
        self.result_reference = None
        self.error_message = None
        self._set_state(ActionState.SUBMITTING)
        logger.info("orchestrator.action.start", operation=spec.kind.value, action_id=action_id)

        try:
            result = await self._submitter.submit(spec.kind, payload)
        except StudioError as exc:
            return self._fail(action_id, exc)
        if action_id != self._action_id:
            return self.state

        if isinstance(result, Failed):
            return self._fail(action_id, UpstreamError(result.status_code, result.error_body))
        if isinstance(result, Immediate):
            return await self._succeed(action_id, spec, result.reference, payload)
        return await self._poll(action_id, spec, result, payload)

    def close(self) -> None:
        """Tear down: stop observing any in-flight action."""

        self._abandon()
        self._action_id += 1
        if self.busy:
            self._set_state(ActionState.IDLE)

    async def _poll(
        self,
        action_id: int,
        spec: OperationSpec,
        deferred: Deferred,
        payload: Mapping[str, Any],
    ) -> ActionState:
        session = PollSession.for_handle(
            deferred.handle,
            status_url_template=self._status_url_template,
            check_status=self._submitter.check_status,
            media_kind=spec.media_kind,
            scheduler=self._scheduler,
            interval_seconds=self._poll_interval_seconds,
            max_attempts=self._poll_max_attempts,
        )
        self.session = session
        self._set_state(ActionState.POLLING)
        outcome = await session.run()
        if action_id != self._action_id:
            return self.state
        self.session = None

        if outcome.kind is PollOutcomeKind.COMPLETED and outcome.reference:
            return await self._succeed(action_id, spec, outcome.reference, payload)
        return self._fail(action_id, outcome)

    async def _succeed(
        self,
        action_id: int,
        spec: OperationSpec,
        reference: str,
        payload: Mapping[str, Any],
    ) -> ActionState:
        self.result_reference = reference
        self._set_state(ActionState.SUCCESS)
        logger.info("orchestrator.action.success", operation=spec.kind.value, action_id=action_id)
        if spec.persisted:
            self._persist(spec, reference, payload)
        return self.state

    def _fail(self, action_id: int, error: Exception | PollOutcome) -> ActionState:
        if action_id != self._action_id:
            return self.state
        self.error_message = describe_error(error)
        self._set_state(ActionState.ERROR)
        logger.warning(
            "orchestrator.action.error", action_id=action_id, message=self.error_message
        )
        return self.state

    def _persist(
        self, spec: OperationSpec, reference: str, payload: Mapping[str, Any]
    ) -> None:
        if self._recorder is None or not self.user_id:
            return
        entry = _history_entry(spec, reference, payload)
        task = asyncio.create_task(self._recorder.record(self.user_id, entry))
        self._history_tasks.add(task)
        task.add_done_callback(lambda done: self._history_done(done, spec))

    def _history_done(self, task: asyncio.Task[None], spec: OperationSpec) -> None:
        self._history_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            # a history outage must not mask a successful result
            logger.error(
                "orchestrator.history.save_failed",
                operation=spec.kind.value,
                exc_info=exc,
            )

    async def drain_history(self) -> None:
        """Wait for history writes started by finished actions."""

        if self._history_tasks:
            await asyncio.gather(*self._history_tasks, return_exceptions=True)

    def _abandon(self) -> None:
        if self.session is not None:
            self.session.cancel()
            self.session = None

    def _set_state(self, state: ActionState) -> None:
        self.state = state
        if self._on_change is not None:
            self._on_change(self)


def _history_entry(
    spec: OperationSpec, reference: str, payload: Mapping[str, Any]
) -> GenerationEntry:
    structured = payload.get("structured_prompt")
    if isinstance(structured, Mapping):
        structured = json.dumps(structured)
    return GenerationEntry(
        type=GenerationType.VIDEO if spec.media_kind is MediaKind.VIDEO else GenerationType.IMAGE,
        media_url=reference,
        prompt=payload.get("prompt"),
        structured_prompt=structured,
        aspect_ratio=payload.get("aspect_ratio"),
        mode=payload.get("mode"),
        tool=spec.kind.value,
    )


__all__ = [
    "ActionState",
    "EditorController",
    "JobSubmitter",
    "describe_error",
]
