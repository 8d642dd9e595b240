from __future__ import annotations

import asyncio
from typing import Any

import pytest

from src.studio.client.orchestrator import ActionState, EditorController, describe_error
from src.studio.config import AppConfig
from src.studio.errors import (
    ExtractionError,
    PayloadValidationError,
    ProviderTransportError,
    UpstreamError,
)
from src.studio.history.repository import GenerationEntry, GenerationType
from src.studio.providers.operations import OperationKind
from src.studio.providers.results import Deferred, Failed, Immediate, JobHandle
from tests.mocks.scheduler import FakeScheduler, ManualScheduler

STATUS_URL = "https://engine.prod.bria-api.com/v2/status/r1"


class FakeSubmitter:
    def __init__(self, result: Any, statuses: list[Any] | None = None) -> None:
        self.result = result
        self.statuses = statuses or [{"status": "IN_PROGRESS"}]
        self.submits: list[tuple[OperationKind, dict]] = []
        self.checks: list[str] = []

    async def submit(self, kind, payload):
        self.submits.append((kind, dict(payload)))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result

    async def check_status(self, status_url: str) -> Any:
        self.checks.append(status_url)
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        return self.statuses[0]


class StalledRecorder:
    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.started = 0

    async def record(self, user_id: str, entry: GenerationEntry) -> None:
        self.started += 1
        await self.release.wait()


class RecordingRecorder:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.entries: list[tuple[str, GenerationEntry]] = []

    async def record(self, user_id: str, entry: GenerationEntry) -> None:
        if self.fail:
            raise RuntimeError("history store unavailable")
        self.entries.append((user_id, entry))


def build_controller(submitter, **kwargs) -> EditorController:
    kwargs.setdefault("scheduler", FakeScheduler())
    return EditorController.from_config(submitter, AppConfig(api_token="t"), **kwargs)


@pytest.mark.asyncio
async def test_deferred_generation_polls_without_resubmitting() -> None:
    submitter = FakeSubmitter(
        Deferred(JobHandle(status_url=STATUS_URL, request_id="r1")),
        statuses=[
            {"status": "IN_PROGRESS"},
            {"status": "IN_PROGRESS"},
            {"status": "COMPLETED", "result": {"image_url": "https://r/fox.png"}},
        ],
    )
    recorder = RecordingRecorder()
    seen: list[ActionState] = []
    controller = build_controller(
        submitter,
        recorder=recorder,
        user_id="u1",
        on_change=lambda c: seen.append(c.state),
    )

    state = await controller.run(
        OperationKind.GENERATE_IMAGE, {"prompt": "a fox", "aspect_ratio": "1:1"}
    )

    assert state is ActionState.SUCCESS
    assert seen == [ActionState.SUBMITTING, ActionState.POLLING, ActionState.SUCCESS]
    assert len(submitter.submits) == 1
    assert submitter.checks == [STATUS_URL] * 3
    assert controller.result_reference == "https://r/fox.png"
    await controller.drain_history()
    [(user_id, entry)] = recorder.entries
    assert user_id == "u1"
    assert entry.type is GenerationType.IMAGE
    assert entry.tool == "generate-image"
    assert entry.prompt == "a fox"


@pytest.mark.asyncio
async def test_history_failure_does_not_mask_success() -> None:
    controller = build_controller(
        FakeSubmitter(Immediate("https://r/out.webm")),
        recorder=RecordingRecorder(fail=True),
        user_id="u1",
    )

    state = await controller.run(
        OperationKind.REMOVE_VIDEO_BACKGROUND, {"video": "https://v/a.mp4"}
    )

    assert state is ActionState.SUCCESS
    assert controller.result_reference == "https://r/out.webm"
    assert controller.error_message is None
    await controller.drain_history()
    assert controller.state is ActionState.SUCCESS


@pytest.mark.asyncio
async def test_video_results_are_recorded_as_video() -> None:
    recorder = RecordingRecorder()
    controller = build_controller(
        FakeSubmitter(Immediate("https://r/up.mp4")), recorder=recorder, user_id="u1"
    )

    await controller.run(OperationKind.UPSCALE_VIDEO, {"video": "https://v/a.mp4"})
    await controller.drain_history()

    assert recorder.entries[0][1].type is GenerationType.VIDEO


@pytest.mark.asyncio
async def test_structured_prompt_results_are_not_recorded() -> None:
    recorder = RecordingRecorder()
    controller = build_controller(
        FakeSubmitter(Immediate('{"subject": "fox"}')), recorder=recorder, user_id="u1"
    )

    state = await controller.run(OperationKind.GENERATE_STRUCTURED_PROMPT, {"prompt": "fox"})
    await controller.drain_history()

    assert state is ActionState.SUCCESS
    assert recorder.entries == []


@pytest.mark.asyncio
async def test_without_user_nothing_is_recorded() -> None:
    recorder = RecordingRecorder()
    controller = build_controller(FakeSubmitter(Immediate("https://r/1.png")), recorder=recorder)

    await controller.run(OperationKind.REMOVE_BACKGROUND, {"image": "a"})
    await controller.drain_history()

    assert recorder.entries == []


@pytest.mark.asyncio
async def test_failed_submission_reports_status_and_body() -> None:
    controller = build_controller(FakeSubmitter(Failed(422, '{"details": "image too large"}')))

    state = await controller.run(OperationKind.ERASE, {"image": "a", "mask": "b"})

    assert state is ActionState.ERROR
    assert controller.error_message == "Request failed (422): image too large"


@pytest.mark.asyncio
async def test_validation_error_message_is_shown_verbatim() -> None:
    controller = build_controller(
        FakeSubmitter(PayloadValidationError("mask is required for erase operation"))
    )

    await controller.run(OperationKind.ERASE, {"image": "a"})

    assert controller.state is ActionState.ERROR
    assert controller.error_message == "mask is required for erase operation"


@pytest.mark.asyncio
async def test_poll_failure_reports_detail() -> None:
    controller = build_controller(
        FakeSubmitter(
            Deferred(JobHandle(request_id="r9")),
            statuses=[{"status": "failed", "error": "content policy"}],
        )
    )

    await controller.run(OperationKind.GENERATIVE_FILL, {"image": "a", "mask": "b", "prompt": "p"})

    assert controller.state is ActionState.ERROR
    assert controller.error_message == "Processing failed: content policy"


@pytest.mark.asyncio
async def test_exhausted_poll_is_a_timeout() -> None:
    submitter = FakeSubmitter(Deferred(JobHandle(request_id="r1")))
    controller = EditorController(
        submitter,
        status_url_template="https://engine.prod.bria-api.com/v2/status/{request_id}",
        poll_max_attempts=3,
        scheduler=FakeScheduler(),
    )

    await controller.run(OperationKind.GENERATE_IMAGE, {"prompt": "fox"})

    assert controller.state is ActionState.ERROR
    assert controller.error_message == "Timed out waiting for the result"
    assert len(submitter.checks) == 3


@pytest.mark.asyncio
async def test_close_abandons_in_flight_poll() -> None:
    scheduler = ManualScheduler()
    submitter = FakeSubmitter(Deferred(JobHandle(status_url=STATUS_URL)))
    controller = build_controller(submitter, scheduler=scheduler)

    task = asyncio.create_task(controller.run(OperationKind.GENERATE_IMAGE, {"prompt": "fox"}))
    while controller.state is not ActionState.POLLING:
        await asyncio.sleep(0)
    controller.close()
    state = await task

    assert state is ActionState.IDLE
    assert submitter.checks == []
    assert controller.result_reference is None


@pytest.mark.asyncio
async def test_new_action_supersedes_previous_one() -> None:
    scheduler = ManualScheduler()
    slow = FakeSubmitter(Deferred(JobHandle(status_url=STATUS_URL)))
    controller = build_controller(slow, scheduler=scheduler)

    first = asyncio.create_task(controller.run(OperationKind.GENERATE_IMAGE, {"prompt": "fox"}))
    while controller.state is not ActionState.POLLING:
        await asyncio.sleep(0)
    slow.result = Immediate("https://r/second.png")
    second = await controller.run(OperationKind.REMOVE_BACKGROUND, {"image": "a"})
    await first

    assert second is ActionState.SUCCESS
    assert controller.state is ActionState.SUCCESS
    assert controller.result_reference == "https://r/second.png"


def test_describe_error_precedence() -> None:
    assert describe_error(UpstreamError(500, "oops")) == "Request failed (500): oops"
    assert describe_error(ProviderTransportError("ConnectError")) == "Network error: ConnectError"
    assert describe_error(ExtractionError("x")) == "Unexpected response format from API"


@pytest.mark.asyncio
async def test_stalled_history_store_does_not_block_the_action() -> None:
    recorder = StalledRecorder()
    controller = build_controller(
        FakeSubmitter(Immediate("https://r/x.png")), recorder=recorder, user_id="u1"
    )

    state = await asyncio.wait_for(
        controller.run(OperationKind.REMOVE_BACKGROUND, {"image": "a"}), timeout=1.0
    )

    assert state is ActionState.SUCCESS
    assert controller.result_reference == "https://r/x.png"
    await asyncio.sleep(0)
    assert recorder.started == 1
    recorder.release.set()
    await controller.drain_history()
