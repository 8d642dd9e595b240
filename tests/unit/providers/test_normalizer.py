from __future__ import annotations

import json

import pytest

from src.studio.errors import ExtractionError
from src.studio.providers.normalizer import UNEXPECTED_FORMAT, extract_reference
from src.studio.providers.operations import MediaKind
from src.studio.providers.results import (
    Deferred,
    Failed,
    Immediate,
    JobHandle,
    classify_response,
)


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ({"result_url": "https://r/1.png", "image_urls": ["https://r/2.png"]}, "https://r/1.png"),
        ({"result": "https://r/s.png"}, "https://r/s.png"),
        ({"result": {"image_url": "https://r/i.png", "url": "https://r/u.png"}}, "https://r/i.png"),
        ({"image_urls": ["https://r/a.png", "https://r/b.png"]}, "https://r/a.png"),
        ({"result": {"url": "https://r/u.png"}}, "https://r/u.png"),
    ],
)
def test_image_probes_apply_in_order(body, expected) -> None:
    assert extract_reference(body, MediaKind.IMAGE) == expected


def test_video_probes_skip_image_fields() -> None:
    body = {"result": {"image_url": "https://r/i.png", "video_url": "https://r/v.mp4"}}

    assert extract_reference(body, MediaKind.VIDEO) == "https://r/v.mp4"
    assert extract_reference({"video_urls": ["https://r/w.webm"]}, "video") == "https://r/w.webm"


def test_structured_prompt_probe_serialises_objects() -> None:
    nested = {"result": {"structured_prompt": {"subject": "fox"}}}

    assert json.loads(extract_reference(nested, MediaKind.STRUCTURED_PROMPT)) == {"subject": "fox"}
    assert extract_reference({"structured_prompt": "{}x"}, MediaKind.STRUCTURED_PROMPT) == "{}x"


def test_unmatched_body_raises_with_raw_body() -> None:
    body = {"something": "else"}

    with pytest.raises(ExtractionError) as excinfo:
        extract_reference(body, MediaKind.IMAGE)

    assert str(excinfo.value) == UNEXPECTED_FORMAT
    assert excinfo.value.body == body


def test_classify_immediate_body() -> None:
    result = classify_response(200, {"result_url": "https://r/1.png"}, MediaKind.IMAGE)

    assert result == Immediate("https://r/1.png")


def test_classify_deferred_body_with_status_url() -> None:
    body = {"request_id": "abc", "status_url": "https://engine.prod.bria-api.com/v2/status/abc"}

    result = classify_response(202, body, MediaKind.IMAGE)

    assert isinstance(result, Deferred)
    assert result.handle.status_url == body["status_url"]


def test_classify_completed_status_is_immediate() -> None:
    body = {"status": "COMPLETED", "request_id": "abc", "result": {"image_url": "https://r/x.png"}}

    assert classify_response(200, body, MediaKind.IMAGE) == Immediate("https://r/x.png")


def test_classify_failed_status() -> None:
    result = classify_response(200, {"status": "failed", "error": "bad"}, MediaKind.IMAGE)

    assert isinstance(result, Failed)
    assert json.loads(result.error_body)["error"] == "bad"


def test_classify_status_without_handle_is_an_error() -> None:
    with pytest.raises(ExtractionError):
        classify_response(202, {"status": "IN_PROGRESS"}, MediaKind.IMAGE)


def test_job_handle_resolves_request_id() -> None:
    handle = JobHandle(request_id="r-1")

    assert handle.resolve("https://host/v2/status/{request_id}") == "https://host/v2/status/r-1"
    assert JobHandle.from_body({"foo": 1}) is None
