"""Gateway result variants and classification of provider responses."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from ..errors import ExtractionError
from ..jobs.status import JobState, parse_state
from .normalizer import extract_reference
from .operations import MediaKind


@dataclass(frozen=True, slots=True)
class JobHandle:
    """Reference to an in-flight asynchronous provider operation."""

    status_url: str | None = None
    request_id: str | None = None

    def resolve(self, status_url_template: str) -> str:
        """Return the pollable status URL (explicit URL preferred)."""

        if self.status_url:
            return self.status_url
        if self.request_id:
            return status_url_template.format(request_id=self.request_id)
        raise ValueError("job handle has neither status_url nor request_id")

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "JobHandle | None":
        status_url = body.get("status_url") or body.get("statusUrl")
        request_id = body.get("request_id") or body.get("requestId")
        if not status_url and not request_id:
            return None
        return cls(
            status_url=str(status_url) if status_url else None,
            request_id=str(request_id) if request_id else None,
        )


@dataclass(frozen=True, slots=True)
class ProviderResponse:
    """Raw 2xx provider answer passed through verbatim by the HTTP surface."""

    status_code: int
    body: Any


@dataclass(frozen=True, slots=True)
class Immediate:
    reference: str
    body: Any = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class Deferred:
    handle: JobHandle
    body: Any = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class Failed:
    status_code: int
    error_body: str


GatewayResult = Union[Immediate, Deferred, Failed]


def classify_response(
    status_code: int, body: Any, media_kind: MediaKind | str
) -> GatewayResult:
    """Decide whether a 2xx body is final, needs polling, or reports failure."""

    if not isinstance(body, Mapping):
        return Immediate(extract_reference(body, media_kind), body=body)

    raw_status = body.get("status")
    state = parse_state(raw_status) if raw_status is not None else None
    if state is JobState.COMPLETED:
        return Immediate(extract_reference(body, media_kind), body=body)
    if state is JobState.FAILED:
        return Failed(status_code=status_code, error_body=json.dumps(dict(body), default=str))

    handle = JobHandle.from_body(body)
    if handle is not None:
        return Deferred(handle=handle, body=body)
    if state is not None:
        raise ExtractionError("Asynchronous response without a status handle", body=body)
    return Immediate(extract_reference(body, media_kind), body=body)


__all__ = [
    "Deferred",
    "Failed",
    "GatewayResult",
    "Immediate",
    "JobHandle",
    "ProviderResponse",
    "classify_response",
]
