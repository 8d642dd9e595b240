"""Normalised job status model.

Provider status strings vary in case (``"COMPLETED"``, ``"completed"``).
They are case-folded into :class:`JobState`; an unrecognised value is
treated as :attr:`JobState.PROCESSING` and logged, never fatal.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import structlog

from ..providers.normalizer import extract_reference
from ..providers.operations import MediaKind

logger = structlog.get_logger(__name__)


class JobState(StrEnum):
    """Four-state model of a provider job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


@dataclass(frozen=True, slots=True)
class JobStatus:
    """Result of one status check."""

    state: JobState
    result_reference: str | None = None
    error_detail: str | None = None
    raw_status: str | None = None


def parse_state(raw: Any) -> JobState:
    """Fold a provider status value into :class:`JobState`."""

    if isinstance(raw, str):
        try:
            return JobState(raw.strip().lower())
        except ValueError:
            pass
    logger.warning("job.status.unknown", raw_status=raw)
    return JobState.PROCESSING


def _error_detail(body: Mapping[str, Any]) -> str:
    for key in ("error", "error_message", "message", "detail"):
        value = body.get(key)
        if isinstance(value, Mapping):
            value = value.get("message") or value.get("details") or dict(value)
        if value:
            return str(value)
    return "Processing failed"


def normalize_status(body: Any, media_kind: MediaKind | str) -> JobStatus:
    """Build a :class:`JobStatus` from a status-check response body.

    A completed status always carries an extracted reference; when none can
    be found :class:`~src.studio.errors.ExtractionError` propagates.
    """

    if not isinstance(body, Mapping):
        state = parse_state(None)
        return JobStatus(state=state)
    raw = body.get("status")
    state = parse_state(raw)
    raw_status = raw if isinstance(raw, str) else None
    if state is JobState.COMPLETED:
        return JobStatus(
            state=state,
            result_reference=extract_reference(body, media_kind),
            raw_status=raw_status,
        )
    if state is JobState.FAILED:
        return JobStatus(state=state, error_detail=_error_detail(body), raw_status=raw_status)
    return JobStatus(state=state, raw_status=raw_status)


__all__ = ["JobState", "JobStatus", "normalize_status", "parse_state"]
