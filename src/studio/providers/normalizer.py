"""Single seam that turns heterogeneous provider envelopes into a reference.

The provider's endpoints evolved independently and never agreed on one
response envelope, so every caller goes through :func:`extract_reference`
instead of probing fields on its own. Probes run in declaration order and
the first non-empty match wins.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..errors import ExtractionError
from .operations import MediaKind

logger = logging.getLogger(__name__)

_MEDIA = frozenset({MediaKind.IMAGE, MediaKind.VIDEO})
_IMAGE = frozenset({MediaKind.IMAGE})
_VIDEO = frozenset({MediaKind.VIDEO})
_PROMPT = frozenset({MediaKind.STRUCTURED_PROMPT})

UNEXPECTED_FORMAT = "Unexpected response format from API"


def _nested(body: Mapping[str, Any], *path: str) -> Any:
    current: Any = body
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _first(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def _string_result(body: Mapping[str, Any]) -> Any:
    result = body.get("result")
    return result if isinstance(result, str) else None


Probe = tuple[str, frozenset[MediaKind], Callable[[Mapping[str, Any]], Any]]

PROBES: tuple[Probe, ...] = (
    ("result_url", _MEDIA, lambda body: body.get("result_url")),
    ("result", _MEDIA, _string_result),
    ("result.image_url", _IMAGE, lambda body: _nested(body, "result", "image_url")),
    ("result.video_url", _VIDEO, lambda body: _nested(body, "result", "video_url")),
    ("image_urls[0]", _IMAGE, lambda body: _first(body.get("image_urls"))),
    ("video_urls[0]", _VIDEO, lambda body: _first(body.get("video_urls"))),
    ("result.url", _MEDIA, lambda body: _nested(body, "result", "url")),
    (
        "result.structured_prompt",
        _PROMPT,
        lambda body: _nested(body, "result", "structured_prompt"),
    ),
    ("structured_prompt", _PROMPT, lambda body: body.get("structured_prompt")),
)


def _as_reference(value: Any, media_kind: MediaKind) -> str | None:
    if isinstance(value, str):
        return value or None
    if media_kind is MediaKind.STRUCTURED_PROMPT and isinstance(value, Mapping) and value:
        return json.dumps(value)
    return None


def extract_reference(body: Any, media_kind: MediaKind | str) -> str:
    """Return the first usable reference in ``body`` for ``media_kind``.

    Raises :class:`ExtractionError` carrying the raw body when no probe
    matches.
    """

    kind = MediaKind(media_kind)
    if isinstance(body, Mapping):
        for _name, kinds, probe in PROBES:
            if kind not in kinds:
                continue
            reference = _as_reference(probe(body), kind)
            if reference:
                return reference
    logger.warning(
        "normalizer.unexpected_format kind=%s body=%s", kind.value, _truncate(body)
    )
    raise ExtractionError(UNEXPECTED_FORMAT, body=body)


def _truncate(body: Any, limit: int = 2000) -> str:
    try:
        text = json.dumps(body, ensure_ascii=False)
    except (TypeError, ValueError):
        text = repr(body)
    if len(text) > limit:
        return text[:limit] + "...(truncated)"
    return text


__all__ = ["PROBES", "UNEXPECTED_FORMAT", "extract_reference"]
