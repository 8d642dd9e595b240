"""Validation and wire shaping of outbound provider payloads.

Every builder validates the mandatory fields of its operation before any
network I/O and returns an :class:`OutboundRequest`. Image references may be
inline data URIs or URLs; the data-URI prefix is stripped so only the raw
encoded content travels. Video references must be dereferenceable URLs.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from ..config import AppConfig
from ..errors import PayloadValidationError
from .operations import (
    LEGACY_MODEL_VERSION,
    OperationKind,
    get_operation,
    legacy_generate_url,
)

_DATA_URI_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)

DEFAULT_ASPECT_RATIO = "1:1"
DEFAULT_REPLACE_MODE = "high_control"
DEFAULT_STRUCTURED_REFINEMENT = "refine image"
UPSCALE_FACTORS = ("2", "4")
PREVIEW_LENGTH = 50


@dataclass(frozen=True, slots=True)
class OutboundRequest:
    """Fully shaped provider request."""

    kind: OperationKind
    url: str
    body: dict[str, Any]
    method: str = "POST"


def is_data_uri(value: str) -> bool:
    return bool(_DATA_URI_PREFIX.match(value))


def strip_data_uri(value: str) -> str:
    """Return the encoded content of a data URI, or ``value`` unchanged."""

    match = _DATA_URI_PREFIX.match(value)
    if match is None:
        return value
    return value[match.end():]


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _image_ref(payload: Mapping[str, Any], field: str, message: str) -> str:
    value = payload.get(field)
    if not isinstance(value, str) or not value:
        raise PayloadValidationError(message)
    return strip_data_uri(value)


def _image_list(payload: Mapping[str, Any]) -> list[str]:
    images = payload.get("images")
    if images is None:
        return []
    if not isinstance(images, list) or not all(isinstance(item, str) for item in images):
        raise PayloadValidationError("images must be a list of strings")
    return [stripped for stripped in (strip_data_uri(item) for item in images) if stripped]


def _video_ref(payload: Mapping[str, Any]) -> str:
    value = payload.get("video")
    if not isinstance(value, str) or not value:
        raise PayloadValidationError("video is required")
    if is_data_uri(value) or not value.lower().startswith(("http://", "https://")):
        raise PayloadValidationError(
            "inline video payloads are not supported; provide a video URL"
        )
    return value


def _structured_prompt(value: Any) -> str:
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            raise PayloadValidationError("structured_prompt must be valid JSON") from None
        if not isinstance(decoded, dict):
            raise PayloadValidationError("structured_prompt must be a JSON object")
        return value
    if isinstance(value, dict):
        return json.dumps(value)
    raise PayloadValidationError("structured_prompt must be a JSON object")


def _remove_background(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {"image": _image_ref(payload, "image", "image is required")}


def _replace_background(payload: Mapping[str, Any]) -> dict[str, Any]:
    image = _image_ref(payload, "image", "image is required")
    prompt = _text(payload.get("prompt"))
    if prompt is None:
        raise PayloadValidationError("prompt is required for background replacement")
    return {
        "image": image,
        "prompt": prompt,
        "mode": _text(payload.get("mode")) or DEFAULT_REPLACE_MODE,
    }


def _erase(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "image": _image_ref(payload, "image", "image is required"),
        "mask": _image_ref(payload, "mask", "mask is required for erase operation"),
    }


def _generative_fill(payload: Mapping[str, Any]) -> dict[str, Any]:
    image = _image_ref(payload, "image", "image is required")
    mask = _image_ref(
        payload, "mask", "mask is required for generative fill operation"
    )
    prompt = _text(payload.get("prompt"))
    if prompt is None:
        raise PayloadValidationError(
            "prompt is required for generative fill operation"
        )
    return {"image": image, "mask": mask, "prompt": prompt, "version": 2}


def _generate_image(payload: Mapping[str, Any]) -> dict[str, Any]:
    aspect_ratio = _text(payload.get("aspect_ratio")) or DEFAULT_ASPECT_RATIO
    prompt = _text(payload.get("prompt"))

    if str(payload.get("model_version") or "") == LEGACY_MODEL_VERSION:
        if prompt is None:
            raise PayloadValidationError(
                f"prompt is required for model version {LEGACY_MODEL_VERSION}"
            )
        return {
            "prompt": prompt,
            "num_results": payload.get("num_results") or 1,
            "aspect_ratio": aspect_ratio,
        }

    structured = payload.get("structured_prompt")
    images = _image_list(payload)
    if structured is not None and images:
        raise PayloadValidationError(
            "provide either structured_prompt or images, not both"
        )
    if prompt is None and structured is None and not images:
        raise PayloadValidationError(
            "one of prompt, structured_prompt or images is required"
        )

    body: dict[str, Any] = {"aspect_ratio": aspect_ratio}
    if structured is not None:
        body["structured_prompt"] = _structured_prompt(structured)
        # the text prompt acts as a refinement instruction here
        body["prompt"] = prompt or DEFAULT_STRUCTURED_REFINEMENT
    elif prompt is not None:
        body["prompt"] = prompt
    if images:
        body["images"] = images
    if payload.get("seed") is not None:
        body["seed"] = payload["seed"]
    return body


def _generate_structured_prompt(payload: Mapping[str, Any]) -> dict[str, Any]:
    body: dict[str, Any] = {}
    prompt = _text(payload.get("prompt"))
    if prompt is not None:
        body["prompt"] = prompt
    images = _image_list(payload)
    if images:
        body["images"] = images
    if not body:
        raise PayloadValidationError("prompt or images is required")
    return body


def _upscale_video(payload: Mapping[str, Any]) -> dict[str, Any]:
    video = _video_ref(payload)
    factor = payload.get("desired_increase")
    if isinstance(factor, float) and factor.is_integer():
        factor = int(factor)
    if isinstance(factor, bool) or str(factor) not in UPSCALE_FACTORS:
        raise PayloadValidationError("desired_increase must be '2' or '4'")
    return {
        "video": video,
        "desired_increase": str(factor),
        "output_container_and_codec": _text(payload.get("output_container_and_codec"))
        or "mp4_h265",
    }


def _remove_video_background(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "video": _video_ref(payload),
        "background_color": _text(payload.get("background_color")) or "Transparent",
        "output_container_and_codec": _text(payload.get("output_container_and_codec"))
        or "webm_vp9",
    }


def _foreground_mask(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "video": _video_ref(payload),
        "output_container_and_codec": _text(payload.get("output_container_and_codec"))
        or "mp4_h264",
    }


_BUILDERS: dict[OperationKind, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
    OperationKind.GENERATE_IMAGE: _generate_image,
    OperationKind.REMOVE_BACKGROUND: _remove_background,
    OperationKind.REPLACE_BACKGROUND: _replace_background,
    OperationKind.ERASE: _erase,
    OperationKind.GENERATIVE_FILL: _generative_fill,
    OperationKind.UPSCALE_VIDEO: _upscale_video,
    OperationKind.REMOVE_VIDEO_BACKGROUND: _remove_video_background,
    OperationKind.FOREGROUND_MASK: _foreground_mask,
    OperationKind.GENERATE_STRUCTURED_PROMPT: _generate_structured_prompt,
}


def build_request(
    kind: OperationKind | str, payload: Mapping[str, Any], config: AppConfig
) -> OutboundRequest:
    """Validate ``payload`` and shape it for the provider endpoint of ``kind``."""

    spec = get_operation(kind)
    body = _BUILDERS[spec.kind](payload)
    url = spec.url(config)
    if (
        spec.kind is OperationKind.GENERATE_IMAGE
        and str(payload.get("model_version") or "") == LEGACY_MODEL_VERSION
    ):
        url = legacy_generate_url(config, LEGACY_MODEL_VERSION)
    return OutboundRequest(kind=spec.kind, url=url, body=body, method=spec.method)


def preview_payload(body: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``body`` safe for logs (long values truncated)."""

    preview: dict[str, Any] = {}
    for key, value in body.items():
        if isinstance(value, str) and len(value) > PREVIEW_LENGTH:
            preview[key] = value[:PREVIEW_LENGTH] + "..."
        elif isinstance(value, list):
            preview[key] = [
                item[:PREVIEW_LENGTH] + "..."
                if isinstance(item, str) and len(item) > PREVIEW_LENGTH
                else item
                for item in value
            ]
        else:
            preview[key] = value
    return preview


__all__ = [
    "OutboundRequest",
    "build_request",
    "is_data_uri",
    "preview_payload",
    "strip_data_uri",
]
