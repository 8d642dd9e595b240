"""Static table of provider operations.

Each operation has exactly one endpoint and one HTTP method. The table also
carries the per-operation transport policy: only background replacement
submits under an explicit abort timeout and retries once.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from ..config import AppConfig


class OperationKind(StrEnum):
    """Operations the gateway knows how to submit."""

    GENERATE_IMAGE = "generate-image"
    REMOVE_BACKGROUND = "remove-background"
    REPLACE_BACKGROUND = "replace-background"
    ERASE = "erase"
    GENERATIVE_FILL = "generative-fill"
    UPSCALE_VIDEO = "upscale-video"
    REMOVE_VIDEO_BACKGROUND = "remove-video-background"
    FOREGROUND_MASK = "foreground-mask"
    GENERATE_STRUCTURED_PROMPT = "generate-structured-prompt"


class MediaKind(StrEnum):
    """Kind of reference an operation produces."""

    IMAGE = "image"
    VIDEO = "video"
    STRUCTURED_PROMPT = "structured_prompt"


@dataclass(frozen=True, slots=True)
class OperationSpec:
    """Endpoint and transport policy for one operation kind."""

    kind: OperationKind
    path: str
    media_kind: MediaKind
    method: str = "POST"
    # First attempt runs under the explicit abort timeout instead of the ambient one.
    submit_timeout: bool = False
    retry_once: bool = False
    persisted: bool = True

    def url(self, config: AppConfig) -> str:
        return config.engine_base_url.rstrip("/") + self.path


OPERATIONS: dict[OperationKind, OperationSpec] = {
    OperationKind.GENERATE_IMAGE: OperationSpec(
        OperationKind.GENERATE_IMAGE, "/image/generate", MediaKind.IMAGE
    ),
    OperationKind.REMOVE_BACKGROUND: OperationSpec(
        OperationKind.REMOVE_BACKGROUND,
        "/image/edit/remove_background",
        MediaKind.IMAGE,
    ),
    OperationKind.REPLACE_BACKGROUND: OperationSpec(
        OperationKind.REPLACE_BACKGROUND,
        "/image/edit/replace_background",
        MediaKind.IMAGE,
        submit_timeout=True,
        retry_once=True,
    ),
    OperationKind.ERASE: OperationSpec(
        OperationKind.ERASE, "/image/edit/erase", MediaKind.IMAGE
    ),
    OperationKind.GENERATIVE_FILL: OperationSpec(
        OperationKind.GENERATIVE_FILL, "/image/edit/gen_fill", MediaKind.IMAGE
    ),
    OperationKind.UPSCALE_VIDEO: OperationSpec(
        OperationKind.UPSCALE_VIDEO,
        "/video/edit/increase_resolution",
        MediaKind.VIDEO,
    ),
    OperationKind.REMOVE_VIDEO_BACKGROUND: OperationSpec(
        OperationKind.REMOVE_VIDEO_BACKGROUND,
        "/video/edit/remove_background",
        MediaKind.VIDEO,
    ),
    OperationKind.FOREGROUND_MASK: OperationSpec(
        OperationKind.FOREGROUND_MASK,
        "/video/generate/foreground_mask",
        MediaKind.VIDEO,
    ),
    OperationKind.GENERATE_STRUCTURED_PROMPT: OperationSpec(
        OperationKind.GENERATE_STRUCTURED_PROMPT,
        "/structured_prompt/generate",
        MediaKind.STRUCTURED_PROMPT,
        persisted=False,
    ),
}

LEGACY_MODEL_VERSION = "3.2"


def get_operation(kind: OperationKind | str) -> OperationSpec:
    """Return the :class:`OperationSpec` for ``kind``; raise ``ValueError`` for unknown kinds."""

    try:
        return OPERATIONS[OperationKind(kind)]
    except ValueError:
        raise ValueError(f"Unsupported operation '{kind}'") from None


def legacy_generate_url(config: AppConfig, model_version: str) -> str:
    """Return the versioned text-to-image endpoint."""

    return f"{config.legacy_base_url.rstrip('/')}/text-to-image/base/{model_version}"


__all__ = [
    "LEGACY_MODEL_VERSION",
    "MediaKind",
    "OPERATIONS",
    "OperationKind",
    "OperationSpec",
    "get_operation",
    "legacy_generate_url",
]
