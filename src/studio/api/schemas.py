"""Request and response bodies of the HTTP surface.

Fields are optional at the schema level: mandatory-field checks belong to
the gateway so that a missing field yields HTTP 400 with ``{error}``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class _Body(BaseModel):
    model_config = ConfigDict(extra="ignore")

    def payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class RemoveBackgroundRequest(_Body):
    image: str | None = None


class ReplaceBackgroundRequest(_Body):
    image: str | None = None
    prompt: str | None = None
    mode: str | None = None


class EraseRequest(_Body):
    image: str | None = None
    mask: str | None = None


class GenerativeFillRequest(_Body):
    image: str | None = None
    mask: str | None = None
    prompt: str | None = None


class GenerateImageRequest(_Body):
    prompt: str | None = None
    structured_prompt: dict[str, Any] | str | None = None
    images: list[str] | None = None
    seed: int | None = None
    num_results: int | None = None
    aspect_ratio: str | None = None
    model_version: str | float | None = None


class StructuredPromptRequest(_Body):
    prompt: str | None = None
    images: list[str] | None = None


class VideoUpscaleRequest(_Body):
    video: str | None = None
    desired_increase: int | float | str | None = None
    output_container_and_codec: str | None = None


class VideoRemoveBackgroundRequest(_Body):
    video: str | None = None
    background_color: str | None = None
    output_container_and_codec: str | None = None


class ForegroundMaskRequest(_Body):
    video: str | None = None
    output_container_and_codec: str | None = None


class GenerationCreate(_Body):
    type: Literal["image", "video"]
    media_url: str
    prompt: str | None = None
    structured_prompt: str | None = None
    aspect_ratio: str | None = None
    mode: str | None = None
    tool: str | None = None


class GenerationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    type: str
    media_url: str
    prompt: str | None = None
    structured_prompt: str | None = None
    aspect_ratio: str | None = None
    mode: str | None = None
    tool: str | None = None
    created_at: datetime
