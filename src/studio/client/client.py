"""Typed HTTP client for the studio gateway's own REST surface."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

import httpx
from httpx import AsyncClient

from ..errors import (
    ExtractionError,
    PayloadValidationError,
    ProviderTransportError,
    UpstreamError,
)
from ..history.repository import GenerationEntry
from ..providers.normalizer import UNEXPECTED_FORMAT
from ..providers.operations import OperationKind, get_operation
from ..providers.results import Failed, GatewayResult, classify_response

OPERATION_PATHS: dict[OperationKind, str] = {
    OperationKind.GENERATE_IMAGE: "/api/generate-image",
    OperationKind.GENERATE_STRUCTURED_PROMPT: "/api/generate-structured-prompt",
    OperationKind.REMOVE_BACKGROUND: "/api/edit/remove-background",
    OperationKind.REPLACE_BACKGROUND: "/api/edit/replace-background",
    OperationKind.ERASE: "/api/edit/erase",
    OperationKind.GENERATIVE_FILL: "/api/edit/gen-fill",
    OperationKind.UPSCALE_VIDEO: "/api/video/upscale",
    OperationKind.REMOVE_VIDEO_BACKGROUND: "/api/video/remove-background",
    OperationKind.FOREGROUND_MASK: "/api/video/foreground-mask",
}


def _error_text(response: httpx.Response) -> str:
    """Prefer ``details`` over ``error`` from an ``{error, details}`` body."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, Mapping):
        return str(data.get("details") or data.get("error") or data)
    return response.text


def _is_upstream_error(response: httpx.Response) -> bool:
    """Relayed provider errors carry ``details``; local validation errors do not."""
    try:
        data = response.json()
    except ValueError:
        return False
    return isinstance(data, Mapping) and "details" in data


@dataclass(slots=True)
class StudioClient:
    """Convenience wrapper around :class:`httpx.AsyncClient` bound to the gateway."""

    http: AsyncClient

    async def submit(
        self, kind: OperationKind | str, payload: Mapping[str, Any]
    ) -> GatewayResult:
        """POST an operation to its proxy endpoint and classify the answer."""

        spec = get_operation(kind)
        try:
            response = await self.http.post(OPERATION_PATHS[spec.kind], json=dict(payload))
        except httpx.HTTPError as exc:
            raise ProviderTransportError(f"Request failed: {type(exc).__name__}") from exc
        if response.status_code == 400 and not _is_upstream_error(response):
            raise PayloadValidationError(_error_text(response))
        if not 200 <= response.status_code < 300:
            return Failed(status_code=response.status_code, error_body=_error_text(response))
        try:
            body = response.json()
        except ValueError:
            raise ExtractionError(UNEXPECTED_FORMAT, body=response.text) from None
        return classify_response(response.status_code, body, spec.media_kind)

    async def check_status(self, status_url: str) -> Any:
        """Check job status through ``/api/poll-image``."""

        try:
            response = await self.http.get("/api/poll-image", params={"url": status_url})
        except httpx.HTTPError as exc:
            raise ProviderTransportError(f"Polling failed: {type(exc).__name__}") from exc
        if not 200 <= response.status_code < 300:
            raise UpstreamError(response.status_code, _error_text(response))
        try:
            return response.json()
        except ValueError:
            raise ExtractionError(UNEXPECTED_FORMAT, body=response.text) from None

    async def record(self, user_id: str, entry: GenerationEntry) -> None:
        """Store a generation in the user's history."""

        body = {key: value for key, value in asdict(entry).items() if value is not None}
        body["type"] = str(entry.type)
        response = await self.http.post(f"/api/history/{user_id}", json=body)
        response.raise_for_status()

    async def list_history(
        self, user_id: str, *, type: str | None = None, limit: int | None = None
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        if type is not None:
            params["type"] = type
        if limit is not None:
            params["limit"] = limit
        response = await self.http.get(f"/api/history/{user_id}", params=params)
        response.raise_for_status()
        return response.json()

    async def delete_history(self, user_id: str, generation_id: int) -> None:
        response = await self.http.delete(f"/api/history/{user_id}/{generation_id}")
        response.raise_for_status()


__all__ = ["OPERATION_PATHS", "StudioClient"]
