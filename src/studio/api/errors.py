"""Reusable error primitives for API exception handling."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import ConfigurationError, PayloadValidationError, UpstreamError

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


@dataclass(slots=True)
class ApiError(Exception):
    """Structured application-level error for HTTP handlers."""

    status_code: int
    error: str
    details: str | None = None

    def to_response(self) -> JSONResponse:
        """Materialise the error into a ``JSONResponse`` instance."""

        content: dict[str, str] = {"error": self.error}
        if self.details is not None:
            content["details"] = self.details
        return JSONResponse(status_code=self.status_code, content=content)


async def api_error_handler(_: Request, exc: ApiError) -> JSONResponse:
    """Convert :class:`ApiError` exceptions into JSON payloads."""

    return exc.to_response()


def describe_validation_error(exc: RequestValidationError) -> str:
    """Summarise the first validation failure as ``field: message``."""

    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Invalid JSON body"
    field = ".".join(
        str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")
    )
    message = str(first.get("msg", "Invalid value"))
    return f"{field}: {message}" if field else message


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures with the ``{error}`` contract.

    Proxy routes report a missing credential before a malformed body.
    """

    gateway = getattr(request.app.state, "gateway", None)
    if gateway is not None and not request.url.path.startswith("/api/history"):
        try:
            gateway.ensure_configured()
        except ConfigurationError as config_exc:
            return translate_error(config_exc).to_response()
    return ApiError(
        status.HTTP_400_BAD_REQUEST, describe_validation_error(exc)
    ).to_response()


def translate_error(exc: Exception, *, upstream_label: str = "API Error") -> ApiError:
    """Map a domain exception onto the endpoint error contract."""

    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, ConfigurationError):
        return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    if isinstance(exc, PayloadValidationError):
        return ApiError(status.HTTP_400_BAD_REQUEST, str(exc))
    if isinstance(exc, UpstreamError):
        return ApiError(
            exc.status_code, f"{upstream_label}: {exc.status_code}", exc.body
        )
    logger.error("api.request.failed", exc_info=exc)
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)


__all__ = [
    "ApiError",
    "api_error_handler",
    "describe_validation_error",
    "request_validation_error_handler",
    "translate_error",
]
