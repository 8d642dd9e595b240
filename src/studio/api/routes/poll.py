"""Status-check passthrough used by clients polling async jobs."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from ...providers.gateway import ProviderGateway
from ..errors import ApiError, translate_error
from .dependencies import get_gateway

router = APIRouter(prefix="/api", tags=["poll"])


@router.get("/poll-image")
async def poll_image(
    url: str | None = Query(None),
    gateway: ProviderGateway = Depends(get_gateway),
) -> JSONResponse:
    """Forward to the provider status URL and return its JSON verbatim."""
    try:
        gateway.ensure_configured()
        if not url:
            raise ApiError(status.HTTP_400_BAD_REQUEST, "Missing url parameter")
        body = await gateway.check_status(url)
    except Exception as exc:
        raise translate_error(exc, upstream_label="Polling Error") from exc
    return JSONResponse(content=body, status_code=status.HTTP_200_OK)
