"""Video processing proxy routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...providers.gateway import ProviderGateway
from ...providers.operations import OperationKind
from ..schemas import (
    ForegroundMaskRequest,
    VideoRemoveBackgroundRequest,
    VideoUpscaleRequest,
)
from .dependencies import get_gateway, proxy_operation

router = APIRouter(prefix="/api/video", tags=["video"])


@router.post("/upscale")
async def upscale(
    body: VideoUpscaleRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    return await proxy_operation(gateway, OperationKind.UPSCALE_VIDEO, body.payload())


@router.post("/remove-background")
async def remove_background(
    body: VideoRemoveBackgroundRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    return await proxy_operation(
        gateway, OperationKind.REMOVE_VIDEO_BACKGROUND, body.payload()
    )


@router.post("/foreground-mask")
async def foreground_mask(
    body: ForegroundMaskRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    return await proxy_operation(gateway, OperationKind.FOREGROUND_MASK, body.payload())
