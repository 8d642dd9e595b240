"""Image editing proxy routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...providers.gateway import ProviderGateway
from ...providers.operations import OperationKind
from ..schemas import (
    EraseRequest,
    GenerativeFillRequest,
    RemoveBackgroundRequest,
    ReplaceBackgroundRequest,
)
from .dependencies import get_gateway, proxy_operation

router = APIRouter(prefix="/api/edit", tags=["edit"])


@router.post("/remove-background")
async def remove_background(
    body: RemoveBackgroundRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    return await proxy_operation(gateway, OperationKind.REMOVE_BACKGROUND, body.payload())


@router.post("/replace-background")
async def replace_background(
    body: ReplaceBackgroundRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    """Replace the background; retried once by the gateway on failure."""
    return await proxy_operation(gateway, OperationKind.REPLACE_BACKGROUND, body.payload())


@router.post("/erase")
async def erase(
    body: EraseRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    return await proxy_operation(gateway, OperationKind.ERASE, body.payload())


@router.post("/gen-fill")
async def generative_fill(
    body: GenerativeFillRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    """Fill the masked area from a prompt; may answer with a 202 async envelope."""
    return await proxy_operation(gateway, OperationKind.GENERATIVE_FILL, body.payload())
