"""Generation proxy routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...providers.gateway import ProviderGateway
from ...providers.operations import OperationKind
from ..schemas import GenerateImageRequest, StructuredPromptRequest
from .dependencies import get_gateway, proxy_operation

router = APIRouter(prefix="/api", tags=["generate"])


@router.post("/generate-image")
async def generate_image(
    body: GenerateImageRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    """Generate an image; ``model_version`` "3.2" targets the versioned endpoint."""
    return await proxy_operation(gateway, OperationKind.GENERATE_IMAGE, body.payload())


@router.post("/generate-structured-prompt")
async def generate_structured_prompt(
    body: StructuredPromptRequest, gateway: ProviderGateway = Depends(get_gateway)
) -> JSONResponse:
    return await proxy_operation(
        gateway, OperationKind.GENERATE_STRUCTURED_PROMPT, body.payload()
    )
