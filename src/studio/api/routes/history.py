"""Generation history routes."""

from __future__ import annotations

import asyncio
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ...history.repository import GenerationEntry, GenerationRepository, GenerationType
from ..errors import ApiError
from ..schemas import GenerationCreate, GenerationOut
from .dependencies import get_history_repository

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("/{user_id}", response_model=list[GenerationOut])
async def list_generations(
    user_id: str,
    request: Request,
    type: Literal["image", "video"] | None = Query(None),
    limit: int | None = Query(None, ge=1),
    repo: GenerationRepository = Depends(get_history_repository),
) -> list[GenerationOut]:
    """Return the user's generations, newest first."""
    page_size = request.app.state.config.history_page_size
    records = await asyncio.to_thread(
        repo.list_for_user,
        user_id,
        type=type,
        limit=min(limit or page_size, page_size),
    )
    return [GenerationOut.model_validate(record) for record in records]


@router.post(
    "/{user_id}", response_model=GenerationOut, status_code=status.HTTP_201_CREATED
)
async def create_generation(
    user_id: str,
    body: GenerationCreate,
    repo: GenerationRepository = Depends(get_history_repository),
) -> GenerationOut:
    entry = GenerationEntry(
        type=GenerationType(body.type),
        media_url=body.media_url,
        prompt=body.prompt,
        structured_prompt=body.structured_prompt,
        aspect_ratio=body.aspect_ratio,
        mode=body.mode,
        tool=body.tool,
    )
    record = await asyncio.to_thread(repo.save, user_id, entry)
    return GenerationOut.model_validate(record)


@router.delete("/{user_id}/{generation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_generation(
    user_id: str,
    generation_id: int,
    repo: GenerationRepository = Depends(get_history_repository),
) -> Response:
    try:
        await asyncio.to_thread(repo.delete, user_id, generation_id)
    except KeyError:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Generation not found") from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)
