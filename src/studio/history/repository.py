"""Persistence layer for generation history."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base, GenerationModel

logger = logging.getLogger(__name__)


class GenerationType(StrEnum):
    IMAGE = "image"
    VIDEO = "video"


@dataclass(slots=True)
class GenerationEntry:
    """Fields supplied by the caller when recording a generation."""

    type: GenerationType
    media_url: str
    prompt: str | None = None
    structured_prompt: str | None = None
    aspect_ratio: str | None = None
    mode: str | None = None
    tool: str | None = None


@dataclass(slots=True)
class GenerationRecord:
    """Stored generation as returned to callers."""

    id: int
    user_id: str
    type: str
    media_url: str
    prompt: str | None
    structured_prompt: str | None
    aspect_ratio: str | None
    mode: str | None
    tool: str | None
    created_at: datetime


def _to_record(model: GenerationModel) -> GenerationRecord:
    return GenerationRecord(
        id=model.id,
        user_id=model.user_id,
        type=model.type,
        media_url=model.media_url,
        prompt=model.prompt,
        structured_prompt=model.structured_prompt,
        aspect_ratio=model.aspect_ratio,
        mode=model.mode,
        tool=model.tool,
        created_at=model.created_at,
    )


class GenerationRepository:
    """Manage generation records."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def save(self, user_id: str, entry: GenerationEntry) -> GenerationRecord:
        with self._session_factory() as session:
            model = GenerationModel(
                user_id=user_id,
                type=GenerationType(entry.type).value,
                media_url=entry.media_url,
                prompt=entry.prompt,
                structured_prompt=entry.structured_prompt,
                aspect_ratio=entry.aspect_ratio,
                mode=entry.mode,
                tool=entry.tool,
            )
            session.add(model)
            session.commit()
            session.refresh(model)
            logger.info(
                "history.saved id=%s user_id=%s type=%s", model.id, user_id, model.type
            )
            return _to_record(model)

    def list_for_user(
        self,
        user_id: str,
        *,
        type: GenerationType | str | None = None,
        limit: int = 50,
    ) -> list[GenerationRecord]:
        """Return the user's generations, newest first."""
        query = select(GenerationModel).where(GenerationModel.user_id == user_id)
        if type is not None:
            query = query.where(GenerationModel.type == GenerationType(type).value)
        query = query.order_by(
            GenerationModel.created_at.desc(), GenerationModel.id.desc()
        ).limit(limit)
        with self._session_factory() as session:
            return [_to_record(model) for model in session.scalars(query)]

    def delete(self, user_id: str, generation_id: int) -> None:
        with self._session_factory() as session:
            model = session.get(GenerationModel, generation_id)
            if model is None or model.user_id != user_id:
                raise KeyError(f"Generation '{generation_id}' not found")
            session.delete(model)
            session.commit()


def build_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create the engine, ensure tables exist and return a session factory."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        # sessions are used from worker threads (asyncio.to_thread)
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        engine: Engine = create_engine(url, future=True, **kwargs)
    else:
        engine = create_engine(url, future=True)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
