"""History recorders used by the editor controller after a successful action."""

from __future__ import annotations

import asyncio
from typing import Protocol

from .repository import GenerationEntry, GenerationRepository


class HistoryRecorder(Protocol):
    async def record(self, user_id: str, entry: GenerationEntry) -> None: ...


class RepositoryHistoryRecorder:
    """Write entries through :class:`GenerationRepository` off the event loop."""

    def __init__(self, repository: GenerationRepository) -> None:
        self._repository = repository

    async def record(self, user_id: str, entry: GenerationEntry) -> None:
        await asyncio.to_thread(self._repository.save, user_id, entry)


__all__ = ["HistoryRecorder", "RepositoryHistoryRecorder"]
