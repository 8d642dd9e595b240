from __future__ import annotations

import pytest

from src.studio.history.recorder import RepositoryHistoryRecorder
from src.studio.history.repository import (
    GenerationEntry,
    GenerationRepository,
    GenerationType,
    build_session_factory,
)


@pytest.fixture
def repo() -> GenerationRepository:
    return GenerationRepository(build_session_factory("sqlite:///:memory:"))


def image_entry(url: str, **kwargs) -> GenerationEntry:
    return GenerationEntry(type=GenerationType.IMAGE, media_url=url, **kwargs)


def test_save_assigns_id_and_timestamp(repo: GenerationRepository) -> None:
    record = repo.save("user-1", image_entry("https://r/1.png", prompt="fox", tool="generate-image"))

    assert record.id > 0
    assert record.user_id == "user-1"
    assert record.type == "image"
    assert record.prompt == "fox"
    assert record.created_at is not None


def test_list_is_newest_first_and_scoped_to_user(repo: GenerationRepository) -> None:
    first = repo.save("user-1", image_entry("https://r/1.png"))
    second = repo.save("user-1", image_entry("https://r/2.png"))
    repo.save("user-2", image_entry("https://r/other.png"))

    records = repo.list_for_user("user-1")

    assert [record.id for record in records] == [second.id, first.id]


def test_list_filters_by_type_and_limit(repo: GenerationRepository) -> None:
    repo.save("u", image_entry("https://r/1.png"))
    repo.save("u", GenerationEntry(type=GenerationType.VIDEO, media_url="https://r/v.mp4"))
    repo.save("u", image_entry("https://r/2.png"))

    videos = repo.list_for_user("u", type="video")
    limited = repo.list_for_user("u", limit=1)

    assert [record.media_url for record in videos] == ["https://r/v.mp4"]
    assert [record.media_url for record in limited] == ["https://r/2.png"]


def test_delete_checks_owner(repo: GenerationRepository) -> None:
    record = repo.save("owner", image_entry("https://r/1.png"))

    with pytest.raises(KeyError):
        repo.delete("intruder", record.id)
    repo.delete("owner", record.id)

    assert repo.list_for_user("owner") == []
    with pytest.raises(KeyError):
        repo.delete("owner", record.id)


@pytest.mark.asyncio
async def test_recorder_writes_through_repository(repo: GenerationRepository) -> None:
    recorder = RepositoryHistoryRecorder(repo)

    await recorder.record("u", image_entry("https://r/1.png", mode="high_control"))

    [record] = repo.list_for_user("u")
    assert record.mode == "high_control"
