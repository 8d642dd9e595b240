from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.studio.config import AppConfig
from src.studio.main import create_app
from tests.helpers.config import make_config


@pytest.fixture(autouse=True)
def env(monkeypatch):
    monkeypatch.delenv("BRIA_API_TOKEN", raising=False)
    monkeypatch.delenv("STUDIO_API_TOKEN", raising=False)


@pytest.fixture
def config() -> AppConfig:
    return make_config()


@pytest.fixture
def client(config: AppConfig) -> TestClient:
    return TestClient(create_app(config))
