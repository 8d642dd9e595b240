from __future__ import annotations

from src.studio.config import AppConfig

TEST_TOKEN = "test-token"


def make_config(**overrides) -> AppConfig:
    """Config with a test credential and a private in-memory history store."""
    values = {
        "api_token": TEST_TOKEN,
        "database_url": "sqlite:///:memory:",
    }
    values.update(overrides)
    return AppConfig(**values)
