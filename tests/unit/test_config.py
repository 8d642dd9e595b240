from __future__ import annotations

from src.studio.config import AppConfig


def test_token_read_from_historical_variable(monkeypatch) -> None:
    monkeypatch.setenv("BRIA_API_TOKEN", "legacy-token")

    assert AppConfig().api_token == "legacy-token"


def test_prefixed_settings(monkeypatch) -> None:
    monkeypatch.setenv("STUDIO_POLL_INTERVAL_MS", "500")
    monkeypatch.setenv("STUDIO_POLL_MAX_ATTEMPTS", "5")

    config = AppConfig()

    assert config.poll_interval_seconds == 0.5
    assert config.poll_max_attempts == 5


def test_defaults() -> None:
    config = AppConfig()

    assert config.api_token is None
    assert config.resolved_status_template() == (
        "https://engine.prod.bria-api.com/v2/status/{request_id}"
    )
    assert config.status_hosts() == {"engine.prod.bria-api.com", "api.bria.ai"}
    assert config.request_timeout_seconds == 60.0
    assert config.replace_background_timeout_seconds == 30.0
