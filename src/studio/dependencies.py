"""Dependency wiring helpers."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .api.errors import ApiError, api_error_handler, request_validation_error_handler
from .api.routes.edit import router as edit_router
from .api.routes.generate import router as generate_router
from .api.routes.history import router as history_router
from .api.routes.poll import router as poll_router
from .api.routes.video import router as video_router
from .config import AppConfig
from .history.repository import GenerationRepository, build_session_factory
from .providers.gateway import ProviderGateway


def include_routers(app: FastAPI, config: AppConfig) -> None:
    """Mount module routers and attach services."""
    session_factory = build_session_factory(config.database_url)

    app.state.config = config
    app.state.gateway = ProviderGateway(config=config)
    app.state.history_repo = GenerationRepository(session_factory)

    app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, request_validation_error_handler  # type: ignore[arg-type]
    )

    app.include_router(edit_router)
    app.include_router(generate_router)
    app.include_router(video_router)
    app.include_router(poll_router)
    app.include_router(history_router)
