"""Shared helpers for proxy routers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from ...history.repository import GenerationRepository
from ...providers.gateway import ProviderGateway
from ...providers.operations import OperationKind
from ..errors import translate_error

logger = logging.getLogger(__name__)


def get_gateway(request: Request) -> ProviderGateway:
    """Fetch the provider gateway from application state."""
    try:
        return request.app.state.gateway  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("ProviderGateway is not configured") from exc


def get_history_repository(request: Request) -> GenerationRepository:
    try:
        return request.app.state.history_repo  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("GenerationRepository is not configured") from exc


async def proxy_operation(
    gateway: ProviderGateway, kind: OperationKind, payload: Mapping[str, Any]
) -> JSONResponse:
    """Forward ``payload`` and relay the provider answer (status and body) verbatim."""
    try:
        response = await gateway.forward(kind, payload)
    except Exception as exc:
        raise translate_error(exc) from exc
    logger.info("proxy.%s status=%s", kind.value, response.status_code)
    return JSONResponse(content=response.body, status_code=response.status_code)
