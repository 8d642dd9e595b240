"""Provider gateway: outbound calls to the generative image/video API.

The gateway shapes payloads through :mod:`.payloads`, attaches the
credential taken from the injected :class:`~src.studio.config.AppConfig`
and classifies answers into :class:`Immediate`, :class:`Deferred` or
:class:`Failed`. HTTP errors are not retried, except for operations whose
:class:`OperationSpec` sets ``retry_once`` (background replacement): its first attempt runs
under an explicit abort timeout and one further attempt follows a timeout,
a network failure or an upstream error.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog

from ..config import AppConfig
from ..errors import (
    ConfigurationError,
    ExtractionError,
    PayloadValidationError,
    ProviderTransportError,
    UpstreamError,
)
from .operations import OperationKind, get_operation
from .payloads import build_request, preview_payload
from .results import Failed, GatewayResult, ProviderResponse, classify_response

logger = structlog.get_logger(__name__)

MISSING_TOKEN_MESSAGE = "BRIA_API_TOKEN not configured"


@dataclass(slots=True)
class ProviderGateway:
    """Submit operations to the provider and check job status."""

    config: AppConfig
    log: Any = field(default_factory=lambda: logger)

    def ensure_configured(self) -> None:
        """Raise :class:`ConfigurationError` when no credential is configured."""

        self._headers()

    def _headers(self) -> dict[str, str]:
        token = self.config.api_token
        if not token:
            raise ConfigurationError(MISSING_TOKEN_MESSAGE)
        return {
            "api_token": token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def forward(
        self, kind: OperationKind | str, payload: Mapping[str, Any]
    ) -> ProviderResponse:
        """Send one operation and return the provider's 2xx answer verbatim.

        Raises :class:`ConfigurationError` or :class:`PayloadValidationError`
        before any I/O, :class:`UpstreamError` for non-2xx answers and
        :class:`ProviderTransportError` for network failures.
        """

        headers = self._headers()
        spec = get_operation(kind)
        request = build_request(spec.kind, payload, self.config)
        self.log.info(
            "gateway.request.start",
            operation=spec.kind.value,
            url=request.url,
            payload=preview_payload(request.body),
        )

        attempts = 2 if spec.retry_once else 1
        for attempt in range(1, attempts + 1):
            timeout = self.config.request_timeout_seconds
            if spec.submit_timeout and attempt == 1:
                timeout = self.config.replace_background_timeout_seconds
            try:
                response = await self._post(
                    request.url, headers=headers, json=request.body, timeout=timeout
                )
            except httpx.HTTPError as exc:
                if attempt < attempts:
                    self.log.warning(
                        "gateway.request.retry",
                        operation=spec.kind.value,
                        attempt=attempt,
                        reason=type(exc).__name__,
                    )
                    continue
                self.log.error(
                    "gateway.request.transport_error",
                    operation=spec.kind.value,
                    error=str(exc),
                )
                raise ProviderTransportError(
                    f"Provider request failed: {type(exc).__name__}"
                ) from exc

            if _is_success(response):
                return ProviderResponse(
                    status_code=response.status_code, body=_json_body(response)
                )
            if attempt < attempts:
                self.log.warning(
                    "gateway.request.retry",
                    operation=spec.kind.value,
                    attempt=attempt,
                    status_code=response.status_code,
                )
                continue
            self.log.error(
                "gateway.response.error",
                operation=spec.kind.value,
                status_code=response.status_code,
                body_preview=response.text[:500],
            )
            raise UpstreamError(response.status_code, response.text)

        raise ProviderTransportError("Provider request failed after retries")

    async def submit(
        self, kind: OperationKind | str, payload: Mapping[str, Any]
    ) -> GatewayResult:
        """Submit an operation and classify the answer.

        Upstream HTTP errors become :class:`Failed`; configuration,
        validation, transport and extraction errors propagate.
        """

        spec = get_operation(kind)
        try:
            response = await self.forward(spec.kind, payload)
        except UpstreamError as exc:
            return Failed(status_code=exc.status_code, error_body=exc.body)
        result = classify_response(response.status_code, response.body, spec.media_kind)
        self.log.info(
            "gateway.request.classified",
            operation=spec.kind.value,
            result=type(result).__name__,
        )
        return result

    async def check_status(self, status_url: str) -> Any:
        """GET ``status_url`` with the credential attached and return its JSON."""

        headers = self._headers()
        self.ensure_status_url_allowed(status_url)
        try:
            response = await self._get(
                status_url,
                headers={"api_token": headers["api_token"]},
                timeout=self.config.request_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            raise ProviderTransportError(
                f"Status check failed: {type(exc).__name__}"
            ) from exc
        if not _is_success(response):
            self.log.warning(
                "gateway.status.error",
                status_url=status_url,
                status_code=response.status_code,
            )
            raise UpstreamError(response.status_code, response.text)
        return _json_body(response)

    def ensure_status_url_allowed(self, status_url: str) -> None:
        parsed = urlparse(status_url)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise PayloadValidationError("url must be an absolute http(s) URL")
        if parsed.hostname.lower() not in self.config.status_hosts():
            raise PayloadValidationError("url host is not a provider host")

    async def _post(
        self, url: str, *, headers: dict[str, str], json: dict[str, Any], timeout: float
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.post(url, headers=headers, json=json)

    async def _get(
        self, url: str, *, headers: dict[str, str], timeout: float
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await client.get(url, headers=headers)


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        logger.warning("gateway.response.not_json", body_preview=response.text[:500])
        raise ExtractionError(
            "Provider returned a non-JSON response", body=response.text
        ) from exc


__all__ = ["MISSING_TOKEN_MESSAGE", "ProviderGateway"]
