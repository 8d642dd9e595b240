"""Domain level exceptions shared by the gateway, poller and orchestrator."""

from __future__ import annotations

from typing import Any

__all__ = [
    "StudioError",
    "ConfigurationError",
    "PayloadValidationError",
    "UpstreamError",
    "ProviderTransportError",
    "ExtractionError",
]


class StudioError(Exception):
    """Base class for application specific errors."""


class ConfigurationError(StudioError):
    """Raised when a required setting (the provider credential) is missing."""


class PayloadValidationError(StudioError):
    """Raised when a request misses a mandatory field or carries an invalid one."""


class UpstreamError(StudioError):
    """Raised when the provider answers with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Provider responded with status {status_code}")
        self.status_code = status_code
        self.body = body


class ProviderTransportError(StudioError):
    """Raised on network failures and timeouts talking to the provider."""


class ExtractionError(StudioError):
    """Raised when no usable result reference can be found in a response."""

    def __init__(self, message: str, body: Any = None) -> None:
        super().__init__(message)
        self.body = body
