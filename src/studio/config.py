"""Application configuration for the studio gateway.

Values come from environment variables prefixed with ``STUDIO_``. The
provider credential additionally honours the historical ``BRIA_API_TOKEN``
name. The config object is built once by the application factory and
passed explicitly to every collaborator that needs it.
"""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Pydantic settings container for the gateway, poller and history store."""

    model_config = SettingsConfigDict(env_prefix="STUDIO_", populate_by_name=True)

    api_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("STUDIO_API_TOKEN", "BRIA_API_TOKEN"),
        description="Provider credential sent as the ``api_token`` header.",
    )
    engine_base_url: str = Field(
        default="https://engine.prod.bria-api.com/v2",
        description="Base URL of the provider v2 engine endpoints.",
    )
    legacy_base_url: str = Field(
        default="https://api.bria.ai",
        description="Base URL of the versioned text-to-image endpoint.",
    )
    status_url_template: str | None = Field(
        default=None,
        description=(
            "Template deriving a status URL from a request id; "
            "defaults to ``{engine_base_url}/status/{request_id}``."
        ),
    )
    allowed_status_hosts: list[str] = Field(
        default_factory=list,
        description="Hosts /poll-image may forward to; defaults to the provider hosts.",
    )
    request_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Ambient transport timeout applied to provider requests.",
    )
    replace_background_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Abort timeout for the first replace-background attempt.",
    )
    poll_interval_ms: int = Field(
        default=2_000,
        ge=0,
        description="Fixed cadence between status checks of one poll session.",
    )
    poll_max_attempts: int = Field(
        default=60,
        ge=1,
        description="Status checks allowed before a poll session is exhausted.",
    )
    database_url: str = Field(
        default="sqlite:///studio.db",
        description="SQLAlchemy URL of the generation history store.",
    )
    history_page_size: int = Field(
        default=50,
        ge=1,
        description="Default and maximum number of history records per query.",
    )

    def resolved_status_template(self) -> str:
        """Return the template used to turn a request id into a status URL."""

        if self.status_url_template:
            return self.status_url_template
        return self.engine_base_url.rstrip("/") + "/status/{request_id}"

    def status_hosts(self) -> set[str]:
        """Return hosts the credential may be forwarded to when polling."""

        if self.allowed_status_hosts:
            return {host.lower() for host in self.allowed_status_hosts}
        hosts = {
            urlparse(self.engine_base_url).hostname,
            urlparse(self.legacy_base_url).hostname,
        }
        return {host.lower() for host in hosts if host}

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0


def load_config() -> AppConfig:
    """Build configuration from the process environment."""

    return AppConfig()


__all__ = ["AppConfig", "load_config"]
