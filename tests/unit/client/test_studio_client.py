from __future__ import annotations

import httpx
import pytest

from src.studio.client.client import StudioClient
from src.studio.errors import ExtractionError, PayloadValidationError
from src.studio.providers.operations import OperationKind
from src.studio.providers.results import Failed


def build_client(handler) -> StudioClient:
    transport = httpx.MockTransport(handler)
    return StudioClient(httpx.AsyncClient(transport=transport, base_url="http://studio"))


@pytest.mark.asyncio
async def test_local_validation_400_raises() -> None:
    client = build_client(lambda request: httpx.Response(400, json={"error": "image is required"}))

    with pytest.raises(PayloadValidationError, match="image is required"):
        await client.submit(OperationKind.REMOVE_BACKGROUND, {})
    await client.http.aclose()


@pytest.mark.asyncio
async def test_relayed_provider_400_is_a_failed_result() -> None:
    client = build_client(
        lambda request: httpx.Response(
            400, json={"error": "API Error: 400", "details": "unsupported image format"}
        )
    )

    result = await client.submit(OperationKind.REMOVE_BACKGROUND, {"image": "a"})

    assert result == Failed(status_code=400, error_body="unsupported image format")
    await client.http.aclose()


@pytest.mark.asyncio
async def test_non_json_status_body_raises_extraction_error() -> None:
    client = build_client(lambda request: httpx.Response(200, text="<html>gateway</html>"))

    with pytest.raises(ExtractionError) as excinfo:
        await client.check_status("https://engine.prod.bria-api.com/v2/status/r1")

    assert excinfo.value.body == "<html>gateway</html>"
    await client.http.aclose()
