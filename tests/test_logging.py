from __future__ import annotations

import httpx
import pytest
from loguru import logger

from dropship_api.core.logging import build_log_payload
from dropship_api.services.dropshipping import ResiliencePolicy, VendorHttpClient

METADATA = {"service_name": "dropship-api", "environment": "development", "version": "test"}


@pytest.fixture
def captured_records():
    records: list[dict] = []
    sink_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        yield records
    finally:
        logger.remove(sink_id)


def test_dropship_context_is_grouped(captured_records):
    logger.bind(provider="dsers", order_id="DS-1", attempt=2).warning("Order lookup slow")

    payload = build_log_payload(captured_records[-1], METADATA)

    assert payload["dropship"] == {"provider": "dsers", "order_id": "DS-1"}
    assert payload["attempt"] == 2
    assert payload["service"] == "dropship-api"
    assert payload["level"] == "warning"
    assert "provider" not in payload


def test_plain_records_have_no_dropship_section(captured_records):
    logger.info("Service started")

    payload = build_log_payload(captured_records[-1], METADATA)

    assert "dropship" not in payload
    assert payload["message"] == "Service started"


@pytest.mark.asyncio
async def test_vendor_call_logs_carry_the_provider(mock_http, captured_records):
    responses = [httpx.Response(503), httpx.Response(200, json={})]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    client = VendorHttpClient(
        "printful",
        base_url="https://vendor.test",
        http_client=mock_http(handler),
        policy=ResiliencePolicy(backoff_seconds=0.0),
    )

    await client.request("GET", "/store")

    retry_record = next(record for record in captured_records if record["message"] == "Retrying dropship vendor request")
    payload = build_log_payload(retry_record, METADATA)
    assert payload["dropship"] == {"provider": "printful"}
    assert payload["attempt"] == 1
