"""Kraxel API client tests.

Requests are served by httpx.MockTransport, so no network is involved.
Tests focus on:
- Request shape (URL, headers, query serialization, POST bodies)
- Retry with backoff on any failed attempt
- RequestFailedError carrying the last cause once retries are exhausted
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from questkit.services.exceptions import RequestFailedError, TransientError
from questkit.services.kraxel.client import KraxelClient, format_datetime, serialize_params

BASE_URL = "https://kraxel.test/api/v1"


def make_client(handler, max_retries: int = 3) -> KraxelClient:
    return KraxelClient(
        base_url=BASE_URL + "/",
        api_key="secret-key",
        max_retries=max_retries,
        timeout=5.0,
        backoff_base=0,
        transport=httpx.MockTransport(handler),
    )


def test_format_datetime_uses_utc_z_suffix():
    assert format_datetime(datetime(2024, 3, 1, 12, 30)) == "2024-03-01T12:30:00.000Z"
    offset = timezone(timedelta(hours=2))
    assert format_datetime(datetime(2024, 3, 1, 14, 30, tzinfo=offset)) == "2024-03-01T12:30:00.000Z"


def test_serialize_params():
    params = {
        "limit": 10,
        "offset": None,
        "start_date": datetime(2024, 1, 1),
        "debug": True,
    }

    assert serialize_params(params) == {
        "limit": 10,
        "start_date": "2024-01-01T00:00:00.000Z",
        "debug": "true",
    }
    assert serialize_params({"debug": False}, for_query=False) == {"debug": False}
    assert serialize_params(None) == {}


@pytest.mark.asyncio
async def test_get_swaps_by_contract_request_shape():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "status": "success",
                "data": [
                    {
                        "tx_id": "0xabc",
                        "user_address": "SP1",
                        "block_height": 42,
                        "block_time": "2024-01-01T00:00:00Z",
                        "swap_details": [
                            {"in_asset": "STX", "in_amount": "10", "out_asset": "T", "out_amount": 3}
                        ],
                        "fee": "0.01",
                    }
                ],
            },
        )

    client = make_client(handler)
    response = await client.get_swaps_by_contract(
        "SP2.token-t", limit=100, start_date=datetime(2024, 1, 1), end_date=None
    )

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/api/v1/swaps/contract/SP2.token-t"
    assert request.url.params["limit"] == "100"
    assert request.url.params["start_date"] == "2024-01-01T00:00:00.000Z"
    assert "end_date" not in request.url.params
    assert request.headers["X-Api-Key"] == "secret-key"

    tx = response.data[0]
    assert tx.tx_id == "0xabc"
    assert tx.block_height == 42
    assert tx.swap_details[0].out_asset == "T"
    # Unknown upstream fields are kept
    assert tx.model_extra["fee"] == "0.01"


@pytest.mark.asyncio
async def test_get_latest_prices_returns_price_table():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/prices/latest"
        return httpx.Response(200, json={"status": "success", "data": {"STX": 1.5, "T": None}})

    response = await make_client(handler).get_latest_prices()

    assert response.data == {"STX": 1.5, "T": None}


@pytest.mark.asyncio
async def test_clear_cache_uses_post():
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200, json={"status": "success", "data": {"cleared": True}})

    await make_client(handler).clear_cache()

    assert methods == ["POST"]


@pytest.mark.asyncio
async def test_retries_until_success():
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        if attempts < 3:
            return httpx.Response(503, json={"status": "error"})
        return httpx.Response(200, json={"status": "success", "data": []})

    response = await make_client(handler).get_recent_swaps(limit=5)

    assert attempts == 3
    assert response.data == []


@pytest.mark.asyncio
async def test_exhausted_retries_raise_request_failed():
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        return httpx.Response(500, text="boom")

    with pytest.raises(RequestFailedError) as exc_info:
        await make_client(handler, max_retries=2).get_api_health()

    assert attempts == 2
    assert isinstance(exc_info.value, TransientError)
    assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)
    assert exc_info.value.__cause__ is exc_info.value.cause


@pytest.mark.asyncio
async def test_network_errors_are_retried():
    attempts = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal attempts
        attempts += 1
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RequestFailedError):
        await make_client(handler).get_api_root()

    assert attempts == 3


@pytest.mark.asyncio
async def test_undecodable_body_counts_as_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(RequestFailedError):
        await make_client(handler, max_retries=1).get_api_root()


def test_max_retries_must_be_positive():
    with pytest.raises(ValueError):
        KraxelClient(base_url=BASE_URL, max_retries=0)
