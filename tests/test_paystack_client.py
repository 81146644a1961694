import json
from decimal import Decimal

import httpx
import pytest

from bursar.core.exceptions import ConfigurationError, GatewayError
from bursar.integrations.paystack import PaystackClient


def _client(handler) -> PaystackClient:
    return PaystackClient("sk_test_secret", base_url="https://api.paystack.test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_initialize_sends_minor_units_and_split() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"status": True, "data": {"authorization_url": "https://x", "reference": "R1"}})

    data = await _client(handler).initialize_transaction(
        email="payer@example.com",
        amount=Decimal("20000"),
        reference="R1",
        metadata={"student_id": "s"},
        callback_url="https://school.example/paid",
        split_code="SPL_1",
    )
    assert data["authorization_url"] == "https://x"
    assert seen["auth"] == "Bearer sk_test_secret"
    assert seen["body"]["amount"] == 2000000
    assert seen["body"]["currency"] == "NGN"
    assert seen["body"]["split_code"] == "SPL_1"
    assert seen["body"]["callback_url"] == "https://school.example/paid"


@pytest.mark.asyncio
async def test_status_false_raises_with_gateway_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"status": False, "message": "Invalid key"})

    with pytest.raises(GatewayError) as exc:
        await _client(handler).verify_transaction("R1")
    assert exc.value.message == "Invalid key"
    assert exc.value.status_code == 502
    assert exc.value.http_status == 400


@pytest.mark.asyncio
async def test_non_json_response_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    with pytest.raises(GatewayError) as exc:
        await _client(handler).verify_transaction("R1")
    assert exc.value.http_status == 502


@pytest.mark.asyncio
async def test_timeout_is_flagged() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(GatewayError) as exc:
        await _client(handler).initialize_transaction(email="a@b.c", amount=Decimal("1"), reference="R", metadata={})
    assert exc.value.timed_out is True
    assert exc.value.status_code == 504


@pytest.mark.asyncio
async def test_transport_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(GatewayError) as exc:
        await _client(handler).list_banks()
    assert exc.value.timed_out is False


@pytest.mark.asyncio
async def test_missing_secret_key() -> None:
    client = PaystackClient(None, transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    with pytest.raises(ConfigurationError):
        await client.verify_transaction("R1")


@pytest.mark.asyncio
async def test_split_and_banks_payloads() -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/split":
            return httpx.Response(200, json={"status": True, "data": {"split_code": "SPL_1"}})
        return httpx.Response(
            200,
            json={"status": True, "data": [{"name": "Access Bank", "code": "044", "slug": "access-bank", "id": 1}]},
        )

    client = _client(handler)
    split = await client.create_split(subaccount_code="ACCT_1", school_share=Decimal("95"))
    banks = await client.list_banks()

    body = json.loads(requests[0].content)
    assert split["split_code"] == "SPL_1"
    assert body["subaccounts"] == [{"subaccount": "ACCT_1", "share": 95.0}]
    assert body["bearer_type"] == "subaccount"
    assert requests[1].url.params["country"] == "nigeria"
    assert banks == [{"name": "Access Bank", "code": "044", "slug": "access-bank"}]
