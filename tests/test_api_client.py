from datetime import datetime, timedelta, timezone

import httpx
import pytest

from conftest import TEST_SETTINGS
from pharmacy_plus.api.client import ApiClient
from pharmacy_plus.core.errors import ApiError
from pharmacy_plus.core.security import create_token, hash_password, pwd_ctx, token_expired, verify_password


def _client(handler, token=None):
    return ApiClient("http://backend.test/api", token=token, transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_get_sends_token_and_cache_buster():
    seen = {}

    def handler(request):
        seen["url"] = request.url
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json=[{"id": "p1"}])

    client = _client(handler, token="abc")
    data = await client.get("/pharmacies", params={"ownerId": "3"})
    await client.aclose()

    assert data == [{"id": "p1"}]
    assert seen["url"].path == "/api/pharmacies"
    assert seen["url"].params["ownerId"] == "3"
    assert "_" in seen["url"].params
    assert seen["auth"] == "Bearer abc"


@pytest.mark.anyio
async def test_post_without_token_has_no_auth_header():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        seen["params"] = dict(request.url.params)
        return httpx.Response(204)

    client = _client(handler)
    assert await client.post("/auth/logout") is None
    await client.aclose()

    assert seen["auth"] is None
    assert seen["params"] == {}


@pytest.mark.anyio
@pytest.mark.parametrize(
    "body,expected",
    [
        ({"message": "Out of stock"}, "Out of stock"),
        ({"error": "Bad coupon"}, "Bad coupon"),
        ({"detail": "Not authenticated"}, "Not authenticated"),
        ({}, "Request failed with status 400"),
    ],
)
async def test_error_message_extraction(body, expected):
    client = _client(lambda request: httpx.Response(400, json=body))

    with pytest.raises(ApiError) as excinfo:
        await client.put("/orders/o1/status", {"status": "delivered"})
    await client.aclose()

    assert excinfo.value.message == expected
    assert excinfo.value.status_code == 400
    assert not excinfo.value.is_network_error


@pytest.mark.anyio
async def test_non_json_error_body():
    client = _client(lambda request: httpx.Response(502, text="<html>bad gateway</html>"))

    with pytest.raises(ApiError) as excinfo:
        await client.get("/orders")
    await client.aclose()

    assert excinfo.value.message == "Request failed with status 502"


@pytest.mark.anyio
async def test_network_failure_becomes_api_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    with pytest.raises(ApiError) as excinfo:
        await client.post("/orders", {})
    await client.aclose()

    assert excinfo.value.is_network_error


def test_token_expiry_helper():
    token = create_token("2", TEST_SETTINGS.SECRET_KEY, 5)
    later = datetime.now(timezone.utc) + timedelta(minutes=10)

    assert token_expired(token) is False
    assert token_expired(token, now=later) is True
    assert token_expired(None) is True
    assert token_expired("opaque-session-token") is False


def test_password_hashes_use_pbkdf2():
    hashed = hash_password("customer123")

    assert pwd_ctx.identify(hashed) == "pbkdf2_sha256"
    assert verify_password("customer123", hashed)
    assert not verify_password("wrong", hashed)
