"""Tests for the OAuth-signed NetSuite RESTlet client."""

import httpx
import pytest

from app.adapters.restlet.factory import create_restlet_client
from app.adapters.restlet.netsuite_client import NetSuiteRestletClient, netsuite_realm
from app.core.config import NetSuiteSettings
from app.core.errors import RestletAppError

from conftest import RESTLET_URL

URL = f"{RESTLET_URL}&type=transaction&id=10410"


def _client(handler) -> NetSuiteRestletClient:
    return NetSuiteRestletClient(
        account_id="1234567-sb1",
        consumer_key="ck",
        consumer_secret="cs",
        token_id="tk",
        token_secret="ts",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.parametrize(
    ("account_id", "realm"),
    [("1234567", "1234567"), ("1234567-sb1", "1234567_SB1"), (" tstdrv99 ", "TSTDRV99")],
)
def test_netsuite_realm(account_id: str, realm: str) -> None:
    assert netsuite_realm(account_id) == realm


@pytest.mark.asyncio
async def test_signs_request_with_oauth_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True})

    client = _client(handler)
    try:
        payload = await client.get_json(URL)
    finally:
        await client.aclose()

    assert payload == {"success": True}
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "GET"
    assert str(request.url) == URL
    auth = request.headers["Authorization"]
    assert auth.startswith("OAuth ")
    assert 'realm="1234567_SB1"' in auth
    assert 'oauth_signature_method="HMAC-SHA256"' in auth
    assert 'oauth_consumer_key="ck"' in auth
    assert 'oauth_token="tk"' in auth
    assert "oauth_signature=" in auth


@pytest.mark.asyncio
async def test_each_request_gets_fresh_nonce() -> None:
    headers: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        headers.append(request.headers["Authorization"])
        return httpx.Response(200, json={})

    client = _client(handler)
    try:
        await client.get_json(URL)
        await client.get_json(URL)
    finally:
        await client.aclose()

    assert headers[0] != headers[1]


@pytest.mark.asyncio
async def test_non_2xx_raises_restlet_error() -> None:
    client = _client(lambda request: httpx.Response(401, json={"error": "INVALID_LOGIN"}))
    try:
        with pytest.raises(RestletAppError) as exc_info:
            await client.get_json(URL)
    finally:
        await client.aclose()

    assert exc_info.value.code == "restlet_http_error"
    assert exc_info.value.details["http_status"] == 401
    assert "401" in exc_info.value.details["reason"]


@pytest.mark.asyncio
async def test_transport_error_raises_restlet_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    try:
        with pytest.raises(RestletAppError) as exc_info:
            await client.get_json(URL)
    finally:
        await client.aclose()

    assert exc_info.value.code == "restlet_transport_error"
    assert exc_info.value.details["reason"] == "connection refused"


@pytest.mark.asyncio
async def test_non_json_body_raises_restlet_error() -> None:
    client = _client(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    try:
        with pytest.raises(RestletAppError) as exc_info:
            await client.get_json(URL)
    finally:
        await client.aclose()

    assert exc_info.value.code == "restlet_invalid_json"


def test_factory_builds_netsuite_client() -> None:
    client = create_restlet_client(
        NetSuiteSettings(
            account_id="1234567",
            consumer_key="ck",
            consumer_secret="cs",
            token_id="tk",
            token_secret="ts",
            restlet_url=RESTLET_URL,
        )
    )

    assert isinstance(client, NetSuiteRestletClient)
