"""NetSuite RESTlet client adapter.

Requests are signed with OAuth 1.0a Token-Based Authentication (TBA):
HMAC-SHA256 signatures and the account id as realm.
"""

from __future__ import annotations

import logging
from typing import Any, Generator

import httpx
from oauthlib.oauth1 import SIGNATURE_HMAC_SHA256, Client

from app.adapters.restlet.base import AbstractRestletClient
from app.core.errors import RestletAppError

logger = logging.getLogger(__name__)

BACKEND_ERROR_MESSAGE = "Error communicating with NetSuite RESTlet."


def netsuite_realm(account_id: str) -> str:
    """Return the OAuth realm for an account id (``1234567-sb1`` → ``1234567_SB1``)."""
    return account_id.strip().upper().replace("-", "_")


class NetSuiteOAuth1Auth(httpx.Auth):
    """httpx auth flow that adds a signed OAuth 1.0a Authorization header."""

    def __init__(
        self,
        *,
        account_id: str,
        consumer_key: str,
        consumer_secret: str,
        token_id: str,
        token_secret: str,
    ) -> None:
        self._client = Client(
            consumer_key,
            client_secret=consumer_secret,
            resource_owner_key=token_id,
            resource_owner_secret=token_secret,
            signature_method=SIGNATURE_HMAC_SHA256,
            realm=netsuite_realm(account_id),
        )

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        _, headers, _ = self._client.sign(str(request.url), http_method=request.method)
        request.headers["Authorization"] = headers["Authorization"]
        yield request


class NetSuiteRestletClient(AbstractRestletClient):
    """Client for calling a NetSuite RESTlet and returning its JSON body.

    Uses a shared ``httpx.AsyncClient``. No retries are attempted and no
    timeout is set beyond httpx's default.
    """

    def __init__(
        self,
        *,
        account_id: str,
        consumer_key: str,
        consumer_secret: str,
        token_id: str,
        token_secret: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the signed async HTTP client.

        Args:
            account_id: NetSuite account id, used as OAuth realm.
            consumer_key: Integration record consumer key.
            consumer_secret: Integration record consumer secret.
            token_id: Access token id.
            token_secret: Access token secret.
            transport: Optional httpx transport (tests use ``httpx.MockTransport``).
        """
        auth = NetSuiteOAuth1Auth(
            account_id=account_id,
            consumer_key=consumer_key,
            consumer_secret=consumer_secret,
            token_id=token_id,
            token_secret=token_secret,
        )
        self.client = httpx.AsyncClient(
            auth=auth,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def get_json(self, url: str) -> Any:
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RestletAppError(
                code="restlet_http_error",
                message=BACKEND_ERROR_MESSAGE,
                details={
                    "reason": f"RESTlet responded with HTTP {exc.response.status_code}",
                    "http_status": exc.response.status_code,
                },
            ) from exc
        except httpx.HTTPError as exc:
            raise RestletAppError(
                code="restlet_transport_error",
                message=BACKEND_ERROR_MESSAGE,
                details={"reason": str(exc) or type(exc).__name__},
            ) from exc

        try:
            return response.json()
        except ValueError as exc:
            raise RestletAppError(
                code="restlet_invalid_json",
                message=BACKEND_ERROR_MESSAGE,
                details={"reason": f"RESTlet returned invalid JSON: {exc}"},
            ) from exc

    async def aclose(self) -> None:
        await self.client.aclose()
