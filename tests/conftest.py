"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment variables the global settings require so that
importing ``app`` modules never depends on a local .env file.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

os.environ.setdefault("NETSUITE_ACCOUNT_ID", "1234567_SB1")
os.environ.setdefault("NETSUITE_CONSUMER_KEY", "test-consumer-key")
os.environ.setdefault("NETSUITE_CONSUMER_SECRET", "test-consumer-secret")
os.environ.setdefault("NETSUITE_TOKEN_ID", "test-token-id")
os.environ.setdefault("NETSUITE_TOKEN_SECRET", "test-token-secret")
os.environ.setdefault(
    "NETSUITE_RESTLET_URL",
    "https://1234567-sb1.restlets.api.netsuite.com/app/site/hosting/restlet.nl?script=100&deploy=1",
)
os.environ.setdefault("LOG_FORMAT", "plain")

from typing import Any, Callable  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.adapters.restlet.base import AbstractRestletClient  # noqa: E402
from app.core.app_factory import create_app  # noqa: E402
from app.core.config import AppSettings, LogSettings, NetSuiteSettings, Settings  # noqa: E402

RESTLET_URL = os.environ["NETSUITE_RESTLET_URL"]


class FakeRestletClient(AbstractRestletClient):
    """RESTlet client double that records URLs and returns a canned payload."""

    def __init__(self, payload: Any = None, error: Exception | None = None) -> None:
        self.payload = {"success": True} if payload is None else payload
        self.error = error
        self.urls: list[str] = []
        self.closed = False

    async def get_json(self, url: str) -> Any:
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.payload

    async def aclose(self) -> None:
        self.closed = True


def build_settings(**app_overrides: Any) -> Settings:
    """Settings with test NetSuite credentials and the given AppSettings overrides."""
    app_overrides.setdefault("exempt_ips", "")
    return Settings(
        log=LogSettings(format="plain"),
        netsuite=NetSuiteSettings(
            account_id="1234567_SB1",
            consumer_key="test-consumer-key",
            consumer_secret="test-consumer-secret",
            token_id="test-token-id",
            token_secret="test-token-secret",
            restlet_url=RESTLET_URL,
        ),
        app=AppSettings(**app_overrides),
    )


STRICT_POLICY = {
    "validation_policy": "strict",
    "allowed_transaction_ids": "10410,10411",
    "allowed_customer_ids": "1397",
    "allowed_start_date": "01/01/2025",
    "allowed_end_date": "31/01/2025",
}


@pytest.fixture
def fake_restlet() -> FakeRestletClient:
    return FakeRestletClient()


@pytest.fixture
def make_app(fake_restlet: FakeRestletClient) -> Callable[..., FastAPI]:
    """Factory building an isolated app around ``fake_restlet``."""

    def _make(**app_overrides: Any) -> FastAPI:
        return create_app(build_settings(**app_overrides), restlet_client=fake_restlet)

    return _make


@pytest.fixture
def client(make_app: Callable[..., FastAPI]) -> TestClient:
    """Test client for a permissive app with rate limiting effectively off."""
    return TestClient(make_app(rate_limit_max=1000))
