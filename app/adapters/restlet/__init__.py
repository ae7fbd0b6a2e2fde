"""RESTlet adapter layer - the single point of contact with NetSuite."""

from app.adapters.restlet.base import AbstractRestletClient
from app.adapters.restlet.factory import create_restlet_client
from app.adapters.restlet.netsuite_client import NetSuiteOAuth1Auth, NetSuiteRestletClient

__all__ = [
    "AbstractRestletClient",
    "NetSuiteOAuth1Auth",
    "NetSuiteRestletClient",
    "create_restlet_client",
]
