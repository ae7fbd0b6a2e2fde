"""Factory for the RESTlet client."""

from app.adapters.restlet.base import AbstractRestletClient
from app.adapters.restlet.netsuite_client import NetSuiteRestletClient
from app.core.config import NetSuiteSettings, settings


def create_restlet_client(netsuite: NetSuiteSettings | None = None) -> AbstractRestletClient:
    """Instantiate the NetSuite RESTlet client from configuration.

    Args:
        netsuite: Optional NetSuite settings; defaults to the global settings.

    Returns:
        AbstractRestletClient: Signed client ready to call the RESTlet.
    """
    cfg = netsuite or settings.netsuite
    return NetSuiteRestletClient(
        account_id=cfg.account_id,
        consumer_key=cfg.consumer_key,
        consumer_secret=cfg.consumer_secret,
        token_id=cfg.token_id,
        token_secret=cfg.token_secret,
    )
