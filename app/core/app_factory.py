from __future__ import annotations

"""Application factory for the SuiteProxy FastAPI app.

Centralizes app construction (state, middleware, handlers, routers) so tests
can build isolated apps with their own settings and a fake RESTlet client.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.restlet.base import AbstractRestletClient
from app.adapters.restlet.factory import create_restlet_client
from app.api.routes import health_router, proxy_router
from app.core.config import Settings, parse_csv_values, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.exemptions import ExemptionPolicy, resolve_exempt_hostname
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import build_rate_limiter
from app.services.proxy_service import ProxyService
from app.services.request_validator import RequestValidator, ValidationPolicy

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Finish startup before serving and release resources on shutdown.

    The dynamic DNS exemption is resolved here, before the first request,
    and swapped in as a new immutable policy.
    """
    cfg: Settings = app.state.settings
    hostname = cfg.app.exempt_hostname
    if hostname:
        addresses = await resolve_exempt_hostname(hostname)
        if addresses:
            app.state.exemption_policy = app.state.exemption_policy.with_addresses(addresses)

    logger.info(
        "app.startup",
        extra={
            "exemptions": list(app.state.exemption_policy.entries),
            "validation_policy": cfg.app.validation_policy,
            "rate_limit_max": cfg.app.rate_limit_max,
            "rate_limit_window_s": cfg.app.rate_limit_window_seconds,
        },
    )
    try:
        yield
    finally:
        await app.state.restlet_client.aclose()
        logger.info("app.shutdown")


def create_app(
    app_settings: Settings | None = None,
    *,
    restlet_client: AbstractRestletClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; defaults to the global settings.
        restlet_client: RESTlet client to use; defaults to the NetSuite client.

    Returns:
        Configured FastAPI app with state, middleware, handlers and routers.

    Raises:
        ValueError: If an exemption entry or allow-list value is invalid.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log, debug=cfg.app.debug)

    app = FastAPI(
        title="SuiteProxy",
        description=(
            "Rate-limited proxy that validates transaction and statement "
            "queries and relays them to a NetSuite RESTlet, returning the "
            "RESTlet JSON or an inline PDF."
        ),
        version="0.1.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Proxy", "description": "NetSuite RESTlet relay."},
            {"name": "Health", "description": "Liveness checks."},
        ],
    )

    client = restlet_client or create_restlet_client(cfg.netsuite)
    validator = RequestValidator(ValidationPolicy.from_settings(cfg.app))

    app.state.settings = cfg
    app.state.exemption_policy = ExemptionPolicy(parse_csv_values(cfg.app.exempt_ips))
    app.state.rate_limiter = build_rate_limiter(cfg.app)
    app.state.restlet_client = client
    app.state.proxy_service = ProxyService(
        restlet_client=client,
        restlet_url=cfg.netsuite.restlet_url,
        validator=validator,
    )

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_csv_values(cfg.app.cors_allow_origins),
        allow_methods=["GET"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "Retry-After", cfg.log.request_id_header],
    )
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(proxy_router)
    app.include_router(health_router)

    return app
