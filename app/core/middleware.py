"""HTTP middleware for request ID propagation and access logging.

Every request/response pair carries a correlation id:
- An incoming X-Request-ID header (name configurable) is reused, otherwise a
  UUID4 is generated
- The id lives in a ContextVar for the duration of the request so every log
  line emitted while handling it is stamped with it
- The id and the handling time are echoed back as response headers

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_ID_HEADER = "X-Request-ID"


def _request_id_header(request: Request) -> str:
    app_settings = getattr(request.app.state, "settings", None)
    if app_settings is None:
        return DEFAULT_REQUEST_ID_HEADER
    return app_settings.log.request_id_header


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a request id, time the request and log its outcome.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with ``X-Request-ID`` and
            ``X-Request-Duration-ms`` headers added.
    """

    header_name = _request_id_header(request)
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
