"""Rate limiting dependency for FastAPI routes.

This module wires the exemption policy and the rate limiting adapter into
the HTTP layer.

Strategy:
- Fixed window (15 minutes by default) per normalized client IP.
- Exempt clients bypass the limiter entirely: nothing is counted for them.
- Throttled requests raise RateLimitAppError before the route body runs.
"""

from __future__ import annotations

import logging

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.core.config import AppSettings
from app.core.errors import RateLimitAppError
from app.core.exemptions import ExemptionPolicy, resolve_client_ip

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


def build_rate_limiter(app_settings: AppSettings) -> AbstractRateLimiter:
    """Create the process-wide limiter from settings."""
    return InMemoryFixedWindowRateLimiter(
        limit=app_settings.rate_limit_max,
        window_seconds=app_settings.rate_limit_window_seconds,
    )


def consume_unless_exempt(
    client_ip: str,
    policy: ExemptionPolicy,
    limiter: AbstractRateLimiter,
) -> RateLimitResult | None:
    """Apply the exemption check, then the limiter.

    Returns:
        None when the client is exempt (the limiter is not consulted),
        otherwise the limiter's result for this request.
    """
    if policy.is_exempt(client_ip):
        return None
    return limiter.consume(client_ip)


def should_throttle(
    client_ip: str,
    policy: ExemptionPolicy,
    limiter: AbstractRateLimiter,
) -> bool:
    """Return True when the request from ``client_ip`` must be rejected."""
    result = consume_unless_exempt(client_ip, policy, limiter)
    return result is not None and not result.allowed


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing rate limits.

    Reads the exemption policy, limiter and settings from ``app.state`` so
    each app instance (including test apps) owns its own counters.

    Raises:
        RateLimitAppError: When the client exceeded its budget for the window.
    """
    state = request.app.state
    app_settings: AppSettings = state.settings.app
    if not app_settings.rate_limit_enabled:
        return

    client_ip = resolve_client_ip(
        request, trust_forwarded_for=app_settings.trust_forwarded_for
    )
    result = consume_unless_exempt(client_ip, state.exemption_policy, state.rate_limiter)

    if result is None:
        logger.info("rate_limit.exempt", extra={"client_ip": client_ip})
        return

    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "client_ip": client_ip,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_ip": client_ip,
            "limit": result.limit,
            "retry_after_s": retry_after,
        },
    )

    details = None
    if app_settings.rate_limit_include_headers:
        details = {
            "limit": result.limit,
            "remaining": result.remaining,
            "reset_at": result.reset_at,
            "retry_after": retry_after,
        }

    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message=RATE_LIMIT_MESSAGE,
        details=details,
    )
