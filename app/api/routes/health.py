from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Liveness probe for load balancers and uptime monitors.

    Not rate limited and never contacts NetSuite.
    """

    return {"status": "ok", "service": "suiteproxy"}
