from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from app.core.rate_limit import enforce_rate_limit
from app.schemas.proxy import BackendErrorResponse, ErrorResponse
from app.services.proxy_service import PDF_MEDIA_TYPE, ProxyService

router = APIRouter(tags=["Proxy"])


def get_proxy_service(request: Request) -> ProxyService:
    """Return the ProxyService built by the app factory."""
    return request.app.state.proxy_service


@router.get(
    "/suiteproxy",
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        200: {
            "description": "RESTlet JSON payload, or the transaction PDF when file=pdf.",
            "content": {"application/json": {}, PDF_MEDIA_TYPE: {}},
        },
        400: {"model": ErrorResponse, "description": "Invalid or unauthorized parameters."},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded."},
        500: {"model": BackendErrorResponse, "description": "RESTlet communication failure."},
    },
)
async def suiteproxy(
    request: Request,
    service: ProxyService = Depends(get_proxy_service),
) -> Response:
    """Relay a transaction or statement request to the NetSuite RESTlet.

    Query parameters:
        type: ``transaction`` or ``statement`` (required).
        id: Transaction id (transaction).
        file: ``pdf`` to receive the transaction as an inline PDF (transaction).
        customerid: Customer id (statement).
        start, end: Statement date range, DD/MM/YYYY (statement).

    Errors are raised as AppError subclasses and rendered by the global
    exception handlers (400, 429, 500).
    """
    result = await service.handle(request.query_params)

    if result.is_binary:
        return Response(
            content=result.content,
            status_code=result.status_code,
            media_type=result.media_type,
            headers=result.headers,
        )
    return JSONResponse(status_code=result.status_code, content=result.payload)
