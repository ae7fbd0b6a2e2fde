"""Proxy service: validate, call the RESTlet, shape the response.

Flow per request:
    query params → RequestValidator → build_restlet_url → RESTlet GET →
    JSON relay, or PDF bytes for transaction requests with file=pdf.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import urlencode, urlsplit

from app.adapters.restlet.base import AbstractRestletClient
from app.adapters.restlet.netsuite_client import BACKEND_ERROR_MESSAGE
from app.core.errors import RestletAppError, ValidationAppError
from app.schemas.proxy import RequestIntent, TransactionQuery
from app.services.request_validator import RequestValidator

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"

# Location of the base64 document in the RESTlet payload: {"data": {"base64": "..."}}
PDF_FIELD_PATH = ("data", "base64")


@dataclass(frozen=True)
class ProxyResult:
    """Client-visible outcome of a successful proxy call.

    Exactly one of ``payload`` (JSON relay) or ``content`` (binary body) is set.
    """

    status_code: int = 200
    payload: Any = None
    content: bytes | None = None
    media_type: str = "application/json"
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_binary(self) -> bool:
        return self.content is not None


def build_restlet_url(base_url: str, intent: RequestIntent) -> str:
    """Append the intent's parameters to the configured RESTlet URL.

    The base URL usually already carries ``script`` and ``deploy``; the new
    entries are appended after them in a fixed order.

    Examples:
        >>> from app.schemas.proxy import TransactionQuery
        >>> build_restlet_url("https://x.test/restlet.nl?script=1&deploy=1", TransactionQuery(id=7))
        'https://x.test/restlet.nl?script=1&deploy=1&type=transaction&id=7'
    """
    if not base_url:
        raise ValueError("RESTlet base URL is not configured")

    query = urlencode(intent.to_query_params(), safe="/")
    if not urlsplit(base_url).query:
        separator = "" if base_url.endswith("?") else "?"
    else:
        separator = "" if base_url.endswith("&") else "&"
    return f"{base_url}{separator}{query}"


def extract_pdf_base64(payload: Any) -> str | None:
    """Return the base64 document string from a RESTlet payload, if present."""
    node = payload
    for key in PDF_FIELD_PATH:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    if isinstance(node, str) and node.strip():
        return node
    return None


class ProxyService:
    """Relay validated proxy requests to the NetSuite RESTlet."""

    def __init__(
        self,
        *,
        restlet_client: AbstractRestletClient,
        restlet_url: str,
        validator: RequestValidator | None = None,
    ) -> None:
        self.restlet_client = restlet_client
        self.restlet_url = restlet_url
        self.validator = validator or RequestValidator()

    async def handle(self, query_params: Mapping[str, str]) -> ProxyResult:
        """Validate the query, call the RESTlet and shape the result.

        Args:
            query_params: Raw query parameters of the inbound request.

        Returns:
            ProxyResult with the JSON payload or the decoded PDF bytes.

        Raises:
            ValidationAppError: Invalid parameters, or no PDF in the payload.
            RestletAppError: Any failure building, sending or reading the call.
        """
        intent = self.validator.parse(query_params)

        try:
            url = build_restlet_url(self.restlet_url, intent)
            payload = await self.restlet_client.get_json(url)
        except RestletAppError as exc:
            self._log_failure(intent, exc, (exc.details or {}).get("reason", exc.message))
            raise
        except Exception as exc:
            self._log_failure(intent, exc, str(exc))
            raise RestletAppError(
                code="restlet_error",
                message=BACKEND_ERROR_MESSAGE,
                details={"reason": str(exc) or type(exc).__name__},
            ) from exc

        if isinstance(intent, TransactionQuery) and intent.want_pdf:
            return self._pdf_result(intent, payload)

        self._check_relayable(intent, payload)

        logger.info(
            "proxy.relayed",
            extra={"request_type": intent.type, "response_kind": "json"},
        )
        return ProxyResult(payload=payload)

    def _pdf_result(self, intent: TransactionQuery, payload: Any) -> ProxyResult:
        encoded = extract_pdf_base64(payload)
        if encoded is None:
            raise ValidationAppError(
                code="pdf_not_available",
                message="No PDF content available.",
                details={"parameter": "file"},
            )

        try:
            # Line-wrapped base64 is accepted; any other non-alphabet byte is not.
            content = base64.b64decode("".join(encoded.split()), validate=True)
        except (binascii.Error, ValueError) as exc:
            self._log_failure(intent, exc, str(exc))
            raise RestletAppError(
                code="restlet_invalid_pdf",
                message=BACKEND_ERROR_MESSAGE,
                details={"reason": f"Invalid base64 PDF content: {exc}"},
            ) from exc

        logger.info(
            "proxy.relayed",
            extra={
                "request_type": intent.type,
                "response_kind": "pdf",
                "content_bytes": len(content),
            },
        )
        return ProxyResult(
            content=content,
            media_type=PDF_MEDIA_TYPE,
            headers={"Content-Disposition": "inline"},
        )

    def _check_relayable(self, intent: RequestIntent, payload: Any) -> None:
        """Reject payloads that cannot be re-serialized as strict JSON (NaN, Infinity)."""
        try:
            json.dumps(payload, allow_nan=False)
        except (TypeError, ValueError) as exc:
            self._log_failure(intent, exc, str(exc))
            raise RestletAppError(
                code="restlet_invalid_json",
                message=BACKEND_ERROR_MESSAGE,
                details={"reason": f"RESTlet returned non-compliant JSON: {exc}"},
            ) from exc

    @staticmethod
    def _log_failure(intent: RequestIntent, exc: Exception, reason: str) -> None:
        logger.error(
            "proxy.restlet_failed",
            extra={
                "request_type": intent.type,
                "error_type": type(exc).__name__,
                "error_msg": reason,
            },
        )
