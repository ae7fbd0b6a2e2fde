"""Query parameter validation for the proxy endpoint.

Turns raw query parameters into a RequestIntent, or raises
ValidationAppError with a message the caller can act on. Two named policies
exist:

- permissive: numeric ids and DD/MM/YYYY dates, nothing else
- strict: ids must be allow-listed and the statement range must equal the
  configured start/end pair exactly
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Mapping

from app.core.config import AppSettings, parse_csv_values
from app.core.errors import ValidationAppError
from app.schemas.proxy import RequestIntent, StatementQuery, TransactionQuery

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d/%m/%Y"
DATE_FORMAT_LABEL = "DD/MM/YYYY"

_DIGITS = re.compile(r"[0-9]+")
_DATE_SHAPE = re.compile(r"[0-9]{2}/[0-9]{2}/[0-9]{4}")

ValidationPolicyName = Literal["strict", "permissive"]


@dataclass(frozen=True)
class ValidationPolicy:
    """Validation rules for ids and statement dates.

    Attributes:
        name: "strict" or "permissive".
        allowed_transaction_ids: Authorized transaction ids (strict only).
        allowed_customer_ids: Authorized customer ids (strict only).
        allowed_start_date: Only accepted statement start (strict only).
        allowed_end_date: Only accepted statement end (strict only).
    """

    name: ValidationPolicyName = "permissive"
    allowed_transaction_ids: frozenset[int] = field(default_factory=frozenset)
    allowed_customer_ids: frozenset[int] = field(default_factory=frozenset)
    allowed_start_date: str | None = None
    allowed_end_date: str | None = None

    @property
    def is_strict(self) -> bool:
        return self.name == "strict"

    @classmethod
    def permissive(cls) -> "ValidationPolicy":
        return cls(name="permissive")

    @classmethod
    def strict(
        cls,
        *,
        transaction_ids: set[int] | frozenset[int],
        customer_ids: set[int] | frozenset[int],
        start_date: str,
        end_date: str,
    ) -> "ValidationPolicy":
        return cls(
            name="strict",
            allowed_transaction_ids=frozenset(transaction_ids),
            allowed_customer_ids=frozenset(customer_ids),
            allowed_start_date=start_date,
            allowed_end_date=end_date,
        )

    @classmethod
    def from_settings(cls, app_settings: AppSettings) -> "ValidationPolicy":
        """Build the configured policy.

        Raises:
            ValueError: If an allow-list entry is not an integer.
        """
        if app_settings.validation_policy != "strict":
            return cls.permissive()

        return cls.strict(
            transaction_ids=_parse_id_list(app_settings.allowed_transaction_ids, "transaction"),
            customer_ids=_parse_id_list(app_settings.allowed_customer_ids, "customer"),
            start_date=app_settings.allowed_start_date or "",
            end_date=app_settings.allowed_end_date or "",
        )


def _parse_id_list(raw: str | None, label: str) -> set[int]:
    ids: set[int] = set()
    for value in parse_csv_values(raw):
        if not _DIGITS.fullmatch(value):
            raise ValueError(f"Invalid {label} id in allow-list: {value!r}")
        ids.add(int(value, 10))
    return ids


def parse_int_param(value: str | None) -> int | None:
    """Parse a base-10, non-negative integer parameter; None if malformed."""
    if value is None:
        return None
    value = value.strip()
    if not _DIGITS.fullmatch(value):
        return None
    return int(value, 10)


def is_valid_date(value: str) -> bool:
    """Return True for a real calendar date written exactly as DD/MM/YYYY."""
    if not _DATE_SHAPE.fullmatch(value):
        return False
    try:
        datetime.strptime(value, DATE_FORMAT)
    except ValueError:
        return False
    return True


class RequestValidator:
    """Validate proxy query parameters under a ValidationPolicy."""

    def __init__(self, policy: ValidationPolicy | None = None) -> None:
        self.policy = policy or ValidationPolicy.permissive()

    def parse(self, params: Mapping[str, str]) -> RequestIntent:
        """Validate ``params`` and build the request intent.

        Raises:
            ValidationAppError: On any missing, malformed or unauthorized value.
        """
        request_type = params.get("type")
        if not request_type:
            raise ValidationAppError(
                code="missing_type",
                message="Missing required query parameter: type.",
                details={"parameter": "type"},
            )

        if request_type == "transaction":
            return self._parse_transaction(params)
        if request_type == "statement":
            return self._parse_statement(params)

        raise ValidationAppError(
            code="invalid_type",
            message="Invalid type. Valid values are transaction or statement.",
            details={"parameter": "type", "expected": "transaction|statement"},
        )

    def _parse_transaction(self, params: Mapping[str, str]) -> TransactionQuery:
        raw_id = params.get("id")
        if not raw_id:
            raise ValidationAppError(
                code="missing_id",
                message="Missing required query parameter: id.",
                details={"parameter": "id"},
            )

        transaction_id = parse_int_param(raw_id)
        if self.policy.is_strict:
            if transaction_id is None or transaction_id not in self.policy.allowed_transaction_ids:
                logger.warning("validation.unauthorized_transaction", extra={"raw_id": raw_id})
                raise ValidationAppError(
                    code="unauthorized_transaction",
                    message="Invalid or unauthorized transaction ID.",
                    details={"parameter": "id"},
                )
        elif transaction_id is None:
            raise ValidationAppError(
                code="invalid_id",
                message="Invalid id. Must be a valid number.",
                details={"parameter": "id"},
            )

        want_pdf = (params.get("file") or "").strip().lower() == "pdf"
        return TransactionQuery(id=transaction_id, want_pdf=want_pdf)

    def _parse_statement(self, params: Mapping[str, str]) -> StatementQuery:
        raw_customer_id = params.get("customerid")
        if not raw_customer_id:
            raise ValidationAppError(
                code="missing_customerid",
                message="Missing required query parameter: customerid.",
                details={"parameter": "customerid"},
            )

        customer_id = parse_int_param(raw_customer_id)
        if self.policy.is_strict:
            if customer_id is None or customer_id not in self.policy.allowed_customer_ids:
                logger.warning(
                    "validation.unauthorized_customer",
                    extra={"raw_customer_id": raw_customer_id},
                )
                raise ValidationAppError(
                    code="unauthorized_customer",
                    message="Invalid or unauthorized customer ID.",
                    details={"parameter": "customerid"},
                )
        elif customer_id is None:
            raise ValidationAppError(
                code="invalid_customerid",
                message="Invalid customerid. Must be a valid number.",
                details={"parameter": "customerid"},
            )

        start = params.get("start")
        end = params.get("end")
        if not start or not end:
            raise ValidationAppError(
                code="missing_dates",
                message="Missing required query parameters: start and end.",
                details={"parameter": "start" if not start else "end"},
            )

        self._check_date("start", start, self.policy.allowed_start_date)
        self._check_date("end", end, self.policy.allowed_end_date)

        return StatementQuery(customer_id=customer_id, start=start, end=end)

    def _check_date(self, name: str, value: str, allowed: str | None) -> None:
        if self.policy.is_strict:
            if value != allowed:
                raise ValidationAppError(
                    code=f"invalid_{name}_date",
                    message=f"Invalid {name} date. Allowed value is {allowed}.",
                    details={"parameter": name, "expected": allowed or ""},
                )
            return

        if not is_valid_date(value):
            raise ValidationAppError(
                code=f"invalid_{name}_date",
                message=f"Invalid {name} date. Expected format {DATE_FORMAT_LABEL}.",
                details={"parameter": name, "expected": DATE_FORMAT_LABEL},
            )
