"""Unit tests for query parameter validation under both policies."""

import pytest

from app.core.config import AppSettings
from app.core.errors import ValidationAppError
from app.schemas.proxy import StatementQuery, TransactionQuery
from app.services.request_validator import (
    RequestValidator,
    ValidationPolicy,
    is_valid_date,
    parse_int_param,
)


@pytest.fixture
def permissive() -> RequestValidator:
    return RequestValidator(ValidationPolicy.permissive())


@pytest.fixture
def strict() -> RequestValidator:
    return RequestValidator(
        ValidationPolicy.strict(
            transaction_ids={10410},
            customer_ids={1397},
            start_date="01/01/2025",
            end_date="31/01/2025",
        )
    )


def _error(validator: RequestValidator, params: dict[str, str]) -> ValidationAppError:
    with pytest.raises(ValidationAppError) as exc_info:
        validator.parse(params)
    return exc_info.value


class TestHelpers:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("10410", 10410), (" 42 ", 42), ("abc", None), ("12abc", None), ("-1", None), ("1.5", None), (None, None)],
    )
    def test_parse_int_param(self, raw, expected) -> None:
        assert parse_int_param(raw) == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("01/01/2025", True),
            ("29/02/2024", True),
            ("29/02/2025", False),
            ("31/04/2025", False),
            ("1/1/2025", False),
            ("2025-01-01", False),
            ("01/13/2025", False),
            ("01/01/2025 ", False),
        ],
    )
    def test_is_valid_date(self, value: str, expected: bool) -> None:
        assert is_valid_date(value) is expected


class TestTypeParameter:
    def test_missing_type(self, permissive: RequestValidator) -> None:
        error = _error(permissive, {})
        assert error.code == "missing_type"
        assert "type" in error.message

    def test_invalid_type(self, permissive: RequestValidator) -> None:
        error = _error(permissive, {"type": "bogus"})
        assert error.message == "Invalid type. Valid values are transaction or statement."


class TestTransactionPermissive:
    def test_missing_id(self, permissive: RequestValidator) -> None:
        assert _error(permissive, {"type": "transaction"}).code == "missing_id"

    def test_non_numeric_id(self, permissive: RequestValidator) -> None:
        error = _error(permissive, {"type": "transaction", "id": "abc"})
        assert error.message == "Invalid id. Must be a valid number."

    def test_any_numeric_id_accepted(self, permissive: RequestValidator) -> None:
        intent = permissive.parse({"type": "transaction", "id": "99999"})
        assert intent == TransactionQuery(id=99999, want_pdf=False)

    @pytest.mark.parametrize("file_value", ["pdf", "PDF", "Pdf"])
    def test_pdf_flag_is_case_insensitive(self, permissive: RequestValidator, file_value: str) -> None:
        intent = permissive.parse({"type": "transaction", "id": "10410", "file": file_value})
        assert isinstance(intent, TransactionQuery)
        assert intent.want_pdf is True

    def test_other_file_value_keeps_json(self, permissive: RequestValidator) -> None:
        intent = permissive.parse({"type": "transaction", "id": "10410", "file": "csv"})
        assert intent.want_pdf is False


class TestTransactionStrict:
    def test_allow_listed_id(self, strict: RequestValidator) -> None:
        assert strict.parse({"type": "transaction", "id": "10410"}) == TransactionQuery(id=10410)

    @pytest.mark.parametrize("raw_id", ["99999", "abc"])
    def test_unlisted_or_unparseable_id(self, strict: RequestValidator, raw_id: str) -> None:
        error = _error(strict, {"type": "transaction", "id": raw_id})
        assert error.message == "Invalid or unauthorized transaction ID."


class TestStatementPermissive:
    def test_valid_statement(self, permissive: RequestValidator) -> None:
        intent = permissive.parse(
            {"type": "statement", "customerid": "1397", "start": "01/01/2025", "end": "31/01/2025"}
        )
        assert intent == StatementQuery(customer_id=1397, start="01/01/2025", end="31/01/2025")

    def test_missing_customer(self, permissive: RequestValidator) -> None:
        error = _error(permissive, {"type": "statement", "start": "01/01/2025", "end": "31/01/2025"})
        assert error.code == "missing_customerid"

    def test_non_numeric_customer(self, permissive: RequestValidator) -> None:
        error = _error(
            permissive,
            {"type": "statement", "customerid": "x1", "start": "01/01/2025", "end": "31/01/2025"},
        )
        assert error.code == "invalid_customerid"

    @pytest.mark.parametrize("missing", ["start", "end"])
    def test_missing_date(self, permissive: RequestValidator, missing: str) -> None:
        params = {"type": "statement", "customerid": "1397", "start": "01/01/2025", "end": "31/01/2025"}
        del params[missing]
        assert _error(permissive, params).code == "missing_dates"

    def test_iso_start_date_rejected_naming_format(self, permissive: RequestValidator) -> None:
        error = _error(
            permissive,
            {"type": "statement", "customerid": "1397", "start": "2025-01-01", "end": "31/01/2025"},
        )
        assert error.code == "invalid_start_date"
        assert "DD/MM/YYYY" in error.message

    def test_impossible_end_date_rejected(self, permissive: RequestValidator) -> None:
        error = _error(
            permissive,
            {"type": "statement", "customerid": "1397", "start": "01/02/2025", "end": "30/02/2025"},
        )
        assert error.code == "invalid_end_date"


class TestStatementStrict:
    def test_exact_dates_accepted(self, strict: RequestValidator) -> None:
        intent = strict.parse(
            {"type": "statement", "customerid": "1397", "start": "01/01/2025", "end": "31/01/2025"}
        )
        assert isinstance(intent, StatementQuery)

    def test_unlisted_customer(self, strict: RequestValidator) -> None:
        error = _error(
            strict,
            {"type": "statement", "customerid": "2000", "start": "01/01/2025", "end": "31/01/2025"},
        )
        assert error.message == "Invalid or unauthorized customer ID."

    def test_other_valid_date_rejected_naming_allowed_value(self, strict: RequestValidator) -> None:
        error = _error(
            strict,
            {"type": "statement", "customerid": "1397", "start": "01/01/2025", "end": "28/02/2025"},
        )
        assert error.message == "Invalid end date. Allowed value is 31/01/2025."


class TestPolicyFromSettings:
    def test_permissive_by_default(self) -> None:
        policy = ValidationPolicy.from_settings(AppSettings())
        assert policy.is_strict is False

    def test_strict_from_settings(self) -> None:
        policy = ValidationPolicy.from_settings(
            AppSettings(
                validation_policy="strict",
                allowed_transaction_ids="10410, 10411",
                allowed_customer_ids="1397",
                allowed_start_date="01/01/2025",
                allowed_end_date="31/01/2025",
            )
        )
        assert policy.allowed_transaction_ids == frozenset({10410, 10411})
        assert policy.allowed_customer_ids == frozenset({1397})

    def test_non_numeric_allow_list_entry_rejected(self) -> None:
        with pytest.raises(ValueError):
            ValidationPolicy.from_settings(
                AppSettings(
                    validation_policy="strict",
                    allowed_transaction_ids="10410,abc",
                    allowed_customer_ids="1397",
                    allowed_start_date="01/01/2025",
                    allowed_end_date="31/01/2025",
                )
            )
