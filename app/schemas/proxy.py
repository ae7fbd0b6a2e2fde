"""Pydantic schemas for proxy request intents and error bodies."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TransactionQuery(BaseModel):
    """A validated request for one transaction record (optionally as PDF)."""

    model_config = ConfigDict(frozen=True)

    type: Literal["transaction"] = "transaction"
    id: int = Field(..., ge=0, description="NetSuite transaction internal id.")
    want_pdf: bool = Field(
        default=False,
        description="Return the transaction as a PDF download instead of JSON.",
    )

    def to_query_params(self) -> list[tuple[str, str]]:
        params = [("type", self.type), ("id", str(self.id))]
        if self.want_pdf:
            params.append(("file", "pdf"))
        return params


class StatementQuery(BaseModel):
    """A validated request for a customer statement over a date range."""

    model_config = ConfigDict(frozen=True)

    type: Literal["statement"] = "statement"
    customer_id: int = Field(..., ge=0, description="NetSuite customer internal id.")
    start: str = Field(..., description="Statement start date (DD/MM/YYYY).")
    end: str = Field(..., description="Statement end date (DD/MM/YYYY).")

    def to_query_params(self) -> list[tuple[str, str]]:
        return [
            ("type", self.type),
            ("customerid", str(self.customer_id)),
            ("start", self.start),
            ("end", self.end),
        ]


RequestIntent = TransactionQuery | StatementQuery


class ErrorResponse(BaseModel):
    """Error body returned for 400 and 429 responses."""

    error: str = Field(..., description="Human-readable error message.")


class BackendErrorResponse(ErrorResponse):
    """Error body returned when the RESTlet call fails (500)."""

    details: str = Field(..., description="Description of the underlying failure.")
