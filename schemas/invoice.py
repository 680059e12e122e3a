"""Pydantic schemas for invoice tools."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import ConfigDict, Field, field_validator

from schemas.common import (
    DbPathMixin,
    StrictIgnoreRequest,
    StrictResponse,
    validate_optional_non_empty_str,
)


class InvoiceStatusChangeRequest(StrictIgnoreRequest):
    """Request schema for validate_invoice_status_change."""

    current_status: str
    next_status: str


class InvoiceStatusChangeResponse(StrictResponse):
    valid: bool
    current_status: str
    next_status: str
    allowed_next_statuses: list[str]


class ValidateInvoiceRequest(StrictIgnoreRequest):
    """Request schema for validate_invoice."""

    invoice: dict[str, Any]


class ValidateInvoiceResponse(StrictResponse):
    valid: bool
    errors: list[str]


class DraftPartnerInvoiceRequest(DbPathMixin):
    """Request schema for draft_partner_invoice.

    Dates arrive as ISO strings over MCP, so this model uses lax parsing.
    """

    model_config = ConfigDict(extra="forbid")

    organization_id: str
    report_ids: list[str] = Field(min_length=1)
    markup_percentage: float = 0.0
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    last_invoice_number: Optional[str] = None

    @field_validator("last_invoice_number")
    @classmethod
    def validate_last_invoice_number(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "last_invoice_number")


class DraftPartnerInvoiceResponse(StrictResponse):
    invoice: dict[str, Any]
