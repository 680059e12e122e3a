"""Pydantic schemas for backend records (work orders, reports, invoices, organizations).

Records accept raw database rows: extra columns are silently ignored and
empty strings are normalised to None for optional fields.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from pydantic import ConfigDict, Field, model_validator

from models.status import (
    InvoiceStatus,
    OrganizationType,
    ReportStatus,
    WorkOrderStatus,
)
from schemas.common import StrictResponse


class _RowRecord(StrictResponse):
    """Base for records hydrated from backend rows."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def empty_strings_to_none(cls, data: Any) -> Any:
        """Convert empty-string values to None for optional fields."""
        if isinstance(data, dict):
            return {k: (None if v == "" else v) for k, v in data.items()}
        return data


class WorkOrderRecord(_RowRecord):
    """A unit of requested field work tied to a partner organization and location."""

    id: str
    organization_id: Optional[str] = None
    assigned_organization_id: Optional[str] = None
    status: WorkOrderStatus = WorkOrderStatus.RECEIVED
    work_order_number: Optional[str] = None
    partner_location_number: Optional[str] = None
    internal_estimate_amount: Optional[float] = None
    partner_estimate_approved: Optional[bool] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def has_estimate(self) -> bool:
        """True when an internal estimate with a positive amount was recorded."""
        return self.internal_estimate_amount is not None and self.internal_estimate_amount > 0


class WorkOrderReportRecord(_RowRecord):
    """A subcontractor/employee account of work performed against a work order."""

    id: str
    work_order_id: str
    submitted_by_user_id: Optional[str] = None
    work_performed: Optional[str] = None
    hours_worked: Optional[float] = None
    materials_used: Optional[str] = None
    bill_amount: Optional[float] = None
    status: ReportStatus = ReportStatus.SUBMITTED
    submitted_at: Optional[str] = None
    reviewed_at: Optional[str] = None
    reviewed_by_user_id: Optional[str] = None


class InvoiceLineItem(_RowRecord):
    description: Optional[str] = None
    amount: Optional[float] = None
    work_order_id: Optional[str] = None
    report_id: Optional[str] = None


class InvoiceRecord(_RowRecord):
    """Partner invoice or subcontractor bill."""

    id: Optional[str] = None
    organization_id: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    subtotal: float = 0.0
    markup_percentage: float = 0.0
    total_amount: float = 0.0
    status: InvoiceStatus = InvoiceStatus.DRAFT
    line_items: list[InvoiceLineItem] = Field(default_factory=list)


class OrganizationRecord(_RowRecord):
    id: str
    name: Optional[str] = None
    initials: Optional[str] = None
    organization_type: OrganizationType = OrganizationType.PARTNER
    uses_partner_location_numbers: bool = False
