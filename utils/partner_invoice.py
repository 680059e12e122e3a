"""
Partner invoice drafting from approved work order reports.

Aggregates approved report bill amounts into line items, applies the markup
and returns a draft invoice that satisfies ``validate_invoice``.
"""

import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from models.errors import create_validation_error
from models.status import InvoiceStatus
from schemas.records import InvoiceLineItem, InvoiceRecord, WorkOrderReportRecord
from utils.invoice_policy import validate_invoice
from utils.report_policy import reports_ready_for_invoicing

PARTNER_INVOICE_PREFIX = "PI"
_INVOICE_NUMBER_PATTERN = re.compile(r"^PI-(\d{4})-(\d+)$")


def next_partner_invoice_number(last_number: Optional[str], year: int) -> str:
    """
    Compute the next partner invoice number for a year.

    Numbers look like ``PI-2026-00042``. The sequence restarts at 1 for a new
    year or when there is no previous number.

    Args:
        last_number: Highest existing invoice number, if any
        year: Invoice year

    Returns:
        The next invoice number
    """
    next_sequence = 1
    if last_number:
        match = _INVOICE_NUMBER_PATTERN.match(last_number.strip())
        if match is None:
            raise create_validation_error(f"Invalid invoice number format: '{last_number}'")
        if int(match.group(1)) == year:
            next_sequence = int(match.group(2)) + 1

    return f"{PARTNER_INVOICE_PREFIX}-{year}-{next_sequence:05d}"


def build_partner_invoice_draft(
    organization_id: str,
    reports: List[Mapping[str, Any]],
    markup_percentage: float,
    invoice_date: date,
    due_date: Optional[date] = None,
    invoice_number: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a draft partner invoice from approved reports.

    Args:
        organization_id: Partner organization billed
        reports: Report rows for the work orders being invoiced
        markup_percentage: Markup applied on top of the subtotal
        invoice_date: Invoice date
        due_date: Optional due date (must not precede invoice_date)
        invoice_number: Optional pre-allocated invoice number

    Returns:
        Draft invoice as a JSON-serializable dictionary

    Raises:
        ToolError: VALIDATION_ERROR when reports are not all approved or the
            resulting invoice does not validate
    """
    if markup_percentage < 0:
        raise create_validation_error(
            f"Invalid markup_percentage: {markup_percentage} cannot be negative"
        )

    if not reports_ready_for_invoicing(reports):
        raise create_validation_error(
            "Cannot invoice: every report for the selected work orders must be approved"
        )

    line_items = []
    for row in reports:
        report = WorkOrderReportRecord.model_validate(dict(row))
        summary = (report.work_performed or "").strip()
        description = f"Work order {report.work_order_id}"
        if summary:
            description = f"{description}: {summary}"
        line_items.append(
            InvoiceLineItem(
                description=description,
                amount=report.bill_amount,
                work_order_id=report.work_order_id,
                report_id=report.id,
            )
        )

    subtotal = round(sum(item.amount or 0.0 for item in line_items), 2)
    total_amount = round(subtotal * (1 + markup_percentage / 100), 2)

    invoice = InvoiceRecord(
        organization_id=organization_id,
        invoice_number=invoice_number,
        invoice_date=invoice_date,
        due_date=due_date,
        subtotal=subtotal,
        markup_percentage=markup_percentage,
        total_amount=total_amount,
        status=InvoiceStatus.DRAFT,
        line_items=line_items,
    )

    errors = validate_invoice(invoice)
    if errors:
        raise create_validation_error("; ".join(errors))

    return invoice.model_dump(mode="json", exclude_none=True)
