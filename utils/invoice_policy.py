"""
Invoice and bill validation.

Two independent, pure checks:
- ``validate_status_change``: the invoice status allow-list
  (draft -> sent/cancelled, sent -> paid/overdue/cancelled,
  overdue -> paid/cancelled; paid and cancelled are terminal)
- ``validate_invoice``: date ordering, total/markup arithmetic and line items,
  returning human-readable messages instead of raising
"""

from datetime import date
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from models.errors import create_invalid_transition_error, create_validation_error
from models.status import INVOICE_TRANSITIONS, InvoiceStatus
from schemas.records import InvoiceRecord
from utils.pydantic_error_mapper import format_validation_issues

# Absolute difference accepted between the stated and the computed total
AMOUNT_TOLERANCE = 0.01

# Absorbs binary float noise so that a difference of exactly one cent passes
_FLOAT_EPSILON = 1e-9


def _parse_invoice_status(value: Union[str, InvoiceStatus], field_name: str) -> InvoiceStatus:
    try:
        return InvoiceStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in InvoiceStatus)
        raise create_validation_error(
            f"Invalid {field_name}: '{value}'. Must be one of: {allowed}"
        ) from None


def allowed_next_invoice_statuses(current_status: Union[str, InvoiceStatus]) -> List[str]:
    """Return the sorted list of statuses reachable from current_status."""
    current = _parse_invoice_status(current_status, "current_status")
    return sorted(s.value for s in INVOICE_TRANSITIONS[current])


def validate_status_change(
    current_status: Union[str, InvoiceStatus], next_status: Union[str, InvoiceStatus]
) -> None:
    """
    Validate an invoice status change against the allow-list.

    Args:
        current_status: The invoice's current status
        next_status: The requested status

    Raises:
        ToolError: INVALID_TRANSITION naming both statuses when the pair is not
            allowed, VALIDATION_ERROR for unknown status values

    Examples:
        >>> validate_status_change("draft", "sent")
        >>> validate_status_change("paid", "sent")
        Traceback (most recent call last):
        ...
        models.errors.ToolError: Invalid invoice status transition from 'paid' to 'sent'. 'paid' is a terminal status
    """
    current = _parse_invoice_status(current_status, "current_status")
    target = _parse_invoice_status(next_status, "next_status")

    allowed = INVOICE_TRANSITIONS[current]
    if target not in allowed:
        raise create_invalid_transition_error("invoice", current.value, target.value, allowed)


def expected_total(subtotal: float, markup_percentage: float) -> float:
    """Compute subtotal * (1 + markup/100)."""
    return subtotal * (1 + markup_percentage / 100)


def totals_match(subtotal: float, markup_percentage: float, total_amount: float) -> bool:
    """True when total_amount is within AMOUNT_TOLERANCE of the computed total."""
    difference = abs(total_amount - expected_total(subtotal, markup_percentage))
    return difference <= AMOUNT_TOLERANCE + _FLOAT_EPSILON


def _validate_dates(invoice_date: Optional[date], due_date: Optional[date]) -> List[str]:
    if invoice_date is None or due_date is None:
        return []
    if due_date < invoice_date:
        return ["Due date must be on or after the invoice date"]
    return []


def _validate_line_items(line_items: List[Any]) -> List[str]:
    if not line_items:
        return ["Invoice must have at least one line item"]

    errors = []
    for index, item in enumerate(line_items, start=1):
        description = item.description
        if description is None or not description.strip():
            errors.append(f"Line item {index}: description is required")
        if item.amount is None or item.amount <= 0:
            errors.append(f"Line item {index}: amount must be greater than zero")
    return errors


def validate_invoice(invoice: Union[InvoiceRecord, Mapping[str, Any]]) -> List[str]:
    """
    Validate invoice dates, amounts and line items.

    Checks:
    1. due_date >= invoice_date (when both are set)
    2. total_amount within 0.01 of subtotal * (1 + markup_percentage/100)
    3. at least one line item, each with a non-empty description and a
       positive amount (messages reference the 1-based item index)

    Args:
        invoice: InvoiceRecord or a raw mapping with the same fields

    Returns:
        List of error strings; an empty list means the invoice is valid
    """
    if not isinstance(invoice, InvoiceRecord):
        try:
            invoice = InvoiceRecord.model_validate(dict(invoice))
        except ValidationError as e:
            return format_validation_issues(e)

    errors: List[str] = []
    errors.extend(_validate_dates(invoice.invoice_date, invoice.due_date))

    if not totals_match(invoice.subtotal, invoice.markup_percentage, invoice.total_amount):
        computed = expected_total(invoice.subtotal, invoice.markup_percentage)
        errors.append(
            f"Total amount {invoice.total_amount:.2f} does not match subtotal "
            f"{invoice.subtotal:.2f} with {invoice.markup_percentage:g}% markup "
            f"(expected {computed:.2f})"
        )

    errors.extend(_validate_line_items(invoice.line_items))
    return errors
