"""
Unit tests for partner invoice drafting.
"""

from datetime import date

import pytest

from models.errors import ErrorCode, ToolError
from utils.invoice_policy import validate_invoice
from utils.partner_invoice import build_partner_invoice_draft, next_partner_invoice_number


def _report(report_id, amount, status="approved", work_order_id="wo-1"):
    return {
        "id": report_id,
        "work_order_id": work_order_id,
        "work_performed": "Replaced filter",
        "bill_amount": amount,
        "status": status,
    }


class TestNextPartnerInvoiceNumber:
    """PI-{year}-{seq:05d} numbering."""

    def test_first_number(self):
        assert next_partner_invoice_number(None, 2026) == "PI-2026-00001"

    def test_increments_within_year(self):
        assert next_partner_invoice_number("PI-2026-00041", 2026) == "PI-2026-00042"

    def test_restarts_for_new_year(self):
        assert next_partner_invoice_number("PI-2025-00900", 2026) == "PI-2026-00001"

    def test_rejects_malformed_number(self):
        with pytest.raises(ToolError) as exc_info:
            next_partner_invoice_number("INV-7", 2026)
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR


class TestBuildPartnerInvoiceDraft:
    """Draft invoices aggregate approved reports."""

    def test_draft_totals(self):
        draft = build_partner_invoice_draft(
            "org-acme",
            [_report("r-1", 120.50), _report("r-2", 79.50, work_order_id="wo-2")],
            markup_percentage=15,
            invoice_date=date(2026, 3, 1),
            due_date=date(2026, 3, 31),
            invoice_number="PI-2026-00001",
        )

        assert draft["status"] == "draft"
        assert draft["subtotal"] == 200.0
        assert draft["total_amount"] == 230.0
        assert draft["invoice_date"] == "2026-03-01"
        assert [item["report_id"] for item in draft["line_items"]] == ["r-1", "r-2"]
        assert draft["line_items"][0]["description"] == "Work order wo-1: Replaced filter"
        assert validate_invoice(draft) == []

    def test_rounds_to_cents(self):
        draft = build_partner_invoice_draft(
            "org-acme", [_report("r-1", 33.33)], 12.5, date(2026, 3, 1)
        )
        assert draft["total_amount"] == 37.5

    def test_refuses_unapproved_reports(self):
        with pytest.raises(ToolError) as exc_info:
            build_partner_invoice_draft(
                "org-acme",
                [_report("r-1", 100.0), _report("r-2", 50.0, status="submitted")],
                0,
                date(2026, 3, 1),
            )
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
        assert "approved" in exc_info.value.message

    def test_refuses_negative_markup(self):
        with pytest.raises(ToolError):
            build_partner_invoice_draft("org-acme", [_report("r-1", 10.0)], -5, date(2026, 3, 1))

    def test_refuses_zero_bill_amount(self):
        with pytest.raises(ToolError) as exc_info:
            build_partner_invoice_draft("org-acme", [_report("r-1", 0.0)], 0, date(2026, 3, 1))
        assert "Line item 1" in exc_info.value.message

    def test_refuses_due_date_before_invoice_date(self):
        with pytest.raises(ToolError):
            build_partner_invoice_draft(
                "org-acme",
                [_report("r-1", 10.0)],
                0,
                date(2026, 3, 1),
                due_date=date(2026, 2, 1),
            )
