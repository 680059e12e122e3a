"""Tests for the invoice validation tools."""

import pytest

from tools.validate_invoice import validate_invoice, validate_invoice_status_change


class TestValidateInvoiceStatusChange:
    def test_allowed_change(self):
        result = validate_invoice_status_change({"current_status": "sent", "next_status": "paid"})

        assert result == {
            "valid": True,
            "current_status": "sent",
            "next_status": "paid",
            "allowed_next_statuses": ["cancelled", "overdue", "paid"],
        }

    @pytest.mark.parametrize(
        "current,target",
        [("draft", "paid"), ("paid", "sent"), ("cancelled", "draft"), ("overdue", "sent")],
    )
    def test_rejected_change(self, current, target):
        result = validate_invoice_status_change({"current_status": current, "next_status": target})

        assert result["error"]["code"] == "INVALID_TRANSITION"
        assert result["error"]["retryable"] is False

    def test_terminal_status_message(self):
        result = validate_invoice_status_change({"current_status": "paid", "next_status": "sent"})

        assert "terminal" in result["error"]["message"]

    def test_unknown_status(self):
        result = validate_invoice_status_change({"current_status": "void", "next_status": "paid"})

        assert result["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_status(self):
        result = validate_invoice_status_change({"current_status": "draft"})

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "next_status" in result["error"]["message"]


def _invoice(**overrides):
    invoice = {
        "invoice_date": "2026-03-01",
        "due_date": "2026-03-31",
        "subtotal": 100.0,
        "markup_percentage": 10.0,
        "total_amount": 110.0,
        "line_items": [{"description": "Replaced ballast", "amount": 100.0}],
    }
    invoice.update(overrides)
    return {"invoice": invoice}


class TestValidateInvoice:
    def test_valid_invoice(self):
        assert validate_invoice(_invoice()) == {"valid": True, "errors": []}

    def test_total_within_tolerance(self):
        assert validate_invoice(_invoice(total_amount=110.01))["valid"] is True

    def test_total_outside_tolerance(self):
        result = validate_invoice(_invoice(total_amount=109.98))

        assert result["valid"] is False
        assert len(result["errors"]) == 1
        assert "expected 110.00" in result["errors"][0]

    def test_multiple_problems_reported_together(self):
        result = validate_invoice(
            _invoice(
                due_date="2026-02-01",
                line_items=[
                    {"description": "Labour", "amount": 100.0},
                    {"description": "", "amount": 0},
                ],
            )
        )

        assert result["valid"] is False
        assert result["errors"] == [
            "Due date must be on or after the invoice date",
            "Line item 2: description is required",
            "Line item 2: amount must be greater than zero",
        ]

    def test_no_line_items(self):
        result = validate_invoice(_invoice(line_items=[]))

        assert result["errors"] == ["Invoice must have at least one line item"]

    def test_malformed_field_is_a_finding(self):
        result = validate_invoice(_invoice(subtotal="a lot"))

        assert result["valid"] is False
        assert result["errors"][0].startswith("Invalid subtotal")

    def test_invoice_must_be_an_object(self):
        result = validate_invoice({"invoice": "PI-2026-00001"})

        assert result["error"]["code"] == "VALIDATION_ERROR"
