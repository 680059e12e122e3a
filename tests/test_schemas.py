"""Unit tests for request, response and record Pydantic schemas."""

import pytest
from pydantic import ValidationError

from models.errors import ErrorCode
from models.status import WorkOrderStatus
from schemas.invoice import DraftPartnerInvoiceRequest
from schemas.records import InvoiceRecord, WorkOrderRecord
from schemas.work_order_number import FixWorkOrderNumbersRequest, WorkOrderNumberResponse
from schemas.work_order_transition import RequestWorkOrderTransitionRequest
from utils.pydantic_error_mapper import (
    format_validation_issues,
    map_pydantic_validation_error,
)


def _mapped(model, payload):
    with pytest.raises(ValidationError) as exc_info:
        model.model_validate(payload)
    return map_pydantic_validation_error(exc_info.value)


class TestRequestWorkOrderTransitionRequest:
    def test_missing_field_maps_to_validation_error(self):
        mapped = _mapped(RequestWorkOrderTransitionRequest, {"work_order_id": "wo-1"})

        assert mapped.code == ErrorCode.VALIDATION_ERROR
        assert mapped.message == "Invalid current_status: Field required"

    def test_blank_status_message_not_doubled(self):
        mapped = _mapped(
            RequestWorkOrderTransitionRequest,
            {"work_order_id": "wo-1", "current_status": "  ", "next_status": "assigned"},
        )

        assert mapped.message == "Invalid current_status: cannot be empty"

    def test_strict_types(self):
        mapped = _mapped(
            RequestWorkOrderTransitionRequest,
            {"work_order_id": 7, "current_status": "received", "next_status": "assigned"},
        )

        assert mapped.message.startswith("Invalid work_order_id:")

    def test_statuses_are_stripped_and_extras_ignored(self):
        model = RequestWorkOrderTransitionRequest.model_validate(
            {
                "work_order_id": "wo-1",
                "current_status": " received ",
                "next_status": "assigned",
                "priority": "high",
            }
        )

        assert model.current_status == "received"
        assert not hasattr(model, "priority")

    def test_empty_db_path_rejected(self):
        mapped = _mapped(
            RequestWorkOrderTransitionRequest,
            {
                "work_order_id": "wo-1",
                "current_status": "received",
                "next_status": "assigned",
                "db_path": "",
            },
        )

        assert "db_path" in mapped.message


class TestNumberingSchemas:
    def test_fix_operation_defaults_to_all(self):
        assert FixWorkOrderNumbersRequest.model_validate({}).operation == "all"

    def test_fix_operation_is_closed_set(self):
        mapped = _mapped(FixWorkOrderNumbersRequest, {"operation": "renumber"})

        assert "operation" in mapped.message

    def test_response_forbids_unknown_fields(self):
        with pytest.raises(ValidationError):
            WorkOrderNumberResponse(work_order_number="GLX-0001", is_fallback=False, extra=1)


class TestDraftPartnerInvoiceRequest:
    def test_iso_dates_are_parsed(self):
        model = DraftPartnerInvoiceRequest.model_validate(
            {"organization_id": "org-1", "report_ids": ["r-1"], "invoice_date": "2026-03-01"}
        )

        assert model.invoice_date.isoformat() == "2026-03-01"
        assert model.markup_percentage == 0.0

    def test_bad_date(self):
        mapped = _mapped(
            DraftPartnerInvoiceRequest,
            {"organization_id": "org-1", "report_ids": ["r-1"], "due_date": "next week"},
        )

        assert mapped.message.startswith("Invalid due_date:")

    def test_report_ids_required(self):
        mapped = _mapped(DraftPartnerInvoiceRequest, {"organization_id": "org-1", "report_ids": []})

        assert "report_ids" in mapped.message


class TestRecords:
    def test_row_columns_are_hydrated(self):
        record = WorkOrderRecord.model_validate(
            {
                "id": "wo-1",
                "status": "estimate_needed",
                "work_order_number": "",
                "internal_estimate_amount": 850.0,
                "partner_estimate_approved": 1,
                "legacy_column": "x",
            }
        )

        assert record.status == WorkOrderStatus.ESTIMATE_NEEDED
        assert record.work_order_number is None
        assert record.partner_estimate_approved is True
        assert record.has_estimate is True

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            WorkOrderRecord.model_validate({"id": "wo-1", "status": "paused"})

    def test_line_item_positions_are_one_based(self):
        with pytest.raises(ValidationError) as exc_info:
            InvoiceRecord.model_validate(
                {"line_items": [{"description": "ok", "amount": 1.0}, {"amount": "lots"}]}
            )

        issues = format_validation_issues(exc_info.value)
        assert issues[0].startswith("Invalid line_items.2.amount:")
