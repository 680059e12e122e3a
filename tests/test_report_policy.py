"""
Unit tests for the report review policy.
"""

import pytest

from models.errors import ErrorCode, ToolError
from utils.report_policy import (
    check_report_review,
    reports_ready_for_invoicing,
    work_order_permits_completion,
)


class TestCheckReportReview:
    """Report transitions and the approval guard."""

    @pytest.mark.parametrize(
        "current,target",
        [
            ("submitted", "reviewed"),
            ("submitted", "rejected"),
            ("reviewed", "approved"),
            ("rejected", "submitted"),
        ],
    )
    def test_allowed(self, current, target):
        check_report_review(current, target, "in_progress")

    @pytest.mark.parametrize(
        "current,target",
        [("approved", "rejected"), ("rejected", "approved"), ("reviewed", "submitted")],
    )
    def test_invalid_transition(self, current, target):
        with pytest.raises(ToolError) as exc_info:
            check_report_review(current, target, "in_progress")
        assert exc_info.value.code == ErrorCode.INVALID_TRANSITION

    def test_approval_requires_in_progress_work_order(self):
        with pytest.raises(ToolError) as exc_info:
            check_report_review("submitted", "approved", "assigned")

        assert exc_info.value.code == ErrorCode.GUARD_FAILED
        assert "'assigned'" in exc_info.value.message

    def test_rejection_allowed_on_any_work_order(self):
        check_report_review("submitted", "rejected", "completed")

    def test_unknown_status(self):
        with pytest.raises(ToolError) as exc_info:
            check_report_review("submitted", "archived", "in_progress")
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR


class TestInvoicingReadiness:
    """Work orders are invoiceable once every report is approved."""

    def test_all_approved(self):
        assert reports_ready_for_invoicing([{"status": "approved"}, {"status": "approved"}])

    def test_one_pending(self):
        assert not reports_ready_for_invoicing([{"status": "approved"}, {"status": "reviewed"}])

    def test_no_reports(self):
        assert not reports_ready_for_invoicing([])

    def test_completion_only_from_in_progress(self):
        assert work_order_permits_completion("in_progress")
        assert not work_order_permits_completion("estimate_needed")
        assert not work_order_permits_completion("bogus")
