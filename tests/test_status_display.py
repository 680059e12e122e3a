"""
Unit tests for partner-facing status labels and the estimate tab badge.
"""

import pytest

from utils.status_display import estimate_tab_status, partner_friendly_status


class TestPartnerFriendlyStatus:
    """Status labels shown in the partner portal."""

    @pytest.mark.parametrize(
        "status,label",
        [
            ("received", "New"),
            ("assigned", "Assigned"),
            ("estimate_pending_approval", "Pending Your Approval"),
            ("in_progress", "In Progress"),
            ("completed", "Completed"),
            ("cancelled", "Cancelled"),
        ],
    )
    def test_fixed_labels(self, status, label):
        assert partner_friendly_status(status) == label

    def test_estimate_needed_with_estimate(self):
        work_order = {"internal_estimate_amount": 300.0}
        assert partner_friendly_status("estimate_needed", work_order) == "Pending Your Approval"

    def test_estimate_needed_without_estimate(self):
        assert partner_friendly_status("estimate_needed", {}) == "Preparing Estimate"
        assert partner_friendly_status("estimate_needed") == "Preparing Estimate"

    def test_unknown_status_echoes(self):
        assert partner_friendly_status("on_hold") == "on_hold"


class TestEstimateTabStatus:
    """Badge for the estimate tab."""

    def test_no_estimate(self):
        assert estimate_tab_status({"internal_estimate_amount": None}) is None
        assert estimate_tab_status(None) is None

    def test_awaiting_decision(self):
        badge = estimate_tab_status(
            {"internal_estimate_amount": 500.0, "partner_estimate_approved": None}
        )
        assert badge == {
            "showBadge": True,
            "badgeVariant": "warning",
            "badgeText": "Action Required",
            "pulseAnimation": True,
        }

    def test_approved(self):
        badge = estimate_tab_status(
            {"internal_estimate_amount": 500.0, "partner_estimate_approved": True}
        )
        assert badge["badgeVariant"] == "success"
        assert badge["badgeText"] == "Approved"

    def test_rejected(self):
        badge = estimate_tab_status(
            {"internal_estimate_amount": 500.0, "partner_estimate_approved": False}
        )
        assert badge["badgeVariant"] == "destructive"
        assert badge["badgeText"] == "Rejected"
