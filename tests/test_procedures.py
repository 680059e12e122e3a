"""
Tests for the backend stored procedures.

Procedures re-validate every rule on their own and write audit and
notification rows in the caller's transaction.
"""

import json

import pytest

from db.backend import BackendSession
from db.procedures import (
    PROCEDURES,
    fix_existing_work_order_numbers,
    fix_work_order_sequence_numbers,
    generate_work_order_number_simple,
    generate_work_order_number_v2,
    review_work_order_report,
    transition_work_order_status,
)
from models.errors import ErrorCode, ToolError


def _queued_templates(session, record_id):
    cursor = session.execute(
        "SELECT template_name FROM email_queue WHERE record_id = ? ORDER BY id", (record_id,)
    )
    return [row["template_name"] for row in cursor.fetchall()]


class TestTransitionWorkOrderStatus:
    """Authoritative work order status changes."""

    def test_success_writes_status_audit_and_email(self, backend_db):
        with BackendSession(backend_db) as session:
            result = transition_work_order_status(
                session, "wo-received", "assigned", reason="dispatch", user_id="admin-1"
            )
            session.commit()

        assert result["success"] is True
        assert result["old_status"] == "received"
        assert result["new_status"] == "assigned"
        assert result["changed_at"].endswith("Z")

        with BackendSession(backend_db) as session:
            assert session.get_work_order("wo-received")["status"] == "assigned"
            logs = session.get_audit_logs("wo-received")
            assert _queued_templates(session, "wo-received") == ["work_order_assigned"]

        assert len(logs) == 1
        assert json.loads(logs[0]["old_values"]) == {"status": "received"}
        assert json.loads(logs[0]["new_values"]) == {"status": "assigned"}
        assert logs[0]["reason"] == "dispatch"
        assert logs[0]["user_id"] == "admin-1"

    def test_untriggered_status_queues_nothing(self, backend_db):
        with BackendSession(backend_db) as session:
            transition_work_order_status(session, "wo-received", "estimate_needed")
            assert _queued_templates(session, "wo-received") == []

    def test_invalid_transition(self, backend_db):
        with BackendSession(backend_db) as session:
            result = transition_work_order_status(session, "wo-received", "completed")
            assert session.get_audit_logs("wo-received") == []

        assert result["success"] is False
        assert result["code"] == "invalid_transition"

    def test_guard_rechecked_by_backend(self, backend_db):
        with BackendSession(backend_db) as session:
            result = transition_work_order_status(session, "wo-estimate", "in_progress")

        assert result["success"] is False
        assert result["code"] == "guard_failed"

    def test_approved_estimate_starts_work(self, backend_db):
        with BackendSession(backend_db) as session:
            result = transition_work_order_status(session, "wo-approved", "in_progress")
        assert result["success"] is True

    def test_not_found(self, backend_db):
        with BackendSession(backend_db) as session:
            result = transition_work_order_status(session, "wo-missing", "assigned")
        assert result == {
            "success": False,
            "code": "not_found",
            "message": "Work order not found: wo-missing",
        }

    def test_expected_status_mismatch_is_stale(self, backend_db):
        with BackendSession(backend_db) as session:
            result = transition_work_order_status(
                session, "wo-received", "cancelled", expected_status="assigned"
            )
            assert session.get_work_order("wo-received")["status"] == "received"
            assert session.get_audit_logs("wo-received") == []

        assert result["success"] is False
        assert result["code"] == "stale_state"

    def test_expected_status_match_applies(self, backend_db):
        with BackendSession(backend_db) as session:
            result = transition_work_order_status(
                session, "wo-received", "assigned", expected_status="received"
            )
        assert result["success"] is True


class TestNumbering:
    """Number allocation procedures."""

    def test_v2_with_location(self, backend_db):
        with BackendSession(backend_db) as session:
            first = generate_work_order_number_v2(session, "org-acme", "104")
            second = generate_work_order_number_v2(session, "org-acme", "104")
            other = generate_work_order_number_v2(session, "org-acme", "220")

        assert first["work_order_number"] == "ACM-104-001"
        assert second["work_order_number"] == "ACM-104-002"
        assert other["work_order_number"] == "ACM-220-001"
        assert second["sequence_number"] == 2

    def test_v2_without_location(self, backend_db):
        with BackendSession(backend_db) as session:
            result = generate_work_order_number_v2(session, "org-globex")
        assert result["work_order_number"] == "GLX-0001"

    def test_v2_requires_location_when_configured(self, backend_db):
        with BackendSession(backend_db) as session:
            result = generate_work_order_number_v2(session, "org-acme", None)
        assert result["success"] is False
        assert result["code"] == "location_required"

    def test_v2_requires_initials(self, backend_db):
        with BackendSession(backend_db) as session:
            result = generate_work_order_number_v2(session, "org-blank")
        assert result["code"] == "invalid_organization"

    def test_v2_unknown_organization(self, backend_db):
        with BackendSession(backend_db) as session:
            result = generate_work_order_number_v2(session, "org-missing")
        assert result["code"] == "not_found"

    def test_simple_numbers(self, backend_db):
        with BackendSession(backend_db) as session:
            acme = generate_work_order_number_simple(session, "org-acme", "104")
            blank = generate_work_order_number_simple(session, "org-blank")
            again = generate_work_order_number_simple(session, "org-blank")

        assert acme == "ACM-S0001"
        assert blank == "WO-S0001"
        assert again == "WO-S0002"

    def test_simple_unknown_organization_raises(self, backend_db):
        with BackendSession(backend_db) as session:
            with pytest.raises(ToolError) as exc_info:
                generate_work_order_number_simple(session, "org-missing")
        assert exc_info.value.code == ErrorCode.REMOTE_ERROR


class TestNumberMaintenance:
    """fix_* maintenance procedures."""

    def test_sequences_follow_existing_numbers(self, backend_db):
        with BackendSession(backend_db) as session:
            result = fix_work_order_sequence_numbers(session)
            repeat = fix_work_order_sequence_numbers(session)
            number = generate_work_order_number_v2(session, "org-globex")

        assert result["updated_count"] == 1
        assert repeat["updated_count"] == 0
        assert number["work_order_number"] == "GLX-0002"

    def test_fix_existing_numbers(self, backend_db):
        with BackendSession(backend_db) as session:
            fix_work_order_sequence_numbers(session)
            result = fix_existing_work_order_numbers(session)
            received = session.get_work_order("wo-received")
            numbers = sorted(
                session.get_work_order(wo_id)["work_order_number"]
                for wo_id in ("wo-estimate", "wo-approved")
            )

        assert result["success"] is True
        assert result["fixed_count"] == 3
        assert result["skipped_count"] == 0
        assert received["work_order_number"] == "ACM-104-001"
        assert numbers == ["GLX-0002", "GLX-0003"]


class TestReviewWorkOrderReport:
    """Report review procedure."""

    def test_last_approval_completes_work_order(self, backend_db):
        with BackendSession(backend_db) as session:
            result = review_work_order_report(session, "rpt-open", "approved", user_id="admin-1")
            session.commit()

        assert result["success"] is True
        assert result["work_order_completed"] is True

        with BackendSession(backend_db) as session:
            report = session.get_report("rpt-open")
            assert session.get_work_order("wo-progress")["status"] == "completed"
            assert _queued_templates(session, "rpt-open") == ["report_approved"]
            assert _queued_templates(session, "wo-progress") == ["work_order_completed"]

        assert report["status"] == "approved"
        assert report["reviewed_by_user_id"] == "admin-1"
        assert report["reviewed_at"] is not None

    def test_rejection_keeps_work_order_open(self, backend_db):
        with BackendSession(backend_db) as session:
            result = review_work_order_report(session, "rpt-open", "rejected")
            status = session.get_work_order("wo-progress")["status"]

        assert result["work_order_completed"] is False
        assert status == "in_progress"

    def test_approved_report_is_final(self, backend_db):
        with BackendSession(backend_db) as session:
            result = review_work_order_report(session, "rpt-done", "rejected")
        assert result["code"] == "invalid_transition"

    def test_unknown_report(self, backend_db):
        with BackendSession(backend_db) as session:
            result = review_work_order_report(session, "rpt-missing", "approved")
        assert result["code"] == "not_found"


def test_procedure_registry_names():
    assert set(PROCEDURES) == {
        "transition_work_order_status",
        "generate_work_order_number_v2",
        "generate_work_order_number_simple",
        "fix_existing_work_order_numbers",
        "fix_work_order_sequence_numbers",
        "review_work_order_report",
    }
