"""
Stored procedures of the reference backend.

Each procedure runs inside a ``BackendSession`` transaction and returns a
structured result with at least ``success`` and ``message`` (the simple
numbering procedure returns the bare number string). Procedures re-validate
every rule independently of any client-side pre-check; they are the
authority on what is persisted.

Procedure names match the backend RPC contract:
- transition_work_order_status(work_order_id, new_status, reason, user_id)
- generate_work_order_number_v2(org_id, location_number)
- generate_work_order_number_simple(org_id, location_number)
- fix_existing_work_order_numbers()
- fix_work_order_sequence_numbers()
- review_work_order_report(report_id, new_status, user_id)
"""

import json
import logging
import re
from typing import Any, Callable, Dict, Optional

from db.backend import BackendSession
from models.errors import ToolError, create_remote_error, create_stale_state_error
from models.status import ReportStatus, WorkOrderStatus
from schemas.records import OrganizationRecord
from utils.email_templates import (
    EmailTemplateError,
    load_email_templates,
    render_subject,
    template_for_event,
)
from utils.report_policy import check_report_review, reports_ready_for_invoicing
from utils.validation import get_current_utc_timestamp
from utils.work_order_policy import check_transition_or_raise

logger = logging.getLogger(__name__)

# Sequence key reserved for numbers allocated by the simple procedure
SIMPLE_SEQUENCE_KEY = "__simple__"
DEFAULT_PREFIX = "WO"


def _failure(code: str, message: str) -> Dict[str, Any]:
    return {"success": False, "code": code, "message": message}


def _error_result(error: ToolError) -> Dict[str, Any]:
    return _failure(error.code.value.lower(), error.message)


def _write_audit_log(
    session: BackendSession,
    table_name: str,
    record_id: str,
    old_values: Dict[str, Any],
    new_values: Dict[str, Any],
    reason: Optional[str],
    user_id: Optional[str],
    timestamp: str,
) -> None:
    session.execute(
        """
        INSERT INTO audit_logs (
            table_name, record_id, action, old_values, new_values, reason, user_id, created_at
        ) VALUES (?, ?, 'UPDATE', ?, ?, ?, ?, ?)
        """,
        (
            table_name,
            record_id,
            json.dumps(old_values),
            json.dumps(new_values),
            reason,
            user_id,
            timestamp,
        ),
    )


def _enqueue_notification(
    session: BackendSession,
    group: str,
    status: str,
    record_type: str,
    record_id: str,
    context: Dict[str, Any],
    timestamp: str,
) -> Optional[str]:
    """Queue the email triggered by a status change; returns the template name."""
    try:
        templates = load_email_templates()
    except EmailTemplateError as e:
        logger.warning(f"Skipping notification for {record_type} {record_id}: {e}")
        return None

    template_name = template_for_event(templates, group, status)
    if template_name is None:
        return None

    session.execute(
        """
        INSERT INTO email_queue (template_name, record_id, record_type, subject, created_at)
        VALUES (?, ?, ?, ?, ?)
        """,
        (
            template_name,
            record_id,
            record_type,
            render_subject(templates, template_name, context),
            timestamp,
        ),
    )
    return template_name


def _apply_work_order_status(
    session: BackendSession,
    work_order: Dict[str, Any],
    new_status: WorkOrderStatus,
    reason: Optional[str],
    user_id: Optional[str],
    timestamp: str,
) -> None:
    old_status = work_order["status"]
    session.execute(
        "UPDATE work_orders SET status = ?, updated_at = ? WHERE id = ?",
        (new_status.value, timestamp, work_order["id"]),
    )
    _write_audit_log(
        session,
        "work_orders",
        work_order["id"],
        {"status": old_status},
        {"status": new_status.value},
        reason,
        user_id,
        timestamp,
    )
    _enqueue_notification(
        session,
        "work_order_status",
        new_status.value,
        "work_order",
        work_order["id"],
        {**work_order, "status": new_status.value},
        timestamp,
    )


def transition_work_order_status(
    session: BackendSession,
    work_order_id: str,
    new_status: str,
    reason: Optional[str] = None,
    user_id: Optional[str] = None,
    expected_status: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Authoritatively change a work order's status.

    When expected_status is given it must still match the stored status;
    otherwise the call fails with code ``stale_state`` and nothing is written.
    Re-checks the allow-list and the estimate guard against the stored row,
    then writes the status, an audit log entry and any triggered notification
    in the caller's transaction.
    """
    work_order = session.get_work_order(work_order_id)
    if work_order is None:
        return _failure("not_found", f"Work order not found: {work_order_id}")

    old_status = work_order["status"]
    if expected_status is not None and expected_status != old_status:
        error = create_stale_state_error(work_order_id, expected_status, old_status)
        logger.info(f"Backend rejected stale transition for {work_order_id}: {error.message}")
        return _error_result(error)

    try:
        check_transition_or_raise(old_status, new_status, work_order)
    except ToolError as e:
        logger.info(f"Backend rejected transition for {work_order_id}: {e.message}")
        return _error_result(e)

    timestamp = get_current_utc_timestamp()
    _apply_work_order_status(
        session, work_order, WorkOrderStatus(new_status), reason, user_id, timestamp
    )

    return {
        "success": True,
        "message": f"Work order status changed from '{old_status}' to '{new_status}'",
        "work_order_id": work_order_id,
        "old_status": old_status,
        "new_status": WorkOrderStatus(new_status).value,
        "changed_at": timestamp,
    }


def _next_sequence(session: BackendSession, organization_id: str, location_code: str) -> int:
    """Allocate the next number for an organization+location sequence."""
    row = session.execute(
        """
        SELECT next_number FROM work_order_number_sequences
        WHERE organization_id = ? AND location_code = ?
        """,
        (organization_id, location_code),
    ).fetchone()

    if row is None:
        allocated = 1
        session.execute(
            """
            INSERT INTO work_order_number_sequences (organization_id, location_code, next_number)
            VALUES (?, ?, ?)
            """,
            (organization_id, location_code, allocated + 1),
        )
    else:
        allocated = row["next_number"]
        session.execute(
            """
            UPDATE work_order_number_sequences SET next_number = ?
            WHERE organization_id = ? AND location_code = ?
            """,
            (allocated + 1, organization_id, location_code),
        )

    return allocated


def _format_number(initials: str, location_code: Optional[str], sequence: int) -> str:
    if location_code:
        return f"{initials}-{location_code}-{sequence:03d}"
    return f"{initials}-{sequence:04d}"


def generate_work_order_number_v2(
    session: BackendSession, org_id: str, location_number: Optional[str] = None
) -> Dict[str, Any]:
    """
    Allocate a work order number ``{INITIALS}-{LOCATION}-{SEQ:03d}``.

    Organizations that use partner location numbers must supply one; others
    fall back to ``{INITIALS}-{SEQ:04d}``.
    """
    row = session.get_organization(org_id)
    if row is None:
        return _failure("not_found", f"Organization not found: {org_id}")
    organization = OrganizationRecord.model_validate(row)

    initials = (organization.initials or "").strip().upper()
    if not initials:
        return _failure(
            "invalid_organization",
            f"Organization '{organization.name}' has no initials configured",
        )

    location_code = (location_number or "").strip() or None
    if organization.uses_partner_location_numbers and not location_code:
        return _failure(
            "location_required",
            f"Organization '{organization.name}' requires a partner location number",
        )

    sequence = _next_sequence(session, org_id, location_code or "")
    number = _format_number(initials, location_code, sequence)

    return {
        "success": True,
        "message": f"Generated work order number {number}",
        "work_order_number": number,
        "organization_initials": initials,
        "location_number": location_code,
        "sequence_number": sequence,
    }


def generate_work_order_number_simple(
    session: BackendSession, org_id: str, location_number: Optional[str] = None
) -> str:
    """
    Allocate a number from a per-organization counter, ignoring locations.

    Numbers look like ``ABC-S0007``; organizations without initials use
    ``WO``. Raises ToolError when the organization does not exist.
    """
    organization = session.get_organization(org_id)
    if organization is None:
        raise create_remote_error(f"Organization not found: {org_id}")

    initials = (organization.get("initials") or "").strip().upper() or DEFAULT_PREFIX
    sequence = _next_sequence(session, org_id, SIMPLE_SEQUENCE_KEY)
    return f"{initials}-S{sequence:04d}"


def fix_existing_work_order_numbers(session: BackendSession) -> Dict[str, Any]:
    """Assign numbers to work orders that were created without one."""
    cursor = session.execute(
        """
        SELECT id, organization_id, partner_location_number FROM work_orders
        WHERE work_order_number IS NULL OR work_order_number = ''
        ORDER BY created_at, id
        """
    )
    rows = [dict(row) for row in cursor.fetchall()]

    fixed = 0
    skipped = 0
    timestamp = get_current_utc_timestamp()
    for row in rows:
        if not row["organization_id"]:
            skipped += 1
            continue

        result = generate_work_order_number_v2(
            session, row["organization_id"], row["partner_location_number"]
        )
        if not result["success"]:
            logger.warning(f"Cannot number work order {row['id']}: {result['message']}")
            skipped += 1
            continue

        session.execute(
            "UPDATE work_orders SET work_order_number = ?, updated_at = ? WHERE id = ?",
            (result["work_order_number"], timestamp, row["id"]),
        )
        fixed += 1

    return {
        "success": True,
        "message": f"Assigned numbers to {fixed} work orders ({skipped} skipped)",
        "fixed_count": fixed,
        "skipped_count": skipped,
    }


def fix_work_order_sequence_numbers(session: BackendSession) -> Dict[str, Any]:
    """
    Resynchronise sequence counters with the numbers already in use.

    Counters only move forward: each organization+location counter is raised
    to one past the highest sequence found in existing work order numbers.
    """
    cursor = session.execute(
        """
        SELECT w.organization_id, w.partner_location_number, w.work_order_number, o.initials
        FROM work_orders w JOIN organizations o ON o.id = w.organization_id
        WHERE w.work_order_number IS NOT NULL AND w.work_order_number != ''
        """
    )

    highest: Dict[tuple, int] = {}
    for row in cursor.fetchall():
        initials = (row["initials"] or "").strip().upper()
        if not initials:
            continue
        location_code = (row["partner_location_number"] or "").strip()
        if location_code:
            pattern = rf"^{re.escape(initials)}-{re.escape(location_code)}-(\d+)$"
        else:
            pattern = rf"^{re.escape(initials)}-(\d+)$"
        match = re.match(pattern, row["work_order_number"])
        if match is None:
            continue
        key = (row["organization_id"], location_code)
        highest[key] = max(highest.get(key, 0), int(match.group(1)))

    updated = 0
    for (organization_id, location_code), max_sequence in sorted(highest.items()):
        current = session.execute(
            """
            SELECT next_number FROM work_order_number_sequences
            WHERE organization_id = ? AND location_code = ?
            """,
            (organization_id, location_code),
        ).fetchone()

        if current is None:
            session.execute(
                """
                INSERT INTO work_order_number_sequences (organization_id, location_code, next_number)
                VALUES (?, ?, ?)
                """,
                (organization_id, location_code, max_sequence + 1),
            )
            updated += 1
        elif current["next_number"] <= max_sequence:
            session.execute(
                """
                UPDATE work_order_number_sequences SET next_number = ?
                WHERE organization_id = ? AND location_code = ?
                """,
                (max_sequence + 1, organization_id, location_code),
            )
            updated += 1

    return {
        "success": True,
        "message": f"Resynchronised {updated} work order sequences",
        "updated_count": updated,
    }


def review_work_order_report(
    session: BackendSession,
    report_id: str,
    new_status: str,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Record a report review decision.

    Approving the last outstanding report of an in-progress work order
    completes the work order in the same transaction.
    """
    report = session.get_report(report_id)
    if report is None:
        return _failure("not_found", f"Report not found: {report_id}")

    work_order = session.get_work_order(report["work_order_id"])
    if work_order is None:
        return _failure("not_found", f"Work order not found: {report['work_order_id']}")

    try:
        check_report_review(report["status"], new_status, work_order["status"])
    except ToolError as e:
        logger.info(f"Backend rejected review of report {report_id}: {e.message}")
        return _error_result(e)

    target = ReportStatus(new_status)
    timestamp = get_current_utc_timestamp()
    session.execute(
        """
        UPDATE work_order_reports
        SET status = ?, reviewed_at = ?, reviewed_by_user_id = ?
        WHERE id = ?
        """,
        (target.value, timestamp, user_id, report_id),
    )
    _write_audit_log(
        session,
        "work_order_reports",
        report_id,
        {"status": report["status"]},
        {"status": target.value},
        None,
        user_id,
        timestamp,
    )
    _enqueue_notification(
        session,
        "report_status",
        target.value,
        "work_order_report",
        report_id,
        {**work_order, **report, "status": target.value},
        timestamp,
    )

    work_order_completed = False
    if target == ReportStatus.APPROVED:
        reports = session.get_reports_for_work_order(work_order["id"])
        if reports_ready_for_invoicing(reports):
            _apply_work_order_status(
                session,
                work_order,
                WorkOrderStatus.COMPLETED,
                "All reports approved",
                user_id,
                timestamp,
            )
            work_order_completed = True

    return {
        "success": True,
        "message": f"Report status changed from '{report['status']}' to '{target.value}'",
        "report_id": report_id,
        "old_status": report["status"],
        "new_status": target.value,
        "work_order_completed": work_order_completed,
    }


PROCEDURES: Dict[str, Callable[..., Any]] = {
    "transition_work_order_status": transition_work_order_status,
    "generate_work_order_number_v2": generate_work_order_number_v2,
    "generate_work_order_number_simple": generate_work_order_number_simple,
    "fix_existing_work_order_numbers": fix_existing_work_order_numbers,
    "fix_work_order_sequence_numbers": fix_work_order_sequence_numbers,
    "review_work_order_report": review_work_order_report,
}
