"""Shared fixtures: a temporary backend database seeded with a small data set."""

import pytest

from db.backend import BackendSession

ORGANIZATIONS = [
    ("org-acme", "Acme Retail", "ACM", "partner", 1),
    ("org-globex", "Globex Offices", "GLX", "partner", 0),
    ("org-blank", "Unnamed Partner", None, "partner", 0),
]

WORK_ORDERS = [
    # id, organization_id, status, work_order_number, location, estimate, approved
    ("wo-received", "org-acme", "received", None, "104", None, None),
    ("wo-estimate", "org-globex", "estimate_needed", None, None, 850.0, None),
    ("wo-approved", "org-globex", "estimate_pending_approval", None, None, 1200.0, 1),
    ("wo-progress", "org-globex", "in_progress", "GLX-0001", None, None, None),
]

REPORTS = [
    # id, work_order_id, bill_amount, status
    ("rpt-open", "wo-progress", 420.0, "submitted"),
    ("rpt-done", "wo-progress", 180.0, "approved"),
]


@pytest.fixture
def backend_db(tmp_path):
    """Path to a freshly seeded backend database."""
    db_path = str(tmp_path / "workorderpro.db")

    with BackendSession(db_path, create=True) as session:
        for row in ORGANIZATIONS:
            session.execute(
                """
                INSERT INTO organizations (
                    id, name, initials, organization_type, uses_partner_location_numbers
                ) VALUES (?, ?, ?, ?, ?)
                """,
                row,
            )
        for wo_id, org_id, status, number, location, estimate, approved in WORK_ORDERS:
            session.execute(
                """
                INSERT INTO work_orders (
                    id, organization_id, status, work_order_number, partner_location_number,
                    internal_estimate_amount, partner_estimate_approved, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, '2026-01-05T09:00:00.000Z')
                """,
                (wo_id, org_id, status, number, location, estimate, approved),
            )
        for report_id, wo_id, amount, status in REPORTS:
            session.execute(
                """
                INSERT INTO work_order_reports (
                    id, work_order_id, work_performed, bill_amount, status, submitted_at
                ) VALUES (?, ?, 'Replaced filter', ?, ?, '2026-01-06T09:00:00.000Z')
                """,
                (report_id, wo_id, amount, status),
            )
        session.commit()

    return db_path
