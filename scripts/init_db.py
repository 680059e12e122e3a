#!/usr/bin/env python3
"""
Create the WorkOrderPro backend database, optionally with demo records.

Usage:
    python -m scripts.init_db [--db PATH] [--seed-demo]
"""

import argparse
import sys

from db.backend import BackendSession
from models.errors import ToolError
from utils.validation import get_current_utc_timestamp

DEMO_ORGANIZATIONS = [
    # id, name, initials, organization_type, uses_partner_location_numbers
    ("org-internal", "WorkOrderPro Services", "WOP", "internal", 0),
    ("org-acme", "Acme Retail", "ACM", "partner", 1),
    ("org-globex", "Globex Offices", "GLX", "partner", 0),
    ("org-initech", "Initech Electrical", "INT", "subcontractor", 0),
]

DEMO_WORK_ORDERS = [
    # id, organization_id, status, partner_location_number, estimate, approved
    ("wo-1001", "org-acme", "received", "104", None, None),
    ("wo-1002", "org-acme", "estimate_needed", "104", 850.0, None),
    ("wo-1003", "org-globex", "estimate_pending_approval", None, 1200.0, 1),
    ("wo-1004", "org-globex", "in_progress", None, None, None),
]

DEMO_REPORTS = [
    # id, work_order_id, work_performed, hours_worked, bill_amount, status
    ("rpt-2001", "wo-1004", "Replaced ballast in lobby fixtures", 3.5, 420.0, "submitted"),
]


def parse_args():
    parser = argparse.ArgumentParser(description="Initialize the WorkOrderPro SQLite backend.")
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite DB path (default: WORKORDERPRO_DB or data/workorderpro.db).",
    )
    parser.add_argument(
        "--seed-demo",
        action="store_true",
        help="Insert demo organizations, work orders and reports (existing ids are kept).",
    )
    return parser.parse_args()


def seed_demo_data(session: BackendSession) -> int:
    """Insert demo rows, skipping ids that already exist. Returns rows inserted."""
    now = get_current_utc_timestamp()
    inserted = 0

    for row in DEMO_ORGANIZATIONS:
        cursor = session.execute(
            """
            INSERT OR IGNORE INTO organizations (
                id, name, initials, organization_type, uses_partner_location_numbers
            ) VALUES (?, ?, ?, ?, ?)
            """,
            row,
        )
        inserted += cursor.rowcount

    for wo_id, org_id, status, location, estimate, approved in DEMO_WORK_ORDERS:
        cursor = session.execute(
            """
            INSERT OR IGNORE INTO work_orders (
                id, organization_id, status, partner_location_number,
                internal_estimate_amount, partner_estimate_approved, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (wo_id, org_id, status, location, estimate, approved, now),
        )
        inserted += cursor.rowcount

    for report_id, wo_id, performed, hours, amount, status in DEMO_REPORTS:
        cursor = session.execute(
            """
            INSERT OR IGNORE INTO work_order_reports (
                id, work_order_id, work_performed, hours_worked, bill_amount, status, submitted_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (report_id, wo_id, performed, hours, amount, status, now),
        )
        inserted += cursor.rowcount

    return inserted


def main() -> int:
    args = parse_args()
    try:
        with BackendSession(args.db, create=True) as session:
            inserted = seed_demo_data(session) if args.seed_demo else 0
            session.commit()
            db_path = session.resolved_path
    except ToolError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1

    print(f"db: {db_path}")
    if args.seed_demo:
        print(f"demo rows inserted: {inserted}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
