#!/usr/bin/env python3
"""
MCP Server entry point for WorkOrderPro.

This server exposes the WorkOrderPro work order lifecycle to LLM agents via
the Model Context Protocol: status transitions with estimate guards, work
order numbering, invoice validation, report review and partner-facing
status labels.

Usage:
    python server.py

The server runs in stdio mode by default, which is the standard transport
for MCP servers that are invoked by LLM agents.
"""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from config import get_config
from models.errors import ToolError
from tools.draft_partner_invoice import draft_partner_invoice
from tools.fix_work_order_numbers import fix_work_order_numbers
from tools.generate_work_order_number import generate_work_order_number
from tools.partner_status_label import partner_status_label
from tools.request_work_order_transition import request_work_order_transition
from tools.review_report import review_report
from tools.validate_invoice import validate_invoice, validate_invoice_status_change
from utils.auth_provider import AnonymousAuthProvider, AuthProvider

# Create FastMCP server instance
config = get_config()
mcp = FastMCP(
    name=config.server_name,
    instructions=(
        "This server provides tools for WorkOrderPro work order operations. "
        "\n\n"
        "WORK ORDER LIFECYCLE:\n"
        "Use request_work_order_transition to move a work order between statuses. "
        "Always pass the status you last read as current_status; if the server copy has changed "
        "the call fails with STALE_STATE and you must re-read before retrying. "
        "Starting work from an estimate status requires a recorded estimate approved by the partner. "
        "Use review_report to approve or reject subcontractor reports; approving the last "
        "outstanding report completes the work order."
        "\n\n"
        "NUMBERING:\n"
        "Use generate_work_order_number to allocate a number; check is_fallback and surface the "
        "warning when the simple numbering scheme was used. "
        "Use fix_work_order_numbers for maintenance only."
        "\n\n"
        "INVOICING:\n"
        "Use validate_invoice_status_change and validate_invoice before saving invoices or bills. "
        "Use draft_partner_invoice to build a draft from approved reports (nothing is saved). "
        "Use partner_status_label for partner-facing status wording."
    ),
)

# Acting-user provider, replaced once at startup by main()
_auth_provider: AuthProvider = AnonymousAuthProvider()


def configure_auth_provider(provider: AuthProvider) -> None:
    """Install the acting-user provider used by all mutating tools."""
    global _auth_provider
    _auth_provider = provider


def get_auth_provider() -> AuthProvider:
    return _auth_provider


def _with_db_path(args: dict, db_path: Optional[str]) -> dict:
    if db_path is not None:
        args["db_path"] = db_path
    return args


@mcp.tool(
    name="request_work_order_transition",
    description=(
        "Change a work order's status. Validates the transition locally, checks that the caller's "
        "view is current (STALE_STATE otherwise) and the estimate guard, then asks the backend to "
        "apply it. Invalid pairs are rejected without contacting the backend."
    ),
)
def request_work_order_transition_tool(
    work_order_id: str,
    current_status: str,
    next_status: str,
    reason: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Request a work order status change.

    Args:
        work_order_id: Work order to change (required).
        current_status: Status the caller last read (required).
        next_status: Requested status (required). One of:
            received, assigned, estimate_needed, estimate_pending_approval,
            in_progress, completed, cancelled
        reason: Optional audit reason recorded with the change.
        db_path: Optional backend database override.

    Allowed transitions:
        - received -> assigned, estimate_needed, cancelled
        - assigned -> received, estimate_needed, in_progress, cancelled
        - estimate_needed -> estimate_pending_approval, in_progress, cancelled
        - estimate_pending_approval -> estimate_needed, in_progress, cancelled
        - in_progress -> completed, cancelled
        - completed, cancelled -> (terminal)

    A status outside the list above is rejected with VALIDATION_ERROR; a
    known but disallowed pair gives INVALID_TRANSITION. If the server copy
    changed since current_status was read, the result is STALE_STATE.

    Returns:
        {"success", "work_order_id", "previous_status", "new_status", "message", "changed_at"}
        or {"error": {"code", "message", "retryable"}}
    """
    args = {
        "work_order_id": work_order_id,
        "current_status": current_status,
        "next_status": next_status,
    }
    if reason is not None:
        args["reason"] = reason

    return request_work_order_transition(
        _with_db_path(args, db_path), auth_provider=get_auth_provider()
    )


@mcp.tool(
    name="generate_work_order_number",
    description=(
        "Allocate the next work order number for an organization. Falls back to simple numbering "
        "when the location-aware procedure fails and flags the result with is_fallback and a warning."
    ),
)
def generate_work_order_number_tool(
    organization_id: str,
    location_code: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Generate a work order number.

    Args:
        organization_id: Owning organization (required).
        location_code: Partner location number, required for organizations
            that use partner location numbers.
        db_path: Optional backend database override.

    Returns:
        {"work_order_number", "is_fallback", "warning"?} or
        {"work_order_number": "", "error": {...}}
    """
    args = {"organization_id": organization_id}
    if location_code is not None:
        args["location_code"] = location_code

    return generate_work_order_number(_with_db_path(args, db_path))


@mcp.tool(
    name="fix_work_order_numbers",
    description=(
        "Maintenance: assign numbers to work orders that lack one and/or resynchronise numbering "
        "sequences with the numbers already in use."
    ),
)
def fix_work_order_numbers_tool(
    operation: str = "all",
    db_path: str | None = None,
) -> dict:
    """
    Repair work order numbering.

    Args:
        operation: "missing_numbers", "sequences" or "all" (default).
        db_path: Optional backend database override.
    """
    return fix_work_order_numbers(_with_db_path({"operation": operation}, db_path))


@mcp.tool(
    name="validate_invoice_status_change",
    description=(
        "Check an invoice or bill status change against the allow-list: draft -> sent/cancelled, "
        "sent -> paid/overdue/cancelled, overdue -> paid/cancelled; paid and cancelled are terminal."
    ),
)
def validate_invoice_status_change_tool(current_status: str, next_status: str) -> dict:
    """Validate an invoice status change without saving anything."""
    return validate_invoice_status_change(
        {"current_status": current_status, "next_status": next_status}
    )


@mcp.tool(
    name="validate_invoice",
    description=(
        "Validate an invoice or bill: due date on or after invoice date, total within 0.01 of "
        "subtotal plus markup, and at least one line item with a description and positive amount."
    ),
)
def validate_invoice_tool(invoice: dict) -> dict:
    """
    Validate invoice amounts, dates and line items.

    Args:
        invoice: Object with invoice_date, due_date, subtotal, markup_percentage,
            total_amount and line_items ([{"description", "amount"}, ...]).

    Returns:
        {"valid": bool, "errors": [str, ...]}
    """
    return validate_invoice({"invoice": invoice})


@mcp.tool(
    name="review_report",
    description=(
        "Review a work order report (reviewed, approved, rejected, or resubmit a rejected report). "
        "Approval requires the work order to be in progress; approving the last outstanding report "
        "completes the work order."
    ),
)
def review_report_tool(
    report_id: str,
    new_status: str,
    current_status: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Review a work order report.

    Args:
        report_id: Report to review (required).
        new_status: submitted, reviewed, approved or rejected (required).
        current_status: Report status the reviewer saw; STALE_STATE if it changed.
        db_path: Optional backend database override.
    """
    args = {"report_id": report_id, "new_status": new_status}
    if current_status is not None:
        args["current_status"] = current_status

    return review_report(_with_db_path(args, db_path), auth_provider=get_auth_provider())


@mcp.tool(
    name="draft_partner_invoice",
    description=(
        "Build a draft partner invoice from approved work order reports, applying a markup. "
        "Returns the draft without saving it."
    ),
)
def draft_partner_invoice_tool(
    organization_id: str,
    report_ids: list[str],
    markup_percentage: float = 0.0,
    invoice_date: str | None = None,
    due_date: str | None = None,
    last_invoice_number: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Draft a partner invoice.

    Args:
        organization_id: Partner organization billed (required).
        report_ids: Reports to invoice (required, at least one). Every report on
            their work orders must be approved, and each work order must belong
            to organization_id.
        markup_percentage: Markup applied to the subtotal (default 0).
        invoice_date: ISO date (default today, UTC).
        due_date: ISO date, not before invoice_date.
        last_invoice_number: Highest existing number, e.g. "PI-2026-00041".
        db_path: Optional backend database override.
    """
    args = {
        "organization_id": organization_id,
        "report_ids": report_ids,
        "markup_percentage": markup_percentage,
    }
    if invoice_date is not None:
        args["invoice_date"] = invoice_date
    if due_date is not None:
        args["due_date"] = due_date
    if last_invoice_number is not None:
        args["last_invoice_number"] = last_invoice_number

    return draft_partner_invoice(_with_db_path(args, db_path))


@mcp.tool(
    name="partner_status_label",
    description=(
        "Translate a work order status into the wording shown to partners, plus the estimate tab "
        "badge when an internal estimate exists."
    ),
)
def partner_status_label_tool(
    status: str,
    internal_estimate_amount: float | None = None,
    partner_estimate_approved: bool | None = None,
) -> dict:
    """Return the partner-facing label for a work order status."""
    return partner_status_label(
        {
            "status": status,
            "internal_estimate_amount": internal_estimate_amount,
            "partner_estimate_approved": partner_estimate_approved,
        }
    )


def main():
    """
    Main entry point for the MCP server.

    Runs the server in stdio mode, which is the standard transport
    for MCP servers that are invoked by LLM agents.
    """
    # Load and setup configuration
    config.setup_logging()

    # Log startup information
    logger = logging.getLogger(__name__)
    logger.info("Starting WorkOrderPro MCP Server")
    logger.info(f"Server name: {config.server_name}")
    logger.info(f"Database path: {config.db_path}")

    # Validate configuration and log warnings
    warnings = config.validate()
    for warning in warnings:
        logger.warning(warning)

    try:
        configure_auth_provider(config.build_auth_provider())
    except ToolError as e:
        logger.error(f"Invalid auth provider configuration: {e.message}")
        raise SystemExit(1) from e
    logger.info(f"Auth provider: {get_auth_provider().name}")

    # Start the server
    logger.info("Server starting in stdio mode")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
