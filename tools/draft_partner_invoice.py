"""MCP tool handler for draft_partner_invoice."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from db.rpc_client import RpcClient
from models.errors import (
    ToolError,
    create_internal_error,
    create_not_found_error,
    create_validation_error,
)
from models.status import ReportStatus
from schemas.invoice import DraftPartnerInvoiceRequest, DraftPartnerInvoiceResponse
from utils.partner_invoice import build_partner_invoice_draft, next_partner_invoice_number
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.report_policy import reports_ready_for_invoicing
from utils.validation import validate_record_id

logger = logging.getLogger(__name__)


def check_work_orders_invoiceable(client: RpcClient, organization_id: str, reports) -> None:
    """
    Check every work order behind the selected reports.

    Each work order must belong to organization_id and every report filed
    against it must be approved, not only the ones selected.

    Raises:
        ToolError: NOT_FOUND for a missing work order, VALIDATION_ERROR otherwise
    """
    work_order_ids = []
    for report in reports:
        if report.work_order_id not in work_order_ids:
            work_order_ids.append(report.work_order_id)

    for work_order_id in work_order_ids:
        work_order = client.fetch_work_order(work_order_id)
        if work_order is None:
            raise create_not_found_error("work order", work_order_id)
        if work_order.organization_id != organization_id:
            raise create_validation_error(
                f"Work order {work_order_id} belongs to organization "
                f"'{work_order.organization_id}', not '{organization_id}'"
            )

        siblings = client.fetch_reports_for_work_order(work_order_id)
        if not reports_ready_for_invoicing(r.model_dump(mode="json") for r in siblings):
            pending = [r.id for r in siblings if r.status != ReportStatus.APPROVED]
            raise create_validation_error(
                f"Cannot invoice work order {work_order_id}: every report must be approved "
                f"(pending: {', '.join(pending)})"
            )


def draft_partner_invoice(
    args: Dict[str, Any], client: Optional[RpcClient] = None
) -> Dict[str, Any]:
    """
    Draft a partner invoice from approved work order reports.

    Nothing is persisted; the draft is returned for review.

    Args:
        args: Dictionary containing parameters:
            - organization_id (str): Partner organization billed
            - report_ids (list[str]): Reports to invoice; every report on their
              work orders must be approved and the work orders must belong
              to organization_id
            - markup_percentage (float, optional): Markup on the subtotal (default 0)
            - invoice_date (str, optional): ISO date, defaults to today (UTC)
            - due_date (str, optional): ISO date, not before invoice_date
            - last_invoice_number (str, optional): Highest existing PI number
            - db_path (str, optional): Backend database override
        client: Optional RPC client (built from db_path when omitted)

    Returns:
        {"invoice": {...}} or {"error": {...}}
    """
    try:
        request = DraftPartnerInvoiceRequest.model_validate(args)
        client = client or RpcClient(request.db_path)

        organization_id = validate_record_id(request.organization_id, "organization_id")
        report_ids = []
        for index, report_id in enumerate(request.report_ids):
            report_id = validate_record_id(report_id, f"report_ids[{index}]")
            if report_id not in report_ids:
                report_ids.append(report_id)

        reports = client.fetch_reports(report_ids)
        found = {report.id for report in reports}
        missing = [report_id for report_id in report_ids if report_id not in found]
        if missing:
            raise create_not_found_error("report", ", ".join(missing))

        check_work_orders_invoiceable(client, organization_id, reports)

        invoice_date = request.invoice_date or datetime.now(timezone.utc).date()
        invoice_number = next_partner_invoice_number(
            request.last_invoice_number, invoice_date.year
        )

        draft = build_partner_invoice_draft(
            organization_id,
            [report.model_dump(mode="json") for report in reports],
            request.markup_percentage,
            invoice_date,
            due_date=request.due_date,
            invoice_number=invoice_number,
        )
        logger.info(
            f"Drafted {invoice_number} for {organization_id}: "
            f"{len(reports)} reports, total {draft['total_amount']:.2f}"
        )
        return DraftPartnerInvoiceResponse(invoice=draft).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        logger.exception("Unexpected error in draft_partner_invoice")
        return create_internal_error(message=str(e), original_error=e).to_dict()
