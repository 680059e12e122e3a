"""
MCP tool handler for review_report.

Reviews a work order report the same way work order transitions are made:
a local check against the server copy first, then the backend procedure
re-validates and records the decision. Approving the last outstanding
report completes the work order.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from db.rpc_client import RpcClient, raise_for_result
from models.errors import (
    ToolError,
    create_internal_error,
    create_not_found_error,
    create_stale_state_error,
)
from schemas.report_review import ReviewReportRequest, ReviewReportResponse
from utils.auth_provider import AnonymousAuthProvider, AuthProvider
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.report_policy import check_report_review
from utils.validation import validate_record_id

logger = logging.getLogger(__name__)

REVIEW_PROCEDURE = "review_work_order_report"


def review(
    client: RpcClient,
    report_id: str,
    new_status: str,
    current_status: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Move a report to new_status.

    Raises:
        ToolError: NOT_FOUND, STALE_STATE (when current_status no longer
            matches the server), INVALID_TRANSITION, GUARD_FAILED or REMOTE_ERROR
    """
    report_id = validate_record_id(report_id, "report_id")

    report = client.fetch_report(report_id)
    if report is None:
        raise create_not_found_error("report", report_id)

    server_status = report.status.value
    if current_status is not None and current_status != server_status:
        raise create_stale_state_error(report_id, current_status, server_status)

    work_order = client.fetch_work_order(report.work_order_id)
    if work_order is None:
        raise create_not_found_error("work order", report.work_order_id)

    check_report_review(server_status, new_status, work_order.status)

    result = raise_for_result(
        client.rpc(
            REVIEW_PROCEDURE,
            {"report_id": report_id, "new_status": new_status, "user_id": user_id},
        ),
        REVIEW_PROCEDURE,
    )

    if result.get("work_order_completed"):
        logger.info(f"Work order {report.work_order_id} completed by approval of {report_id}")

    return ReviewReportResponse(
        success=True,
        report_id=report_id,
        previous_status=result.get("old_status", server_status),
        new_status=result.get("new_status", new_status),
        message=result.get("message", ""),
        work_order_completed=bool(result.get("work_order_completed", False)),
    ).model_dump()


def review_report(
    args: Dict[str, Any],
    client: Optional[RpcClient] = None,
    auth_provider: Optional[AuthProvider] = None,
) -> Dict[str, Any]:
    """
    Review (approve, reject or mark reviewed) a work order report.

    Args:
        args: Dictionary containing parameters:
            - report_id (str): Report to review
            - new_status (str): reviewed, approved, rejected or submitted
            - current_status (str, optional): Status the reviewer saw
            - db_path (str, optional): Backend database override
        client: Optional RPC client (built from db_path when omitted)
        auth_provider: Source of the reviewing user id

    Returns:
        {"success", "report_id", "previous_status", "new_status", "message",
        "work_order_completed"} or {"error": {...}}
    """
    try:
        request = ReviewReportRequest.model_validate(args)
        client = client or RpcClient(request.db_path)
        auth_provider = auth_provider or AnonymousAuthProvider()

        return review(
            client,
            report_id=request.report_id,
            new_status=request.new_status,
            current_status=request.current_status,
            user_id=auth_provider.current_user_id(),
        )

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        logger.exception("Unexpected error in review_report")
        return create_internal_error(message=str(e), original_error=e).to_dict()
