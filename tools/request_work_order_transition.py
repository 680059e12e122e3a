"""
MCP tool handler for request_work_order_transition.

Runs the two-phase status change: a local pre-check against the allow-list,
a freshness and guard check against the server copy, then the authoritative
backend procedure. An illegal pair never reaches the backend.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from db.rpc_client import RpcClient, raise_for_result
from models.errors import (
    ToolError,
    create_guard_failed_error,
    create_internal_error,
    create_not_found_error,
    create_stale_state_error,
)
from schemas.work_order_transition import (
    RequestWorkOrderTransitionRequest,
    WorkOrderTransitionResponse,
)
from utils.auth_provider import AnonymousAuthProvider, AuthProvider
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import validate_reason, validate_record_id
from utils.work_order_policy import check_estimate_guard, check_transition_or_raise

logger = logging.getLogger(__name__)

TRANSITION_PROCEDURE = "transition_work_order_status"


def request_transition(
    client: RpcClient,
    work_order_id: str,
    current_status: str,
    next_status: str,
    reason: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Move a work order from current_status to next_status.

    Steps:
    1. Validate the identifiers and the audit reason
    2. Check the pair against the allow-list (no remote call on failure)
    3. Fetch the server copy and compare its status with current_status
    4. Evaluate the estimate guard against the server copy
    5. Invoke the backend procedure, which re-validates everything and
       rejects the change as stale if the status moved since step 3

    A status string outside the known set is a VALIDATION_ERROR, not an
    INVALID_TRANSITION.

    Args:
        client: Backend RPC client
        work_order_id: Work order to change
        current_status: Status the caller believes is current
        next_status: Requested status
        reason: Optional audit reason
        user_id: Acting user recorded in the audit log

    Returns:
        Response dictionary built from WorkOrderTransitionResponse

    Raises:
        ToolError: VALIDATION_ERROR, INVALID_TRANSITION, NOT_FOUND,
            STALE_STATE, GUARD_FAILED or REMOTE_ERROR
    """
    work_order_id = validate_record_id(work_order_id, "work_order_id")
    reason = validate_reason(reason)

    check_transition_or_raise(current_status, next_status)

    work_order = client.fetch_work_order(work_order_id)
    if work_order is None:
        raise create_not_found_error("work order", work_order_id)

    server_status = work_order.status.value
    if server_status != current_status:
        logger.info(
            f"Stale transition request for {work_order_id}: "
            f"caller saw '{current_status}', server has '{server_status}'"
        )
        raise create_stale_state_error(work_order_id, current_status, server_status)

    guard_error = check_estimate_guard(current_status, next_status, work_order.model_dump())
    if guard_error:
        raise create_guard_failed_error(guard_error)

    result = raise_for_result(
        client.rpc(
            TRANSITION_PROCEDURE,
            {
                "work_order_id": work_order_id,
                "new_status": next_status,
                "reason": reason,
                "user_id": user_id,
                "expected_status": current_status,
            },
        ),
        TRANSITION_PROCEDURE,
    )

    logger.info(f"Work order {work_order_id} moved from '{current_status}' to '{next_status}'")

    return WorkOrderTransitionResponse(
        success=True,
        work_order_id=work_order_id,
        previous_status=result.get("old_status", current_status),
        new_status=result.get("new_status", next_status),
        message=result.get("message", ""),
        changed_at=result.get("changed_at"),
    ).model_dump(exclude_none=True)


def request_work_order_transition(
    args: Dict[str, Any],
    client: Optional[RpcClient] = None,
    auth_provider: Optional[AuthProvider] = None,
) -> Dict[str, Any]:
    """
    Request a work order status change.

    Args:
        args: Dictionary containing parameters:
            - work_order_id (str): Work order to change
            - current_status (str): Status the caller believes is current
            - next_status (str): Requested status
            - reason (str, optional): Audit reason
            - db_path (str, optional): Backend database override
        client: Optional RPC client (built from db_path when omitted)
        auth_provider: Source of the acting user id

    Returns:
        Dictionary with structure (success case):
        {
            "success": true,
            "work_order_id": str,
            "previous_status": str,
            "new_status": str,
            "message": str,
            "changed_at": str
        }

        On failure, returns:
        {
            "error": {
                "code": str,        # VALIDATION_ERROR, INVALID_TRANSITION, GUARD_FAILED,
                                    # STALE_STATE, NOT_FOUND, REMOTE_ERROR, INTERNAL_ERROR
                                    # (unknown status values give VALIDATION_ERROR)
                "message": str,
                "retryable": bool
            }
        }
    """
    try:
        request = RequestWorkOrderTransitionRequest.model_validate(args)
        client = client or RpcClient(request.db_path)
        auth_provider = auth_provider or AnonymousAuthProvider()

        return request_transition(
            client,
            work_order_id=request.work_order_id,
            current_status=request.current_status,
            next_status=request.next_status,
            reason=request.reason,
            user_id=auth_provider.current_user_id(),
        )

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        logger.exception("Unexpected error in request_work_order_transition")
        return create_internal_error(message=str(e), original_error=e).to_dict()
