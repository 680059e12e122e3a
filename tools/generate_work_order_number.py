"""
MCP tool handler for generate_work_order_number.

Numbers are allocated by the backend only. The primary procedure builds
location-aware numbers; when it fails the simple procedure is tried once and
the result is flagged as a fallback so callers can surface a warning.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from db.rpc_client import RpcClient, raise_for_result
from models.errors import (
    REMOTE_ERROR_PREFIX,
    ToolError,
    create_internal_error,
    create_remote_error,
)
from schemas.work_order_number import GenerateWorkOrderNumberRequest, WorkOrderNumberResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import validate_location_code, validate_record_id

logger = logging.getLogger(__name__)

PRIMARY_PROCEDURE = "generate_work_order_number_v2"
FALLBACK_PROCEDURE = "generate_work_order_number_simple"

FALLBACK_WARNING = (
    "Primary numbering failed ({reason}); used simple numbering instead. "
    "The number may not follow the partner location format."
)


def _failure_message(error: Exception) -> str:
    if isinstance(error, ToolError):
        return error.message.removeprefix(REMOTE_ERROR_PREFIX)
    return str(error) or type(error).__name__


def _call_primary(client: RpcClient, params: Dict[str, Any]) -> str:
    result = raise_for_result(client.rpc(PRIMARY_PROCEDURE, params), PRIMARY_PROCEDURE)
    number = result.get("work_order_number")
    if not isinstance(number, str) or not number.strip():
        raise create_remote_error(f"{PRIMARY_PROCEDURE} returned no work order number")
    return number


def _call_fallback(client: RpcClient, params: Dict[str, Any]) -> str:
    number = client.rpc(FALLBACK_PROCEDURE, params)
    if not isinstance(number, str) or not number.strip():
        raise create_remote_error(f"{FALLBACK_PROCEDURE} returned no work order number")
    return number


def generate_number(
    client: RpcClient, organization_id: str, location_code: Optional[str] = None
) -> WorkOrderNumberResponse:
    """
    Allocate a work order number for an organization.

    Args:
        client: Backend RPC client
        organization_id: Organization the work order belongs to
        location_code: Optional partner location number

    Returns:
        WorkOrderNumberResponse; is_fallback is true (with a warning) when
        the simple procedure produced the number

    Raises:
        ToolError: VALIDATION_ERROR for bad input, REMOTE_ERROR when both
            procedures fail
    """
    organization_id = validate_record_id(organization_id, "organization_id")
    location_code = validate_location_code(location_code)
    params = {"org_id": organization_id, "location_number": location_code}

    try:
        number = _call_primary(client, params)
        return WorkOrderNumberResponse(work_order_number=number, is_fallback=False)
    except Exception as primary_error:  # noqa: BLE001 - any primary failure triggers the fallback
        reason = _failure_message(primary_error)
        logger.warning(
            f"Primary numbering failed for organization {organization_id}: {reason}; "
            "trying fallback"
        )

    try:
        number = _call_fallback(client, params)
    except Exception as fallback_error:  # noqa: BLE001 - reported as REMOTE_ERROR
        fallback_reason = _failure_message(fallback_error)
        logger.error(
            f"Fallback numbering failed for organization {organization_id}: {fallback_reason}"
        )
        raise create_remote_error(
            f"Work order number generation failed: {reason}; "
            f"fallback also failed: {fallback_reason}",
            original_error=fallback_error,
        ) from fallback_error

    return WorkOrderNumberResponse(
        work_order_number=number,
        is_fallback=True,
        warning=FALLBACK_WARNING.format(reason=reason),
    )


def generate_work_order_number(
    args: Dict[str, Any], client: Optional[RpcClient] = None
) -> Dict[str, Any]:
    """
    Generate the next work order number.

    Args:
        args: Dictionary containing parameters:
            - organization_id (str): Owning organization
            - location_code (str, optional): Partner location number
            - db_path (str, optional): Backend database override
        client: Optional RPC client (built from db_path when omitted)

    Returns:
        Success:
        {
            "work_order_number": str,
            "is_fallback": bool,
            "warning": str          # Present only when is_fallback is true
        }

        Failure (the number is always present and empty):
        {
            "work_order_number": "",
            "error": {"code": str, "message": str, "retryable": bool}
        }
    """
    try:
        request = GenerateWorkOrderNumberRequest.model_validate(args)
        client = client or RpcClient(request.db_path)
        response = generate_number(client, request.organization_id, request.location_code)
        return response.model_dump(exclude_none=True)

    except ValidationError as e:
        error = map_pydantic_validation_error(e)

    except ToolError as e:
        error = e

    except Exception as e:
        logger.exception("Unexpected error in generate_work_order_number")
        error = create_internal_error(message=str(e), original_error=e)

    return {"work_order_number": "", **error.to_dict()}
