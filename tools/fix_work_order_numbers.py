"""MCP tool handler for fix_work_order_numbers (numbering maintenance)."""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from db.rpc_client import RpcClient
from models.errors import ToolError, create_internal_error, create_remote_error
from schemas.work_order_number import (
    FixOperationResult,
    FixWorkOrderNumbersRequest,
    FixWorkOrderNumbersResponse,
)
from utils.pydantic_error_mapper import map_pydantic_validation_error

logger = logging.getLogger(__name__)

# Sequences are resynchronised first so newly assigned numbers cannot collide
OPERATION_PROCEDURES = {
    "missing_numbers": ["fix_existing_work_order_numbers"],
    "sequences": ["fix_work_order_sequence_numbers"],
    "all": ["fix_work_order_sequence_numbers", "fix_existing_work_order_numbers"],
}


def run_fix_procedures(client: RpcClient, operation: str) -> List[FixOperationResult]:
    """
    Run the maintenance procedures selected by operation, in order.

    A procedure reporting ``success: false`` is recorded and does not stop
    later procedures; transport failures raise.
    """
    results = []
    for procedure in OPERATION_PROCEDURES[operation]:
        raw = client.rpc(procedure, {})
        if not isinstance(raw, dict) or not isinstance(raw.get("success"), bool):
            raise create_remote_error(f"{procedure} returned a malformed response")

        logger.info(f"{procedure}: {raw.get('message', '')}")
        results.append(
            FixOperationResult(
                procedure=procedure,
                success=raw["success"],
                message=raw.get("message") or "",
                fixed_count=raw.get("fixed_count"),
                skipped_count=raw.get("skipped_count"),
                updated_count=raw.get("updated_count"),
            )
        )
    return results


def fix_work_order_numbers(
    args: Dict[str, Any], client: Optional[RpcClient] = None
) -> Dict[str, Any]:
    """
    Repair work order numbering.

    Args:
        args: Dictionary containing parameters:
            - operation (str, optional): "missing_numbers", "sequences" or "all" (default)
            - db_path (str, optional): Backend database override
        client: Optional RPC client (built from db_path when omitted)

    Returns:
        {"results": [{"procedure", "success", "message", counts...}, ...]}
        or {"error": {...}} on failure
    """
    try:
        request = FixWorkOrderNumbersRequest.model_validate(args)
        client = client or RpcClient(request.db_path)
        results = run_fix_procedures(client, request.operation)
        return FixWorkOrderNumbersResponse(results=results).model_dump(exclude_none=True)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        logger.exception("Unexpected error in fix_work_order_numbers")
        return create_internal_error(message=str(e), original_error=e).to_dict()
