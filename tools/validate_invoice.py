"""
MCP tool handlers for invoice and bill validation.

Both tools are pure: they never touch the backend.
- validate_invoice_status_change: the invoice status allow-list
- validate_invoice: date, total/markup and line item checks
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from models.errors import ToolError, create_internal_error
from schemas.invoice import (
    InvoiceStatusChangeRequest,
    InvoiceStatusChangeResponse,
    ValidateInvoiceRequest,
    ValidateInvoiceResponse,
)
from utils.invoice_policy import (
    allowed_next_invoice_statuses,
    validate_invoice as check_invoice,
    validate_status_change,
)
from utils.pydantic_error_mapper import map_pydantic_validation_error

logger = logging.getLogger(__name__)


def validate_invoice_status_change(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check whether an invoice may move from current_status to next_status.

    Args:
        args: Dictionary containing parameters:
            - current_status (str): Invoice status now
            - next_status (str): Requested status

    Returns:
        {"valid": true, "current_status", "next_status", "allowed_next_statuses"}
        when allowed, otherwise {"error": {...}} with INVALID_TRANSITION
        (or VALIDATION_ERROR for unknown statuses)
    """
    try:
        request = InvoiceStatusChangeRequest.model_validate(args)
        validate_status_change(request.current_status, request.next_status)

        return InvoiceStatusChangeResponse(
            valid=True,
            current_status=request.current_status,
            next_status=request.next_status,
            allowed_next_statuses=allowed_next_invoice_statuses(request.current_status),
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        logger.exception("Unexpected error in validate_invoice_status_change")
        return create_internal_error(message=str(e), original_error=e).to_dict()


def validate_invoice(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate an invoice or bill payload.

    Args:
        args: Dictionary containing parameters:
            - invoice (object): invoice_date, due_date, subtotal,
              markup_percentage, total_amount and line_items

    Returns:
        {"valid": bool, "errors": [str, ...]}; an invalid invoice is a normal
        result, not an error response
    """
    try:
        request = ValidateInvoiceRequest.model_validate(args)
        errors = check_invoice(request.invoice)
        if errors:
            logger.debug(f"Invoice failed validation: {errors}")

        return ValidateInvoiceResponse(valid=not errors, errors=errors).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        logger.exception("Unexpected error in validate_invoice")
        return create_internal_error(message=str(e), original_error=e).to_dict()
