"""MCP tool handler for partner_status_label."""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from models.errors import ToolError, create_internal_error
from schemas.status_label import PartnerStatusLabelRequest, PartnerStatusLabelResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.status_display import estimate_tab_status, partner_friendly_status

logger = logging.getLogger(__name__)


def partner_status_label(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Translate a work order status into partner-portal wording.

    Args:
        args: Dictionary containing parameters:
            - status (str): Work order status
            - internal_estimate_amount (float, optional)
            - partner_estimate_approved (bool, optional)

    Returns:
        {"status", "label", "estimate_tab"}; estimate_tab is omitted when no
        internal estimate exists
    """
    try:
        request = PartnerStatusLabelRequest.model_validate(args)
        work_order = {
            "internal_estimate_amount": request.internal_estimate_amount,
            "partner_estimate_approved": request.partner_estimate_approved,
        }

        return PartnerStatusLabelResponse(
            status=request.status,
            label=partner_friendly_status(request.status, work_order),
            estimate_tab=estimate_tab_status(work_order),
        ).model_dump(exclude_none=True)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        logger.exception("Unexpected error in partner_status_label")
        return create_internal_error(message=str(e), original_error=e).to_dict()
