"""Partner-facing labels for work order statuses and the estimate tab badge."""

from typing import Any, Dict, Mapping, Optional

from models.status import WorkOrderStatus

PARTNER_STATUS_LABELS = {
    WorkOrderStatus.RECEIVED: "New",
    WorkOrderStatus.ASSIGNED: "Assigned",
    WorkOrderStatus.ESTIMATE_PENDING_APPROVAL: "Pending Your Approval",
    WorkOrderStatus.IN_PROGRESS: "In Progress",
    WorkOrderStatus.COMPLETED: "Completed",
    WorkOrderStatus.CANCELLED: "Cancelled",
}


def _has_internal_estimate(work_order: Optional[Mapping[str, Any]]) -> bool:
    if not work_order:
        return False
    amount = work_order.get("internal_estimate_amount")
    return amount is not None and amount > 0


def partner_friendly_status(status: str, work_order: Optional[Mapping[str, Any]] = None) -> str:
    """
    Map a work order status to the label shown in the partner portal.

    estimate_needed reads "Pending Your Approval" once an internal estimate
    exists and "Preparing Estimate" before that. Unknown statuses are
    returned unchanged.
    """
    try:
        known = WorkOrderStatus(status)
    except ValueError:
        return status

    if known == WorkOrderStatus.ESTIMATE_NEEDED:
        if _has_internal_estimate(work_order):
            return "Pending Your Approval"
        return "Preparing Estimate"

    return PARTNER_STATUS_LABELS[known]


def estimate_tab_status(work_order: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Describe the badge for the estimate tab of a work order.

    Returns None when no internal estimate exists. Otherwise the badge
    reflects ``partner_estimate_approved``: unset asks for action, True is
    approved, False is rejected.
    """
    if not _has_internal_estimate(work_order):
        return None

    approved = work_order.get("partner_estimate_approved")
    if approved is None:
        return {
            "showBadge": True,
            "badgeVariant": "warning",
            "badgeText": "Action Required",
            "pulseAnimation": True,
        }
    if approved is True:
        return {
            "showBadge": True,
            "badgeVariant": "success",
            "badgeText": "Approved",
            "pulseAnimation": False,
        }
    if approved is False:
        return {
            "showBadge": True,
            "badgeVariant": "destructive",
            "badgeText": "Rejected",
            "pulseAnimation": False,
        }
    return {"showBadge": False}
