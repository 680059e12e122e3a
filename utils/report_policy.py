"""
Review policy for work order reports.

Rules:
- Report status follows REPORT_TRANSITIONS (approved is terminal; a rejected
  report may be resubmitted)
- A report can only be approved while its parent work order is in_progress,
  the one status from which a work order may be completed
- A work order is ready for invoicing only when it has reports and all of
  them are approved
"""

from typing import Any, Iterable, Mapping, Union

from models.errors import (
    create_guard_failed_error,
    create_invalid_transition_error,
    create_validation_error,
)
from models.status import (
    REPORT_TRANSITIONS,
    WORK_ORDER_TRANSITIONS,
    ReportStatus,
    WorkOrderStatus,
)


def _parse_report_status(value: Union[str, ReportStatus], field_name: str) -> ReportStatus:
    try:
        return ReportStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ReportStatus)
        raise create_validation_error(
            f"Invalid {field_name}: '{value}'. Must be one of: {allowed}"
        ) from None


def work_order_permits_completion(work_order_status: Union[str, WorkOrderStatus]) -> bool:
    """True when the work order may transition to completed."""
    try:
        status = WorkOrderStatus(work_order_status)
    except ValueError:
        return False
    return WorkOrderStatus.COMPLETED in WORK_ORDER_TRANSITIONS[status]


def check_report_review(
    current_status: Union[str, ReportStatus],
    next_status: Union[str, ReportStatus],
    work_order_status: Union[str, WorkOrderStatus],
) -> None:
    """
    Validate a report review action.

    Args:
        current_status: The report's current status
        next_status: The requested report status
        work_order_status: Status of the parent work order

    Raises:
        ToolError: VALIDATION_ERROR for unknown statuses, INVALID_TRANSITION when
            the pair is not allowed, GUARD_FAILED when approving a report whose
            work order cannot be completed
    """
    current = _parse_report_status(current_status, "current_status")
    target = _parse_report_status(next_status, "next_status")

    allowed = REPORT_TRANSITIONS[current]
    if target not in allowed:
        raise create_invalid_transition_error("report", current.value, target.value, allowed)

    if target == ReportStatus.APPROVED and not work_order_permits_completion(work_order_status):
        status_value = getattr(work_order_status, "value", work_order_status)
        raise create_guard_failed_error(
            f"Cannot approve report: work order status '{status_value}' "
            f"does not permit completion"
        )


def reports_ready_for_invoicing(reports: Iterable[Mapping[str, Any]]) -> bool:
    """True for a non-empty collection of reports that are all approved."""
    statuses = [report.get("status") for report in reports]
    if not statuses:
        return False
    return all(status == ReportStatus.APPROVED for status in statuses)
