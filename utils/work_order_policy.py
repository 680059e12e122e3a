"""
Transition policy validation for work order status changes.

This module enforces the work order status rules:
- A transition (current, next) is legal only if next is in the allow-list for current
- Terminal statuses (completed, cancelled) accept no further transitions
- Entering in_progress from an estimate status requires an approved estimate

These checks are a pre-flight for the caller; the backend procedure
re-validates every transition and remains the source of truth.
"""

from typing import Dict, Any, Optional, List, Mapping, Union

from models.errors import (
    ToolError,
    create_guard_failed_error,
    create_invalid_transition_error,
    create_validation_error,
)
from models.status import (
    ESTIMATE_GATED_STATUSES,
    WORK_ORDER_TRANSITIONS,
    WorkOrderStatus,
)


class TransitionResult:
    """Result of a transition policy check."""

    def __init__(
        self,
        allowed: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        warnings: Optional[List[str]] = None,
    ):
        """
        Initialize a transition result.

        Args:
            allowed: Whether the transition is allowed
            error_code: ErrorCode value when the transition is blocked
            error_message: Error message if transition is blocked
            warnings: List of warning messages
        """
        self.allowed = allowed
        self.error_code = error_code
        self.error_message = error_message
        self.warnings = warnings or []

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary format."""
        result = {"allowed": self.allowed}
        if self.error_code:
            result["error_code"] = self.error_code
        if self.error_message:
            result["error_message"] = self.error_message
        if self.warnings:
            result["warnings"] = self.warnings
        return result


def parse_work_order_status(
    value: Union[str, WorkOrderStatus], field_name: str = "status"
) -> WorkOrderStatus:
    """
    Coerce a raw status string to WorkOrderStatus.

    Raises:
        ToolError: VALIDATION_ERROR if the value is not a known status
    """
    try:
        return WorkOrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in WorkOrderStatus)
        raise create_validation_error(
            f"Invalid {field_name}: '{value}'. Must be one of: {allowed}"
        ) from None


def allowed_next_statuses(current_status: Union[str, WorkOrderStatus]) -> List[str]:
    """Return the sorted list of statuses reachable from current_status."""
    current = parse_work_order_status(current_status, "current_status")
    return sorted(s.value for s in WORK_ORDER_TRANSITIONS[current])


def is_transition_allowed(
    current_status: Union[str, WorkOrderStatus], next_status: Union[str, WorkOrderStatus]
) -> bool:
    """Structural allow-list lookup; unknown statuses are never allowed."""
    try:
        current = WorkOrderStatus(current_status)
        target = WorkOrderStatus(next_status)
    except ValueError:
        return False
    return target in WORK_ORDER_TRANSITIONS[current]


def check_estimate_guard(
    current_status: Union[str, WorkOrderStatus],
    next_status: Union[str, WorkOrderStatus],
    work_order: Optional[Mapping[str, Any]],
) -> Optional[str]:
    """
    Evaluate the estimate approval guard for a transition.

    Entering in_progress from estimate_needed or estimate_pending_approval is
    blocked unless an estimate has been recorded AND the partner approved it.
    For every other transition the guard is vacuously satisfied.

    Args:
        current_status: The current work order status
        next_status: The requested next status
        work_order: Mapping with ``internal_estimate_amount`` and
            ``partner_estimate_approved`` (missing keys count as unset)

    Returns:
        None if the guard passes, otherwise a human-readable reason
    """
    if WorkOrderStatus(next_status) != WorkOrderStatus.IN_PROGRESS:
        return None
    if WorkOrderStatus(current_status) not in ESTIMATE_GATED_STATUSES:
        return None

    work_order = work_order or {}
    estimate = work_order.get("internal_estimate_amount")
    if estimate is None or estimate <= 0:
        return "Cannot start work: no estimate has been recorded for this work order"

    if work_order.get("partner_estimate_approved") is not True:
        return "Cannot start work: the partner has not approved the estimate"

    return None


def validate_transition(
    current_status: Union[str, WorkOrderStatus],
    next_status: Union[str, WorkOrderStatus],
    work_order: Optional[Mapping[str, Any]] = None,
) -> TransitionResult:
    """
    Validate a work order status transition according to policy rules.

    Policy rules:
    1. Both statuses must be known WorkOrderStatus values
    2. next_status must be in the allow-list for current_status
       (a no-op transition to the same status is not in any allow-list)
    3. When work_order is given, the estimate guard is evaluated

    Args:
        current_status: The current work order status
        next_status: The desired next status
        work_order: Optional record used to evaluate the estimate guard;
            when omitted only the structural check is performed

    Returns:
        TransitionResult indicating whether transition is allowed,
        with error code and message when blocked

    Examples:
        >>> validate_transition("received", "assigned").allowed
        True
        >>> validate_transition("received", "completed").error_code
        'INVALID_TRANSITION'
        >>> validate_transition(
        ...     "estimate_needed", "in_progress",
        ...     {"internal_estimate_amount": 500, "partner_estimate_approved": None},
        ... ).error_code
        'GUARD_FAILED'
    """
    try:
        current = parse_work_order_status(current_status, "current_status")
        target = parse_work_order_status(next_status, "next_status")
    except ToolError as e:
        return TransitionResult(allowed=False, error_code=e.code.value, error_message=e.message)

    if target not in WORK_ORDER_TRANSITIONS[current]:
        error = create_invalid_transition_error(
            "work order", current.value, target.value, WORK_ORDER_TRANSITIONS[current]
        )
        return TransitionResult(
            allowed=False, error_code=error.code.value, error_message=error.message
        )

    if work_order is not None:
        guard_error = check_estimate_guard(current, target, work_order)
        if guard_error:
            error = create_guard_failed_error(guard_error)
            return TransitionResult(
                allowed=False, error_code=error.code.value, error_message=error.message
            )

    return TransitionResult(allowed=True)


def check_transition_or_raise(
    current_status: Union[str, WorkOrderStatus],
    next_status: Union[str, WorkOrderStatus],
    work_order: Optional[Mapping[str, Any]] = None,
) -> TransitionResult:
    """
    Validate transition and raise ToolError if blocked.

    This is a convenience wrapper around validate_transition that raises
    a ToolError carrying the blocking error code.

    Raises:
        ToolError: VALIDATION_ERROR, INVALID_TRANSITION or GUARD_FAILED
    """
    current = parse_work_order_status(current_status, "current_status")
    target = parse_work_order_status(next_status, "next_status")

    if target not in WORK_ORDER_TRANSITIONS[current]:
        raise create_invalid_transition_error(
            "work order", current.value, target.value, WORK_ORDER_TRANSITIONS[current]
        )

    if work_order is not None:
        guard_error = check_estimate_guard(current, target, work_order)
        if guard_error:
            raise create_guard_failed_error(guard_error)

    return TransitionResult(allowed=True)
