"""
Centralized, type-safe status definitions for WorkOrderPro.

This module is the single source of truth for all status values used across
the application. It defines the following Enum classes:

- ``WorkOrderStatus``: lifecycle of a work order (``work_orders.status``).
- ``ReportStatus``: review lifecycle of a work order report.
- ``InvoiceStatus``: lifecycle of partner invoices and subcontractor bills.
- ``OrganizationType``: the kind of tenant an organization represents.

All Enums inherit from ``(str, Enum)`` so that members are directly
comparable to plain strings and serialize naturally to JSON at API
boundaries, preserving the backend contract.
"""

from enum import Enum
from typing import Dict, FrozenSet


class WorkOrderStatus(str, Enum):
    """Enum for statuses stored in the ``work_orders`` table.

    Canonical flow:
        received  ->  assigned  ->  in_progress  ->  completed
        received | assigned  ->  estimate_needed  ->  estimate_pending_approval
        estimate_* ->  in_progress  (only once the partner approved the estimate)
        any non-terminal  ->  cancelled
    """

    RECEIVED = "received"
    ASSIGNED = "assigned"
    ESTIMATE_NEEDED = "estimate_needed"
    ESTIMATE_PENDING_APPROVAL = "estimate_pending_approval"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ReportStatus(str, Enum):
    """Enum for statuses stored in the ``work_order_reports`` table."""

    SUBMITTED = "submitted"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvoiceStatus(str, Enum):
    """Enum for partner invoice and subcontractor bill statuses."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class OrganizationType(str, Enum):
    PARTNER = "partner"
    SUBCONTRACTOR = "subcontractor"
    INTERNAL = "internal"


# current_status -> allowed next statuses
WORK_ORDER_TRANSITIONS: Dict[WorkOrderStatus, FrozenSet[WorkOrderStatus]] = {
    WorkOrderStatus.RECEIVED: frozenset(
        {WorkOrderStatus.ASSIGNED, WorkOrderStatus.ESTIMATE_NEEDED, WorkOrderStatus.CANCELLED}
    ),
    WorkOrderStatus.ASSIGNED: frozenset(
        {
            WorkOrderStatus.RECEIVED,
            WorkOrderStatus.ESTIMATE_NEEDED,
            WorkOrderStatus.IN_PROGRESS,
            WorkOrderStatus.CANCELLED,
        }
    ),
    WorkOrderStatus.ESTIMATE_NEEDED: frozenset(
        {
            WorkOrderStatus.ESTIMATE_PENDING_APPROVAL,
            WorkOrderStatus.IN_PROGRESS,
            WorkOrderStatus.CANCELLED,
        }
    ),
    WorkOrderStatus.ESTIMATE_PENDING_APPROVAL: frozenset(
        {
            WorkOrderStatus.ESTIMATE_NEEDED,
            WorkOrderStatus.IN_PROGRESS,
            WorkOrderStatus.CANCELLED,
        }
    ),
    WorkOrderStatus.IN_PROGRESS: frozenset({WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}),
    WorkOrderStatus.COMPLETED: frozenset(),
    WorkOrderStatus.CANCELLED: frozenset(),
}

# Statuses from which entering in_progress requires an approved estimate
ESTIMATE_GATED_STATUSES: FrozenSet[WorkOrderStatus] = frozenset(
    {WorkOrderStatus.ESTIMATE_NEEDED, WorkOrderStatus.ESTIMATE_PENDING_APPROVAL}
)

TERMINAL_WORK_ORDER_STATUSES: FrozenSet[WorkOrderStatus] = frozenset(
    status for status, allowed in WORK_ORDER_TRANSITIONS.items() if not allowed
)

REPORT_TRANSITIONS: Dict[ReportStatus, FrozenSet[ReportStatus]] = {
    ReportStatus.SUBMITTED: frozenset(
        {ReportStatus.REVIEWED, ReportStatus.APPROVED, ReportStatus.REJECTED}
    ),
    ReportStatus.REVIEWED: frozenset({ReportStatus.APPROVED, ReportStatus.REJECTED}),
    ReportStatus.REJECTED: frozenset({ReportStatus.SUBMITTED}),
    ReportStatus.APPROVED: frozenset(),
}

INVOICE_TRANSITIONS: Dict[InvoiceStatus, FrozenSet[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.SENT, InvoiceStatus.CANCELLED}),
    InvoiceStatus.SENT: frozenset(
        {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED}
    ),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.PAID, InvoiceStatus.CANCELLED}),
    InvoiceStatus.CANCELLED: frozenset(),
}
