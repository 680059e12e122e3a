"""Pydantic schemas for review_report tool."""

from __future__ import annotations

from typing import Optional

from schemas.common import DbPathMixin, StrictIgnoreRequest, StrictResponse


class ReviewReportRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for review_report.

    current_status is the status the reviewer saw; when given it must match
    the server copy.
    """

    report_id: str
    new_status: str
    current_status: Optional[str] = None


class ReviewReportResponse(StrictResponse):
    success: bool
    report_id: str
    previous_status: str
    new_status: str
    message: str
    work_order_completed: bool = False
