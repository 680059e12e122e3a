"""Pydantic schemas for request_work_order_transition tool."""

from __future__ import annotations

from typing import Optional

from pydantic import ValidationInfo, field_validator

from schemas.common import (
    DbPathMixin,
    StrictIgnoreRequest,
    StrictResponse,
    validate_required_non_empty_str,
)


class RequestWorkOrderTransitionRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for request_work_order_transition."""

    work_order_id: str
    current_status: str
    next_status: str
    reason: Optional[str] = None

    @field_validator("current_status", "next_status")
    @classmethod
    def validate_status_fields(cls, value: str, info: ValidationInfo) -> str:
        return validate_required_non_empty_str(value, info.field_name)


class WorkOrderTransitionResponse(StrictResponse):
    """Success response schema for request_work_order_transition."""

    success: bool
    work_order_id: str
    previous_status: str
    new_status: str
    message: str
    changed_at: Optional[str] = None
