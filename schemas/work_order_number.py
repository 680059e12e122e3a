"""Pydantic schemas for work order numbering tools."""

from __future__ import annotations

from typing import Literal, Optional

from schemas.common import DbPathMixin, StrictIgnoreRequest, StrictResponse


class GenerateWorkOrderNumberRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for generate_work_order_number."""

    organization_id: str
    location_code: Optional[str] = None


class WorkOrderNumberResponse(StrictResponse):
    """Result of number generation; warning is set whenever is_fallback is true."""

    work_order_number: str
    is_fallback: bool
    warning: Optional[str] = None


class FixWorkOrderNumbersRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for fix_work_order_numbers."""

    operation: Literal["missing_numbers", "sequences", "all"] = "all"


class FixOperationResult(StrictResponse):
    procedure: str
    success: bool
    message: str
    fixed_count: Optional[int] = None
    skipped_count: Optional[int] = None
    updated_count: Optional[int] = None


class FixWorkOrderNumbersResponse(StrictResponse):
    results: list[FixOperationResult]
