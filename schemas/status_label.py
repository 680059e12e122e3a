"""Pydantic schemas for partner_status_label tool."""

from __future__ import annotations

from typing import Any, Optional

from schemas.common import StrictIgnoreRequest, StrictResponse


class PartnerStatusLabelRequest(StrictIgnoreRequest):
    status: str
    internal_estimate_amount: Optional[float] = None
    partner_estimate_approved: Optional[bool] = None


class PartnerStatusLabelResponse(StrictResponse):
    status: str
    label: str
    estimate_tab: Optional[dict[str, Any]] = None
