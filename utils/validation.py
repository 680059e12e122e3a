"""
Input validation utilities for WorkOrderPro MCP tools.

Validates record identifiers, audit reasons and location codes, and provides
the shared UTC timestamp format used by the backend.
"""

import re
from datetime import datetime, timezone
from typing import Any, Optional

from models.errors import create_validation_error

MAX_RECORD_ID_LENGTH = 64
MAX_REASON_LENGTH = 500
MAX_LOCATION_CODE_LENGTH = 20

_RECORD_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]*$")
_LOCATION_CODE_PATTERN = re.compile(r"^[A-Za-z0-9\-]+$")


def validate_record_id(value: Any, field_name: str = "id") -> str:
    """
    Validate a backend record identifier (UUID or slug-like string).

    Args:
        value: The identifier to validate
        field_name: Name used in error messages

    Returns:
        The stripped identifier

    Raises:
        ToolError: If the identifier is not a non-empty, well-formed string
    """
    if not isinstance(value, str):
        raise create_validation_error(
            f"Invalid {field_name} type: expected string, got {type(value).__name__}"
        )

    stripped = value.strip()
    if not stripped:
        raise create_validation_error(f"Invalid {field_name}: cannot be empty")

    if len(stripped) > MAX_RECORD_ID_LENGTH:
        raise create_validation_error(
            f"Invalid {field_name}: exceeds maximum length of {MAX_RECORD_ID_LENGTH}"
        )

    if not _RECORD_ID_PATTERN.match(stripped):
        raise create_validation_error(
            f"Invalid {field_name}: may only contain letters, digits, '-' and '_'"
        )

    return stripped


def validate_reason(reason: Optional[str]) -> Optional[str]:
    """
    Validate the optional free-text audit reason.

    Whitespace-only reasons are treated as absent.

    Raises:
        ToolError: If reason is not a string or is too long
    """
    if reason is None:
        return None

    if not isinstance(reason, str):
        raise create_validation_error(
            f"Invalid reason type: expected string, got {type(reason).__name__}"
        )

    stripped = reason.strip()
    if not stripped:
        return None

    if len(stripped) > MAX_REASON_LENGTH:
        raise create_validation_error(
            f"Invalid reason: exceeds maximum length of {MAX_REASON_LENGTH}"
        )

    return stripped


def validate_location_code(location_code: Optional[str]) -> Optional[str]:
    """
    Validate an optional partner location code used in work order numbers.

    Raises:
        ToolError: If the code contains characters other than letters, digits and '-'
    """
    if location_code is None:
        return None

    if not isinstance(location_code, str):
        raise create_validation_error(
            f"Invalid location_code type: expected string, got {type(location_code).__name__}"
        )

    stripped = location_code.strip()
    if not stripped:
        return None

    if len(stripped) > MAX_LOCATION_CODE_LENGTH:
        raise create_validation_error(
            f"Invalid location_code: exceeds maximum length of {MAX_LOCATION_CODE_LENGTH}"
        )

    if not _LOCATION_CODE_PATTERN.match(stripped):
        raise create_validation_error(
            "Invalid location_code: may only contain letters, digits and '-'"
        )

    return stripped


def get_current_utc_timestamp() -> str:
    """
    Generate a UTC timestamp in ISO 8601 format with millisecond precision.

    Returns a timestamp string in the format: YYYY-MM-DDTHH:MM:SS.mmmZ
    Example: 2026-02-04T03:47:36.966Z

    Returns:
        ISO 8601 UTC timestamp string with millisecond precision and Z suffix
    """
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
