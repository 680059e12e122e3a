"""Convert Pydantic validation errors into WorkOrderPro error messages."""

from __future__ import annotations

from typing import Any, List, Mapping

from pydantic import ValidationError

from models.errors import ToolError, create_validation_error


def _loc_to_field(loc: tuple[Any, ...]) -> str:
    # Line items are reported 1-based, matching invoice validation messages
    parts = []
    for part in loc:
        if part == "__root__":
            continue
        parts.append(str(part + 1) if isinstance(part, int) else str(part))
    return ".".join(parts)


def _clean_pydantic_message(message: str) -> str:
    if message.startswith("Value error, "):
        return message[len("Value error, ") :]
    return message


def format_validation_issue(issue: Mapping[str, Any]) -> str:
    """Render one entry of ``ValidationError.errors()`` as a sentence."""
    field = _loc_to_field(tuple(issue.get("loc", ())))
    message = _clean_pydantic_message(issue.get("msg", "Invalid input"))
    if field and not message.startswith(f"Invalid {field}"):
        return f"Invalid {field}: {message}"
    return message


def format_validation_issues(error: ValidationError) -> List[str]:
    return [format_validation_issue(issue) for issue in error.errors()]


def map_pydantic_validation_error(error: ValidationError) -> ToolError:
    """Map a request model ValidationError to a VALIDATION_ERROR ToolError.

    Only the first issue is reported, so callers fix one field at a time.
    """
    issues = error.errors()
    if not issues:
        return create_validation_error("Invalid input")
    return create_validation_error(format_validation_issue(issues[0]))
