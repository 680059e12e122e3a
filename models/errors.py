"""
Error model for WorkOrderPro MCP tools.

Provides structured error codes and sanitized error messages. Every failure
surfaced by a tool is a ``ToolError``; the code tells the caller whether the
problem is local (validation), a state-machine rejection, a stale client view,
or a backend failure.
"""

import os
import re
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Structured error codes for the MCP tools."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    GUARD_FAILED = "GUARD_FAILED"
    STALE_STATE = "STALE_STATE"
    NOT_FOUND = "NOT_FOUND"
    REMOTE_ERROR = "REMOTE_ERROR"
    DB_NOT_FOUND = "DB_NOT_FOUND"
    DB_ERROR = "DB_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ToolError(Exception):
    """Base exception for tool errors with structured error information."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        retryable: bool = False,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize a tool error.

        Args:
            code: The error code
            message: Human-readable error message
            retryable: Whether the user may retry the operation manually
            original_error: The original exception if this wraps another error
        """
        self.code = code
        self.message = message
        self.retryable = retryable
        self.original_error = original_error
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to dictionary format for MCP response."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "retryable": self.retryable
            }
        }


def sanitize_path(path: str) -> str:
    """
    Sanitize file paths to avoid exposing sensitive system details.

    Returns only the basename for absolute paths, keeps relative paths.

    Args:
        path: The file path to sanitize

    Returns:
        Sanitized path string
    """
    if os.path.isabs(path):
        return os.path.basename(path)
    return path


def sanitize_sql_error(error_msg: str) -> str:
    """
    Sanitize SQL error messages to remove sensitive details.

    Removes SQL fragments and keeps only actionable information.

    Args:
        error_msg: The original error message

    Returns:
        Sanitized error message
    """
    sanitized = re.sub(r'SQL:.*', '', error_msg, flags=re.IGNORECASE)
    sanitized = re.sub(r'"[^"]*SELECT[^"]*"', '[SQL query]', sanitized, flags=re.IGNORECASE)
    sanitized = re.sub(r"'[^']*SELECT[^']*'", '[SQL query]', sanitized, flags=re.IGNORECASE)

    # Unquoted statements run to the end of the message
    sanitized = re.sub(r'\b(SELECT|INSERT|UPDATE|DELETE)\b.*', '[SQL query]', sanitized, flags=re.IGNORECASE)

    sanitized = re.sub(r'/[^\s]+/', '[path]/', sanitized)

    return sanitized.strip()


def sanitize_stack_trace(error_msg: str) -> str:
    """
    Remove stack traces from error messages.

    Args:
        error_msg: The original error message

    Returns:
        Error message without stack trace
    """
    lines = error_msg.split('\n')
    if lines:
        return lines[0].strip()
    return error_msg


def create_validation_error(message: str) -> ToolError:
    """
    Create a validation error for purely local input problems.

    Args:
        message: Description of the validation failure

    Returns:
        ToolError with VALIDATION_ERROR code
    """
    return ToolError(
        code=ErrorCode.VALIDATION_ERROR,
        message=message,
        retryable=False
    )


def create_invalid_transition_error(entity: str, current: str, target: str, allowed=None) -> ToolError:
    """
    Create an error for a status change that is not in the allow-list.

    Args:
        entity: Human-readable entity name (e.g. "work order", "invoice")
        current: The current status value
        target: The attempted next status value
        allowed: Optional iterable of statuses allowed from ``current``

    Returns:
        ToolError with INVALID_TRANSITION code
    """
    message = f"Invalid {entity} status transition from '{current}' to '{target}'"
    if allowed is not None:
        allowed_list = sorted(str(getattr(s, "value", s)) for s in allowed)
        if allowed_list:
            message += ". Allowed from '{}': {}".format(
                current, ", ".join(f"'{s}'" for s in allowed_list)
            )
        else:
            message += f". '{current}' is a terminal status"
    return ToolError(
        code=ErrorCode.INVALID_TRANSITION,
        message=message,
        retryable=False
    )


def create_guard_failed_error(message: str) -> ToolError:
    """
    Create an error for a structurally allowed transition blocked by a business rule.

    Args:
        message: Description of the unmet precondition

    Returns:
        ToolError with GUARD_FAILED code
    """
    return ToolError(
        code=ErrorCode.GUARD_FAILED,
        message=message,
        retryable=False
    )


def create_stale_state_error(record_id: str, assumed: str, actual: str) -> ToolError:
    """
    Create an error for a client view that no longer matches the server.

    Args:
        record_id: Identifier of the record
        assumed: Status the caller believed was current
        actual: Status the server reports

    Returns:
        ToolError with STALE_STATE code
    """
    return ToolError(
        code=ErrorCode.STALE_STATE,
        message=(
            f"Stale state for {record_id}: expected status '{assumed}' but server has "
            f"'{actual}'. Refresh and try again."
        ),
        retryable=False
    )


def create_not_found_error(entity: str, record_id: str) -> ToolError:
    """
    Create a not-found error for a missing backend record.

    Args:
        entity: Human-readable entity name
        record_id: Identifier that was looked up

    Returns:
        ToolError with NOT_FOUND code
    """
    return ToolError(
        code=ErrorCode.NOT_FOUND,
        message=f"{entity.capitalize()} not found: {record_id}",
        retryable=False
    )


REMOTE_ERROR_PREFIX = "Remote error: "


def create_remote_error(message: str, original_error: Optional[Exception] = None) -> ToolError:
    """
    Create an error for a failed or malformed remote procedure call.

    Remote errors are never retried automatically; ``retryable`` only tells the
    caller that a manual retry may succeed.

    Args:
        message: Description of the remote failure
        original_error: The original exception

    Returns:
        ToolError with REMOTE_ERROR code
    """
    sanitized_message = sanitize_sql_error(message)
    sanitized_message = sanitize_stack_trace(sanitized_message)
    if not sanitized_message.startswith(REMOTE_ERROR_PREFIX):
        sanitized_message = f"{REMOTE_ERROR_PREFIX}{sanitized_message}"

    return ToolError(
        code=ErrorCode.REMOTE_ERROR,
        message=sanitized_message,
        retryable=True,
        original_error=original_error
    )


def create_db_not_found_error(db_path: str) -> ToolError:
    """
    Create a database not found error.

    Args:
        db_path: The database path that was not found

    Returns:
        ToolError with DB_NOT_FOUND code
    """
    sanitized_path = sanitize_path(db_path)
    return ToolError(
        code=ErrorCode.DB_NOT_FOUND,
        message=f"Database not found: {sanitized_path}",
        retryable=False
    )


def create_db_error(message: str, retryable: bool = False, original_error: Optional[Exception] = None) -> ToolError:
    """
    Create a database error.

    Args:
        message: Description of the database error
        retryable: Whether the operation can be retried
        original_error: The original exception

    Returns:
        ToolError with DB_ERROR code
    """
    sanitized_message = sanitize_sql_error(message)
    sanitized_message = sanitize_stack_trace(sanitized_message)

    return ToolError(
        code=ErrorCode.DB_ERROR,
        message=f"Database error: {sanitized_message}",
        retryable=retryable,
        original_error=original_error
    )


def create_internal_error(message: str, original_error: Optional[Exception] = None) -> ToolError:
    """
    Create an internal error for unexpected exceptions.

    Args:
        message: Description of the internal error
        original_error: The original exception

    Returns:
        ToolError with INTERNAL_ERROR code
    """
    sanitized_message = sanitize_stack_trace(message)

    return ToolError(
        code=ErrorCode.INTERNAL_ERROR,
        message=f"Internal error: {sanitized_message}",
        retryable=True,
        original_error=original_error
    )
