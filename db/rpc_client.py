"""
Client side of the backend boundary.

``RpcClient`` is the only way tools reach the backend: it reads records and
invokes stored procedures by name. Every backend or transport failure is
surfaced as a REMOTE_ERROR ToolError; nothing is retried here.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from db.backend import BackendSession
from db.procedures import PROCEDURES
from models.errors import ErrorCode, ToolError, create_remote_error
from schemas.records import WorkOrderRecord, WorkOrderReportRecord

logger = logging.getLogger(__name__)

# Errors raised inside the backend that mean "the remote side failed"
_BACKEND_FAILURE_CODES = {ErrorCode.DB_ERROR, ErrorCode.DB_NOT_FOUND, ErrorCode.INTERNAL_ERROR}


class RpcClient:
    """
    Remote procedure call client for the WorkOrderPro backend.

    Each call opens its own backend transaction, so a call either fully
    applies or leaves no trace.

    Usage:
        client = RpcClient(db_path)
        result = client.rpc("transition_work_order_status", {...})
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path

    def _to_remote_error(self, operation: str, error: Exception) -> ToolError:
        if isinstance(error, ToolError):
            if error.code not in _BACKEND_FAILURE_CODES:
                return error
            message = error.message
        else:
            message = str(error)
        logger.error(f"Backend call {operation} failed: {message}")
        return create_remote_error(f"{operation} failed: {message}", original_error=error)

    def rpc(self, function_name: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Invoke a backend procedure and commit its transaction.

        Args:
            function_name: Registered procedure name
            params: Keyword arguments for the procedure

        Returns:
            The procedure's raw result

        Raises:
            ToolError: REMOTE_ERROR for unknown procedures and backend failures
        """
        procedure = PROCEDURES.get(function_name)
        if procedure is None:
            raise create_remote_error(f"Unknown remote procedure: {function_name}")

        try:
            with BackendSession(self.db_path) as session:
                result = procedure(session, **(params or {}))
                session.commit()
                return result
        except TypeError as e:
            raise self._to_remote_error(function_name, e) from e
        except ToolError as e:
            raise self._to_remote_error(function_name, e) from e

    def _read(self, operation: str, reader):
        try:
            with BackendSession(self.db_path) as session:
                return reader(session)
        except ToolError as e:
            raise self._to_remote_error(operation, e) from e

    def fetch_work_order(self, work_order_id: str) -> Optional[WorkOrderRecord]:
        """
        Read the server's current copy of a work order.

        Returns:
            WorkOrderRecord, or None when no such work order exists

        Raises:
            ToolError: REMOTE_ERROR if the backend fails or returns a malformed row
        """
        row = self._read("fetch_work_order", lambda s: s.get_work_order(work_order_id))
        if row is None:
            return None
        try:
            return WorkOrderRecord.model_validate(row)
        except ValidationError as e:
            raise create_remote_error(
                f"Malformed work order record {work_order_id}", original_error=e
            ) from e

    def fetch_report(self, report_id: str) -> Optional[WorkOrderReportRecord]:
        row = self._read("fetch_report", lambda s: s.get_report(report_id))
        if row is None:
            return None
        try:
            return WorkOrderReportRecord.model_validate(row)
        except ValidationError as e:
            raise create_remote_error(
                f"Malformed report record {report_id}", original_error=e
            ) from e

    def fetch_reports(self, report_ids: List[str]) -> List[WorkOrderReportRecord]:
        """Read several reports; missing ids are skipped."""
        reports = []
        for report_id in report_ids:
            report = self.fetch_report(report_id)
            if report is not None:
                reports.append(report)
        return reports

    def fetch_reports_for_work_order(self, work_order_id: str) -> List[WorkOrderReportRecord]:
        """Read every report filed against a work order, oldest first."""
        rows = self._read(
            "fetch_reports_for_work_order",
            lambda s: s.get_reports_for_work_order(work_order_id),
        )
        try:
            return [WorkOrderReportRecord.model_validate(row) for row in rows]
        except ValidationError as e:
            raise create_remote_error(
                f"Malformed report records for work order {work_order_id}", original_error=e
            ) from e


# Backend result codes that map onto the client error taxonomy
_RESULT_CODE_MAP = {
    "not_found": ErrorCode.NOT_FOUND,
    "invalid_transition": ErrorCode.INVALID_TRANSITION,
    "guard_failed": ErrorCode.GUARD_FAILED,
    "stale_state": ErrorCode.STALE_STATE,
    "validation_error": ErrorCode.VALIDATION_ERROR,
}


def raise_for_result(result: Any, operation: str) -> Dict[str, Any]:
    """
    Check a structured procedure result.

    Args:
        result: Raw value returned by ``RpcClient.rpc``
        operation: Procedure name used in error messages

    Returns:
        The result dict when ``success`` is true

    Raises:
        ToolError: mapped from the result ``code`` for known rejections,
            REMOTE_ERROR for malformed results and any other failure
    """
    if not isinstance(result, dict) or not isinstance(result.get("success"), bool):
        raise create_remote_error(f"{operation} returned a malformed response")

    if result["success"]:
        return result

    message = result.get("message") or f"{operation} failed"
    code = _RESULT_CODE_MAP.get(result.get("code"))
    if code is None:
        raise create_remote_error(message)
    raise ToolError(code=code, message=message, retryable=False)
