"""
SQLite-hosted reference backend for WorkOrderPro.

Owns the persisted records (organizations, work orders, reports), the audit
log and the email notification queue. Stored procedures live in
``db.procedures`` and run inside a ``BackendSession`` transaction; callers on
the client side of the boundary go through ``db.rpc_client.RpcClient``.
"""

import logging
import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from models.errors import (
    ToolError,
    create_db_error,
    create_db_not_found_error,
)

logger = logging.getLogger(__name__)

# Default database path relative to repository root
DEFAULT_DB_PATH = "data/workorderpro.db"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS organizations (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    initials TEXT,
    organization_type TEXT NOT NULL DEFAULT 'partner',
    uses_partner_location_numbers INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS work_orders (
    id TEXT PRIMARY KEY,
    organization_id TEXT REFERENCES organizations(id),
    assigned_organization_id TEXT REFERENCES organizations(id),
    status TEXT NOT NULL DEFAULT 'received',
    work_order_number TEXT,
    partner_location_number TEXT,
    internal_estimate_amount REAL,
    partner_estimate_approved INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS work_order_reports (
    id TEXT PRIMARY KEY,
    work_order_id TEXT NOT NULL REFERENCES work_orders(id),
    submitted_by_user_id TEXT,
    work_performed TEXT,
    hours_worked REAL,
    materials_used TEXT,
    bill_amount REAL,
    status TEXT NOT NULL DEFAULT 'submitted',
    submitted_at TEXT NOT NULL,
    reviewed_at TEXT,
    reviewed_by_user_id TEXT
);

CREATE TABLE IF NOT EXISTS work_order_number_sequences (
    organization_id TEXT NOT NULL,
    location_code TEXT NOT NULL DEFAULT '',
    next_number INTEGER NOT NULL DEFAULT 1,
    PRIMARY KEY (organization_id, location_code)
);

CREATE TABLE IF NOT EXISTS audit_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    table_name TEXT NOT NULL,
    record_id TEXT NOT NULL,
    action TEXT NOT NULL,
    old_values TEXT,
    new_values TEXT,
    reason TEXT,
    user_id TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS email_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    template_name TEXT NOT NULL,
    record_id TEXT NOT NULL,
    record_type TEXT NOT NULL,
    subject TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_work_orders_status ON work_orders(status);
CREATE INDEX IF NOT EXISTS idx_reports_work_order ON work_order_reports(work_order_id);
CREATE INDEX IF NOT EXISTS idx_audit_logs_record ON audit_logs(table_name, record_id);
"""


def resolve_db_path(db_path: Optional[str] = None) -> Path:
    """
    Resolve the database path with support for overrides and defaults.

    Resolution order:
    1. Provided db_path parameter
    2. WORKORDERPRO_DB environment variable
    3. WORKORDERPRO_ROOT/data/workorderpro.db
    4. Default path: data/workorderpro.db

    Args:
        db_path: Optional database path override

    Returns:
        Resolved absolute Path to the database
    """
    if db_path is not None:
        path_str = db_path
    else:
        db_env = os.getenv("WORKORDERPRO_DB")
        if db_env:
            path_str = db_env
        else:
            root_env = os.getenv("WORKORDERPRO_ROOT")
            if root_env:
                return Path(root_env) / "data" / "workorderpro.db"
            path_str = DEFAULT_DB_PATH

    path = Path(path_str)

    # Relative paths resolve from the repository root (db/ -> repo/)
    if not path.is_absolute():
        repo_root = Path(__file__).resolve().parents[1]
        path = repo_root / path

    return path


def bootstrap_schema(conn: sqlite3.Connection) -> None:
    """
    Create all backend tables and indexes if they don't exist.

    This operation is idempotent - safe to call on existing databases.

    Raises:
        ToolError: If schema creation fails
    """
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    except sqlite3.Error as e:
        raise create_db_error(
            f"Failed to bootstrap schema: {str(e)}", retryable=False, original_error=e
        ) from e


class BackendSession:
    """
    Context manager for one backend transaction.

    Rolls back on exceptions and always closes the connection. Nothing is
    persisted unless ``commit()`` is called.

    Usage:
        with BackendSession(db_path) as session:
            row = session.get_work_order("wo-1")
            session.commit()
    """

    def __init__(self, db_path: Optional[str] = None, create: bool = False):
        """
        Initialize session with database path.

        Args:
            db_path: Optional database path override
            create: Create the database file (and parent directories) if missing
        """
        self.db_path = db_path
        self.create = create
        self.resolved_path: Optional[Path] = None
        self.conn: Optional[sqlite3.Connection] = None
        self._in_transaction = False

    def __enter__(self):
        """
        Open connection, ensure schema, and begin transaction.

        Raises:
            ToolError: DB_NOT_FOUND if the database is missing and create is False,
                DB_ERROR on connection failures
        """
        self.resolved_path = resolve_db_path(self.db_path)

        if self.create:
            try:
                self.resolved_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise create_db_error(
                    f"Failed to create parent directories: {str(e)}",
                    retryable=False,
                    original_error=e,
                ) from e
        elif not self.resolved_path.is_file():
            raise create_db_not_found_error(str(self.resolved_path))

        try:
            self.conn = sqlite3.connect(str(self.resolved_path))
            self.conn.row_factory = sqlite3.Row

            bootstrap_schema(self.conn)

            self.conn.execute("BEGIN")
            self._in_transaction = True

            return self

        except sqlite3.OperationalError as e:
            self._close()
            error_msg = str(e)
            if "unable to open database" in error_msg.lower():
                raise create_db_not_found_error(str(self.resolved_path)) from e
            raise create_db_error(error_msg, retryable=True, original_error=e) from e

        except sqlite3.Error as e:
            self._close()
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        except ToolError:
            self._close()
            raise

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is not None and self._in_transaction:
                self.rollback()
        finally:
            self._close()

        return False

    def _close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
        self._in_transaction = False

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise create_db_error("Connection not established", retryable=False)
        return self.conn

    def commit(self) -> None:
        """
        Commit the current transaction.

        Raises:
            ToolError: If commit fails
        """
        conn = self._require_conn()
        try:
            conn.commit()
            self._in_transaction = False
        except sqlite3.Error as e:
            raise create_db_error(
                f"Failed to commit transaction: {str(e)}", retryable=True, original_error=e
            ) from e

    def rollback(self) -> None:
        if self.conn is None:
            return
        try:
            self.conn.rollback()
        except sqlite3.Error:
            logger.warning("Rollback failed; connection will be closed", exc_info=True)
        finally:
            self._in_transaction = False

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """
        Execute a statement, mapping sqlite errors to DB_ERROR.

        Raises:
            ToolError: If the statement fails
        """
        conn = self._require_conn()
        try:
            return conn.execute(sql, params)
        except sqlite3.OperationalError as e:
            raise create_db_error(str(e), retryable=True, original_error=e) from e
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Dict[str, Any]]:
        row = self.execute(sql, params).fetchone()
        return dict(row) if row is not None else None

    def get_work_order(self, work_order_id: str) -> Optional[Dict[str, Any]]:
        row = self._fetch_one("SELECT * FROM work_orders WHERE id = ?", (work_order_id,))
        # SQLite stores booleans as 0/1; NULL means the partner has not decided
        if row is not None and row["partner_estimate_approved"] is not None:
            row["partner_estimate_approved"] = bool(row["partner_estimate_approved"])
        return row

    def get_report(self, report_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM work_order_reports WHERE id = ?", (report_id,))

    def get_reports_for_work_order(self, work_order_id: str) -> List[Dict[str, Any]]:
        cursor = self.execute(
            "SELECT * FROM work_order_reports WHERE work_order_id = ? ORDER BY submitted_at, id",
            (work_order_id,),
        )
        return [dict(row) for row in cursor.fetchall()]

    def get_organization(self, organization_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM organizations WHERE id = ?", (organization_id,))

    def get_audit_logs(self, record_id: str) -> List[Dict[str, Any]]:
        cursor = self.execute(
            "SELECT * FROM audit_logs WHERE record_id = ? ORDER BY id", (record_id,)
        )
        return [dict(row) for row in cursor.fetchall()]
