"""
Configuration module for the WorkOrderPro MCP Server.

Provides centralized configuration management with support for:
- Environment variables
- Default values
- Path resolution
- Logging configuration
- Acting-user provider selection
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from utils.auth_provider import AuthProvider, build_auth_provider

# Load environment variables from .env file at project root
_env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=_env_path)


class Config:
    """
    Configuration class for MCP server settings.

    Supports configuration via environment variables (and .env file) with sensible defaults.
    All paths are resolved relative to the repository root.
    """

    def __init__(self):
        """Initialize configuration from environment variables and defaults."""
        self._repo_root = self._find_repo_root()

        # Database configuration
        self.db_path = self._resolve_db_path()

        # Logging configuration
        self.log_level = os.getenv("WORKORDERPRO_LOG_LEVEL", "INFO").upper()
        self.log_file = self._resolve_log_path()

        # Server configuration
        self.server_name = os.getenv("WORKORDERPRO_SERVER_NAME", "workorderpro-mcp-server")

        # Acting user configuration
        self.auth_provider_kind = os.getenv("WORKORDERPRO_AUTH_PROVIDER", "anonymous").lower()
        self.acting_user_id = os.getenv("WORKORDERPRO_ACTING_USER_ID") or None

        # Notification templates
        self.email_templates_path = self._resolve_repo_path(
            os.getenv("WORKORDERPRO_EMAIL_TEMPLATES", "data/email_templates.yaml")
        )

    def _find_repo_root(self) -> Path:
        """
        Find the repository root directory.

        Returns:
            Path to repository root (the directory holding config.py)
        """
        return Path(__file__).resolve().parent

    def _resolve_repo_path(self, value: str) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        return self._repo_root / path

    def _resolve_db_path(self) -> Path:
        """
        Resolve the database path from environment or default.

        Resolution order:
        1. WORKORDERPRO_DB environment variable (absolute or relative)
        2. WORKORDERPRO_ROOT/data/workorderpro.db
        3. Default: <repo_root>/data/workorderpro.db

        Returns:
            Resolved absolute Path to database
        """
        db_env = os.getenv("WORKORDERPRO_DB")
        if db_env:
            return self._resolve_repo_path(db_env)

        root_env = os.getenv("WORKORDERPRO_ROOT")
        if root_env:
            return Path(root_env) / "data" / "workorderpro.db"

        return self._repo_root / "data" / "workorderpro.db"

    def _resolve_log_path(self) -> Optional[Path]:
        """
        Resolve the log file path from environment.

        If WORKORDERPRO_LOG_FILE is set, logs will be written to that file.
        Otherwise, logs go to stderr only.

        Returns:
            Path to log file, or None for stderr-only logging
        """
        log_env = os.getenv("WORKORDERPRO_LOG_FILE")
        if not log_env:
            return None
        return self._resolve_repo_path(log_env)

    def setup_logging(self):
        """
        Configure the root logger from WORKORDERPRO_LOG_LEVEL and WORKORDERPRO_LOG_FILE.

        stdout carries the MCP stdio transport, so console logs go to stderr.
        An unknown level name falls back to INFO.
        """
        numeric_level = getattr(logging, self.log_level, logging.INFO)
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

        handlers: list[logging.Handler] = [logging.StreamHandler()]
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.log_file))

        root_logger = logging.getLogger()
        root_logger.setLevel(numeric_level)
        root_logger.handlers.clear()
        for handler in handlers:
            handler.setLevel(numeric_level)
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)

        logger = logging.getLogger(__name__)
        if self.log_file:
            logger.info(f"Logging to file: {self.log_file}")
        logger.debug(
            f"Log level {self.log_level}; db {self.db_path}; "
            f"email templates {self.email_templates_path}"
        )

    def build_auth_provider(self) -> AuthProvider:
        """
        Build the acting-user provider selected by WORKORDERPRO_AUTH_PROVIDER.

        Raises:
            ToolError: If the provider kind is unknown or misconfigured
        """
        return build_auth_provider(self.auth_provider_kind, self.acting_user_id)

    def validate(self) -> list[str]:
        """
        Validate configuration and return any warnings.

        Returns:
            List of warning messages (empty if all valid)
        """
        warnings = []

        if not self.db_path.exists():
            warnings.append(
                f"Database file not found: {self.db_path}. "
                "Run scripts/init_db.py to create it; tools will fail until it exists."
            )

        if not self.email_templates_path.exists():
            warnings.append(
                f"Email templates not found: {self.email_templates_path}. "
                "Status changes will not queue notifications."
            )

        if self.auth_provider_kind == "static" and not self.acting_user_id:
            warnings.append(
                "WORKORDERPRO_AUTH_PROVIDER=static requires WORKORDERPRO_ACTING_USER_ID."
            )
        elif self.auth_provider_kind not in ("anonymous", "static"):
            warnings.append(f"Unknown WORKORDERPRO_AUTH_PROVIDER: {self.auth_provider_kind}")

        if self.log_file:
            log_dir = self.log_file.parent
            if not log_dir.exists():
                try:
                    log_dir.mkdir(parents=True, exist_ok=True)
                except Exception as e:
                    warnings.append(f"Cannot create log directory {log_dir}: {e}")
            elif not os.access(log_dir, os.W_OK):
                warnings.append(f"Log directory not writable: {log_dir}")

        return warnings


# Global configuration instance
config = Config()


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Global Config instance
    """
    return config
