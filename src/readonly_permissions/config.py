"""
Centralized configuration for the read-only permissions tool.

Provides:
- Type-safe access to all environment variables
- Defaults for optional settings
- Validation of required settings before any Exchange call is made
"""

import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_URL = "https://outlook.office365.com/adminapi/beta"
DEFAULT_REQUEST_TIMEOUT = 60.0


class Config:
    """
    Centralized configuration with lazy loading and validation.

    Usage:
        from readonly_permissions.config import config
        tenant = config.exo_tenant_id
        missing = config.validate_required()
    """

    _instance: Optional["Config"] = None
    _initialized: bool = False

    def __new__(cls) -> "Config":
        """Singleton pattern - only one Config instance per process."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._initialized = True
        logger.debug("Config singleton initialized")

    # =========================================================================
    # EXCHANGE ONLINE ADMIN API
    # =========================================================================

    @property
    def exo_tenant_id(self) -> Optional[str]:
        """Azure AD tenant (GUID or primary domain) hosting the mailboxes."""
        return os.environ.get("EXO_TENANT_ID")

    @property
    def exo_client_id(self) -> Optional[str]:
        """App registration client ID granted Exchange.ManageAsApp."""
        return os.environ.get("EXO_CLIENT_ID")

    @property
    def exo_client_secret(self) -> Optional[str]:
        """App registration client secret."""
        return os.environ.get("EXO_CLIENT_SECRET")

    @property
    def exo_admin_url(self) -> str:
        """Root of the Exchange Online admin REST API."""
        return os.environ.get("EXO_ADMIN_URL", DEFAULT_ADMIN_URL).rstrip("/")

    @property
    def exo_request_timeout(self) -> float:
        """Per-request timeout in seconds for admin API calls."""
        raw = os.environ.get("EXO_REQUEST_TIMEOUT", "").strip()
        if not raw:
            return DEFAULT_REQUEST_TIMEOUT
        try:
            value = float(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid EXO_REQUEST_TIMEOUT={raw!r}")
            return DEFAULT_REQUEST_TIMEOUT
        if value <= 0:
            logger.warning(f"Ignoring non-positive EXO_REQUEST_TIMEOUT={raw!r}")
            return DEFAULT_REQUEST_TIMEOUT
        return value

    # =========================================================================
    # LOGGING
    # =========================================================================

    @property
    def log_dir(self) -> str:
        """Directory the run log is written to (default: current directory)."""
        return os.environ.get("LOG_DIR") or os.getcwd()

    @property
    def log_level(self) -> str:
        """Logging level for diagnostics."""
        return os.environ.get("LOG_LEVEL", "INFO").upper()

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_required(self) -> list[str]:
        """
        Validate that all required configuration is present.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        required_settings = [
            "EXO_TENANT_ID",
            "EXO_CLIENT_ID",
            "EXO_CLIENT_SECRET",
        ]
        missing = [key for key in required_settings if not os.environ.get(key)]

        if missing:
            logger.error(f"Missing required configuration: {missing}")

        return missing


# Global singleton instance
config = Config()
