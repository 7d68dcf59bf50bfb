"""
Audit logging with run correlation.

Every run writes one plain-text audit file named after the mailbox and the
run start time, mirrored line for line to the console. Each line carries the
run ULID so that output from several runs (or interleaved folder workers)
can be told apart.
"""

import logging
import os
import re
import sys
from datetime import datetime
from typing import IO, Optional

AUDIT_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
AUDIT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_PREFIX = "ReadOnlyPermissions"

_UNSAFE_FILENAME_CHARS = re.compile(r"[\\/:*?\"<>|]")


class CorrelatedLogger:
    """
    Logger wrapper that includes a correlation ID in all log messages.

    The correlation ID is the run ULID, so every line of an audit file can be
    traced back to the invocation that produced it.
    """

    def __init__(self, name: str, correlation_id: str):
        self.logger = logging.getLogger(name)
        self.correlation_id = correlation_id

    def _format_message(self, message: str) -> str:
        """Add correlation ID prefix to message."""
        return f"[{self.correlation_id}] {message}"

    def debug(self, message: str, **kwargs):
        self.logger.debug(self._format_message(message), **kwargs)

    def info(self, message: str, **kwargs):
        self.logger.info(self._format_message(message), **kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(self._format_message(message), **kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(self._format_message(message), **kwargs)


def log_file_name(mailbox: str, started_at: datetime) -> str:
    """
    Build the audit file name for a run.

    Args:
        mailbox: Mailbox identifier exactly as given on the command line
        started_at: Local time the run started

    Returns:
        str: ``ReadOnlyPermissions-<mailbox>-<yyyyMMdd-HHmmss>.log``

    Example:
        >>> log_file_name("jdoe@contoso.com", datetime(2024, 3, 9, 14, 5, 7))
        'ReadOnlyPermissions-jdoe@contoso.com-20240309-140507.log'
    """
    safe_mailbox = _UNSAFE_FILENAME_CHARS.sub("_", mailbox)
    return f"{LOG_FILE_PREFIX}-{safe_mailbox}-{started_at:%Y%m%d-%H%M%S}.log"


class AuditLog(CorrelatedLogger):
    """
    Append-only run log written to a file and echoed to the console.

    The file is created (truncating any file of the same name) when the
    AuditLog is constructed and every call is written through immediately.

    Usage:
        with AuditLog("jdoe@contoso.com", run_id, started_at) as audit:
            audit.info("Processing folder jdoe:\\Inbox")
    """

    def __init__(
        self,
        mailbox: str,
        run_id: str,
        started_at: datetime,
        log_dir: Optional[str] = None,
        console: Optional[IO[str]] = None,
    ):
        super().__init__(f"readonly_permissions.audit.{run_id}", run_id)
        self.path = os.path.join(log_dir or os.getcwd(), log_file_name(mailbox, started_at))

        formatter = logging.Formatter(AUDIT_FORMAT, datefmt=AUDIT_DATE_FORMAT)

        self._file_handler = logging.FileHandler(self.path, mode="w", encoding="utf-8")
        self._file_handler.setFormatter(formatter)

        self._console_handler = logging.StreamHandler(console or sys.stdout)
        self._console_handler.setFormatter(formatter)

        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        self.logger.addHandler(self._file_handler)
        self.logger.addHandler(self._console_handler)

    def close(self) -> None:
        """Flush and detach both handlers."""
        for handler in (self._file_handler, self._console_handler):
            handler.flush()
            self.logger.removeHandler(handler)
        self._file_handler.close()

    def __enter__(self) -> "AuditLog":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def configure_diagnostics(level: str = "INFO") -> None:
    """
    Configure module-level diagnostic logging (retries, paging, token refresh).

    Diagnostics go to stderr so they never mix with the audit trail on stdout.
    """
    root = logging.getLogger("readonly_permissions")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        root.addHandler(handler)
