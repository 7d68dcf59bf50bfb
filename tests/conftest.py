"""
Pytest configuration and shared fixtures for read-only permissions tests
"""

import threading
from typing import Dict, List, Optional, Sequence

import pytest

from readonly_permissions.config import Config
from readonly_permissions.exo_client import ExchangeAPIError
from readonly_permissions.folders import FolderPath
from readonly_permissions.models import (
    FolderStatistic,
    Mailbox,
    MutationResult,
    PermissionEntry,
    Principal,
)


class FakeExchange:
    """
    In-memory stand-in for ExchangeAdminClient.

    Holds mailboxes, principals, folder statistics and per-folder permission
    entries, and records every mutation so tests can assert on them.
    """

    def __init__(self) -> None:
        self.mailboxes: Dict[str, Mailbox] = {}
        self.users: Dict[str, Principal] = {}
        self.groups: Dict[str, Principal] = {}
        self.statistics: Dict[str, List[FolderStatistic]] = {}
        self.permissions: Dict[str, List[PermissionEntry]] = {}
        self.rejections: Dict[str, str] = {}
        self.read_errors: Dict[str, str] = {}
        self.listing_error: Optional[str] = None
        self.add_calls: List[tuple] = []
        self.lookups: List[tuple] = []
        self._lock = threading.Lock()

    # directory ---------------------------------------------------------------

    def get_mailbox(self, identity: str) -> Optional[Mailbox]:
        self.lookups.append(("mailbox", identity))
        return self.mailboxes.get(identity)

    def get_user_mailbox(self, identity: str) -> Optional[Principal]:
        self.lookups.append(("user", identity))
        return self.users.get(identity)

    def get_distribution_group(self, identity: str) -> Optional[Principal]:
        self.lookups.append(("group", identity))
        return self.groups.get(identity)

    # folders -----------------------------------------------------------------

    def list_folder_statistics(self, mailbox: str) -> List[FolderStatistic]:
        if self.listing_error:
            raise ExchangeAPIError(self.listing_error, status_code=500)
        return list(self.statistics.get(mailbox, []))

    def get_folder_permissions(self, folder: FolderPath) -> List[PermissionEntry]:
        key = str(folder)
        if key in self.read_errors:
            raise ExchangeAPIError(self.read_errors[key], status_code=400)
        with self._lock:
            return list(self.permissions.get(key, []))

    def add_folder_permission(self, folder: FolderPath, principal: Principal, rights: Sequence[str]) -> MutationResult:
        key = str(folder)
        with self._lock:
            self.add_calls.append((key, principal.identity, tuple(rights)))
            if key in self.rejections:
                return MutationResult.failure(self.rejections[key])
            self.permissions.setdefault(key, []).append(
                PermissionEntry(principal_display_name=principal.display_name, access_rights=list(rights))
            )
        return MutationResult.success()

    def __enter__(self) -> "FakeExchange":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None

    # helpers -----------------------------------------------------------------

    def add_folder(self, mailbox: Mailbox, folder_path: str, folder_type: str) -> None:
        identity = mailbox.alias + folder_path.replace("/", "\\")
        self.statistics.setdefault(mailbox.identity, []).append(
            FolderStatistic(identity=identity, folder_path=folder_path, folder_type=folder_type)
        )

    def rights_for(self, folder: str, display_name: str) -> Optional[List[str]]:
        for entry in self.permissions.get(folder, []):
            if entry.principal_display_name == display_name:
                return entry.access_rights
        return None


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Give every test a fresh Config singleton."""
    Config._instance = None
    yield
    Config._instance = None


@pytest.fixture
def mock_environment(monkeypatch, tmp_path):
    """
    Mock environment variables for testing.

    Provides Exchange admin credentials and points LOG_DIR at a temporary
    directory so no test writes audit files into the working tree.

    To override specific variables in a test:
        def test_something(mock_environment, monkeypatch):
            monkeypatch.setenv("SPECIFIC_VAR", "override_value")
    """
    env_vars = {
        "EXO_TENANT_ID": "test-tenant-id",
        "EXO_CLIENT_ID": "test-client-id",
        "EXO_CLIENT_SECRET": "test-client-secret",
        "LOG_DIR": str(tmp_path),
        "LOG_LEVEL": "DEBUG",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("EXO_ADMIN_URL", raising=False)
    monkeypatch.delenv("EXO_REQUEST_TIMEOUT", raising=False)
    return env_vars


@pytest.fixture
def mailbox() -> Mailbox:
    return Mailbox(
        identity="jdoe@contoso.com",
        display_name="Jane Doe",
        alias="jdoe",
        primary_smtp_address="jdoe@contoso.com",
    )


@pytest.fixture
def principal() -> Principal:
    return Principal(identity="assistant@contoso.com", display_name="Alex Assistant", kind="user")


@pytest.fixture
def fake_exchange(mailbox, principal) -> FakeExchange:
    """
    Exchange with one mailbox holding Root, Inbox and Calendar, where the
    principal already has an entry on the Calendar only.
    """
    exchange = FakeExchange()
    exchange.mailboxes[mailbox.identity] = mailbox
    exchange.users[principal.identity] = principal
    exchange.add_folder(mailbox, "/Top of Information Store", "Root")
    exchange.add_folder(mailbox, "/Inbox", "Inbox")
    exchange.add_folder(mailbox, "/Calendar", "Calendar")
    exchange.permissions["jdoe:\\Calendar"] = [
        PermissionEntry(principal_display_name="Default", access_rights=["AvailabilityOnly"]),
        PermissionEntry(principal_display_name=principal.display_name, access_rights=["ReadItems"]),
    ]
    return exchange


@pytest.fixture
def audit_log():
    """Audit logger double that keeps lines in memory."""
    return RecordingAudit()


class RecordingAudit:
    """Collects audit lines by level; quacks like CorrelatedLogger."""

    def __init__(self, correlation_id: str = "01TESTRUN0000000000000000") -> None:
        self.correlation_id = correlation_id
        self.lines: List[tuple] = []
        self._lock = threading.Lock()

    def _record(self, level: str, message: str) -> None:
        with self._lock:
            self.lines.append((level, message))

    def debug(self, message: str, **kwargs):
        self._record("DEBUG", message)

    def info(self, message: str, **kwargs):
        self._record("INFO", message)

    def warning(self, message: str, **kwargs):
        self._record("WARNING", message)

    def error(self, message: str, **kwargs):
        self._record("ERROR", message)

    def messages(self, level: Optional[str] = None) -> List[str]:
        return [message for lvl, message in self.lines if level is None or lvl == level]
