"""
Pydantic models for Exchange records and reconciliation results.

This module defines the typed values passed between the Exchange admin
client, the reconciler and the command line:
- Directory records (mailbox, principal, folder statistics, permissions)
- The uniform mutation result returned by permission writes
- Per-folder outcomes and the run report folded from them
"""

from typing import Any, Dict, List, Literal, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from readonly_permissions.folders import FolderPath, RightsTier


def _as_display_name(value: Any) -> str:
    """Exchange serializes some identities as objects, others as plain strings."""
    if isinstance(value, dict):
        return str(value.get("DisplayName") or value.get("Name") or "")
    return "" if value is None else str(value)


# =============================================================================
# DIRECTORY RECORDS
# =============================================================================


class Mailbox(BaseModel):
    """A mailbox resolved from Get-Mailbox."""

    identity: str = Field(..., description="Exchange identity of the mailbox")
    display_name: str = Field(..., description="Display name shown in address lists")
    alias: str = Field(..., description="Alias used to address folders (alias:\\Inbox)")
    primary_smtp_address: Optional[str] = Field(default=None, description="Primary SMTP address")

    @field_validator("alias")
    @classmethod
    def validate_alias(cls, v: str) -> str:
        """Folder identifiers cannot be built without an alias"""
        if not v or not v.strip():
            raise ValueError("alias cannot be empty")
        return v.strip()

    @classmethod
    def from_exchange(cls, record: Dict[str, Any]) -> "Mailbox":
        return cls(
            identity=str(record.get("PrimarySmtpAddress") or record.get("Identity") or record.get("Alias") or ""),
            display_name=str(record.get("DisplayName") or ""),
            alias=str(record.get("Alias") or ""),
            primary_smtp_address=record.get("PrimarySmtpAddress"),
        )


class Principal(BaseModel):
    """The user mailbox or distribution group receiving read-only access."""

    identity: str = Field(..., description="Identity passed to Add-MailboxFolderPermission -User")
    display_name: str = Field(..., description="Display name used to match permission entries")
    kind: Literal["user", "group"] = Field(..., description="Which lookup resolved the principal")

    @field_validator("display_name")
    @classmethod
    def validate_display_name(cls, v: str) -> str:
        """Permission entries are keyed by display name, so it must be present"""
        if not v or not v.strip():
            raise ValueError("display_name cannot be empty")
        return v

    @classmethod
    def from_exchange(cls, record: Dict[str, Any], kind: Literal["user", "group"]) -> "Principal":
        return cls(
            identity=str(record.get("PrimarySmtpAddress") or record.get("Identity") or ""),
            display_name=str(record.get("DisplayName") or record.get("Name") or ""),
            kind=kind,
        )

    def matches(self, display_name: str) -> bool:
        """Exact, case-insensitive display name comparison."""
        return self.display_name.strip().casefold() == display_name.strip().casefold()


class FolderStatistic(BaseModel):
    """One record of Get-MailboxFolderStatistics."""

    identity: str = Field(..., description="Statistics identity (mailbox\\Folder\\Sub)")
    folder_path: str = Field(..., description="Slash separated path (/Inbox/Sub)")
    folder_type: str = Field(..., description="Exchange folder type tag (Root, Inbox, User Created, ...)")

    @classmethod
    def from_exchange(cls, record: Dict[str, Any]) -> "FolderStatistic":
        return cls(
            identity=str(record.get("Identity") or ""),
            folder_path=str(record.get("FolderPath") or "/"),
            folder_type=str(record.get("FolderType") or ""),
        )


class PermissionEntry(BaseModel):
    """One entry of Get-MailboxFolderPermission."""

    principal_display_name: str = Field(..., description="Display name of the entry's user")
    access_rights: List[str] = Field(default_factory=list, description="Granted rights or role names")

    @classmethod
    def from_exchange(cls, record: Dict[str, Any]) -> "PermissionEntry":
        rights = record.get("AccessRights") or []
        if isinstance(rights, str):
            rights = [r.strip() for r in rights.split(",") if r.strip()]
        return cls(principal_display_name=_as_display_name(record.get("User")), access_rights=list(rights))


# =============================================================================
# RESULTS
# =============================================================================


class MutationResult(BaseModel):
    """Outcome of a permission write: success, or failure with the server's reason."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "MutationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "MutationResult":
        return cls(ok=False, reason=reason or "unknown error")


class FolderOutcome(BaseModel):
    """What the reconciler decided and did for one folder."""

    folder: FolderPath
    tier: RightsTier
    status: Literal["set", "skipped", "failed"]
    rights: List[str] = Field(default_factory=list, description="Rights written (set) or already present (skipped)")
    error: Optional[str] = None

    @model_validator(mode="after")
    def validate_error(self) -> Self:
        """Only failed outcomes carry an error message"""
        if self.status == "failed" and not self.error:
            raise ValueError("failed outcome requires an error message")
        if self.status != "failed" and self.error:
            raise ValueError("only failed outcomes carry an error message")
        return self


class ReconciliationReport(BaseModel):
    """
    Result of one reconciliation pass over a mailbox.

    Built by folding per-folder outcomes; evaluated always equals
    set + skipped + failed.
    """

    run_id: str
    mailbox: str
    principal: str
    evaluated: int = 0
    set: int = 0
    skipped: int = 0
    failed: int = 0
    outcomes: List[FolderOutcome] = Field(default_factory=list)

    @classmethod
    def fold(cls, run_id: str, mailbox: str, principal: str, outcomes: List[FolderOutcome]) -> "ReconciliationReport":
        report = cls(run_id=run_id, mailbox=mailbox, principal=principal)
        for outcome in outcomes:
            report = report.add(outcome)
        return report

    def add(self, outcome: FolderOutcome) -> "ReconciliationReport":
        """Return a new report with one more outcome counted."""
        counts = {"set": self.set, "skipped": self.skipped, "failed": self.failed}
        counts[outcome.status] += 1
        return self.model_copy(
            update={
                "evaluated": self.evaluated + 1,
                "outcomes": [*self.outcomes, outcome],
                **counts,
            }
        )

    @property
    def completed_cleanly(self) -> bool:
        return self.failed == 0

    def summary_line(self) -> str:
        status = "completed" if self.completed_cleanly else "completed with failures"
        return (
            f"Run {status} for {self.mailbox} -> {self.principal}: "
            f"{self.evaluated} folders evaluated, {self.set} set, "
            f"{self.skipped} skipped, {self.failed} failed"
        )
