"""
Folder addressing and rights tiers.

Exchange folder cmdlets address a folder as ``alias:\\Folder\\Subfolder``;
folder statistics describe the same folder as ``/Folder/Subfolder``.
FolderPath converts between the two without string surgery on identities.
"""

from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

# Exchange stores a literal "/" inside a folder name as U+F8FF in FolderPath
_ENCODED_SLASH = "\uf8ff"


class FolderPath(BaseModel):
    """
    Typed folder identifier for Get/Add-MailboxFolderPermission.

    Example:
        >>> str(FolderPath(alias="jdoe", segments=("Inbox", "Receipts")))
        'jdoe:\\\\Inbox\\\\Receipts'
        >>> str(FolderPath.root("jdoe"))
        'jdoe:\\\\'
    """

    model_config = ConfigDict(frozen=True)

    alias: str
    segments: Tuple[str, ...] = ()

    @field_validator("alias")
    @classmethod
    def validate_alias(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("alias cannot be empty")
        return v.strip()

    @field_validator("segments")
    @classmethod
    def validate_segments(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if any(not segment for segment in v):
            raise ValueError("folder path segments cannot be empty")
        return v

    @classmethod
    def root(cls, alias: str) -> "FolderPath":
        return cls(alias=alias)

    @classmethod
    def from_statistic(cls, alias: str, folder_path: str) -> "FolderPath":
        """Build from a statistics FolderPath such as ``/Inbox/Receipts``."""
        segments = tuple(
            segment.replace(_ENCODED_SLASH, "/") for segment in folder_path.strip().split("/") if segment
        )
        return cls(alias=alias, segments=segments)

    @classmethod
    def from_identity(cls, alias: str, identity: str) -> "FolderPath":
        """Build from a statistics Identity such as ``jdoe\\Inbox\\Receipts``; the mailbox part is dropped."""
        _, _, folder = identity.strip().partition("\\")
        segments = tuple(
            segment.replace(_ENCODED_SLASH, "/") for segment in folder.split("\\") if segment
        )
        return cls(alias=alias, segments=segments)

    @property
    def is_root(self) -> bool:
        return not self.segments

    def __str__(self) -> str:
        return f"{self.alias}:\\" + "\\".join(self.segments)


class RightsTier(str, Enum):
    """Which set of rights a folder should receive."""

    ROOT = "root"
    STANDARD = "standard"
    IGNORE = "ignore"


DESIRED_RIGHTS: Dict[RightsTier, Tuple[str, ...]] = {
    RightsTier.ROOT: ("FolderVisible",),
    RightsTier.STANDARD: ("ReadItems", "FolderVisible"),
}

FOLDER_TYPE_TIERS: Dict[str, RightsTier] = {
    "Root": RightsTier.ROOT,
    "Calendar": RightsTier.STANDARD,
    "Contacts": RightsTier.STANDARD,
    "DeletedItems": RightsTier.STANDARD,
    "Drafts": RightsTier.STANDARD,
    "Inbox": RightsTier.STANDARD,
    "Journal": RightsTier.STANDARD,
    "JunkEmail": RightsTier.STANDARD,
    "Notes": RightsTier.STANDARD,
    "Outbox": RightsTier.STANDARD,
    "SentItems": RightsTier.STANDARD,
    "Tasks": RightsTier.STANDARD,
    "UserCreated": RightsTier.STANDARD,
    # Get-MailboxFolderStatistics spells the catch-all with a space
    "User Created": RightsTier.STANDARD,
}


def tier_for(folder_type: str) -> RightsTier:
    """
    Map an Exchange folder type to its rights tier.

    Anything outside the standard and user folder types (Recoverable Items,
    Purges, Audits, sync issue folders, ...) maps to IGNORE.
    """
    return FOLDER_TYPE_TIERS.get(folder_type, RightsTier.IGNORE)


def desired_rights(tier: RightsTier) -> Tuple[str, ...]:
    if tier is RightsTier.IGNORE:
        raise ValueError("ignored folders receive no rights")
    return DESIRED_RIGHTS[tier]
