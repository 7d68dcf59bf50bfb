"""
Per-folder reconciliation of the principal's permission entry.

A folder that already has an entry for the principal is left untouched,
whatever rights that entry holds. Otherwise the tier's rights are added once.
Every decision is written to the audit log; no outcome is fatal to the run.
"""

from typing import Iterable, Optional

from readonly_permissions.exo_client import ExchangeAdminClient, ExchangeAPIError
from readonly_permissions.folders import FolderPath, RightsTier, desired_rights
from readonly_permissions.logger import CorrelatedLogger
from readonly_permissions.models import FolderOutcome, PermissionEntry, Principal


def find_existing_entry(entries: Iterable[PermissionEntry], principal: Principal) -> Optional[PermissionEntry]:
    """Return the entry whose display name exactly matches the principal, if any."""
    for entry in entries:
        if principal.matches(entry.principal_display_name):
            return entry
    return None


def reconcile(
    client: ExchangeAdminClient,
    folder: FolderPath,
    principal: Principal,
    tier: RightsTier,
    audit: CorrelatedLogger,
) -> FolderOutcome:
    """
    Skip the folder if the principal already has an entry, else add one.

    Args:
        client: Exchange admin client
        folder: Folder to reconcile
        principal: Principal receiving access
        tier: ROOT or STANDARD
        audit: Run audit log

    Returns:
        FolderOutcome: set, skipped or failed
    """
    rights = list(desired_rights(tier))

    try:
        entries = client.get_folder_permissions(folder)
    except ExchangeAPIError as e:
        audit.error(f"{folder}: could not read permissions for {principal.display_name}: {e.message}")
        return FolderOutcome(folder=folder, tier=tier, status="failed", rights=rights, error=e.message)

    existing = find_existing_entry(entries, principal)
    if existing is not None:
        held = ", ".join(existing.access_rights) or "none"
        audit.info(f"{folder}: {principal.display_name} already has rights set ({held}) - skipping")
        return FolderOutcome(folder=folder, tier=tier, status="skipped", rights=existing.access_rights)

    result = client.add_folder_permission(folder, principal, rights)
    if result.ok:
        audit.info(f"{folder}: granted {', '.join(rights)} to {principal.display_name}")
        return FolderOutcome(folder=folder, tier=tier, status="set", rights=rights)

    audit.error(f"{folder}: failed to grant {', '.join(rights)} to {principal.display_name}: {result.reason}")
    return FolderOutcome(folder=folder, tier=tier, status="failed", rights=rights, error=result.reason)


def reconcile_root(
    client: ExchangeAdminClient, folder: FolderPath, principal: Principal, audit: CorrelatedLogger
) -> FolderOutcome:
    """Reconcile the mailbox root with FolderVisible only."""
    return reconcile(client, folder, principal, RightsTier.ROOT, audit)


def reconcile_folder(
    client: ExchangeAdminClient, folder: FolderPath, principal: Principal, audit: CorrelatedLogger
) -> FolderOutcome:
    """Reconcile a standard or user-created folder with Reviewer rights."""
    return reconcile(client, folder, principal, RightsTier.STANDARD, audit)
