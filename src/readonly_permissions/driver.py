"""
Mailbox-wide reconciliation pass.

Lists the mailbox's folder statistics, classifies every folder into a rights
tier, reconciles each recognized folder and folds the outcomes into a report.
Folders whose type is outside the standard and user-created set are dropped
before reconciliation and leave no trace in the audit log.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Sequence, Tuple

from readonly_permissions.exo_client import ExchangeAdminClient
from readonly_permissions.folders import FolderPath, RightsTier, tier_for
from readonly_permissions.logger import CorrelatedLogger
from readonly_permissions.models import FolderOutcome, FolderStatistic, Mailbox, Principal, ReconciliationReport
from readonly_permissions.reconciler import reconcile_folder, reconcile_root

logger = logging.getLogger(__name__)

Reconcile = Callable[[ExchangeAdminClient, FolderPath, Principal, CorrelatedLogger], FolderOutcome]

DISPATCH: Dict[RightsTier, Reconcile] = {
    RightsTier.ROOT: reconcile_root,
    RightsTier.STANDARD: reconcile_folder,
}


def plan_folders(mailbox: Mailbox, statistics: Sequence[FolderStatistic]) -> List[Tuple[FolderPath, RightsTier]]:
    """
    Classify folder statistics into (folder, tier) pairs in listing order.

    The root is addressed as ``alias:\\`` regardless of its statistics path
    ("/Top of Information Store"); every other folder is addressed from its
    statistics FolderPath, or from its Identity when the record carries no
    path. A non-Root record that still resolves to the root is dropped so it
    never receives folder-level rights on the mailbox root.
    """
    plan: List[Tuple[FolderPath, RightsTier]] = []
    for statistic in statistics:
        tier = tier_for(statistic.folder_type)
        if tier is RightsTier.IGNORE:
            continue
        if tier is RightsTier.ROOT:
            folder = FolderPath.root(mailbox.alias)
        else:
            folder = FolderPath.from_statistic(mailbox.alias, statistic.folder_path)
            if folder.is_root:
                folder = FolderPath.from_identity(mailbox.alias, statistic.identity)
            if folder.is_root:
                logger.warning(f"Skipping {statistic.folder_type} folder {statistic.identity!r}: no folder path")
                continue
        plan.append((folder, tier))
    return plan


def reconcile_mailbox(
    client: ExchangeAdminClient,
    mailbox: Mailbox,
    principal: Principal,
    audit: CorrelatedLogger,
    workers: int = 1,
) -> ReconciliationReport:
    """
    Reconcile every recognized folder of a mailbox and log the summary.

    Args:
        client: Exchange admin client
        mailbox: Resolved target mailbox
        principal: Resolved principal receiving access
        audit: Run audit log (its correlation ID becomes the report's run_id)
        workers: Folders reconciled concurrently (1 = strictly sequential)

    Returns:
        ReconciliationReport: counts and per-folder outcomes in listing order

    Raises:
        ExchangeAPIError: If the folder listing itself fails
    """
    if workers < 1:
        raise ValueError("workers must be at least 1")

    audit.info(
        f"Granting read-only access on {mailbox.display_name} ({mailbox.identity}) "
        f"to {principal.display_name} ({principal.kind})"
    )

    statistics = client.list_folder_statistics(mailbox.identity)
    plan = plan_folders(mailbox, statistics)
    logger.debug(f"{len(statistics)} folders listed, {len(plan)} recognized")

    def run(item: Tuple[FolderPath, RightsTier]) -> FolderOutcome:
        folder, tier = item
        return DISPATCH[tier](client, folder, principal, audit)

    if workers == 1:
        outcomes = [run(item) for item in plan]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(run, plan))

    report = ReconciliationReport.fold(audit.correlation_id, mailbox.identity, principal.display_name, outcomes)
    if report.completed_cleanly:
        audit.info(report.summary_line())
    else:
        audit.warning(report.summary_line())
    return report
