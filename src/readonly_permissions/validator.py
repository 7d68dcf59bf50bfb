"""
Pre-flight resolution of the target mailbox and principal.

Both lookups must succeed before an audit log is opened or any folder is
touched; failures are raised to the caller, which reports them on the console.
"""

import logging
from typing import Tuple

from readonly_permissions.exo_client import ExchangeAdminClient
from readonly_permissions.models import Mailbox, Principal

logger = logging.getLogger(__name__)


class InputValidationError(Exception):
    """The mailbox or principal given on the command line does not exist."""

    def __init__(self, identity: str, message: str):
        super().__init__(message)
        self.identity = identity


class MailboxNotFoundError(InputValidationError):
    def __init__(self, identity: str):
        super().__init__(identity, f"Mailbox '{identity}' not found")


class PrincipalNotFoundError(InputValidationError):
    def __init__(self, identity: str):
        super().__init__(identity, f"No user mailbox or distribution group named '{identity}' found")


def resolve_mailbox(client: ExchangeAdminClient, identity: str) -> Mailbox:
    """
    Resolve the mailbox whose folders will be shared.

    Raises:
        MailboxNotFoundError: If no mailbox matches identity
    """
    mailbox = client.get_mailbox(identity)
    if mailbox is None:
        raise MailboxNotFoundError(identity)
    logger.debug(f"Resolved mailbox {identity} -> {mailbox.display_name} ({mailbox.alias})")
    return mailbox


def resolve_principal(client: ExchangeAdminClient, identity: str) -> Principal:
    """
    Resolve the principal receiving access.

    User mailboxes are tried first, then distribution groups.

    Raises:
        PrincipalNotFoundError: If neither lookup matches identity
    """
    principal = client.get_user_mailbox(identity)
    if principal is None:
        principal = client.get_distribution_group(identity)
    if principal is None:
        raise PrincipalNotFoundError(identity)
    logger.debug(f"Resolved principal {identity} -> {principal.display_name} ({principal.kind})")
    return principal


def validate_inputs(client: ExchangeAdminClient, mailbox_id: str, principal_id: str) -> Tuple[Mailbox, Principal]:
    """Resolve mailbox then principal, failing fast on the first miss."""
    mailbox = resolve_mailbox(client, mailbox_id)
    principal = resolve_principal(client, principal_id)
    return mailbox, principal
