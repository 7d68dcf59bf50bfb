"""
Exchange Online admin API client for mailbox folder permissions.

Provides authenticated access to the Exchange Online admin REST endpoint for:
- Resolving mailboxes, user mailboxes and distribution groups
- Listing folder statistics for a mailbox
- Reading and adding mailbox folder permissions

Cmdlets are invoked through ``POST {admin_url}/{tenant}/InvokeCommand``. Uses
MSAL client credentials for authentication and retries throttled reads.
"""

import threading
import time
from typing import Any, Dict, List, Optional, Sequence

import requests
from msal import ConfidentialClientApplication

from readonly_permissions.config import config
from readonly_permissions.folders import FolderPath
from readonly_permissions.models import FolderStatistic, Mailbox, MutationResult, PermissionEntry, Principal
from readonly_permissions.retry import retry_with_backoff

EXCHANGE_SCOPE = "https://outlook.office365.com/.default"
USER_MAILBOX_TYPES = ["UserMailbox", "SharedMailbox", "RoomMailbox", "EquipmentMailbox"]


class ExchangeAPIError(Exception):
    """The admin API rejected a cmdlet or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    @property
    def is_not_found(self) -> bool:
        if self.status_code == 404:
            return True
        haystack = f"{self.code or ''} {self.message}".lower()
        return "notfound" in haystack or "couldn't be found" in haystack


class ThrottledError(ExchangeAPIError):
    """HTTP 429/503 from the admin API; retry_after is in seconds."""

    def __init__(self, message: str, status_code: int, retry_after: float):
        super().__init__(message, status_code=status_code, code="Throttled")
        self.retry_after = retry_after


def _error_from_response(response: requests.Response) -> ExchangeAPIError:
    """Build the most specific error for a non-2xx admin API response."""
    code: Optional[str] = None
    message = response.text or response.reason or f"HTTP {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = body.get("error", {}) if isinstance(body, dict) else {}
    if isinstance(error, dict) and error:
        code = error.get("code")
        message = error.get("message") or message
        details = error.get("details") or []
        if details and isinstance(details[0], dict) and details[0].get("message"):
            message = details[0]["message"]

    if response.status_code in (429, 503):
        try:
            retry_after = float(response.headers.get("Retry-After", 30))
        except (TypeError, ValueError):
            retry_after = 30.0
        return ThrottledError(f"Throttled, retry after {retry_after:.0f}s: {message}", response.status_code, retry_after)

    return ExchangeAPIError(message, status_code=response.status_code, code=code)


class ExchangeAdminClient:
    """
    Exchange Online admin API client for folder permission operations.

    Handles authentication via MSAL and exposes one method per cmdlet the
    reconciliation needs. Lookups return None when the object does not exist.
    """

    def __init__(
        self,
        tenant_id: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        admin_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the admin API client with credentials.

        Args:
            tenant_id: Azure AD tenant ID or primary domain (or from env)
            client_id: App registration client ID (or from env)
            client_secret: App registration secret (or from env)
            admin_url: Admin REST root (or from env / default)
            timeout: Per-request timeout in seconds (or from env / default)

        Raises:
            ValueError: If required credentials are missing
        """
        self.tenant_id = tenant_id or config.exo_tenant_id
        self.client_id = client_id or config.exo_client_id
        self.client_secret = client_secret or config.exo_client_secret

        if not all([self.tenant_id, self.client_id, self.client_secret]):
            raise ValueError("Exchange admin credentials not configured")

        self.admin_url = (admin_url or config.exo_admin_url).rstrip("/")
        self.invoke_url = f"{self.admin_url}/{self.tenant_id}/InvokeCommand"
        self.timeout = timeout or config.exo_request_timeout
        self.scopes = [EXCHANGE_SCOPE]

        self.app = ConfidentialClientApplication(
            client_id=self.client_id,
            client_credential=self.client_secret,
            authority=f"https://login.microsoftonline.com/{self.tenant_id}",
        )

        self.session = requests.Session()
        self.session.headers.update(
            {"Content-Type": "application/json", "Accept": "application/json", "X-ResponseFormat": "json"}
        )

        self._access_token: Optional[str] = None
        self._token_expiry: float = 0
        self._token_lock = threading.Lock()

    def _get_access_token(self) -> str:
        """
        Get valid access token, refreshing if needed.

        Raises:
            ExchangeAPIError: If token acquisition fails
        """
        with self._token_lock:
            # Still valid with a 5 minute buffer
            if self._access_token and time.time() < (self._token_expiry - 300):
                return self._access_token

            result = self.app.acquire_token_for_client(scopes=self.scopes)
            if "access_token" not in result:
                error = result.get("error_description", "Unknown error")
                raise ExchangeAPIError(f"Failed to acquire token: {error}", code=result.get("error"))

            self._access_token = result["access_token"]
            self._token_expiry = time.time() + result.get("expires_in", 3600)
            return self._access_token

    def _invoke(self, cmdlet: str, parameters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Run one cmdlet and return every record it produced.

        Follows @odata.nextLink until the result set is exhausted.

        Raises:
            ThrottledError: On 429/503
            ExchangeAPIError: On any other non-2xx response or transport error
        """
        body = {"CmdletInput": {"CmdletName": cmdlet, "Parameters": parameters}}
        url: Optional[str] = self.invoke_url
        records: List[Dict[str, Any]] = []

        while url:
            headers = {"Authorization": f"Bearer {self._get_access_token()}"}
            try:
                response = self.session.post(url, json=body, headers=headers, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                raise ExchangeAPIError(f"{cmdlet} request failed: {e}") from e

            if not response.ok:
                raise _error_from_response(response)

            try:
                payload = response.json() if response.content else {}
            except ValueError as e:
                raise ExchangeAPIError(f"{cmdlet} returned a non-JSON body", status_code=response.status_code) from e
            records.extend(payload.get("value", []))
            url = payload.get("@odata.nextLink")

        return records

    def _lookup(self, cmdlet: str, parameters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            records = self._invoke(cmdlet, parameters)
        except ThrottledError:
            raise
        except ExchangeAPIError as e:
            if e.is_not_found:
                return None
            raise
        return records[0] if records else None

    @retry_with_backoff(max_attempts=4, initial_delay=2.0, exceptions=(ThrottledError,))
    def get_mailbox(self, identity: str) -> Optional[Mailbox]:
        """
        Resolve any mailbox by identity (alias, SMTP address, GUID, ...).

        Returns:
            Mailbox or None if no mailbox matches
        """
        record = self._lookup("Get-Mailbox", {"Identity": identity})
        return Mailbox.from_exchange(record) if record else None

    @retry_with_backoff(max_attempts=4, initial_delay=2.0, exceptions=(ThrottledError,))
    def get_user_mailbox(self, identity: str) -> Optional[Principal]:
        """Resolve a principal through the mailbox directory."""
        record = self._lookup("Get-Mailbox", {"Identity": identity, "RecipientTypeDetails": USER_MAILBOX_TYPES})
        return Principal.from_exchange(record, "user") if record else None

    @retry_with_backoff(max_attempts=4, initial_delay=2.0, exceptions=(ThrottledError,))
    def get_distribution_group(self, identity: str) -> Optional[Principal]:
        """Resolve a principal through the distribution group directory."""
        record = self._lookup("Get-DistributionGroup", {"Identity": identity})
        return Principal.from_exchange(record, "group") if record else None

    @retry_with_backoff(max_attempts=4, initial_delay=2.0, exceptions=(ThrottledError,))
    def list_folder_statistics(self, mailbox: str) -> List[FolderStatistic]:
        """
        List statistics for every folder of a mailbox, in server order.

        Args:
            mailbox: Mailbox identity

        Returns:
            list: FolderStatistic records including the root
        """
        records = self._invoke("Get-MailboxFolderStatistics", {"Identity": mailbox})
        return [FolderStatistic.from_exchange(record) for record in records]

    @retry_with_backoff(max_attempts=4, initial_delay=2.0, exceptions=(ThrottledError,))
    def get_folder_permissions(self, folder: FolderPath) -> List[PermissionEntry]:
        """List the permission entries currently set on a folder."""
        records = self._invoke("Get-MailboxFolderPermission", {"Identity": str(folder)})
        return [PermissionEntry.from_exchange(record) for record in records]

    def add_folder_permission(self, folder: FolderPath, principal: Principal, rights: Sequence[str]) -> MutationResult:
        """
        Add a permission entry for principal on folder.

        Attempted exactly once; a rejection is returned, never raised.

        Returns:
            MutationResult: success, or failure carrying the server's message
        """
        parameters = {"Identity": str(folder), "User": principal.identity, "AccessRights": list(rights)}
        try:
            self._invoke("Add-MailboxFolderPermission", parameters)
        except ExchangeAPIError as e:
            return MutationResult.failure(e.message)
        return MutationResult.success()

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "ExchangeAdminClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
