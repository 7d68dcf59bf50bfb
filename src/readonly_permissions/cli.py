"""
Command line entry point.

Usage:
    readonly-permissions <mailbox> <principal> [--workers N] [--log-dir DIR] [--strict]

Examples:
    readonly-permissions jdoe@contoso.com "Helpdesk Team"
    readonly-permissions jdoe assistant@contoso.com --workers 4 --log-dir /var/log/exo

Environment:
    EXO_TENANT_ID, EXO_CLIENT_ID, EXO_CLIENT_SECRET must be set.
    EXO_ADMIN_URL, EXO_REQUEST_TIMEOUT, LOG_DIR and LOG_LEVEL are optional.

Exit codes:
    0  run completed (per-folder failures are reported in the log)
    1  configuration, mailbox or principal could not be resolved, or the
       folder listing failed
    2  --strict was given and at least one folder could not be updated
"""

import argparse
import os
import sys
from datetime import datetime
from typing import List, Optional

import requests

from readonly_permissions import __version__
from readonly_permissions.config import config
from readonly_permissions.driver import reconcile_mailbox
from readonly_permissions.exo_client import ExchangeAdminClient, ExchangeAPIError
from readonly_permissions.logger import AuditLog, configure_diagnostics
from readonly_permissions.ulid_generator import generate_run_id
from readonly_permissions.validator import InputValidationError, validate_inputs

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_FAILURES = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="readonly-permissions",
        description="Grant a user or distribution group read-only access to every folder of a mailbox",
    )
    parser.add_argument("mailbox", help="Mailbox to share (alias, SMTP address or other identity)")
    parser.add_argument("principal", help="User mailbox or distribution group receiving access")
    parser.add_argument(
        "--workers", type=int, default=1, help="Folders to reconcile concurrently (default: 1, sequential)"
    )
    parser.add_argument("--log-dir", default=None, help="Directory for the run log (default: LOG_DIR or cwd)")
    parser.add_argument(
        "--strict", action="store_true", help="Exit with status 2 if any folder could not be updated"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run one reconciliation pass and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.workers < 1:
        parser.error("--workers must be at least 1")

    started_at = datetime.now()
    configure_diagnostics(config.log_level)

    missing = config.validate_required()
    if missing:
        print(f"❌ Missing required configuration: {', '.join(missing)}")
        return EXIT_FATAL

    log_dir = args.log_dir or config.log_dir
    if not os.path.isdir(log_dir):
        print(f"❌ Log directory does not exist: {log_dir}")
        return EXIT_FATAL

    try:
        client = ExchangeAdminClient()
    except (ValueError, requests.exceptions.RequestException) as e:
        print(f"❌ Could not initialize Exchange admin client: {e}")
        return EXIT_FATAL

    with client:
        try:
            mailbox, principal = validate_inputs(client, args.mailbox, args.principal)
        except InputValidationError as e:
            print(f"❌ {e}")
            return EXIT_FATAL
        except ExchangeAPIError as e:
            print(f"❌ Lookup failed: {e.message}")
            return EXIT_FATAL

        with AuditLog(args.mailbox, generate_run_id(), started_at, log_dir=log_dir) as audit:
            try:
                report = reconcile_mailbox(client, mailbox, principal, audit, workers=args.workers)
            except ExchangeAPIError as e:
                audit.error(f"Run aborted: could not list folders of {mailbox.identity}: {e.message}")
                return EXIT_FATAL

    if args.strict and not report.completed_cleanly:
        return EXIT_FAILURES
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
