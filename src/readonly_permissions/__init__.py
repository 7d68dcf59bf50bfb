"""
Read-only mailbox folder access for Exchange Online.

Grants a user or distribution group visibility into a mailbox folder tree by
adding folder permission entries where none exist, and records every
decision to a per-run audit log.
"""

__version__ = "1.0.0"
