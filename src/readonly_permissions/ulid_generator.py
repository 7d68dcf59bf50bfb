"""
Run identifiers.

Each run gets a ULID: sortable by start time, unique across concurrent runs,
and short enough to prefix every audit line.
"""

from ulid import ULID


def generate_run_id() -> str:
    """
    Generate a new ULID identifying one reconciliation run.

    Returns:
        str: ULID in string format (26 characters)

    Example:
        >>> generate_run_id()
        '01JCK3Q7H8ZVXN3BARC9GWAEZM'
    """
    return str(ULID())
