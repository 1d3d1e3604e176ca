"""Exception types raised by the persistence and store layers.

Aggregation code never raises these; it degrades to zero or neutral values
instead.
"""

from __future__ import annotations


class FinanceTrackerError(Exception):
    """Base class for finance tracker errors."""


class FetchError(FinanceTrackerError):
    """Reading from or writing to the database failed."""


class RecordNotFoundError(FinanceTrackerError):
    """An update or delete targeted a row the user does not own."""

    def __init__(self, table: str, record_id: str):
        super().__init__(f"No {table} row with id {record_id!r}")
        self.table = table
        self.record_id = record_id


class BudgetExistsError(FinanceTrackerError, ValueError):
    """A budget for the requested month already exists."""

    def __init__(self, month: str):
        super().__init__(f"A budget already exists for {month}")
        self.month = month


class AuthenticationRequired(FinanceTrackerError):
    """No user identity is available for the request."""
