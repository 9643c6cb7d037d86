"""Error taxonomy for measurement queries.

Every failure a query can produce is one of these types. Validation errors are
raised before the store is touched; ``StoreError`` is raised by the store
adapters in place of whatever the database driver threw.
"""

from __future__ import annotations

from typing import Iterable, Optional


class QueryError(Exception):
    """Base class carrying the HTTP status and client-facing message."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidField(QueryError):
    def __init__(self, allowed: Iterable[str]) -> None:
        self.allowed = tuple(allowed)
        super().__init__(f"Invalid field. Allowed: {', '.join(self.allowed)}")


class InvalidDateFormat(QueryError):
    def __init__(self, value: Optional[str] = None) -> None:
        self.value = value
        super().__init__("Invalid date format. Use YYYY-MM-DD.")


class InvalidDateRange(QueryError):
    def __init__(self) -> None:
        super().__init__("start_date must be <= end_date.")


class NotFound(QueryError):
    status_code = 404

    def __init__(self) -> None:
        super().__init__("No data found for the given filters.")


class StoreError(QueryError):
    status_code = 500

    def __init__(self, details: str) -> None:
        super().__init__("Server error")
        self.details = details
