"""
Exceptions raised by the change capture engine.

Every error below is fatal to the mutation being audited: none of them is
retried or swallowed, so a mutation can never commit without its audit trail.
"""

from typing import Optional, Sequence


class ChangeCaptureError(Exception):
    """Base exception for change capture errors."""

    def __init__(self, message: str, table: Optional[str] = None):
        self.table = table
        super().__init__(message)


class NoIdentityColumns(ChangeCaptureError):
    """Raised when a record identity cannot be built for a table."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        key_columns: Optional[Sequence[str]] = None,
    ):
        self.key_columns = tuple(key_columns or ())
        super().__init__(message, table)


class UnknownTable(ChangeCaptureError):
    """Raised when the schema provider has no metadata for a table."""


class WriteFailure(ChangeCaptureError):
    """Raised when the audit entries of a mutation could not be persisted."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None,
        record_id: Optional[str] = None,
    ):
        self.operation = operation
        self.record_id = record_id
        super().__init__(message, table)


class TransactionRequired(WriteFailure):
    """Raised when an audited mutation runs outside of a database transaction."""


class AppendOnlyViolation(Exception):
    """Raised when code tries to modify or delete a persisted audit entry."""


__all__ = [
    "AppendOnlyViolation",
    "ChangeCaptureError",
    "NoIdentityColumns",
    "TransactionRequired",
    "UnknownTable",
    "WriteFailure",
]
