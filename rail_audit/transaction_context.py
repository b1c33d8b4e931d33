"""
Transaction helpers for audited mutations.

Audit entries must live and die with the mutation that produced them, so
they are written on the mutation's connection inside its transaction. This
module resolves the marker used to group entries per transaction and refuses
audited writes in autocommit mode.
"""

import uuid

from django.db import DEFAULT_DB_ALIAS, transaction

from .exceptions import TransactionRequired
from .types import TransactionContext


class _TransactionMarker:
    """
    Marker registered as an ``on_commit`` callback.

    Django drops pending ``on_commit`` callbacks when the transaction commits
    or rolls back, so the marker is valid for as long as it is still pending.
    """

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value = uuid.uuid4().hex

    def __call__(self) -> None:
        return None


def get_transaction_id(using: str = DEFAULT_DB_ALIAS) -> str:
    """
    Return an identifier shared by every audit entry of the current transaction.

    PostgreSQL exposes ``txid_current()``. Elsewhere a random marker is kept
    for the outermost atomic block; outside of any atomic block each call
    gets a fresh marker.
    """
    connection = transaction.get_connection(using)
    if connection.vendor == "postgresql":
        with connection.cursor() as cursor:
            cursor.execute("SELECT txid_current()")
            return str(cursor.fetchone()[0])

    if not connection.in_atomic_block:
        return uuid.uuid4().hex

    for pending in connection.run_on_commit:
        callback = pending[1]
        if isinstance(callback, _TransactionMarker):
            return callback.value

    marker = _TransactionMarker()
    transaction.on_commit(marker, using=using)
    return marker.value


def get_transaction_context(using: str = DEFAULT_DB_ALIAS) -> TransactionContext:
    return TransactionContext(using=using, transaction_id=get_transaction_id(using))


def in_transaction(using: str = DEFAULT_DB_ALIAS) -> bool:
    connection = transaction.get_connection(using)
    return connection.in_atomic_block or not connection.get_autocommit()


def ensure_atomic(using: str = DEFAULT_DB_ALIAS, label: str = "") -> None:
    """
    Refuse to proceed when ``using`` is in autocommit mode.

    Called before an audited row is written, so the mutation is rejected
    instead of committing without its audit entries.

    Raises:
        TransactionRequired: outside of ``transaction.atomic``
    """
    if in_transaction(using):
        return
    raise TransactionRequired(
        f"Audited mutation of {label or 'a registered model'} must run inside "
        f"transaction.atomic(using={using!r})",
        table=label or None,
    )


__all__ = [
    "ensure_atomic",
    "get_transaction_context",
    "get_transaction_id",
    "in_transaction",
]
