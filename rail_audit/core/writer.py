"""
Audit writer.

Persists a change set as column-grained or row-grained audit entries on the
mutation's own database connection. The writer never commits or rolls back:
it only issues inserts inside the caller's transaction and turns persistence
errors into ``WriteFailure`` so the mutation aborts with it.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import WriteFailure
from ..models import ColumnAuditEntry, RowAuditEntry
from ..transaction_context import get_transaction_id
from ..types import (
    ActorContext,
    AuditMode,
    ChangeSet,
    Operation,
    RecordIdentity,
    TableIdentity,
    TransactionContext,
)
from ..utils.encoding import image_to_json, to_text

logger = logging.getLogger(__name__)


class AuditWriter(ABC):
    """Base class for audit writers."""

    def __init__(self, mode: Union[AuditMode, str] = AuditMode.COLUMN):
        self.mode = AuditMode.coerce(mode)

    @abstractmethod
    def write(
        self,
        operation: Operation,
        table: TableIdentity,
        record_identity: RecordIdentity,
        change_set: ChangeSet,
        actor: Optional[ActorContext] = None,
        transaction_context: Optional[TransactionContext] = None,
        mode: Union[AuditMode, str, None] = None,
    ) -> list:
        """Persist ``change_set``; ``mode`` falls back to the writer's own mode."""


class DatabaseAuditWriter(AuditWriter):
    """Write audit entries with the ``rail_audit`` models."""

    def write(
        self,
        operation: Operation,
        table: TableIdentity,
        record_identity: RecordIdentity,
        change_set: ChangeSet,
        actor: Optional[ActorContext] = None,
        transaction_context: Optional[TransactionContext] = None,
        mode: Union[AuditMode, str, None] = None,
    ) -> list:
        """
        Persist ``change_set`` and return the created entries.

        An empty change set writes nothing.

        Raises:
            WriteFailure: if the database rejects an entry
        """
        if change_set.is_empty:
            return []

        operation = Operation.coerce(operation)
        resolved_mode = AuditMode.coerce(mode) if mode is not None else self.mode
        actor = actor or ActorContext()
        transaction_context = transaction_context or TransactionContext()
        using = transaction_context.using

        try:
            with transaction.atomic(using=using, savepoint=False):
                header = self._build_header(
                    operation, table, record_identity, actor, transaction_context
                )
                if resolved_mode is AuditMode.ROW:
                    entries = [self._build_row_entry(header, record_identity, change_set)]
                    created = RowAuditEntry.objects.using(using).bulk_create(entries)
                else:
                    entries = self._build_column_entries(header, change_set)
                    created = ColumnAuditEntry.objects.using(using).bulk_create(entries)
        except DatabaseError as exc:
            logger.error(
                "Failed to write %s audit entries for %s[%s]: %s",
                operation.value,
                table,
                record_identity,
                exc,
            )
            raise WriteFailure(
                f"Could not persist audit entries for {operation.value} on "
                f"{table} record {record_identity}: {exc}",
                table=str(table),
                operation=operation.value,
                record_id=record_identity.value,
            ) from exc

        logger.debug(
            "Wrote %s %s audit entr%s for %s %s[%s]",
            len(created),
            resolved_mode.value,
            "y" if len(created) == 1 else "ies",
            operation.value,
            table,
            record_identity,
        )
        return list(created)

    def _build_header(
        self,
        operation: Operation,
        table: TableIdentity,
        record_identity: RecordIdentity,
        actor: ActorContext,
        transaction_context: TransactionContext,
    ) -> dict:
        transaction_id = transaction_context.transaction_id or get_transaction_id(
            transaction_context.using
        )
        return {
            "timestamp": timezone.now(),
            "transaction_id": transaction_id,
            "actor_id": actor.user_id,
            "actor_name": actor.username,
            "client_ip": actor.client_ip,
            "operation": operation.value,
            "table_schema": table.schema,
            "table_name": table.name,
            "record_id": record_identity.value,
        }

    def _build_column_entries(
        self, header: dict, change_set: ChangeSet
    ) -> list[ColumnAuditEntry]:
        return [
            ColumnAuditEntry(
                column_name=change.column,
                old_value=to_text(change.old_value),
                new_value=to_text(change.new_value),
                **header,
            )
            for change in change_set
        ]

    def _build_row_entry(
        self, header: dict, record_identity: RecordIdentity, change_set: ChangeSet
    ) -> RowAuditEntry:
        return RowAuditEntry(
            record_key=image_to_json(record_identity.as_dict()),
            old_data=image_to_json(change_set.old_image),
            new_data=image_to_json(change_set.new_image),
            **header,
        )


__all__ = ["AuditWriter", "DatabaseAuditWriter"]
