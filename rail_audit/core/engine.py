"""
Change capture engine.

Ties the identity resolver, column enumerator, diff engine and audit writer
together for one mutation event. The engine keeps no state between calls;
everything it needs comes from its arguments and the schema provider.
"""

import logging
from typing import Optional, Sequence, Union

from ..schema.base import SchemaProvider
from ..transaction_context import get_transaction_id
from ..types import (
    ActorContext,
    AuditMode,
    MutationEvent,
    Operation,
    RowImage,
    TableIdentity,
    TransactionContext,
)
from .columns import eligible_columns
from .diff import diff
from .identity import resolve_record_identity
from .writer import AuditWriter, DatabaseAuditWriter

logger = logging.getLogger(__name__)


class ChangeCaptureEngine:
    """
    Produce audit entries for row mutations.

    Args:
        schema_provider: Source of primary keys and declared columns
        writer: Audit writer; defaults to the database writer
        mode: Default audit mode used when a call does not pick one; defaults
            to the writer's mode
    """

    def __init__(
        self,
        schema_provider: SchemaProvider,
        writer: Optional[AuditWriter] = None,
        mode: Union[AuditMode, str, None] = None,
    ):
        self.schema_provider = schema_provider
        if writer is None:
            writer = DatabaseAuditWriter(mode=AuditMode.coerce(mode))
        self.writer = writer
        self.mode = AuditMode.coerce(mode) if mode is not None else writer.mode

    def on_mutate(
        self,
        operation: Union[Operation, str],
        table: TableIdentity,
        prior_image: Optional[RowImage] = None,
        new_image: Optional[RowImage] = None,
        explicit_key_columns: Optional[Sequence[str]] = None,
        skip_columns_extra: Sequence[str] = (),
        actor: Optional[ActorContext] = None,
        transaction: Optional[TransactionContext] = None,
        mode: Union[AuditMode, str, None] = None,
    ) -> list:
        """
        Audit one mutated record.

        Returns:
            The audit entries written, empty when nothing auditable changed

        Raises:
            NoIdentityColumns: no explicit key columns and no primary key
            UnknownTable: no schema metadata for ``table``
            WriteFailure: the audit entries could not be persisted
        """
        event = MutationEvent(
            operation=Operation.coerce(operation),
            table=table,
            prior_image=dict(prior_image) if prior_image is not None else None,
            new_image=dict(new_image) if new_image is not None else None,
            explicit_key_columns=tuple(explicit_key_columns or ()),
            skip_columns_extra=tuple(skip_columns_extra or ()),
            actor=actor or ActorContext(),
        )
        return self.capture(event, transaction=transaction, mode=mode)

    def capture(
        self,
        event: MutationEvent,
        transaction: Optional[TransactionContext] = None,
        mode: Union[AuditMode, str, None] = None,
    ) -> list:
        operation = event.operation
        if operation is Operation.DELETE:
            identity_image = event.prior_image
        else:
            identity_image = event.new_image
        if identity_image is None:
            raise ValueError(f"{operation.value} on {event.table} is missing its row image")

        record_identity = resolve_record_identity(
            event.table,
            event.explicit_key_columns,
            identity_image,
            self.schema_provider,
        )

        skip_columns = record_identity.key_columns + event.skip_columns_extra
        columns = eligible_columns(event.table, skip_columns, self.schema_provider)

        change_set = diff(operation, columns, event.prior_image, event.new_image)
        if change_set.is_empty:
            logger.debug(
                "No auditable change for %s %s[%s]",
                operation.value,
                event.table,
                record_identity,
            )
            return []

        if transaction is None:
            transaction = TransactionContext()
        if transaction.transaction_id is None:
            transaction = TransactionContext(
                using=transaction.using,
                transaction_id=get_transaction_id(transaction.using),
            )

        return self.writer.write(
            operation,
            event.table,
            record_identity,
            change_set,
            actor=event.actor,
            transaction_context=transaction,
            mode=mode or self.mode,
        )


__all__ = ["ChangeCaptureEngine"]
