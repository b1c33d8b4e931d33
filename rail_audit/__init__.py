"""
rail-audit - row level change capture for Django models.

Register a model and every insert, update and delete applied to it produces
append-only audit entries written in the same transaction as the mutation:

    from rail_audit.registry import audited

    @audited(skip_columns=["updated_at"])
    class Invoice(models.Model):
        ...

Models, writer and engine are importable from their modules once Django apps
are loaded.
"""

from .context import actor_context, get_actor_context
from .exceptions import (
    AppendOnlyViolation,
    ChangeCaptureError,
    NoIdentityColumns,
    TransactionRequired,
    UnknownTable,
    WriteFailure,
)
from .types import (
    ActorContext,
    AuditMode,
    ChangeSet,
    ColumnChange,
    Operation,
    RecordIdentity,
    TableIdentity,
    TransactionContext,
)

__version__ = "0.1.0"

__all__ = [
    "ActorContext",
    "AppendOnlyViolation",
    "AuditMode",
    "ChangeCaptureError",
    "ChangeSet",
    "ColumnChange",
    "NoIdentityColumns",
    "Operation",
    "RecordIdentity",
    "TableIdentity",
    "TransactionContext",
    "TransactionRequired",
    "UnknownTable",
    "WriteFailure",
    "actor_context",
    "get_actor_context",
]
