"""
Value types shared by the change capture components.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

RowImage = Mapping[str, Any]


class Operation(Enum):
    """Kind of mutation applied to a record."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    @classmethod
    def coerce(cls, value: Union["Operation", str]) -> "Operation":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown mutation operation: {value!r}") from None


class AuditMode(Enum):
    """Granularity of persisted audit entries."""

    COLUMN = "column"
    ROW = "row"

    @classmethod
    def coerce(cls, value: Union["AuditMode", str, None]) -> "AuditMode":
        if value is None:
            return cls.COLUMN
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown audit mode: {value!r}") from None


@dataclass(frozen=True)
class TableIdentity:
    """Schema-qualified table name."""

    schema: str
    name: str

    def __str__(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name


@dataclass(frozen=True)
class RecordIdentity:
    """
    Identity of a mutated record.

    Attributes:
        value: Serialized identity string stored on audit entries
        key_columns: Columns the identity was built from, in key order
        key_values: Raw values of the key columns, in key order
    """

    value: str
    key_columns: tuple[str, ...]
    key_values: tuple[Any, ...] = ()

    def as_dict(self) -> dict[str, Any]:
        return dict(zip(self.key_columns, self.key_values))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ActorContext:
    """Who issued a mutation and from where. Every field may be absent."""

    user_id: Optional[str] = None
    username: Optional[str] = None
    client_ip: Optional[str] = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None and self.username is None


@dataclass(frozen=True)
class TransactionContext:
    """Database alias and marker of the transaction enclosing a mutation."""

    using: str = "default"
    transaction_id: Optional[str] = None


@dataclass(frozen=True)
class ColumnChange:
    column: str
    old_value: Any = None
    new_value: Any = None


@dataclass(frozen=True)
class ChangeSet:
    """
    Result of diffing two row images.

    ``changes`` lists the per-column differences. ``old_image`` and
    ``new_image`` hold the full images restricted to eligible columns and
    are used by row-grained audit entries.
    """

    operation: Operation
    changes: tuple[ColumnChange, ...] = ()
    old_image: Optional[dict[str, Any]] = None
    new_image: Optional[dict[str, Any]] = None

    @property
    def is_empty(self) -> bool:
        return not self.changes

    @property
    def changed_columns(self) -> tuple[str, ...]:
        return tuple(change.column for change in self.changes)

    def __len__(self) -> int:
        return len(self.changes)

    def __iter__(self):
        return iter(self.changes)


@dataclass(frozen=True)
class MutationEvent:
    """Everything the hosting hook knows about one mutated record."""

    operation: Operation
    table: TableIdentity
    prior_image: Optional[dict[str, Any]] = None
    new_image: Optional[dict[str, Any]] = None
    explicit_key_columns: tuple[str, ...] = ()
    skip_columns_extra: tuple[str, ...] = ()
    actor: ActorContext = field(default_factory=ActorContext)
