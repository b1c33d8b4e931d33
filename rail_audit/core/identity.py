"""
Record identity resolution.

A record identity is the key column values of a row, rendered as text and
joined with ``|``. Values containing ``~``, ``|`` or ``#`` have those
characters prefixed with ``~`` and a null value is rendered as a bare ``#``,
so distinct key tuples never serialize to the same string.
"""

import logging
import re
from typing import Any, Optional, Sequence

from ..exceptions import NoIdentityColumns
from ..schema.base import SchemaProvider
from ..types import RecordIdentity, RowImage, TableIdentity
from ..utils.encoding import to_text

logger = logging.getLogger(__name__)

DELIMITER = "|"
ESCAPE = "~"
NULL_SENTINEL = "#"

_SPECIAL_CHARACTERS = re.compile(r"([~|#])")


def escape_key_value(value: Any) -> str:
    """Render one key value for inclusion in a record identity."""
    text = to_text(value)
    if text is None:
        return NULL_SENTINEL
    return _SPECIAL_CHARACTERS.sub(ESCAPE + r"\1", text)


def serialize_key(values: Sequence[Any]) -> str:
    return DELIMITER.join(escape_key_value(value) for value in values)


def resolve_key_columns(
    table: TableIdentity,
    explicit_key_columns: Optional[Sequence[str]],
    schema_provider: SchemaProvider,
) -> tuple[str, ...]:
    """
    Pick the columns identifying records of ``table``.

    Explicit key columns win; otherwise the table's primary key is looked up.

    Raises:
        NoIdentityColumns: if neither is available
    """
    if explicit_key_columns:
        return tuple(explicit_key_columns)

    key_columns = tuple(schema_provider.primary_key_columns(table))
    if not key_columns:
        raise NoIdentityColumns(
            f"Table {table} has no primary key and no explicit key columns",
            table=str(table),
        )
    return key_columns


def resolve_record_identity(
    table: TableIdentity,
    explicit_key_columns: Optional[Sequence[str]],
    row_image: RowImage,
    schema_provider: SchemaProvider,
) -> RecordIdentity:
    """
    Build the identity of the record described by ``row_image``.

    Args:
        table: Table the record belongs to
        explicit_key_columns: Key override; empty or None uses the primary key
        row_image: Column values of the record
        schema_provider: Catalog used to discover the primary key

    Returns:
        RecordIdentity with the serialized identity and the key columns used
    """
    key_columns = resolve_key_columns(table, explicit_key_columns, schema_provider)

    missing = [column for column in key_columns if column not in row_image]
    if missing:
        raise NoIdentityColumns(
            f"Key column(s) {', '.join(missing)} missing from row image of {table}",
            table=str(table),
            key_columns=key_columns,
        )

    key_values = tuple(row_image[column] for column in key_columns)
    return RecordIdentity(
        value=serialize_key(key_values),
        key_columns=key_columns,
        key_values=key_values,
    )


__all__ = [
    "DELIMITER",
    "ESCAPE",
    "NULL_SENTINEL",
    "escape_key_value",
    "resolve_key_columns",
    "resolve_record_identity",
    "serialize_key",
]
