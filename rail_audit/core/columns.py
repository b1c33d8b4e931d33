"""
Enumeration of the auditable columns of a table.
"""

from typing import Iterable

from ..schema.base import SchemaProvider
from ..types import TableIdentity


def eligible_columns(
    table: TableIdentity,
    skip_columns: Iterable[str],
    schema_provider: SchemaProvider,
) -> tuple[str, ...]:
    """
    Return the declared columns of ``table`` minus ``skip_columns``.

    Columns come back in declaration order. The schema is read at call time,
    so columns added or dropped since registration are picked up.

    Raises:
        UnknownTable: if the provider has no metadata for ``table``
    """
    skipped = set(skip_columns or ())
    return tuple(
        column
        for column in schema_provider.declared_columns(table)
        if column not in skipped
    )


__all__ = ["eligible_columns"]
