"""
In-memory schema provider.
"""

from typing import Any, Iterable, Mapping, Optional, Union

from ..exceptions import UnknownTable
from ..types import TableIdentity
from .base import SchemaProvider

TableKey = Union[TableIdentity, str]


class StaticSchemaProvider(SchemaProvider):
    """
    Schema provider backed by a plain mapping.

    Tables are keyed by ``TableIdentity`` or by their ``"schema.name"`` string
    and map to ``{"columns": [...], "primary_key": [...]}``.

    Example:
        provider = StaticSchemaProvider(
            {"public.users": {"columns": ["id", "name"], "primary_key": ["id"]}},
            namespace="public",
        )
    """

    def __init__(
        self,
        tables: Optional[Mapping[TableKey, Mapping[str, Any]]] = None,
        namespace: str = "",
    ):
        self.namespace = namespace
        self._tables: dict[str, dict[str, tuple[str, ...]]] = {}
        for key, definition in (tables or {}).items():
            self.add_table(
                key,
                columns=definition.get("columns", ()),
                primary_key=definition.get("primary_key", ()),
            )

    def add_table(
        self,
        table: TableKey,
        columns: Iterable[str],
        primary_key: Iterable[str] = (),
    ) -> None:
        self._tables[self._key(table)] = {
            "columns": tuple(columns),
            "primary_key": tuple(primary_key),
        }

    def drop_table(self, table: TableKey) -> None:
        self._tables.pop(self._key(table), None)

    def primary_key_columns(self, table: TableIdentity) -> tuple[str, ...]:
        return self._lookup(table)["primary_key"]

    def declared_columns(self, table: TableIdentity) -> tuple[str, ...]:
        return self._lookup(table)["columns"]

    def default_namespace(self) -> str:
        return self.namespace

    def _lookup(self, table: TableIdentity) -> dict[str, tuple[str, ...]]:
        try:
            return self._tables[self._key(table)]
        except KeyError:
            raise UnknownTable(
                f"No schema metadata for table {table}", table=str(table)
            ) from None

    def _key(self, table: TableKey) -> str:
        if isinstance(table, TableIdentity):
            return str(table)
        text = str(table)
        if "." not in text and self.namespace:
            return f"{self.namespace}.{text}"
        return text
