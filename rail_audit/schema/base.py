"""
Read-only schema provider interface.
"""

from abc import ABC, abstractmethod

from ..types import TableIdentity


class SchemaProvider(ABC):
    """
    Source of table metadata for the change capture engine.

    Implementations answer from the live schema unless they explicitly
    cache, in which case they must expose ``invalidate``.
    """

    @abstractmethod
    def primary_key_columns(self, table: TableIdentity) -> tuple[str, ...]:
        """Return the primary key columns of ``table`` in key order (may be empty)."""

    @abstractmethod
    def declared_columns(self, table: TableIdentity) -> tuple[str, ...]:
        """
        Return every declared column of ``table`` in declaration order.

        Raises:
            UnknownTable: if ``table`` has no schema metadata
        """

    def default_namespace(self) -> str:
        return ""

    def table_identity(self, table_name: str) -> TableIdentity:
        """Qualify a bare table name with the provider's default namespace."""
        return TableIdentity(schema=self.default_namespace(), name=table_name)

    def invalidate(self, table: TableIdentity = None) -> None:
        """Drop cached metadata. Uncached providers have nothing to drop."""
