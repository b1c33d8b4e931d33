"""
Schema provider reading the live database catalog.

PostgreSQL is queried through its system catalog so that schema-qualified
tables are resolved exactly; other backends go through Django's database
introspection API.
"""

import logging

from django.db import DEFAULT_DB_ALIAS, connections

from ..exceptions import UnknownTable
from ..types import TableIdentity
from .base import SchemaProvider

logger = logging.getLogger(__name__)

PG_PRIMARY_KEY_SQL = """
    SELECT a.attname
    FROM pg_index AS i
    JOIN pg_attribute AS a
        ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
    WHERE i.indrelid = %s::oid AND i.indisprimary
    ORDER BY array_position(i.indkey::int2[], a.attnum)
"""

PG_COLUMNS_SQL = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = %s AND table_name = %s
    ORDER BY ordinal_position
"""


class DatabaseSchemaProvider(SchemaProvider):
    """Answer schema questions from the database behind ``using``."""

    def __init__(self, using: str = DEFAULT_DB_ALIAS):
        self.using = using

    @property
    def connection(self):
        return connections[self.using]

    def primary_key_columns(self, table: TableIdentity) -> tuple[str, ...]:
        connection = self.connection
        with connection.cursor() as cursor:
            if connection.vendor == "postgresql":
                oid = self._pg_table_oid(cursor, table)
                cursor.execute(PG_PRIMARY_KEY_SQL, [oid])
                return tuple(row[0] for row in cursor.fetchall())

            self._ensure_table_exists(cursor, table)
            columns = connection.introspection.get_primary_key_columns(
                cursor, table.name
            )
        return tuple(columns or ())

    def declared_columns(self, table: TableIdentity) -> tuple[str, ...]:
        connection = self.connection
        with connection.cursor() as cursor:
            if connection.vendor == "postgresql":
                cursor.execute(PG_COLUMNS_SQL, [table.schema, table.name])
                columns = tuple(row[0] for row in cursor.fetchall())
                if not columns:
                    raise UnknownTable(
                        f"No schema metadata for table {table}", table=str(table)
                    )
                return columns

            self._ensure_table_exists(cursor, table)
            description = connection.introspection.get_table_description(
                cursor, table.name
            )
        return tuple(column.name for column in description)

    def default_namespace(self) -> str:
        connection = self.connection
        if connection.vendor == "postgresql":
            with connection.cursor() as cursor:
                cursor.execute("SELECT current_schema()")
                row = cursor.fetchone()
            return str(row[0]) if row and row[0] else "public"
        if connection.vendor == "sqlite":
            return "main"
        if connection.vendor == "mysql":
            return str(connection.settings_dict.get("NAME") or "")
        return ""

    def _pg_table_oid(self, cursor, table: TableIdentity) -> int:
        quote = self.connection.ops.quote_name
        qualified = quote(table.name)
        if table.schema:
            qualified = f"{quote(table.schema)}.{qualified}"
        cursor.execute("SELECT to_regclass(%s)::oid", [qualified])
        row = cursor.fetchone()
        if not row or row[0] is None:
            raise UnknownTable(f"No schema metadata for table {table}", table=str(table))
        return row[0]

    def _ensure_table_exists(self, cursor, table: TableIdentity) -> None:
        if table.name not in self.connection.introspection.table_names(cursor):
            raise UnknownTable(f"No schema metadata for table {table}", table=str(table))
