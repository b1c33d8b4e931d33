"""
Unit tests for schema providers.
"""

import pytest

from rail_audit.exceptions import UnknownTable
from rail_audit.schema import (
    CachedSchemaProvider,
    DatabaseSchemaProvider,
    StaticSchemaProvider,
    invalidate_all,
    schema_changed,
)
from rail_audit.types import TableIdentity

pytestmark = pytest.mark.unit

CUSTOMERS = TableIdentity("main", "tests_auditedcustomer")


@pytest.mark.django_db
def test_database_provider_reads_sqlite_catalog():
    provider = DatabaseSchemaProvider("default")

    assert provider.default_namespace() == "main"
    assert provider.table_identity("tests_auditedcustomer") == CUSTOMERS
    assert provider.primary_key_columns(CUSTOMERS) == ("id",)
    assert provider.declared_columns(CUSTOMERS) == (
        "id",
        "name",
        "email",
        "notes",
        "is_active",
        "balance",
    )


@pytest.mark.django_db
def test_database_provider_unknown_table():
    provider = DatabaseSchemaProvider("default")
    missing = TableIdentity("main", "does_not_exist")

    with pytest.raises(UnknownTable):
        provider.declared_columns(missing)
    with pytest.raises(UnknownTable):
        provider.primary_key_columns(missing)


class CountingProvider(StaticSchemaProvider):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.lookups = 0

    def declared_columns(self, table):
        self.lookups += 1
        return super().declared_columns(table)

    def primary_key_columns(self, table):
        self.lookups += 1
        return super().primary_key_columns(table)


@pytest.fixture
def inner():
    return CountingProvider(
        {"app.items": {"columns": ["id", "name"], "primary_key": ["id"]}},
        namespace="app",
    )


def test_cached_provider_memoizes_lookups(inner):
    provider = CachedSchemaProvider(inner)
    table = provider.table_identity("items")

    for _ in range(3):
        assert provider.declared_columns(table) == ("id", "name")
        assert provider.primary_key_columns(table) == ("id",)

    assert inner.lookups == 2


def test_cached_provider_invalidate_refreshes(inner):
    provider = CachedSchemaProvider(inner)
    table = provider.table_identity("items")
    provider.declared_columns(table)

    inner.add_table(table, columns=["id", "name", "price"], primary_key=["id"])
    assert provider.declared_columns(table) == ("id", "name")

    provider.invalidate(table)
    assert provider.declared_columns(table) == ("id", "name", "price")


def test_schema_changed_signal_invalidates_every_cache(inner):
    provider = CachedSchemaProvider(inner)
    table = provider.table_identity("items")
    provider.declared_columns(table)
    inner.add_table(table, columns=["id"], primary_key=["id"])

    schema_changed.send(sender=None, table=table)

    assert provider.declared_columns(table) == ("id",)
    assert invalidate_all() >= 1


def test_cached_provider_does_not_cache_unknown_tables(inner):
    provider = CachedSchemaProvider(inner)
    table = provider.table_identity("later")

    with pytest.raises(UnknownTable):
        provider.declared_columns(table)

    inner.add_table(table, columns=["id"], primary_key=["id"])
    assert provider.declared_columns(table) == ("id",)


def test_static_provider_accepts_string_keys():
    provider = StaticSchemaProvider(
        {"orders": {"columns": ["id"], "primary_key": ["id"]}}, namespace="public"
    )

    assert provider.declared_columns(TableIdentity("public", "orders")) == ("id",)
    provider.drop_table("orders")
    with pytest.raises(UnknownTable):
        provider.declared_columns(TableIdentity("public", "orders"))
