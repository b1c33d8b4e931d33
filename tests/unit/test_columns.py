"""
Unit tests for auditable column enumeration.
"""

import pytest

from rail_audit.core.columns import eligible_columns
from rail_audit.exceptions import UnknownTable
from rail_audit.schema import StaticSchemaProvider
from rail_audit.types import TableIdentity

pytestmark = pytest.mark.unit

ORDERS = TableIdentity("public", "orders")


@pytest.fixture
def provider():
    return StaticSchemaProvider(
        {
            ORDERS: {
                "columns": ["id", "number", "total", "updated_at", "note"],
                "primary_key": ["id"],
            }
        }
    )


def test_skip_columns_are_excluded_in_declared_order(provider):
    columns = eligible_columns(ORDERS, ["id", "updated_at"], provider)

    assert columns == ("number", "total", "note")


def test_no_skip_columns_returns_every_column(provider):
    assert eligible_columns(ORDERS, [], provider) == (
        "id",
        "number",
        "total",
        "updated_at",
        "note",
    )


def test_unknown_skip_columns_are_ignored(provider):
    assert eligible_columns(ORDERS, ["missing"], provider)[0] == "id"


def test_unknown_table_raises(provider):
    with pytest.raises(UnknownTable):
        eligible_columns(TableIdentity("public", "nope"), [], provider)


def test_schema_changes_are_visible_immediately(provider):
    provider.add_table(ORDERS, columns=["id", "number", "currency"], primary_key=["id"])

    assert eligible_columns(ORDERS, ["id"], provider) == ("number", "currency")
