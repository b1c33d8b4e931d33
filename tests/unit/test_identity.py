"""
Unit tests for record identity resolution.
"""

import datetime
import itertools

import pytest

from rail_audit.core.identity import (
    NULL_SENTINEL,
    escape_key_value,
    resolve_key_columns,
    resolve_record_identity,
    serialize_key,
)
from rail_audit.exceptions import NoIdentityColumns
from rail_audit.schema import StaticSchemaProvider
from rail_audit.types import TableIdentity

pytestmark = pytest.mark.unit

USERS = TableIdentity("public", "users")
MEMBERSHIPS = TableIdentity("public", "memberships")
EVENTS = TableIdentity("public", "events")


@pytest.fixture
def provider():
    return StaticSchemaProvider(
        {
            USERS: {"columns": ["id", "name"], "primary_key": ["id"]},
            MEMBERSHIPS: {
                "columns": ["user_id", "account_id", "company_id", "role"],
                "primary_key": [],
            },
            EVENTS: {
                "columns": ["day", "source", "payload"],
                "primary_key": ["source", "day"],
            },
        }
    )


def test_identity_uses_primary_key_by_default(provider):
    identity = resolve_record_identity(USERS, None, {"id": 1, "name": "a"}, provider)

    assert identity.value == "1"
    assert identity.key_columns == ("id",)
    assert identity.as_dict() == {"id": 1}


def test_identity_follows_primary_key_order(provider):
    image = {"day": datetime.date(2024, 5, 1), "source": "api", "payload": "x"}

    identity = resolve_record_identity(EVENTS, [], image, provider)

    assert identity.key_columns == ("source", "day")
    assert identity.value == "api|2024-05-01"


def test_explicit_key_columns_override_primary_key(provider):
    image = {"id": 1, "name": "alice"}

    identity = resolve_record_identity(USERS, ["name"], image, provider)

    assert identity.value == "alice"
    assert identity.key_columns == ("name",)


def test_null_key_member_uses_sentinel(provider):
    keys = ["user_id", "account_id", "company_id"]
    with_null = resolve_record_identity(
        MEMBERSHIPS, keys, {"user_id": 7, "account_id": 42, "company_id": None}, provider
    )
    with_zero = resolve_record_identity(
        MEMBERSHIPS, keys, {"user_id": 7, "account_id": 42, "company_id": 0}, provider
    )
    with_empty = resolve_record_identity(
        MEMBERSHIPS, keys, {"user_id": 7, "account_id": 42, "company_id": ""}, provider
    )

    assert with_null.value == f"7|42|{NULL_SENTINEL}"
    assert with_zero.value == "7|42|0"
    assert with_empty.value == "7|42|"
    assert len({with_null.value, with_zero.value, with_empty.value}) == 3


def test_special_characters_are_escaped():
    assert escape_key_value("a|b") == "a~|b"
    assert escape_key_value("#") == "~#"
    assert escape_key_value("~") == "~~"
    assert escape_key_value("a~|#b") == "a~~~|~#b"
    assert escape_key_value(None) == "#"
    assert escape_key_value(True) == "true"


def test_distinct_key_tuples_never_collide():
    atoms = [None, "", "#", "~", "|", "a", "a|b", "~#", "|#", 0, "0"]
    tuples = list(itertools.product(atoms, repeat=2)) + [(atom,) for atom in atoms]
    tuples += [("a", "b", "c"), ("a|b", "c"), ("a", "b|c")]

    serialized = {}
    for values in tuples:
        key = serialize_key(values)
        # 0 and "0" render to the same text, like a database text cast.
        normalized = tuple(str(v) if isinstance(v, int) else v for v in values)
        assert serialized.setdefault(key, normalized) == normalized


def test_resolution_is_deterministic(provider):
    image = {"user_id": 1, "account_id": "x|y", "company_id": None, "role": "r"}
    keys = ("user_id", "account_id", "company_id")

    first = resolve_record_identity(MEMBERSHIPS, keys, image, provider)
    second = resolve_record_identity(MEMBERSHIPS, keys, dict(image), provider)

    assert first == second
    assert first.value == "1|x~|y|#"


def test_missing_primary_key_raises(provider):
    with pytest.raises(NoIdentityColumns) as exc_info:
        resolve_key_columns(MEMBERSHIPS, None, provider)

    assert exc_info.value.table == "public.memberships"


def test_key_column_missing_from_image_raises(provider):
    with pytest.raises(NoIdentityColumns) as exc_info:
        resolve_record_identity(USERS, ["email"], {"id": 1, "name": "a"}, provider)

    assert exc_info.value.key_columns == ("email",)
