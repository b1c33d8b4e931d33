"""
Unit tests for the change capture engine, using an in-memory schema and a
recording writer.
"""

import pytest

from rail_audit.core.engine import ChangeCaptureEngine
from rail_audit.core.writer import AuditWriter, DatabaseAuditWriter
from rail_audit.exceptions import NoIdentityColumns, UnknownTable, WriteFailure
from rail_audit.models import ColumnAuditEntry, RowAuditEntry
from rail_audit.schema import StaticSchemaProvider
from rail_audit.types import (
    ActorContext,
    AuditMode,
    ColumnChange,
    Operation,
    TableIdentity,
    TransactionContext,
)

pytestmark = pytest.mark.unit

USERS = TableIdentity("public", "users")
LINKS = TableIdentity("public", "links")
TX = TransactionContext(using="default", transaction_id="tx-1")


class RecordingWriter(AuditWriter):
    def __init__(self, mode=AuditMode.COLUMN, fail=False):
        super().__init__(mode)
        self.calls = []
        self.fail = fail

    def write(
        self,
        operation,
        table,
        record_identity,
        change_set,
        actor=None,
        transaction_context=None,
        mode=None,
    ):
        if self.fail:
            raise WriteFailure("rejected", table=str(table))
        self.calls.append(
            {
                "operation": operation,
                "table": table,
                "record_id": record_identity.value,
                "change_set": change_set,
                "actor": actor,
                "transaction": transaction_context,
                "mode": mode,
            }
        )
        return list(change_set.changes)


@pytest.fixture
def provider():
    return StaticSchemaProvider(
        {
            USERS: {
                "columns": ["id", "name", "updated_at"],
                "primary_key": ["id"],
            },
            LINKS: {"columns": ["left_id", "right_id", "label"], "primary_key": []},
        }
    )


@pytest.fixture
def writer():
    return RecordingWriter()


@pytest.fixture
def engine(provider, writer):
    return ChangeCaptureEngine(provider, writer=writer)


def test_insert_audits_name_but_not_key(engine, writer):
    engine.on_mutate("INSERT", USERS, new_image={"id": 1, "name": "a"}, transaction=TX)

    (call,) = writer.calls
    assert call["operation"] is Operation.INSERT
    assert call["record_id"] == "1"
    assert call["change_set"].changes == (ColumnChange("name", None, "a"),)
    assert call["change_set"].new_image == {"name": "a", "updated_at": None}


def test_update_audits_changed_column_only(engine, writer):
    engine.on_mutate(
        Operation.UPDATE,
        USERS,
        prior_image={"id": 1, "name": "a", "updated_at": 1},
        new_image={"id": 1, "name": "b", "updated_at": 1},
        transaction=TX,
    )

    (call,) = writer.calls
    assert call["change_set"].changes == (ColumnChange("name", "a", "b"),)


def test_update_of_skipped_column_writes_nothing(engine, writer):
    entries = engine.on_mutate(
        Operation.UPDATE,
        USERS,
        prior_image={"id": 1, "name": "a", "updated_at": 1},
        new_image={"id": 1, "name": "a", "updated_at": 2},
        skip_columns_extra=["updated_at"],
        transaction=TX,
    )

    assert entries == []
    assert writer.calls == []


def test_delete_uses_prior_image_for_identity(engine, writer):
    engine.on_mutate(
        Operation.DELETE,
        USERS,
        prior_image={"id": 9, "name": "a", "updated_at": None},
        transaction=TX,
    )

    (call,) = writer.calls
    assert call["record_id"] == "9"
    assert call["change_set"].changes == (ColumnChange("name", "a", None),)


def test_explicit_keys_for_table_without_primary_key(engine, writer):
    engine.on_mutate(
        Operation.INSERT,
        LINKS,
        new_image={"left_id": 1, "right_id": None, "label": "x"},
        explicit_key_columns=["left_id", "right_id"],
        transaction=TX,
    )

    (call,) = writer.calls
    assert call["record_id"] == "1|#"
    assert call["change_set"].changed_columns == ("label",)


def test_table_without_keys_raises(engine, writer):
    with pytest.raises(NoIdentityColumns):
        engine.on_mutate(
            Operation.INSERT, LINKS, new_image={"left_id": 1}, transaction=TX
        )
    assert writer.calls == []


def test_unknown_table_raises(engine):
    with pytest.raises(UnknownTable):
        engine.on_mutate(
            Operation.INSERT,
            TableIdentity("public", "ghost"),
            new_image={"id": 1},
            explicit_key_columns=["id"],
            transaction=TX,
        )


def test_write_failure_propagates(provider):
    engine = ChangeCaptureEngine(provider, writer=RecordingWriter(fail=True))

    with pytest.raises(WriteFailure):
        engine.on_mutate(
            Operation.INSERT, USERS, new_image={"id": 1, "name": "a"}, transaction=TX
        )


def test_actor_and_transaction_are_passed_through(engine, writer):
    actor = ActorContext(user_id="5", username="alice", client_ip="10.0.0.1")

    engine.on_mutate(
        Operation.INSERT,
        USERS,
        new_image={"id": 1, "name": "a"},
        actor=actor,
        transaction=TX,
    )

    assert writer.calls[0]["actor"] == actor
    assert writer.calls[0]["transaction"] == TX


def test_actor_defaults_to_absent(engine, writer):
    engine.on_mutate(Operation.INSERT, USERS, new_image={"id": 1, "name": "a"}, transaction=TX)

    assert writer.calls[0]["actor"] == ActorContext()
    assert writer.calls[0]["actor"].is_anonymous


def test_mode_defaults_to_engine_mode_and_can_be_overridden(provider, writer):
    engine = ChangeCaptureEngine(provider, writer=writer, mode="row")

    engine.on_mutate(Operation.INSERT, USERS, new_image={"id": 1, "name": "a"}, transaction=TX)
    engine.on_mutate(
        Operation.INSERT,
        USERS,
        new_image={"id": 2, "name": "b"},
        transaction=TX,
        mode=AuditMode.COLUMN,
    )

    assert [call["mode"] for call in writer.calls] == [AuditMode.ROW, AuditMode.COLUMN]


def test_injected_writer_mode_is_the_default(provider):
    writer = RecordingWriter(mode=AuditMode.ROW)
    engine = ChangeCaptureEngine(provider, writer=writer)

    engine.on_mutate(Operation.INSERT, USERS, new_image={"id": 1, "name": "a"}, transaction=TX)

    assert engine.mode is AuditMode.ROW
    assert writer.calls[0]["mode"] is AuditMode.ROW


@pytest.mark.django_db
def test_row_mode_database_writer_writes_snapshots(provider):
    engine = ChangeCaptureEngine(provider, writer=DatabaseAuditWriter(mode="row"))

    engine.on_mutate("INSERT", USERS, new_image={"id": 1, "name": "a"}, transaction=TX)

    assert RowAuditEntry.objects.count() == 1
    assert ColumnAuditEntry.objects.count() == 0
