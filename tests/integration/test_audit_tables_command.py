"""
Tests for the audit_tables management command.
"""

import json
from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from rail_audit.registry import audit_registry
from tests.models import ArchivedLedger

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


def _report(*args):
    out = StringIO()
    call_command("audit_tables", "--format", "json", *args, stdout=out)
    return {entry["model"]: entry for entry in json.loads(out.getvalue())}


def test_json_report_lists_registered_models():
    report = _report()

    customer = report["tests.auditedcustomer"]
    assert customer["table"] == "main.tests_auditedcustomer"
    assert customer["mode"] == "column"
    assert customer["key_source"] == "primary key"
    assert customer["key_columns"] == ["id"]
    assert customer["audited_columns"] == ["name", "email", "notes", "is_active", "balance"]
    assert customer["error"] is None

    membership = report["tests.auditedmembership"]
    assert membership["key_source"] == "explicit"
    assert membership["key_columns"] == ["user_id", "account_id", "company_id"]
    assert membership["audited_columns"] == ["id", "role"]

    assert report["tests.auditeddocument"]["mode"] == "row"
    assert report["tests.auditedsetting"]["audited_columns"] == ["key", "value"]


def test_text_report():
    out = StringIO()
    call_command("audit_tables", stdout=out)

    output = out.getvalue()
    assert "tests.auditedcustomer -> main.tests_auditedcustomer [column]" in output
    assert "key (explicit): user_id, account_id, company_id" in output


def test_check_passes_for_valid_registrations():
    call_command("audit_tables", "--check", stdout=StringIO())


def test_check_fails_for_missing_table():
    audit_registry.register(ArchivedLedger)
    try:
        report = _report()
        assert report["tests.archivedledger"]["error"].startswith("UnknownTable")

        with pytest.raises(CommandError):
            call_command("audit_tables", "--check", stdout=StringIO())
    finally:
        audit_registry.unregister(ArchivedLedger)
