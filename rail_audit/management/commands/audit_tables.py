"""
Management command listing audited models and validating them against the
live database schema.
"""

import json
import logging

from django.core.management.base import BaseCommand, CommandError
from django.db import DEFAULT_DB_ALIAS

from rail_audit.config import get_audit_settings
from rail_audit.core.columns import eligible_columns
from rail_audit.core.identity import resolve_key_columns
from rail_audit.exceptions import ChangeCaptureError
from rail_audit.registry import audit_registry
from rail_audit.schema import DatabaseSchemaProvider

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "List audited models with their key and auditable columns."

    def add_arguments(self, parser):
        parser.add_argument(
            "--database",
            default=DEFAULT_DB_ALIAS,
            help="Database alias to introspect",
        )
        parser.add_argument(
            "--format",
            choices=["text", "json"],
            default="text",
            help="Output format (text or json)",
        )
        parser.add_argument(
            "--check",
            action="store_true",
            help="Exit with an error if any registration is unusable",
        )

    def handle(self, *args, **options):
        settings = get_audit_settings()
        provider = DatabaseSchemaProvider(options["database"])
        report = []
        failures = 0

        for registration in audit_registry.all():
            table = provider.table_identity(registration.db_table)
            mode = registration.mode or settings.mode
            entry = {
                "model": registration.label,
                "table": str(table),
                "mode": mode.value,
                "key_columns": [],
                "key_source": "explicit" if registration.key_columns else "primary key",
                "audited_columns": [],
                "error": None,
            }
            try:
                key_columns = resolve_key_columns(
                    table, registration.key_columns, provider
                )
                skip = key_columns + registration.skip_columns + tuple(settings.skip_columns)
                entry["key_columns"] = list(key_columns)
                entry["audited_columns"] = list(eligible_columns(table, skip, provider))
            except ChangeCaptureError as exc:
                failures += 1
                entry["error"] = f"{type(exc).__name__}: {exc}"
                logger.warning("Audit registration %s is unusable: %s", registration.label, exc)
            report.append(entry)

        if options["format"] == "json":
            self.stdout.write(json.dumps(report, indent=2))
        else:
            self._write_text(report)

        if options["check"] and failures:
            raise CommandError(f"{failures} audited model(s) failed validation")

    def _write_text(self, report):
        if not report:
            self.stdout.write("No audited models registered.")
            return
        for entry in report:
            self.stdout.write(f"{entry['model']} -> {entry['table']} [{entry['mode']}]")
            if entry["error"]:
                self.stdout.write(self.style.ERROR(f"  {entry['error']}"))
                continue
            self.stdout.write(
                f"  key ({entry['key_source']}): {', '.join(entry['key_columns'])}"
            )
            self.stdout.write(f"  audited: {', '.join(entry['audited_columns']) or '-'}")
