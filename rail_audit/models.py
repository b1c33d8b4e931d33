"""
Audit entry database models.

Both entry shapes are append-only: rows are inserted by the audit writer and
never updated or deleted through the ORM instance API.
"""

from django.db import models, router, transaction
from django.utils import timezone

from .exceptions import AppendOnlyViolation


class AppendOnlyQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise AppendOnlyViolation(
            f"{self.model._meta.object_name} entries cannot be updated"
        )


class AuditEntryBase(models.Model):
    """Columns shared by column-grained and row-grained audit entries."""

    timestamp = models.DateTimeField(default=timezone.now, db_index=True)
    transaction_id = models.CharField(max_length=64, db_index=True)
    actor_id = models.CharField(max_length=150, null=True, blank=True)
    actor_name = models.CharField(max_length=150, null=True, blank=True)
    client_ip = models.GenericIPAddressField(null=True, blank=True)
    operation = models.CharField(max_length=6)
    table_schema = models.CharField(max_length=128)
    table_name = models.CharField(max_length=128)
    record_id = models.TextField()

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise AppendOnlyViolation(
                f"{self._meta.object_name} entries cannot be updated"
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise AppendOnlyViolation(f"{self._meta.object_name} entries cannot be deleted")


class ColumnAuditEntry(AuditEntryBase):
    """One changed column of one mutated record."""

    column_name = models.CharField(max_length=128)
    old_value = models.TextField(null=True, blank=True)
    new_value = models.TextField(null=True, blank=True)

    class Meta:
        app_label = "rail_audit"
        db_table = "rail_audit_column_entry"
        verbose_name = "Column Audit Entry"
        verbose_name_plural = "Column Audit Entries"
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(
                fields=["table_schema", "table_name", "record_id"],
                name="rail_audit_col_record_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.operation} {self.table_name}[{self.record_id}].{self.column_name}"


class RowAuditEntry(AuditEntryBase):
    """Before/after snapshot of one mutated record."""

    record_key = models.JSONField(default=dict)
    old_data = models.JSONField(null=True, blank=True)
    new_data = models.JSONField(null=True, blank=True)

    class Meta:
        app_label = "rail_audit"
        db_table = "rail_audit_row_entry"
        verbose_name = "Row Audit Entry"
        verbose_name_plural = "Row Audit Entries"
        ordering = ["-timestamp", "-id"]
        indexes = [
            models.Index(
                fields=["table_schema", "table_name", "record_id"],
                name="rail_audit_row_record_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.operation} {self.table_name}[{self.record_id}]"


class AuditedModel(models.Model):
    """
    Abstract base for audited models.

    ``save()`` and ``delete()`` run inside ``transaction.atomic`` so the audit
    entries written by the signal handlers share the mutation's transaction.
    """

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        using = kwargs.get("using") or router.db_for_write(self.__class__, instance=self)
        with transaction.atomic(using=using):
            super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        using = kwargs.get("using") or router.db_for_write(self.__class__, instance=self)
        with transaction.atomic(using=using):
            return super().delete(*args, **kwargs)
