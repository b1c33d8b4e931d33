import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ColumnAuditEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('transaction_id', models.CharField(db_index=True, max_length=64)),
                ('actor_id', models.CharField(blank=True, max_length=150, null=True)),
                ('actor_name', models.CharField(blank=True, max_length=150, null=True)),
                ('client_ip', models.GenericIPAddressField(blank=True, null=True)),
                ('operation', models.CharField(max_length=6)),
                ('table_schema', models.CharField(max_length=128)),
                ('table_name', models.CharField(max_length=128)),
                ('record_id', models.TextField()),
                ('column_name', models.CharField(max_length=128)),
                ('old_value', models.TextField(blank=True, null=True)),
                ('new_value', models.TextField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Column Audit Entry',
                'verbose_name_plural': 'Column Audit Entries',
                'db_table': 'rail_audit_column_entry',
                'ordering': ['-timestamp', '-id'],
                'indexes': [models.Index(fields=['table_schema', 'table_name', 'record_id'], name='rail_audit_col_record_idx')],
            },
        ),
        migrations.CreateModel(
            name='RowAuditEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('transaction_id', models.CharField(db_index=True, max_length=64)),
                ('actor_id', models.CharField(blank=True, max_length=150, null=True)),
                ('actor_name', models.CharField(blank=True, max_length=150, null=True)),
                ('client_ip', models.GenericIPAddressField(blank=True, null=True)),
                ('operation', models.CharField(max_length=6)),
                ('table_schema', models.CharField(max_length=128)),
                ('table_name', models.CharField(max_length=128)),
                ('record_id', models.TextField()),
                ('record_key', models.JSONField(default=dict)),
                ('old_data', models.JSONField(blank=True, null=True)),
                ('new_data', models.JSONField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Row Audit Entry',
                'verbose_name_plural': 'Row Audit Entries',
                'db_table': 'rail_audit_row_entry',
                'ordering': ['-timestamp', '-id'],
                'indexes': [models.Index(fields=['table_schema', 'table_name', 'record_id'], name='rail_audit_row_record_idx')],
            },
        ),
    ]
