import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='AssetType',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('symbol', models.CharField(max_length=10, unique=True)),
                ('name', models.CharField(max_length=50)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'asset_types',
                'ordering': ['symbol'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('symbol', ''), _negated=True), name='asset_symbol_not_empty'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Account',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('owner', models.CharField(db_index=True, max_length=50)),
                ('kind', models.CharField(choices=[('user', 'User'), ('system', 'System')], default='user', max_length=10)),
                ('balance', models.DecimalField(decimal_places=4, default=Decimal('0'), max_digits=18, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('asset_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='accounts', to='ledger.assettype')),
            ],
            options={
                'db_table': 'ledger_accounts',
                'constraints': [
                    models.UniqueConstraint(fields=('owner', 'asset_type'), name='unique_account_per_owner_asset'),
                    models.CheckConstraint(condition=models.Q(('balance__gte', 0)), name='account_balance_non_negative'),
                    models.CheckConstraint(condition=models.Q(('kind__in', ['user', 'system'])), name='account_kind_valid'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('idempotency_key', models.CharField(help_text='Caller-supplied key guaranteeing at most one financial effect', max_length=100, unique=True)),
                ('type', models.CharField(choices=[('topup', 'Top-up'), ('bonus', 'Bonus'), ('spend', 'Spend')], max_length=10)),
                ('status', models.CharField(choices=[('completed', 'Completed'), ('failed', 'Failed')], default='completed', max_length=10)),
                ('amount', models.DecimalField(decimal_places=4, max_digits=18, validators=[django.core.validators.MinValueValidator(Decimal('0.0001'))])),
                ('reference_id', models.CharField(blank=True, max_length=100, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('asset_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='transactions', to='ledger.assettype')),
                ('destination_account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='incoming_transactions', to='ledger.account')),
                ('source_account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='outgoing_transactions', to='ledger.account')),
            ],
            options={
                'db_table': 'ledger_transactions',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('idempotency_key', ''), _negated=True), name='idempotency_key_not_empty'),
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='transaction_amount_positive'),
                    models.CheckConstraint(condition=models.Q(('source_account', models.F('destination_account')), _negated=True), name='transaction_accounts_distinct'),
                ],
            },
        ),
        migrations.CreateModel(
            name='LedgerEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('entry_type', models.CharField(choices=[('debit', 'Debit'), ('credit', 'Credit')], max_length=6)),
                ('amount', models.DecimalField(decimal_places=4, max_digits=18, validators=[django.core.validators.MinValueValidator(Decimal('0.0001'))])),
                ('balance_after', models.DecimalField(decimal_places=4, max_digits=18)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='entries', to='ledger.account')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='entries', to='ledger.transaction')),
            ],
            options={
                'db_table': 'ledger_entries',
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='ledger_entry_amount_positive'),
                    models.UniqueConstraint(fields=('transaction', 'entry_type'), name='unique_entry_type_per_transaction'),
                ],
            },
        ),
    ]
