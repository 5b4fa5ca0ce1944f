"""
Double-Entry Wallet Ledger Models

Implements a multi-asset double-entry ledger where:
- Every asset type has one treasury (system) account and at most one
  account per user
- Every transaction generates exactly two ledger entries, a debit on the
  source account and a credit on the destination account, for the same amount
- Ledger entries are immutable (no updates or deletions)
- Database-level constraints prevent invariant violations
"""

from django.db import models
from django.db.models import F, Q, CheckConstraint, UniqueConstraint
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class AssetType(models.Model):
    """
    A kind of virtual credit (e.g. GOLD, DIAMOND) identified by a short symbol.
    Reference data: created at provisioning time and never mutated by the engine.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    symbol = models.CharField(max_length=10, unique=True)
    name = models.CharField(max_length=50)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'asset_types'
        ordering = ['symbol']
        constraints = [
            CheckConstraint(
                condition=~Q(symbol=''),
                name='asset_symbol_not_empty'
            ),
        ]

    def __str__(self):
        return f"{self.symbol} - {self.name}"

    def save(self, *args, **kwargs):
        self.symbol = self.symbol.strip().upper()
        super().save(*args, **kwargs)


class Account(models.Model):
    """
    Holds the cached balance of one owner for one asset type.

    The balance is denormalized: for user accounts it always equals the sum of
    credits minus the sum of debits over the account's ledger entries. It is
    only ever changed by the ledger engine while the row is locked.
    """
    KIND_USER = 'user'
    KIND_SYSTEM = 'system'
    KIND_CHOICES = [
        (KIND_USER, 'User'),
        (KIND_SYSTEM, 'System'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.CharField(max_length=50, db_index=True)
    asset_type = models.ForeignKey(
        AssetType,
        on_delete=models.PROTECT,
        related_name='accounts'
    )
    kind = models.CharField(max_length=10, choices=KIND_CHOICES, default=KIND_USER)
    balance = models.DecimalField(
        max_digits=18,
        decimal_places=4,
        default=Decimal('0'),
        validators=[MinValueValidator(Decimal('0'))]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'ledger_accounts'
        constraints = [
            # One account per owner per asset; lazy creation relies on this
            UniqueConstraint(
                fields=['owner', 'asset_type'],
                name='unique_account_per_owner_asset'
            ),
            # Storage-level backstop against overdraft
            CheckConstraint(
                condition=Q(balance__gte=0),
                name='account_balance_non_negative'
            ),
            CheckConstraint(
                condition=Q(kind__in=['user', 'system']),
                name='account_kind_valid'
            ),
        ]

    def __str__(self):
        return f"{self.owner}:{self.asset_type_id} ({self.kind}) = {self.balance}"

    @property
    def is_system(self):
        return self.kind == self.KIND_SYSTEM


class Transaction(models.Model):
    """
    A completed movement of value between a treasury account and a user account.
    Each transaction has exactly two ledger entries and is created exactly once
    per idempotency key.
    """
    TYPE_TOPUP = 'topup'
    TYPE_BONUS = 'bonus'
    TYPE_SPEND = 'spend'
    TYPE_CHOICES = [
        (TYPE_TOPUP, 'Top-up'),
        (TYPE_BONUS, 'Bonus'),
        (TYPE_SPEND, 'Spend'),
    ]

    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    STATUS_CHOICES = [
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_FAILED, 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    idempotency_key = models.CharField(
        max_length=100,
        unique=True,
        help_text="Caller-supplied key guaranteeing at most one financial effect"
    )
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=STATUS_COMPLETED)
    amount = models.DecimalField(
        max_digits=18,
        decimal_places=4,
        validators=[MinValueValidator(Decimal('0.0001'))]
    )
    asset_type = models.ForeignKey(
        AssetType,
        on_delete=models.PROTECT,
        related_name='transactions'
    )
    source_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name='outgoing_transactions'
    )
    destination_account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name='incoming_transactions'
    )
    reference_id = models.CharField(max_length=100, null=True, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'ledger_transactions'
        constraints = [
            CheckConstraint(
                condition=~Q(idempotency_key=''),
                name='idempotency_key_not_empty'
            ),
            CheckConstraint(
                condition=Q(amount__gt=0),
                name='transaction_amount_positive'
            ),
            CheckConstraint(
                condition=~Q(source_account=F('destination_account')),
                name='transaction_accounts_distinct'
            ),
        ]

    def __str__(self):
        return f"Transaction {self.idempotency_key} ({self.type} {self.amount})"

    def verify_entries(self):
        """
        Verify the double-entry invariants for this transaction: exactly one
        debit on the source account and one credit on the destination account,
        both carrying the transaction amount.
        """
        entries = list(self.entries.all())
        if len(entries) != 2:
            return False
        by_type = {entry.entry_type: entry for entry in entries}
        debit = by_type.get(LedgerEntry.ENTRY_DEBIT)
        credit = by_type.get(LedgerEntry.ENTRY_CREDIT)
        if debit is None or credit is None:
            return False
        return (
            debit.account_id == self.source_account_id
            and credit.account_id == self.destination_account_id
            and debit.amount == credit.amount == self.amount
        )

    @classmethod
    def record(cls, idempotency_key, transaction_type, amount, asset_type_id,
               source, destination, reference_id=None, metadata=None):
        """
        Write a completed transaction, its two ledger entries and the new
        cached balances of both accounts.

        The caller must hold row locks on ``source`` and ``destination`` and
        must have read their balances under those locks.

        Args:
            idempotency_key: Unique key for the transaction
            transaction_type: One of the TYPE_* constants
            amount: Positive Decimal amount
            asset_type_id: Asset type both accounts belong to
            source: Locked Account to debit
            destination: Locked Account to credit
            reference_id: Optional external correlation id
            metadata: Optional metadata dict

        Returns:
            Transaction instance

        Raises:
            ValueError: If the amount is not positive or would overdraw the source
        """
        if amount <= 0:
            raise ValueError(f"Transaction amount must be positive: {amount}")

        new_source_balance = source.balance - amount
        new_destination_balance = destination.balance + amount
        if new_source_balance < 0:
            raise ValueError(f"Transaction would overdraw account {source.id}")

        from django.db import transaction as db_transaction

        with db_transaction.atomic():
            trans = cls.objects.create(
                idempotency_key=idempotency_key,
                type=transaction_type,
                status=cls.STATUS_COMPLETED,
                amount=amount,
                asset_type_id=asset_type_id,
                source_account=source,
                destination_account=destination,
                reference_id=reference_id,
                metadata=metadata or {},
            )

            LedgerEntry.objects.create(
                transaction=trans,
                account=source,
                entry_type=LedgerEntry.ENTRY_DEBIT,
                amount=amount,
                balance_after=new_source_balance,
            )
            LedgerEntry.objects.create(
                transaction=trans,
                account=destination,
                entry_type=LedgerEntry.ENTRY_CREDIT,
                amount=amount,
                balance_after=new_destination_balance,
            )

            source.balance = new_source_balance
            source.save(update_fields=['balance', 'updated_at'])
            destination.balance = new_destination_balance
            destination.save(update_fields=['balance', 'updated_at'])

        return trans


class LedgerEntry(models.Model):
    """
    One half of a double-entry record.
    Entries are immutable - once created, they cannot be modified or deleted.
    """
    ENTRY_DEBIT = 'debit'
    ENTRY_CREDIT = 'credit'
    ENTRY_TYPES = [
        (ENTRY_DEBIT, 'Debit'),
        (ENTRY_CREDIT, 'Credit'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.PROTECT,  # Prevent deletion of transactions with entries
        related_name='entries'
    )
    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,  # Prevent deletion of accounts with entries
        related_name='entries'
    )
    entry_type = models.CharField(max_length=6, choices=ENTRY_TYPES)
    amount = models.DecimalField(
        max_digits=18,
        decimal_places=4,
        validators=[MinValueValidator(Decimal('0.0001'))]
    )
    balance_after = models.DecimalField(max_digits=18, decimal_places=4)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'ledger_entries'
        constraints = [
            CheckConstraint(
                condition=Q(amount__gt=0),
                name='ledger_entry_amount_positive'
            ),
            # At most one debit and one credit per transaction
            UniqueConstraint(
                fields=['transaction', 'entry_type'],
                name='unique_entry_type_per_transaction'
            ),
        ]

    def __str__(self):
        return f"{self.entry_type} {self.amount} on {self.account_id}"

    def save(self, *args, **kwargs):
        """Override save to prevent updates to existing entries."""
        if self.pk and LedgerEntry.objects.filter(pk=self.pk).exists():
            raise ValueError("Ledger entries are immutable and cannot be updated")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Override delete to prevent deletion of ledger entries."""
        raise ValueError("Ledger entries are immutable and cannot be deleted")
