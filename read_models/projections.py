"""
Read Projections

Read-only views over the ledger: per-owner balances, per-owner history and
single transaction lookups. Nothing here locks or mutates; the cached account
balances and the immutable ledger entries are consistent at every commit, so
plain reads are enough.
"""

import uuid
from decimal import Decimal

from django.db.models import Q, Sum

from ledger.exceptions import NoWalletsFound, TransactionNotFound
from ledger.models import Account, LedgerEntry, Transaction
from ledger.results import AssetBalance, HistoryEntry, TransactionResult

DIRECTION_IN = 'in'
DIRECTION_OUT = 'out'


def get_balances(owner):
    """
    Balances of every user account the owner holds, sorted by asset symbol.

    Raises:
        NoWalletsFound: If the owner has never been onboarded to any asset
    """
    accounts = (
        Account.objects
        .filter(owner=owner, kind=Account.KIND_USER)
        .select_related('asset_type')
        .order_by('asset_type__symbol')
    )
    balances = [
        AssetBalance(
            asset=account.asset_type.symbol,
            asset_name=account.asset_type.name,
            balance=account.balance,
        )
        for account in accounts
    ]
    if not balances:
        raise NoWalletsFound(owner)
    return balances


def get_history(owner, limit=None):
    """
    Transactions touching the owner's accounts, newest first, seen from the
    owner's side: ``direction`` is 'in' when the owner was credited and
    ``balance_after`` is the owner's balance after that transaction.
    """
    entries = (
        LedgerEntry.objects
        .filter(account__owner=owner, account__kind=Account.KIND_USER)
        .select_related('transaction', 'transaction__asset_type')
        .order_by('-transaction__created_at', '-created_at')
    )
    if limit is not None:
        entries = entries[:limit]

    return [
        HistoryEntry(
            id=entry.transaction.id,
            type=entry.transaction.type,
            status=entry.transaction.status,
            amount=entry.transaction.amount,
            asset=entry.transaction.asset_type.symbol,
            direction=DIRECTION_IN if entry.entry_type == LedgerEntry.ENTRY_CREDIT else DIRECTION_OUT,
            balance_after=entry.balance_after,
            reference_id=entry.transaction.reference_id,
            metadata=entry.transaction.metadata,
            created_at=entry.transaction.created_at,
        )
        for entry in entries
    ]


def get_transaction_by_id(transaction_id):
    """
    Look up a single transaction.

    Raises:
        TransactionNotFound: If no transaction has this id (or it is not a UUID)
    """
    try:
        pk = uuid.UUID(str(transaction_id))
    except ValueError:
        raise TransactionNotFound(transaction_id)

    try:
        trans = Transaction.objects.select_related('asset_type').get(pk=pk)
    except Transaction.DoesNotExist:
        raise TransactionNotFound(transaction_id)
    return TransactionResult.from_transaction(trans)


def derive_balance(account):
    """
    Rebuild an account balance from its ledger entries alone.
    Credits increase the balance, debits decrease it.
    """
    totals = LedgerEntry.objects.filter(account=account).aggregate(
        credits=Sum('amount', filter=Q(entry_type=LedgerEntry.ENTRY_CREDIT)),
        debits=Sum('amount', filter=Q(entry_type=LedgerEntry.ENTRY_DEBIT)),
    )
    return (totals['credits'] or Decimal('0')) - (totals['debits'] or Decimal('0'))
