"""
Asset and Account Resolution

Turns the symbols and owners a caller speaks in into concrete account rows,
and decides which side of a transaction each account is on.
"""

import logging

from django.conf import settings
from django.db import IntegrityError, transaction

from ledger.exceptions import InvalidRequest, TreasuryMissing, UnknownAsset
from ledger.models import Account, AssetType, Transaction

logger = logging.getLogger(__name__)

ROLE_USER = 'user'
ROLE_TREASURY = 'treasury'

# (source role, destination role) per transaction type.
# Source is debited, destination is credited.
TRANSACTION_ROLES = {
    Transaction.TYPE_TOPUP: (ROLE_TREASURY, ROLE_USER),
    Transaction.TYPE_BONUS: (ROLE_TREASURY, ROLE_USER),
    Transaction.TYPE_SPEND: (ROLE_USER, ROLE_TREASURY),
}


def treasury_owner():
    return settings.WALLET_TREASURY_OWNER


def resolve_asset(symbol):
    """Return the id of the asset type with the given symbol (case-insensitive)."""
    normalized = (symbol or '').strip().upper()
    try:
        return AssetType.objects.values_list('id', flat=True).get(symbol=normalized)
    except AssetType.DoesNotExist:
        raise UnknownAsset(symbol)


def resolve_user_account(owner, asset_type_id):
    """
    Get the owner's account for an asset, creating it with a zero balance if
    it does not exist yet.

    The existence check is only advisory: a concurrent request may create the
    same account between the check and the insert. The unique constraint on
    (owner, asset_type) rejects the second insert, which is then treated as
    "the account exists now" and re-read.
    """
    if owner == treasury_owner():
        raise InvalidRequest(f"Owner '{owner}' is reserved")

    try:
        return Account.objects.get(owner=owner, asset_type_id=asset_type_id)
    except Account.DoesNotExist:
        pass

    try:
        # Savepoint so a duplicate insert does not poison the outer transaction
        with transaction.atomic():
            account = Account.objects.create(
                owner=owner,
                asset_type_id=asset_type_id,
                kind=Account.KIND_USER,
            )
    except IntegrityError:
        logger.info(
            "Account for %s/%s created concurrently, re-reading",
            owner, asset_type_id
        )
        return Account.objects.get(owner=owner, asset_type_id=asset_type_id)

    logger.info("Created account %s for %s/%s", account.id, owner, asset_type_id)
    return account


def resolve_treasury_account(asset_type_id):
    """Get the system account that issues and receives the given asset."""
    try:
        return Account.objects.get(
            owner=treasury_owner(),
            asset_type_id=asset_type_id,
            kind=Account.KIND_SYSTEM,
        )
    except Account.DoesNotExist:
        logger.error("Treasury account missing for asset type %s", asset_type_id)
        raise TreasuryMissing(asset_type_id)


def resolve_roles(transaction_type, user_account, treasury_account):
    """
    Map a transaction type onto (source, destination) accounts.

    Returns:
        (source, destination) tuple; source is debited, destination credited
    """
    try:
        source_role, destination_role = TRANSACTION_ROLES[transaction_type]
    except KeyError:
        raise InvalidRequest(f"Unknown transaction type: {transaction_type}")

    accounts = {ROLE_USER: user_account, ROLE_TREASURY: treasury_account}
    return accounts[source_role], accounts[destination_role]
