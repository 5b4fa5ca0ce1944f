"""
Ledger Services

The transaction engine: top-ups, bonuses and spends with exactly-once
guarantees under concurrent access.

Every operation runs as one database transaction:
1. Idempotency check (a known key is replayed, never re-executed)
2. Asset and account resolution (user accounts are created lazily)
3. Row locks on both accounts, always in ascending id order
4. Balance validation against the locked source balance
5. Transaction record, two ledger entries and both cached balances written
   together, or not at all
"""

import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, InterfaceError, OperationalError, connection, transaction

from ledger.exceptions import InsufficientBalance, InvalidRequest, TransientStorageFailure
from ledger.models import Account, Transaction
from ledger.resolvers import (
    ROLE_USER,
    TRANSACTION_ROLES,
    resolve_asset,
    resolve_roles,
    resolve_treasury_account,
    resolve_user_account,
)
from ledger.results import TransactionResult

logger = logging.getLogger(__name__)

IDEMPOTENCY_KEY_MAX_LENGTH = Transaction._meta.get_field('idempotency_key').max_length
REFERENCE_ID_MAX_LENGTH = Transaction._meta.get_field('reference_id').max_length
OWNER_MAX_LENGTH = Account._meta.get_field('owner').max_length


def normalize_amount(amount):
    """
    Convert ``amount`` to a Decimal at the ledger's fixed-point precision.

    Raises:
        InvalidRequest: If the amount is not a positive finite number that is
            exactly representable at the configured precision
    """
    if isinstance(amount, bool):
        raise InvalidRequest('Amount must be a number')
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidRequest('Amount must be a number')

    if not value.is_finite() or value <= 0:
        raise InvalidRequest('Amount must be greater than zero')

    places = settings.WALLET_DECIMAL_PLACES
    integer_digits = settings.WALLET_MAX_DIGITS - places
    if value.adjusted() >= integer_digits:
        raise InvalidRequest('Amount is too large')

    quantized = value.quantize(Decimal(1).scaleb(-places))
    if quantized != value:
        raise InvalidRequest(f"Amount supports at most {places} decimal places")
    return quantized


def set_lock_timeout():
    """
    Bound every lock wait for the rest of the current database transaction,
    row locks and unique-index waits alike. A timeout surfaces as
    OperationalError. No-op on backends without row locks.
    """
    if connection.vendor == 'postgresql':
        with connection.cursor() as cursor:
            cursor.execute(
                "SELECT set_config('lock_timeout', %s, true)",
                [f"{settings.WALLET_LOCK_TIMEOUT_MS}ms"]
            )


def lock_accounts(*account_ids):
    """
    Take exclusive row locks on the given accounts and return them freshly
    read, keyed by id.

    Locks are always acquired one at a time in ascending id order, so two
    operations sharing an account queue on the same first lock and can never
    wait on each other in a cycle. Locks are held until the surrounding
    transaction commits or rolls back.
    """
    locked = {}
    for account_id in sorted(set(account_ids), key=str):
        locked[account_id] = Account.objects.select_for_update().get(pk=account_id)
    return locked


class LedgerService:
    """Service for wallet ledger operations."""

    @staticmethod
    def process(transaction_type, owner, asset, amount, idempotency_key,
                reference_id=None, metadata=None):
        """
        Move ``amount`` of ``asset`` between the owner's account and the
        asset's treasury, exactly once per ``idempotency_key``.

        Args:
            transaction_type: 'topup', 'bonus' or 'spend'
            owner: User identifier
            asset: Asset symbol, case-insensitive
            amount: Positive amount (Decimal, int or numeric string)
            idempotency_key: Globally unique key for this logical operation
            reference_id: Optional external correlation id
            metadata: Optional metadata dict

        Returns:
            TransactionResult; ``replayed`` is True when the key was already used

        Raises:
            InvalidRequest, UnknownAsset, InsufficientBalance: Client errors
            TreasuryMissing: The asset's treasury account is not provisioned
            TransientStorageFailure: Lock timeout or lost connection, safe to retry
        """
        if transaction_type not in TRANSACTION_ROLES:
            raise InvalidRequest(f"Unknown transaction type: {transaction_type}")
        if not owner or not isinstance(owner, str):
            raise InvalidRequest('Owner is required')
        if len(owner) > OWNER_MAX_LENGTH:
            raise InvalidRequest(f"Owner must be at most {OWNER_MAX_LENGTH} characters")
        if not asset or not isinstance(asset, str):
            raise InvalidRequest('Asset is required')
        if not idempotency_key or not isinstance(idempotency_key, str):
            raise InvalidRequest('Idempotency key is required')
        if len(idempotency_key) > IDEMPOTENCY_KEY_MAX_LENGTH:
            raise InvalidRequest(
                f"Idempotency key must be at most {IDEMPOTENCY_KEY_MAX_LENGTH} characters"
            )
        if reference_id is not None:
            if not isinstance(reference_id, str):
                raise InvalidRequest('Reference id must be a string')
            if len(reference_id) > REFERENCE_ID_MAX_LENGTH:
                raise InvalidRequest(
                    f"Reference id must be at most {REFERENCE_ID_MAX_LENGTH} characters"
                )
        if metadata is not None and not isinstance(metadata, dict):
            raise InvalidRequest('Metadata must be an object')
        amount = normalize_amount(amount)

        try:
            with transaction.atomic():
                return LedgerService._execute(
                    transaction_type, owner, asset, amount, idempotency_key,
                    reference_id, metadata
                )
        except IntegrityError:
            # A concurrent request with the same key committed first
            replay = LedgerService._find_replay(idempotency_key)
            if replay is None:
                raise
            logger.info("Idempotency key %s won by a concurrent request, replaying", idempotency_key)
            return replay
        except (OperationalError, InterfaceError) as exc:
            logger.warning(
                "Transient storage failure for %s key=%s: %s",
                transaction_type, idempotency_key, exc
            )
            raise TransientStorageFailure() from exc

    @staticmethod
    def topup(owner, asset, amount, idempotency_key, reference_id=None, metadata=None):
        return LedgerService.process(
            Transaction.TYPE_TOPUP, owner, asset, amount, idempotency_key,
            reference_id=reference_id, metadata=metadata
        )

    @staticmethod
    def bonus(owner, asset, amount, idempotency_key, reference_id=None, metadata=None):
        return LedgerService.process(
            Transaction.TYPE_BONUS, owner, asset, amount, idempotency_key,
            reference_id=reference_id, metadata=metadata
        )

    @staticmethod
    def spend(owner, asset, amount, idempotency_key, reference_id=None, metadata=None):
        return LedgerService.process(
            Transaction.TYPE_SPEND, owner, asset, amount, idempotency_key,
            reference_id=reference_id, metadata=metadata
        )

    @staticmethod
    def _execute(transaction_type, owner, asset, amount, idempotency_key,
                 reference_id, metadata):
        """Run the protocol; must be called inside transaction.atomic()."""
        replay = LedgerService._find_replay(idempotency_key)
        if replay is not None:
            logger.info("Replaying transaction %s for key %s", replay.id, idempotency_key)
            return replay

        # Before the lazy account insert, which may wait on the unique index
        set_lock_timeout()

        asset_type_id = resolve_asset(asset)
        user_account = resolve_user_account(owner, asset_type_id)
        treasury_account = resolve_treasury_account(asset_type_id)
        source, destination = resolve_roles(transaction_type, user_account, treasury_account)

        locked = lock_accounts(source.id, destination.id)

        # A request with the same key may have committed while we waited
        replay = LedgerService._find_replay(idempotency_key)
        if replay is not None:
            logger.info("Replaying transaction %s for key %s", replay.id, idempotency_key)
            # Discard the user account this attempt may have created
            transaction.set_rollback(True)
            return replay

        locked_source = locked[source.id]
        locked_destination = locked[destination.id]

        if locked_source.balance < amount:
            logger.warning(
                "Insufficient balance on %s: %s < %s (key=%s)",
                locked_source.id, locked_source.balance, amount, idempotency_key
            )
            raise InsufficientBalance(locked_source.balance, amount)

        trans = Transaction.record(
            idempotency_key=idempotency_key,
            transaction_type=transaction_type,
            amount=amount,
            asset_type_id=asset_type_id,
            source=locked_source,
            destination=locked_destination,
            reference_id=reference_id,
            metadata=metadata,
        )

        user_side = locked_source if TRANSACTION_ROLES[transaction_type][0] == ROLE_USER else locked_destination
        logger.info(
            "Recorded %s %s %s for %s (key=%s, balance_after=%s)",
            transaction_type, amount, asset.strip().upper(), owner, idempotency_key, user_side.balance
        )

        return TransactionResult(
            id=trans.id,
            type=trans.type,
            status=trans.status,
            amount=trans.amount,
            asset=asset.strip().upper(),
            balance_after=user_side.balance,
            created_at=trans.created_at,
            replayed=False,
        )

    @staticmethod
    def _find_replay(idempotency_key):
        trans = (
            Transaction.objects
            .select_related('asset_type')
            .filter(idempotency_key=idempotency_key)
            .first()
        )
        if trans is None:
            return None
        return TransactionResult.from_transaction(trans, replayed=True)
