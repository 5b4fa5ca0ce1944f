"""
Celery Tasks for Wallet Transactions

Tasks are designed with failure-first principles:
- Idempotent: the caller's idempotency key travels with every retry
- Restartable: a transient failure leaves nothing behind to clean up
- Client errors are reported, never retried
"""

import logging

from celery import shared_task

from ledger.exceptions import ClientError, TransientStorageFailure
from ledger.services import LedgerService

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=5, default_retry_delay=5)
def process_transaction_task(self, transaction_type, owner, asset, amount, idempotency_key,
                             reference_id=None, metadata=None):
    """
    Run a top-up, bonus or spend outside the request cycle.

    Retrying is always safe: a retry reuses the idempotency key, so an attempt
    that did commit before the worker lost track of it is replayed rather than
    applied twice.

    Args:
        transaction_type: 'topup', 'bonus' or 'spend'
        owner: User identifier
        asset: Asset symbol
        amount: Amount as a string, to keep decimals exact over JSON
        idempotency_key: Key identifying the logical operation
    """
    try:
        result = LedgerService.process(
            transaction_type=transaction_type,
            owner=owner,
            asset=asset,
            amount=amount,
            idempotency_key=idempotency_key,
            reference_id=reference_id,
            metadata=metadata,
        )
    except ClientError as exc:
        # Bad request - don't retry
        logger.info("Rejected %s for %s (key=%s): %s", transaction_type, owner, idempotency_key, exc.message)
        return {'error': exc.message, 'status_code': exc.status_code}
    except TransientStorageFailure as exc:
        logger.warning("Retrying %s (key=%s) after transient failure", transaction_type, idempotency_key)
        raise self.retry(exc=exc)

    response = result.as_dict()
    response['replayed'] = result.replayed
    return response
