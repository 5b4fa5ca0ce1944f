"""
Wallet API Views

REST API endpoints for top-ups, bonuses, spends and wallet read projections.
"""

import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from ledger.exceptions import WalletError
from ledger.models import Transaction
from ledger.services import LedgerService
from read_models import projections

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('owner', 'asset', 'amount', 'idempotency_key')


def _error_response(exc):
    if exc.status_code >= 500:
        logger.error("Wallet request failed: %s", exc.message)
    return Response({'error': exc.message}, status=exc.status_code)


def _process(request, transaction_type):
    """
    Shared handler for the three transaction endpoints.

    Body:
    {
        "owner": "user_1",
        "asset": "GOLD",
        "amount": "100.00",
        "idempotency_key": "unique-key-123",
        "reference_id": "order-42",
        "metadata": {}
    }

    Returns:
        201 Created: Transaction executed
        200 OK: Idempotency key already used, original result returned
        400 Bad Request: Invalid input, unknown asset or insufficient balance
        500 Internal Server Error: Treasury account not provisioned
        503 Service Unavailable: Transient storage failure, retry with same key
    """
    try:
        data = request.data
        if not isinstance(data, dict):
            raise ValidationError({'non_field_errors': 'Request body must be a JSON object'})

        missing = {
            field: 'This field is required'
            for field in REQUIRED_FIELDS
            if data.get(field) in (None, '')
        }
        if missing:
            raise ValidationError(missing)

        metadata = data.get('metadata')
        if metadata is not None and not isinstance(metadata, dict):
            raise ValidationError({'metadata': 'Must be an object'})

        result = LedgerService.process(
            transaction_type=transaction_type,
            owner=str(data['owner']),
            asset=str(data['asset']),
            amount=data['amount'],
            idempotency_key=str(data['idempotency_key']),
            reference_id=data.get('reference_id'),
            metadata=metadata,
        )

        # 200 if idempotent replay, 201 for new transaction
        response_status = status.HTTP_200_OK if result.replayed else status.HTTP_201_CREATED
        return Response(result.as_dict(), status=response_status)

    except ValidationError as e:
        return Response(e.detail, status=status.HTTP_400_BAD_REQUEST)
    except WalletError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception("Unexpected error processing %s", transaction_type)
        return Response(
            {'error': str(e)},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )


@api_view(['POST'])
def topup(request):
    """POST /api/v1/transactions/topup/"""
    return _process(request, Transaction.TYPE_TOPUP)


@api_view(['POST'])
def bonus(request):
    """POST /api/v1/transactions/bonus/"""
    return _process(request, Transaction.TYPE_BONUS)


@api_view(['POST'])
def spend(request):
    """POST /api/v1/transactions/spend/"""
    return _process(request, Transaction.TYPE_SPEND)


@api_view(['GET'])
def get_transaction(request, transaction_id):
    """
    Get transaction details.

    GET /api/v1/transactions/{transaction_id}/
    """
    try:
        result = projections.get_transaction_by_id(transaction_id)
    except WalletError as e:
        return _error_response(e)
    return Response(result.as_dict(), status=status.HTTP_200_OK)


@api_view(['GET'])
def get_balances(request, owner):
    """
    Get balances of every asset the owner holds.

    GET /api/v1/wallets/{owner}/balances/
    """
    try:
        balances = projections.get_balances(owner)
    except WalletError as e:
        return _error_response(e)
    return Response({
        'owner': owner,
        'balances': [balance.as_dict() for balance in balances],
    })


@api_view(['GET'])
def get_transactions(request, owner):
    """
    Get the owner's transaction history, newest first.

    GET /api/v1/wallets/{owner}/transactions/?limit=50
    """
    limit = request.query_params.get('limit')
    if limit is not None:
        try:
            limit = int(limit)
            if limit <= 0:
                raise ValueError
        except ValueError:
            return Response(
                {'limit': 'Must be a positive integer'},
                status=status.HTTP_400_BAD_REQUEST
            )

    history = projections.get_history(owner, limit=limit)
    return Response({
        'owner': owner,
        'transactions': [entry.as_dict() for entry in history],
    })


@api_view(['GET'])
def health_check(request):
    return Response({'status': 'ok', 'timestamp': timezone.now().isoformat()})
