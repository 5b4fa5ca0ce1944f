"""
Tests for the Wallet API and Tasks

Tests cover:
- Created vs. replayed status codes
- Error mapping for client and configuration errors
- Read endpoints
- Task retry behavior
"""

import uuid
from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from ledger.exceptions import TransientStorageFailure
from ledger.models import AssetType, Transaction
from wallets.tasks import process_transaction_task


class TransactionEndpointTests(APITestCase):

    def setUp(self):
        call_command('init_wallets', stdout=StringIO())

    def post(self, transaction_type, **body):
        return self.client.post(f'/api/v1/transactions/{transaction_type}/', body, format='json')

    def test_topup_then_replay(self):
        body = {'owner': 'user_1', 'asset': 'gold', 'amount': '500', 'idempotency_key': 'api_k1'}

        response = self.post('topup', **body)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['type'], 'topup')
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['asset'], 'GOLD')
        self.assertEqual(Decimal(response.data['balance_after']), Decimal('500'))

        replay = self.post('topup', **dict(body, amount='1'))
        self.assertEqual(replay.status_code, status.HTTP_200_OK)
        self.assertEqual(replay.data, response.data)

    def test_bonus_and_spend(self):
        self.post('bonus', owner='user_1', asset='LOYALTY', amount=20, idempotency_key='api_b1')
        response = self.post('spend', owner='user_1', asset='LOYALTY', amount=5.5, idempotency_key='api_s1')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['balance_after']), Decimal('14.5'))

    def test_insufficient_balance(self):
        response = self.post('spend', owner='user_1', asset='GOLD', amount='1', idempotency_key='api_s2')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Insufficient balance')

    def test_missing_fields(self):
        response = self.post('topup', owner='user_1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('asset', response.data)
        self.assertIn('amount', response.data)
        self.assertIn('idempotency_key', response.data)

    def test_invalid_amount(self):
        for amount in ['-5', '0', 'ten', '0.00001']:
            with self.subTest(amount=amount):
                response = self.post('topup', owner='user_1', asset='GOLD', amount=amount,
                                     idempotency_key=f'api_bad_{amount}')
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Transaction.objects.count(), 0)

    def test_invalid_metadata(self):
        response = self.post('topup', owner='user_1', asset='GOLD', amount='1',
                             idempotency_key='api_meta', metadata='oops')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('metadata', response.data)

    def test_oversized_fields_are_client_errors(self):
        for overrides in [{'owner': 'o' * 51}, {'reference_id': 'r' * 101}, {'reference_id': {'id': 1}}]:
            with self.subTest(fields=list(overrides)):
                body = dict(owner='user_1', asset='GOLD', amount='1', idempotency_key='api_long')
                body.update(overrides)
                response = self.post('topup', **body)
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
                self.assertIn('error', response.data)
        self.assertEqual(Transaction.objects.count(), 0)

    def test_unknown_asset(self):
        response = self.post('topup', owner='user_1', asset='SILVER', amount='1', idempotency_key='api_u1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('SILVER', response.data['error'])

    def test_missing_treasury_is_server_error(self):
        AssetType.objects.create(symbol='SILVER', name='Silver')
        response = self.post('topup', owner='user_1', asset='SILVER', amount='1', idempotency_key='api_t1')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    def test_transient_failure_is_service_unavailable(self):
        with mock.patch('wallets.views.LedgerService.process', side_effect=TransientStorageFailure()):
            response = self.post('topup', owner='user_1', asset='GOLD', amount='1', idempotency_key='api_x1')
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)

    def test_get_transaction(self):
        created = self.post('topup', owner='user_1', asset='GOLD', amount='7', idempotency_key='api_g1')

        response = self.client.get(f"/api/v1/transactions/{created.data['id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, created.data)

    def test_get_missing_transaction(self):
        response = self.client.get(f'/api/v1/transactions/{uuid.uuid4()}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class WalletEndpointTests(APITestCase):

    def setUp(self):
        call_command('init_wallets', stdout=StringIO())

    def test_balances(self):
        self.client.post('/api/v1/transactions/topup/', {
            'owner': 'user_1', 'asset': 'GOLD', 'amount': '1000', 'idempotency_key': 'w_1',
        }, format='json')

        response = self.client.get('/api/v1/wallets/user_1/balances/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['owner'], 'user_1')
        self.assertEqual(response.data['balances'], [
            {'asset': 'GOLD', 'asset_name': 'Gold Coins', 'balance': '1000.0000'},
        ])

    def test_balances_for_unknown_owner(self):
        response = self.client.get('/api/v1/wallets/stranger/balances/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_transactions(self):
        for key, path in [('w_t1', 'topup'), ('w_t2', 'spend')]:
            self.client.post(f'/api/v1/transactions/{path}/', {
                'owner': 'user_1', 'asset': 'GOLD', 'amount': '10', 'idempotency_key': key,
            }, format='json')

        response = self.client.get('/api/v1/wallets/user_1/transactions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['direction'] for t in response.data['transactions']], ['out', 'in'])

        limited = self.client.get('/api/v1/wallets/user_1/transactions/?limit=1')
        self.assertEqual(len(limited.data['transactions']), 1)

        bad = self.client.get('/api/v1/wallets/user_1/transactions/?limit=zero')
        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)

    def test_health_check(self):
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ok')


class TransactionTaskTests(TestCase):

    def setUp(self):
        call_command('init_wallets', stdout=StringIO())

    def test_task_processes_transaction(self):
        result = process_transaction_task('topup', 'user_1', 'GOLD', '12.5', 'task_1')

        self.assertEqual(result['type'], 'topup')
        self.assertEqual(Decimal(result['balance_after']), Decimal('12.5'))
        self.assertFalse(result['replayed'])

    def test_task_retry_does_not_duplicate_transaction(self):
        process_transaction_task('topup', 'user_1', 'GOLD', '12.5', 'task_2')
        result = process_transaction_task('topup', 'user_1', 'GOLD', '12.5', 'task_2')

        self.assertTrue(result['replayed'])
        self.assertEqual(Transaction.objects.filter(idempotency_key='task_2').count(), 1)

    def test_client_error_is_not_retried(self):
        result = process_transaction_task('spend', 'user_1', 'GOLD', '1', 'task_3')
        self.assertEqual(result, {'error': 'Insufficient balance', 'status_code': 400})

    def test_transient_failure_is_raised_for_retry(self):
        # Called directly, Task.retry re-raises the original exception
        with mock.patch('wallets.tasks.LedgerService.process', side_effect=TransientStorageFailure()):
            with self.assertRaises(TransientStorageFailure):
                process_transaction_task('topup', 'user_1', 'GOLD', '1', 'task_4')
