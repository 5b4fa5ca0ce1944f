"""
Tests for Read Projections

Tests cover:
- Balance summaries and the never-onboarded case
- History direction and ordering
- Transaction lookup
- Balance derivation from ledger entries
"""

import uuid
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from ledger.exceptions import NoWalletsFound, TransactionNotFound
from ledger.models import Account
from ledger.services import LedgerService
from read_models import projections


class BalanceProjectionTests(TestCase):

    def setUp(self):
        call_command('init_wallets', stdout=StringIO())

    def test_balances_are_sorted_by_asset(self):
        LedgerService.topup('user_1', 'LOYALTY', '200', 'bal_1')
        LedgerService.topup('user_1', 'GOLD', '1000', 'bal_2')
        LedgerService.bonus('user_1', 'DIAMOND', '50.5', 'bal_3')

        balances = projections.get_balances('user_1')

        self.assertEqual([b.asset for b in balances], ['DIAMOND', 'GOLD', 'LOYALTY'])
        self.assertEqual([b.asset_name for b in balances], ['Diamonds', 'Gold Coins', 'Loyalty Points'])
        self.assertEqual(balances[0].balance, Decimal('50.5'))
        self.assertEqual(balances[1].as_dict(), {
            'asset': 'GOLD',
            'asset_name': 'Gold Coins',
            'balance': '1000.0000',
        })

    def test_zero_balance_is_not_an_error(self):
        LedgerService.topup('user_1', 'GOLD', '10', 'zero_1')
        LedgerService.spend('user_1', 'GOLD', '10', 'zero_2')

        balances = projections.get_balances('user_1')
        self.assertEqual(len(balances), 1)
        self.assertEqual(balances[0].balance, Decimal('0'))

    def test_never_onboarded_owner(self):
        with self.assertRaises(NoWalletsFound):
            projections.get_balances('stranger')

    def test_treasury_accounts_are_not_wallets(self):
        with self.assertRaises(NoWalletsFound):
            projections.get_balances('treasury')


class HistoryProjectionTests(TestCase):

    def setUp(self):
        call_command('init_wallets', stdout=StringIO())

    def test_history_is_newest_first_with_direction(self):
        LedgerService.topup('user_1', 'GOLD', '100', 'hist_1', reference_id='order-1')
        LedgerService.spend('user_1', 'GOLD', '30', 'hist_2', metadata={'item': 'sword'})
        LedgerService.bonus('user_1', 'DIAMOND', '5', 'hist_3')

        history = projections.get_history('user_1')

        self.assertEqual([h.type for h in history], ['bonus', 'spend', 'topup'])
        self.assertEqual([h.direction for h in history], ['in', 'out', 'in'])
        self.assertEqual([h.asset for h in history], ['DIAMOND', 'GOLD', 'GOLD'])
        self.assertEqual(history[0].balance_after, Decimal('5'))
        self.assertEqual(history[1].balance_after, Decimal('70'))
        self.assertEqual(history[1].metadata, {'item': 'sword'})
        self.assertEqual(history[2].reference_id, 'order-1')
        self.assertEqual(history[2].balance_after, Decimal('100'))

    def test_history_only_includes_owner(self):
        LedgerService.topup('user_1', 'GOLD', '100', 'own_1')
        LedgerService.topup('user_2', 'GOLD', '100', 'own_2')

        history = projections.get_history('user_1')
        self.assertEqual(len(history), 1)
        self.assertEqual(projections.get_history('stranger'), [])

    def test_history_limit(self):
        for i in range(5):
            LedgerService.topup('user_1', 'GOLD', '1', f'limit_{i}')
        self.assertEqual(len(projections.get_history('user_1', limit=3)), 3)


class TransactionLookupTests(TestCase):

    def setUp(self):
        call_command('init_wallets', stdout=StringIO())

    def test_get_transaction_by_id(self):
        LedgerService.topup('user_1', 'GOLD', '100', 'lookup_1')
        spent = LedgerService.spend('user_1', 'GOLD', '25', 'lookup_2')

        result = projections.get_transaction_by_id(spent.id)

        self.assertEqual(result.id, spent.id)
        self.assertEqual(result.type, 'spend')
        self.assertEqual(result.asset, 'GOLD')
        self.assertEqual(result.balance_after, Decimal('75'))
        self.assertFalse(result.replayed)
        self.assertEqual(projections.get_transaction_by_id(str(spent.id)).id, spent.id)

    def test_missing_transaction(self):
        with self.assertRaises(TransactionNotFound):
            projections.get_transaction_by_id(uuid.uuid4())
        with self.assertRaises(TransactionNotFound):
            projections.get_transaction_by_id('not-a-uuid')


class DeriveBalanceTests(TestCase):

    def setUp(self):
        call_command('init_wallets', stdout=StringIO())

    def test_derived_balance_matches_cached_balance(self):
        LedgerService.topup('user_1', 'GOLD', '100.25', 'derive_1')
        LedgerService.spend('user_1', 'GOLD', '40', 'derive_2')
        LedgerService.bonus('user_1', 'GOLD', '0.75', 'derive_3')

        account = Account.objects.get(owner='user_1', asset_type__symbol='GOLD')
        self.assertEqual(projections.derive_balance(account), account.balance)
        self.assertEqual(account.balance, Decimal('61'))

    def test_account_without_entries(self):
        treasury = Account.objects.get(owner='treasury', asset_type__symbol='GOLD')
        self.assertEqual(projections.derive_balance(treasury), Decimal('0'))
