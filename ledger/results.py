"""
Result Shapes

Plain value objects returned by the ledger engine and the read projections.
They are independent of the transport: views render them with ``as_dict()``.
"""

from dataclasses import dataclass, field


def _isoformat(value):
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class TransactionResult:
    """Outcome of a top-up, bonus or spend, fresh or replayed."""
    id: object
    type: str
    status: str
    amount: object
    asset: str
    balance_after: object
    created_at: object
    replayed: bool = False

    @classmethod
    def from_transaction(cls, trans, replayed=False):
        """
        Rebuild the result of a persisted transaction.

        ``balance_after`` is read from the ledger entry on the user's side, so a
        replay reports exactly what the original call reported.
        """
        from ledger.models import Account

        user_entry = trans.entries.get(account__kind=Account.KIND_USER)
        return cls(
            id=trans.id,
            type=trans.type,
            status=trans.status,
            amount=trans.amount,
            asset=trans.asset_type.symbol,
            balance_after=user_entry.balance_after,
            created_at=trans.created_at,
            replayed=replayed,
        )

    def as_dict(self):
        return {
            'id': str(self.id),
            'type': self.type,
            'status': self.status,
            'amount': str(self.amount),
            'asset': self.asset,
            'balance_after': str(self.balance_after),
            'created_at': _isoformat(self.created_at),
        }


@dataclass(frozen=True)
class AssetBalance:
    asset: str
    asset_name: str
    balance: object

    def as_dict(self):
        return {
            'asset': self.asset,
            'asset_name': self.asset_name,
            'balance': str(self.balance),
        }


@dataclass(frozen=True)
class HistoryEntry:
    """A transaction seen from one owner's side of the ledger."""
    id: object
    type: str
    status: str
    amount: object
    asset: str
    direction: str
    balance_after: object
    reference_id: object
    created_at: object
    metadata: dict = field(default_factory=dict)

    def as_dict(self):
        return {
            'id': str(self.id),
            'type': self.type,
            'status': self.status,
            'amount': str(self.amount),
            'asset': self.asset,
            'direction': self.direction,
            'balance_after': str(self.balance_after),
            'reference_id': self.reference_id,
            'metadata': self.metadata,
            'created_at': _isoformat(self.created_at),
        }
