"""
Ledger Errors

Every error raised by the wallet ledger derives from WalletError and carries
the status code it should be surfaced with. Client errors are never retried;
transient storage failures are always safe to retry with the same
idempotency key because the unit of work has already been rolled back.
"""


class WalletError(Exception):
    """Base class for all wallet ledger errors."""
    status_code = 400
    default_message = 'Wallet operation failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ClientError(WalletError):
    """The request itself is wrong; retrying it unchanged will not help."""
    status_code = 400
    default_message = 'Invalid request'


class InvalidRequest(ClientError):
    pass


class UnknownAsset(ClientError):

    def __init__(self, symbol):
        self.symbol = symbol
        super().__init__(f"Unknown asset type: {symbol}")


class InsufficientBalance(ClientError):

    def __init__(self, balance, amount):
        self.balance = balance
        self.amount = amount
        super().__init__('Insufficient balance')


class NotFound(ClientError):
    status_code = 404
    default_message = 'Not found'


class TransactionNotFound(NotFound):

    def __init__(self, transaction_id):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


class NoWalletsFound(NotFound):

    def __init__(self, owner):
        self.owner = owner
        super().__init__(f"No wallets found for user: {owner}")


class ConfigurationFault(WalletError):
    """The deployment is missing data it must have been provisioned with."""
    status_code = 500
    default_message = 'Wallet service is misconfigured'


class TreasuryMissing(ConfigurationFault):

    def __init__(self, asset_type_id):
        self.asset_type_id = asset_type_id
        super().__init__(f"Treasury account not found for asset type: {asset_type_id}")


class TransientStorageFailure(WalletError):
    """Lock timeout, deadlock or lost connection; nothing was written."""
    status_code = 503
    default_message = 'Storage temporarily unavailable, retry with the same idempotency key'
