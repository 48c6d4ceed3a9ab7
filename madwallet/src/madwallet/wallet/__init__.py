"""
Accounts, transaction drafting, coin selection and signing.
"""

from madwallet.wallet.accounts import AccountManager
from madwallet.wallet.builder import TransactionBuilder
from madwallet.wallet.draft import TxDraft
from madwallet.wallet.hasher import LocalTxHasher, TxHasher
from madwallet.wallet.models import Account, UTXOSnapshot
from madwallet.wallet.service import WalletService

__all__ = [
    "Account",
    "AccountManager",
    "LocalTxHasher",
    "TransactionBuilder",
    "TxDraft",
    "TxHasher",
    "UTXOSnapshot",
    "WalletService",
]
