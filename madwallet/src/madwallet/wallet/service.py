"""
MadNet wallet service.
"""

from __future__ import annotations

from loguru import logger
from madcore.constants import DEFAULT_CHAIN_ID
from madcore.errors import ValidationError
from madcore.models import Curve

from madwallet.backends.base import LedgerBackend
from madwallet.wallet.accounts import AccountManager
from madwallet.wallet.builder import TransactionBuilder
from madwallet.wallet.hasher import TxHasher
from madwallet.wallet.models import Account

# Asking the node for UTXOs covering this much returns every value store
BALANCE_QUERY_VALUE = 2**256 - 1


class WalletService:
    """
    MadNet wallet service.

    Wires accounts, the transaction builder and an optional ledger backend.
    Without a backend the wallet runs offline from cached snapshots.
    """

    def __init__(
        self,
        backend: LedgerBackend | None = None,
        chain_id: int = DEFAULT_CHAIN_ID,
        hasher: TxHasher | None = None,
    ):
        self.backend = backend
        self.chain_id = chain_id
        self.accounts = AccountManager(backend)
        self.builder = TransactionBuilder(self.accounts, backend, hasher, chain_id)

        mode = "online" if backend is not None else "offline"
        logger.info(f"Initialized {mode} wallet for chain {chain_id}")

    async def connect(self) -> int:
        """Adopt the chain id reported by the node, returns it"""
        if self.backend is None:
            raise ValidationError("No ledger backend configured", "connect")
        chain_id = await self.backend.get_chain_id()
        if chain_id != self.chain_id:
            logger.info(f"Switching chain id {self.chain_id} -> {chain_id}")
        self.chain_id = chain_id
        self.builder.chain_id = chain_id
        self.builder.reset()
        return chain_id

    def add_account(self, private_key: str, curve: int | Curve = Curve.SECP256K1) -> Account:
        return self.accounts.add_account(private_key, curve)

    async def get_balance(self, address: str) -> int:
        """Spendable value of address (cached value when offline)"""
        if self.backend is None:
            return self.accounts.get_account(address).utxo.value
        snapshot = await self.accounts.refresh_utxos(address, BALANCE_QUERY_VALUE)
        return snapshot.value

    async def close(self) -> None:
        if self.backend is not None:
            await self.backend.close()
