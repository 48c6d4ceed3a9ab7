"""
Account bookkeeping.

Each account owns one signer and one UTXO snapshot. Snapshots are never
merged: every refresh builds a new UTXOSnapshot and swaps it in.
"""

from __future__ import annotations

from loguru import logger
from madcore.crypto import create_signer
from madcore.errors import AccountNotFoundError, DuplicateAccountError, ValidationError
from madcore.models import Curve
from madcore.validation import validate_address, validate_curve, validate_private_key

from madwallet.backends.base import LedgerBackend, UTXOSet
from madwallet.wallet.models import Account, UTXOSnapshot


class AccountManager:
    """Accounts known to one wallet, keyed by address."""

    def __init__(self, backend: LedgerBackend | None = None):
        self.backend = backend
        self.accounts: dict[str, Account] = {}

    def _require_backend(self, operation: str) -> LedgerBackend:
        if self.backend is None:
            raise ValidationError("No ledger backend configured", operation)
        return self.backend

    def add_account(self, private_key: str, curve: int | Curve = Curve.SECP256K1) -> Account:
        """
        Add an account from a hex private key.

        The key and curve are validated before any signer is constructed.

        Args:
            private_key: 32-byte key as 64 hex chars, optionally 0x-prefixed
            curve: 1 (secp256k1) or 2 (BN254)

        Returns:
            The new Account with an empty snapshot
        """
        key = validate_private_key(private_key)
        curve = validate_curve(curve)
        signer = create_signer(key, curve)
        address = signer.get_address()
        if address in self.accounts:
            raise DuplicateAccountError(f"Account already added: {address}", "add_account")

        account = Account(address=address, curve=curve, signer=signer)
        self.accounts[address] = account
        logger.info(f"Added account {address} (curve {int(curve)})")
        return account

    def get_account(self, address: str) -> Account:
        address = validate_address(address)
        account = self.accounts.get(address)
        if account is None:
            raise AccountNotFoundError(f"Could not find account {address}", "get_account")
        return account

    def remove_account(self, address: str) -> None:
        account = self.get_account(address)
        del self.accounts[account.address]
        logger.info(f"Removed account {account.address}")

    def load_utxos(self, address: str, utxos: UTXOSet) -> UTXOSnapshot:
        """Replace the snapshot from already-fetched UTXOs (offline use)"""
        account = self.get_account(address)
        account.utxo = UTXOSnapshot(
            value_stores=list(utxos.value_stores),
            data_stores=list(utxos.data_stores),
            atomic_swaps=list(utxos.atomic_swaps),
            value=sum(vs.value for vs in utxos.value_stores),
        )
        return account.utxo

    async def refresh_utxos(self, address: str, min_value: int) -> UTXOSnapshot:
        """Refresh value stores covering min_value plus every data store of the account"""
        backend = self._require_backend("refresh_utxos")
        account = self.get_account(address)

        value_ids, total_value = await backend.get_value_store_utxo_ids(
            account.address, account.curve, min_value
        )
        data_ids = await backend.get_data_store_utxo_ids(account.address, account.curve)
        utxos = await backend.get_utxos_by_ids(value_ids + [entry.utxo_id for entry in data_ids])

        account.utxo = UTXOSnapshot(
            value_stores=utxos.value_stores,
            data_stores=utxos.data_stores,
            atomic_swaps=utxos.atomic_swaps,
            value_store_ids=value_ids,
            data_store_ids=data_ids,
            value=total_value,
        )
        logger.debug(
            f"Refreshed {account.address}: {len(utxos.value_stores)} value store(s), "
            f"{len(utxos.data_stores)} data store(s), value {total_value}"
        )
        return account.utxo

    async def refresh_value_stores(self, address: str, min_value: int) -> UTXOSnapshot:
        backend = self._require_backend("refresh_value_stores")
        account = self.get_account(address)

        value_ids, total_value = await backend.get_value_store_utxo_ids(
            account.address, account.curve, min_value
        )
        utxos = await backend.get_utxos_by_ids(value_ids)
        account.utxo = UTXOSnapshot(
            value_stores=utxos.value_stores,
            value_store_ids=value_ids,
            value=total_value,
        )
        logger.debug(
            f"Refreshed value stores for {account.address}: "
            f"{len(utxos.value_stores)} store(s), value {total_value}"
        )
        return account.utxo

    async def fetch_utxos_by_ids(self, address: str, utxo_ids: list[str] | str) -> UTXOSnapshot:
        """Replace the snapshot with exactly the given UTXOs"""
        backend = self._require_backend("fetch_utxos_by_ids")
        account = self.get_account(address)
        if isinstance(utxo_ids, str):
            utxo_ids = [utxo_ids]

        utxos = await backend.get_utxos_by_ids(utxo_ids)
        account.utxo = UTXOSnapshot(
            value_stores=utxos.value_stores,
            data_stores=utxos.data_stores,
            atomic_swaps=utxos.atomic_swaps,
            value=sum(vs.value for vs in utxos.value_stores),
        )
        return account.utxo
