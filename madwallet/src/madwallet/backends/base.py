"""
Base ledger backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from madcore.models import AtomicSwap, Curve, DataStore, DataStoreUTXOID, Tx, ValueStore


@dataclass
class UTXOSet:
    """UTXOs returned by an id lookup, split by kind."""

    data_stores: list[DataStore] = field(default_factory=list)
    value_stores: list[ValueStore] = field(default_factory=list)
    atomic_swaps: list[AtomicSwap] = field(default_factory=list)


class LedgerBackend(ABC):
    """
    Abstract ledger backend interface.

    Implementations provide the node's view of unspent outputs, chain state
    and transaction submission. Retry and timeout policy lives here, never in
    the transaction builder.
    """

    @abstractmethod
    async def get_value_store_utxo_ids(
        self, address: str, curve: Curve, min_value: int
    ) -> tuple[list[str], int]:
        """Get value store UTXO ids covering min_value, and their total value"""

    @abstractmethod
    async def get_data_store_utxo_ids(
        self,
        address: str,
        curve: Curve,
        limit: int | None = None,
        offset: str | None = None,
    ) -> list[DataStoreUTXOID]:
        """Iterate the account's data store name space"""

    @abstractmethod
    async def get_utxos_by_ids(self, utxo_ids: list[str]) -> UTXOSet:
        """Fetch UTXOs by id"""

    @abstractmethod
    async def send_transaction(self, tx: Tx) -> str:
        """Submit a signed transaction, returns its hash"""

    @abstractmethod
    async def get_epoch(self) -> int:
        """Get current epoch number"""

    @abstractmethod
    async def get_block_number(self) -> int:
        """Get current block height"""

    @abstractmethod
    async def get_chain_id(self) -> int:
        """Get the node's chain id"""

    @abstractmethod
    async def get_data(self, address: str, curve: Curve, index: str) -> str:
        """Get raw data (hex) held by a data store"""

    @abstractmethod
    async def get_block_header(self, height: int) -> dict[str, Any]:
        """Get block header at height"""

    @abstractmethod
    async def get_mined_transaction(self, tx_hash: str) -> Tx:
        """Get a mined transaction by hash"""

    @abstractmethod
    async def get_pending_transaction(self, tx_hash: str) -> Tx:
        """Get a pending transaction by hash"""

    @abstractmethod
    async def get_tx_block_height(self, tx_hash: str) -> int:
        """Get the height of the block that mined tx_hash"""

    async def get_data_store_by_index(
        self, address: str, curve: Curve, index: str
    ) -> DataStore | None:
        """
        Look up the data store held at index by address.

        Default implementation iterates the name space starting at index with
        a page size of one, then fetches the matching UTXO.

        Returns:
            DataStore, or None if the account holds nothing at index
        """
        entries = await self.get_data_store_utxo_ids(address, curve, limit=1, offset=index)
        utxo_ids = [entry.utxo_id for entry in entries]
        if not utxo_ids:
            return None
        utxos = await self.get_utxos_by_ids(utxo_ids)
        if utxos.data_stores:
            return utxos.data_stores[0]
        return None

    async def close(self) -> None:
        """Close backend connection"""
        pass
