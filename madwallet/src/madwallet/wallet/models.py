"""
Wallet data models.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from madcore.crypto import Signer
from madcore.models import AtomicSwap, Curve, DataStore, DataStoreUTXOID, ValueStore


@dataclass
class UTXOSnapshot:
    """
    Cached unspent outputs of one account.

    Replaced wholesale on every refresh. Selection removes entries by
    position so an output is never handed out twice within one snapshot.
    """

    value_stores: list[ValueStore] = field(default_factory=list)
    data_stores: list[DataStore] = field(default_factory=list)
    atomic_swaps: list[AtomicSwap] = field(default_factory=list)
    value_store_ids: list[str] = field(default_factory=list)
    data_store_ids: list[DataStoreUTXOID] = field(default_factory=list)
    atomic_swap_ids: list[str] = field(default_factory=list)
    value: int = 0

    def find_data_store(self, index: str) -> DataStore | None:
        for data_store in self.data_stores:
            if data_store.pre_image.index == index:
                return data_store
        return None

    def remove_data_store(self, data_store: DataStore) -> None:
        for position, candidate in enumerate(self.data_stores):
            if (
                candidate.tx_hash == data_store.tx_hash
                and candidate.pre_image.tx_out_idx == data_store.pre_image.tx_out_idx
            ):
                del self.data_stores[position]
                return

    def copy(self) -> UTXOSnapshot:
        """Copy whose lists can be consumed without touching this snapshot"""
        return replace(
            self,
            value_stores=list(self.value_stores),
            data_stores=list(self.data_stores),
            atomic_swaps=list(self.atomic_swaps),
            value_store_ids=list(self.value_store_ids),
            data_store_ids=list(self.data_store_ids),
            atomic_swap_ids=list(self.atomic_swap_ids),
        )

    def take_value_store(self, position: int) -> ValueStore:
        """Remove the value store at position and deduct it from the cached value"""
        value_store = self.value_stores.pop(position)
        self.value = max(self.value - value_store.value, 0)
        return value_store


@dataclass
class Account:
    """Wallet account bound to one key and one curve"""

    address: str
    curve: Curve
    signer: Signer
    utxo: UTXOSnapshot = field(default_factory=UTXOSnapshot)


@dataclass
class DataStoreRenewal:
    """Pending lookup of an existing data store being re-leased"""

    index: str
    epoch: int


@dataclass
class FundingRequirement:
    """Running value owed by one source address; negative means change is owed back"""

    address: str
    total_value: int = 0
    renewals: list[DataStoreRenewal] = field(default_factory=list)


@dataclass
class TxInOwner:
    """Which account signs the input consuming (tx_hash, tx_out_idx)"""

    address: str
    curve: Curve
    tx_hash: str
    tx_out_idx: int
    is_data_store: bool = False


@dataclass
class DataOutputOwner:
    """Data output awaiting a signature from address"""

    vout_index: int
    address: str
    curve: Curve


@dataclass
class CoinSelection:
    """Result of coin selection"""

    utxos: list[ValueStore]
    total_value: int
    change_value: int
