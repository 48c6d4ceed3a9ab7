"""
Pytest configuration and fixtures for madwallet tests.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from madcore.models import (
    Curve,
    DataStore,
    DataStoreUTXOID,
    DSLinker,
    DSPreImage,
    Tx,
    ValueStore,
    VSPreImage,
)
from madcore.validation import int_to_hex

from madwallet.backends.base import LedgerBackend, UTXOSet

SUBMITTED_HASH = "5e" * 32


def build_value_store(
    owner_address: str, value: int, tx_hash: str, tx_out_idx: int = 0, curve: int = 1
) -> ValueStore:
    return ValueStore(
        tx_hash=tx_hash,
        vs_pre_image=VSPreImage(
            chain_id=1,
            value=int_to_hex(value),
            tx_out_idx=tx_out_idx,
            owner=f"01{curve:02x}{owner_address}",
        ),
    )


def build_data_store(
    owner_address: str,
    index: str,
    raw_data: str,
    deposit: int,
    issued_at: int,
    tx_hash: str,
    tx_out_idx: int = 0,
    curve: int = 1,
) -> DataStore:
    return DataStore(
        signature="00",
        ds_linker=DSLinker(
            tx_hash=tx_hash,
            ds_pre_image=DSPreImage(
                chain_id=1,
                index=index,
                issued_at=issued_at,
                deposit=int_to_hex(deposit),
                raw_data=raw_data,
                tx_out_idx=tx_out_idx,
                owner=f"03{curve:02x}{owner_address}",
            ),
        ),
    )


class FakeLedgerBackend(LedgerBackend):
    """In-memory ledger keyed by UTXO id."""

    def __init__(self, epoch: int = 10, block_height: int = 100, chain_id: int = 1):
        self.epoch = epoch
        self.block_height = block_height
        self.chain_id = chain_id
        self.value_stores: dict[str, tuple[str, ValueStore]] = {}
        self.data_stores: dict[str, tuple[str, DataStore]] = {}
        self.submitted_hash = SUBMITTED_HASH
        self.sent: list[Tx] = []
        self.closed = False

    def add_value_store(
        self, owner_address: str, value: int, tx_hash: str, tx_out_idx: int = 0
    ) -> str:
        utxo_id = f"{tx_hash[:60]}{tx_out_idx:04x}"
        self.value_stores[utxo_id] = (
            owner_address,
            build_value_store(owner_address, value, tx_hash, tx_out_idx),
        )
        return utxo_id

    def add_data_store(self, owner_address: str, data_store: DataStore) -> str:
        utxo_id = f"{data_store.tx_hash[:60]}{data_store.pre_image.tx_out_idx:04x}"
        self.data_stores[utxo_id] = (owner_address, data_store)
        return utxo_id

    async def get_value_store_utxo_ids(
        self, address: str, curve: Curve, min_value: int
    ) -> tuple[list[str], int]:
        ids = [uid for uid, (owner, _) in self.value_stores.items() if owner == address]
        total = sum(self.value_stores[uid][1].value for uid in ids)
        return ids, total

    async def get_data_store_utxo_ids(
        self,
        address: str,
        curve: Curve,
        limit: int | None = None,
        offset: str | None = None,
    ) -> list[DataStoreUTXOID]:
        entries = sorted(
            (
                DataStoreUTXOID(utxo_id=uid, index=ds.pre_image.index)
                for uid, (owner, ds) in self.data_stores.items()
                if owner == address
            ),
            key=lambda entry: entry.index,
        )
        if offset:
            entries = [entry for entry in entries if entry.index >= offset]
        if limit is not None:
            entries = entries[:limit]
        return entries

    async def get_utxos_by_ids(self, utxo_ids: list[str]) -> UTXOSet:
        utxos = UTXOSet()
        for utxo_id in utxo_ids:
            if utxo_id in self.value_stores:
                utxos.value_stores.append(self.value_stores[utxo_id][1])
            elif utxo_id in self.data_stores:
                utxos.data_stores.append(self.data_stores[utxo_id][1])
        return utxos

    async def send_transaction(self, tx: Tx) -> str:
        self.sent.append(tx)
        return self.submitted_hash

    async def get_epoch(self) -> int:
        return self.epoch

    async def get_block_number(self) -> int:
        return self.block_height

    async def get_chain_id(self) -> int:
        return self.chain_id

    async def get_data(self, address: str, curve: Curve, index: str) -> str:
        for owner, data_store in self.data_stores.values():
            if owner == address and data_store.pre_image.index == index:
                return data_store.pre_image.raw_data
        return ""

    async def get_block_header(self, height: int) -> dict[str, Any]:
        return {"BClaims": {"Height": height, "ChainID": self.chain_id}}

    async def get_mined_transaction(self, tx_hash: str) -> Tx:
        return self.sent[-1]

    async def get_pending_transaction(self, tx_hash: str) -> Tx:
        return self.sent[-1]

    async def get_tx_block_height(self, tx_hash: str) -> int:
        return self.block_height

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def backend() -> FakeLedgerBackend:
    return FakeLedgerBackend()


@pytest.fixture
def value_store_factory() -> Callable[..., ValueStore]:
    """Build a ValueStore owned by an address: (owner_address, value, tx_hash, tx_out_idx=0)"""
    return build_value_store


@pytest.fixture
def data_store_factory() -> Callable[..., DataStore]:
    """Build a DataStore: (owner_address, index, raw_data, deposit, issued_at, tx_hash, ...)"""
    return build_data_store
