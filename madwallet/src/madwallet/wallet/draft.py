"""
Transaction draft.

Accumulates inputs and outputs with placeholder hashes and signatures, plus
the owner records the signing step needs to find the right account for
every input and data output.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from madcore.constants import DEFAULT_CHAIN_ID
from madcore.errors import UnknownInputOwnerError
from madcore.models import (
    ASPreImage,
    AtomicSwap,
    Curve,
    DataStore,
    DSLinker,
    DSPreImage,
    Tx,
    TxIn,
    TXInLinker,
    TXInPreImage,
    TxOut,
    ValueStore,
    VSPreImage,
)
from madcore.validation import int_to_hex, normalize_hex

from madwallet.wallet.models import DataOutputOwner, TxInOwner


def _owner_hex(owner: bytes | str) -> str:
    return normalize_hex(owner, "owner")


class TxDraft:
    """In-progress transaction for a single build cycle."""

    def __init__(self, chain_id: int = DEFAULT_CHAIN_ID):
        self.chain_id = chain_id
        self.vin: list[TxIn] = []
        self.vout: list[TxOut] = []
        self.input_owners: list[TxInOwner] = []
        self.data_output_owners: list[DataOutputOwner] = []

    def add_value_output(self, value: int, owner: bytes | str) -> int:
        """Append a value store output, returns its output index"""
        index = len(self.vout)
        self.vout.append(
            TxOut(
                value_store=ValueStore(
                    vs_pre_image=VSPreImage(
                        chain_id=self.chain_id,
                        value=int_to_hex(value),
                        tx_out_idx=index,
                        owner=_owner_hex(owner),
                    )
                )
            )
        )
        logger.debug(f"Draft output {index}: value store {value}")
        return index

    def add_data_output(
        self,
        index: str,
        issued_at: int,
        deposit: int,
        raw_data: str,
        owner: bytes | str,
        signer_address: str,
        signer_curve: Curve,
    ) -> int:
        """
        Append a data store output and record who must sign it.

        Args:
            index: 64 hex char data store index
            issued_at: Epoch the lease starts at
            deposit: Deposit funding the lease
            raw_data: Payload as hex
            owner: 22-byte owner tag
            signer_address: Account that signs the data store
            signer_curve: Curve of that account

        Returns:
            Output index of the new data store
        """
        vout_index = len(self.vout)
        self.vout.append(
            TxOut(
                data_store=DataStore(
                    ds_linker=DSLinker(
                        ds_pre_image=DSPreImage(
                            chain_id=self.chain_id,
                            index=index,
                            issued_at=issued_at,
                            deposit=int_to_hex(deposit),
                            raw_data=raw_data,
                            tx_out_idx=vout_index,
                            owner=_owner_hex(owner),
                        )
                    )
                )
            )
        )
        self.data_output_owners.append(
            DataOutputOwner(vout_index=vout_index, address=signer_address, curve=signer_curve)
        )
        logger.debug(f"Draft output {vout_index}: data store {index} deposit {deposit}")
        return vout_index

    def add_atomic_swap_output(
        self, value: int, issued_at: int, exp: int, owner: bytes | str
    ) -> int:
        index = len(self.vout)
        self.vout.append(
            TxOut(
                atomic_swap=AtomicSwap(
                    as_pre_image=ASPreImage(
                        chain_id=self.chain_id,
                        value=int_to_hex(value),
                        tx_out_idx=index,
                        issued_at=issued_at,
                        exp=exp,
                        owner=_owner_hex(owner),
                    )
                )
            )
        )
        return index

    def add_input(
        self,
        consumed_tx_hash: str,
        consumed_tx_idx: int,
        address: str,
        curve: Curve,
        is_data_store: bool = False,
    ) -> int:
        """Append an input consuming a prior output, recording its owner"""
        self.vin.append(
            TxIn(
                tx_in_linker=TXInLinker(
                    tx_in_pre_image=TXInPreImage(
                        chain_id=self.chain_id,
                        consumed_tx_idx=consumed_tx_idx,
                        consumed_tx_hash=consumed_tx_hash,
                    )
                )
            )
        )
        self.input_owners.append(
            TxInOwner(
                address=address,
                curve=curve,
                tx_hash=consumed_tx_hash,
                tx_out_idx=consumed_tx_idx,
                is_data_store=is_data_store,
            )
        )
        kind = "data store" if is_data_store else "value store"
        logger.debug(
            f"Draft input {len(self.vin) - 1}: {kind} {consumed_tx_hash}:{consumed_tx_idx}"
        )
        return len(self.vin) - 1

    def find_input_owner(self, consumed_tx_hash: str, consumed_tx_idx: int) -> TxInOwner:
        for owner in self.input_owners:
            if owner.tx_hash == consumed_tx_hash and owner.tx_out_idx == consumed_tx_idx:
                return owner
        raise UnknownInputOwnerError(
            f"No owner recorded for input {consumed_tx_hash}:{consumed_tx_idx}",
            "find_input_owner",
        )

    def to_tx(self) -> Tx:
        return Tx(vin=list(self.vin), vout=list(self.vout))

    def serialize(self) -> dict[str, Any]:
        """Current draft in wire form: {"Vin": [...], "Vout": [...]}"""
        return self.to_tx().to_wire()

    def is_empty(self) -> bool:
        return not self.vin and not self.vout
