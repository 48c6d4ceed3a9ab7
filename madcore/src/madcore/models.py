"""
Ledger wire models using Pydantic for validation and serialization.

Field names follow the node's JSON exactly (via aliases); Python code uses
the snake_case names. Values and deposits are hex strings on the wire.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from madcore.constants import PLACEHOLDER


class Curve(IntEnum):
    SECP256K1 = 1
    BN256 = 2


class WireModel(BaseModel):
    model_config = {"populate_by_name": True}

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class VSPreImage(WireModel):
    chain_id: int = Field(..., alias="ChainID")
    value: str = Field(..., alias="Value")
    tx_out_idx: int = Field(default=0, alias="TXOutIdx")
    owner: str = Field(..., alias="Owner")

    @property
    def value_int(self) -> int:
        return int(self.value, 16)


class ValueStore(WireModel):
    tx_hash: str = Field(default=PLACEHOLDER, alias="TxHash")
    vs_pre_image: VSPreImage = Field(..., alias="VSPreImage")

    @property
    def value(self) -> int:
        return self.vs_pre_image.value_int

    @property
    def tx_out_idx(self) -> int:
        return self.vs_pre_image.tx_out_idx


class DSPreImage(WireModel):
    chain_id: int = Field(..., alias="ChainID")
    index: str = Field(..., alias="Index")
    issued_at: int = Field(..., alias="IssuedAt")
    deposit: str = Field(..., alias="Deposit")
    raw_data: str = Field(..., alias="RawData")
    tx_out_idx: int = Field(default=0, alias="TXOutIdx")
    owner: str = Field(..., alias="Owner")

    @property
    def deposit_int(self) -> int:
        return int(self.deposit, 16)

    @property
    def data_size(self) -> int:
        return len(bytes.fromhex(self.raw_data))


class DSLinker(WireModel):
    tx_hash: str = Field(default=PLACEHOLDER, alias="TxHash")
    ds_pre_image: DSPreImage = Field(..., alias="DSPreImage")


class DataStore(WireModel):
    signature: str = Field(default=PLACEHOLDER, alias="Signature")
    ds_linker: DSLinker = Field(..., alias="DSLinker")

    @property
    def pre_image(self) -> DSPreImage:
        return self.ds_linker.ds_pre_image

    @property
    def tx_hash(self) -> str:
        return self.ds_linker.tx_hash


class ASPreImage(WireModel):
    chain_id: int = Field(..., alias="ChainID")
    value: str = Field(..., alias="Value")
    tx_out_idx: int = Field(default=0, alias="TXOutIdx")
    issued_at: int = Field(..., alias="IssuedAt")
    exp: int = Field(..., alias="Exp")
    owner: str = Field(..., alias="Owner")


class AtomicSwap(WireModel):
    tx_hash: str = Field(default=PLACEHOLDER, alias="TxHash")
    as_pre_image: ASPreImage = Field(..., alias="ASPreImage")


class TxOut(WireModel):
    value_store: ValueStore | None = Field(default=None, alias="ValueStore")
    data_store: DataStore | None = Field(default=None, alias="DataStore")
    atomic_swap: AtomicSwap | None = Field(default=None, alias="AtomicSwap")

    @model_validator(mode="after")
    def exactly_one_kind(self) -> TxOut:
        kinds = [
            k for k in (self.value_store, self.data_store, self.atomic_swap) if k is not None
        ]
        if len(kinds) != 1:
            raise ValueError("TxOut must hold exactly one of ValueStore, DataStore, AtomicSwap")
        return self


class TXInPreImage(WireModel):
    chain_id: int = Field(..., alias="ChainID")
    consumed_tx_idx: int = Field(default=0, alias="ConsumedTxIdx")
    consumed_tx_hash: str = Field(..., alias="ConsumedTxHash")


class TXInLinker(WireModel):
    tx_hash: str = Field(default=PLACEHOLDER, alias="TxHash")
    tx_in_pre_image: TXInPreImage = Field(..., alias="TXInPreImage")


class TxIn(WireModel):
    signature: str = Field(default=PLACEHOLDER, alias="Signature")
    tx_in_linker: TXInLinker = Field(..., alias="TXInLinker")

    @property
    def consumed_tx_hash(self) -> str:
        return self.tx_in_linker.tx_in_pre_image.consumed_tx_hash

    @property
    def consumed_tx_idx(self) -> int:
        return self.tx_in_linker.tx_in_pre_image.consumed_tx_idx


class Tx(WireModel):
    vin: list[TxIn] = Field(default_factory=list, alias="Vin")
    vout: list[TxOut] = Field(default_factory=list, alias="Vout")

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> Tx:
        if "Tx" in data:
            data = data["Tx"]
        return cls.model_validate(data)


class DataStoreUTXOID(WireModel):
    """Entry returned by name-space iteration."""

    utxo_id: str = Field(..., alias="UTXOID")
    index: str = Field(..., alias="Index")
