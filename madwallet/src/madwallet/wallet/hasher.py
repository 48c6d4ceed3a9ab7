"""
Canonical transaction hashing.

A hasher takes the serialized draft and returns the same structure with
every placeholder TxHash replaced by the real transaction hash, and every
Signature placeholder replaced by the message that must be signed.
"""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from typing import Any

from madcore.crypto import keccak256


def canonical_json(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")


class TxHasher(ABC):
    @abstractmethod
    async def compute_hashes(self, wire_tx: dict[str, Any]) -> dict[str, Any]:
        """Return wire_tx with real hashes injected; must not mutate the argument"""


class LocalTxHasher(TxHasher):
    """
    Deterministic in-process hasher for tests and development networks.

    The transaction hash is keccak256 over the canonical JSON of every input
    and output preimage. Each signature message is keccak256 over the
    canonical JSON of the linker it authorizes, taken after the linker's
    TxHash has been filled in.
    """

    async def compute_hashes(self, wire_tx: dict[str, Any]) -> dict[str, Any]:
        tx = copy.deepcopy(wire_tx)
        vin = tx.get("Vin", [])
        vout = tx.get("Vout", [])

        preimages = {
            "Vin": [txin["TXInLinker"]["TXInPreImage"] for txin in vin],
            "Vout": [self._output_preimage(txout) for txout in vout],
        }
        tx_hash = keccak256(canonical_json(preimages)).hex()

        for txin in vin:
            txin["TXInLinker"]["TxHash"] = tx_hash
            txin["Signature"] = keccak256(canonical_json(txin["TXInLinker"])).hex()

        for txout in vout:
            if "ValueStore" in txout:
                txout["ValueStore"]["TxHash"] = tx_hash
            elif "DataStore" in txout:
                linker = txout["DataStore"]["DSLinker"]
                linker["TxHash"] = tx_hash
                txout["DataStore"]["Signature"] = keccak256(canonical_json(linker)).hex()
            elif "AtomicSwap" in txout:
                txout["AtomicSwap"]["TxHash"] = tx_hash

        return tx

    @staticmethod
    def _output_preimage(txout: dict[str, Any]) -> dict[str, Any]:
        if "ValueStore" in txout:
            return txout["ValueStore"]["VSPreImage"]
        if "DataStore" in txout:
            return txout["DataStore"]["DSLinker"]["DSPreImage"]
        if "AtomicSwap" in txout:
            return txout["AtomicSwap"]["ASPreImage"]
        raise ValueError(f"Unknown output kind: {sorted(txout)}")
