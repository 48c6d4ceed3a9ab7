"""
MadNet node RPC backend.

Every route is a JSON POST to <rpc_url><route>. The node reports failures
in an "error" field; those and any HTTP failure surface as
ExternalCollaboratorError. No retries are attempted here.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from madcore.constants import MAX_UTXOS, REQUEST_TIMEOUT
from madcore.errors import ExternalCollaboratorError
from madcore.models import AtomicSwap, Curve, DataStore, DataStoreUTXOID, Tx, ValueStore
from madcore.validation import int_to_hex, normalize_hex
from pydantic import ValidationError as PydanticValidationError

from madwallet.backends.base import LedgerBackend, UTXOSet


class MadNetRPCBackend(LedgerBackend):
    """Ledger backend talking to a MadNet node's HTTP RPC endpoint."""

    def __init__(
        self,
        rpc_url: str = "http://127.0.0.1:8884/v1/",
        timeout: float = REQUEST_TIMEOUT,
        max_utxos: int = MAX_UTXOS,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url.rstrip("/") + "/"
        self.max_utxos = max_utxos
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, route: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        POST a request to the node.

        Args:
            route: RPC route, e.g. "get-block-number"
            data: JSON body (empty object if not provided)

        Returns:
            Decoded JSON response

        Raises:
            ExternalCollaboratorError: On node errors, HTTP errors or bad JSON
        """
        url = f"{self.rpc_url}{route}"
        try:
            response = await self.client.post(url, json=data or {})
            body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"RPC request failed: {route} - {e}")
            raise ExternalCollaboratorError(f"Request failed: {e}", route) from e
        except ValueError as e:
            logger.error(f"RPC returned invalid JSON: {route} - {e}")
            raise ExternalCollaboratorError("Bad response", route) from e

        if not isinstance(body, dict):
            raise ExternalCollaboratorError("Bad response", route)
        if body.get("error"):
            logger.error(f"RPC error: {route} - {body['error']}")
            raise ExternalCollaboratorError(f"RPC error: {body['error']}", route)
        if response.is_error:
            raise ExternalCollaboratorError(f"HTTP {response.status_code}", route)
        return body

    @staticmethod
    def _require(body: dict[str, Any], key: str, route: str) -> Any:
        value = body.get(key)
        if value is None or value == "":
            raise ExternalCollaboratorError(f"{key} not found in response", route)
        return value

    async def get_value_store_utxo_ids(
        self, address: str, curve: Curve, min_value: int
    ) -> tuple[list[str], int]:
        body = await self._request(
            "get-value-for-owner",
            {"CurveSpec": int(curve), "Account": address, "Minvalue": int_to_hex(min_value)},
        )
        utxo_ids = body.get("UTXOIDs")
        total_value = body.get("TotalValue")
        if not utxo_ids or not total_value:
            return [], 0
        return list(utxo_ids), int(total_value, 16)

    async def get_data_store_utxo_ids(
        self,
        address: str,
        curve: Curve,
        limit: int | None = None,
        offset: str | None = None,
    ) -> list[DataStoreUTXOID]:
        get_all = limit is None
        if limit is None or limit > self.max_utxos:
            limit = self.max_utxos
        start_index = normalize_hex(offset) if offset else ""

        results: list[DataStoreUTXOID] = []
        while True:
            body = await self._request(
                "iterate-name-space",
                {
                    "CurveSpec": int(curve),
                    "Account": address,
                    "Number": limit,
                    "StartIndex": start_index,
                },
            )
            page = body.get("Results") or []
            if not page:
                break
            try:
                results.extend(DataStoreUTXOID.model_validate(entry) for entry in page)
            except PydanticValidationError as e:
                raise ExternalCollaboratorError(
                    f"Malformed name space entry: {e}", "iterate-name-space"
                ) from e
            if not get_all or len(page) < limit:
                break
            start_index = results[-1].index

        logger.debug(f"Found {len(results)} data store(s) for {address}")
        return results

    async def get_utxos_by_ids(self, utxo_ids: list[str]) -> UTXOSet:
        utxos = UTXOSet()
        for start in range(0, len(utxo_ids), self.max_utxos):
            chunk = utxo_ids[start : start + self.max_utxos]
            body = await self._request("get-utxo", {"UTXOIDs": chunk})
            try:
                for entry in body.get("UTXOs") or []:
                    if entry.get("DataStore"):
                        utxos.data_stores.append(DataStore.model_validate(entry["DataStore"]))
                    elif entry.get("ValueStore"):
                        utxos.value_stores.append(ValueStore.model_validate(entry["ValueStore"]))
                    elif entry.get("AtomicSwap"):
                        utxos.atomic_swaps.append(AtomicSwap.model_validate(entry["AtomicSwap"]))
            except PydanticValidationError as e:
                raise ExternalCollaboratorError(f"Malformed UTXO: {e}", "get-utxo") from e
        return utxos

    async def send_transaction(self, tx: Tx) -> str:
        body = await self._request("send-transaction", {"Tx": tx.to_wire()})
        tx_hash = self._require(body, "TxHash", "send-transaction")
        logger.info(f"Transaction submitted: {tx_hash}")
        return tx_hash

    async def get_epoch(self) -> int:
        body = await self._request("get-epoch-number")
        return int(self._require(body, "Epoch", "get-epoch-number"))

    async def get_block_number(self) -> int:
        body = await self._request("get-block-number")
        return int(self._require(body, "BlockHeight", "get-block-number"))

    async def get_chain_id(self) -> int:
        body = await self._request("get-chain-id")
        return int(self._require(body, "ChainID", "get-chain-id"))

    async def get_data(self, address: str, curve: Curve, index: str) -> str:
        body = await self._request(
            "get-data",
            {"Account": address, "CurveSpec": int(curve), "Index": normalize_hex(index)},
        )
        return self._require(body, "Rawdata", "get-data")

    async def get_block_header(self, height: int) -> dict[str, Any]:
        body = await self._request("get-block-header", {"Height": height})
        return self._require(body, "BlockHeader", "get-block-header")

    async def get_mined_transaction(self, tx_hash: str) -> Tx:
        body = await self._request("get-mined-transaction", {"TxHash": tx_hash})
        return Tx.from_wire(self._require(body, "Tx", "get-mined-transaction"))

    async def get_pending_transaction(self, tx_hash: str) -> Tx:
        body = await self._request("get-pending-transaction", {"TxHash": tx_hash})
        return Tx.from_wire(self._require(body, "Tx", "get-pending-transaction"))

    async def get_tx_block_height(self, tx_hash: str) -> int:
        body = await self._request("get-tx-block-number", {"TxHash": tx_hash})
        return int(self._require(body, "BlockHeight", "get-tx-block-number"))

    async def close(self) -> None:
        await self.client.aclose()
