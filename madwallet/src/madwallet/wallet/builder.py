"""
Transaction builder.

Turns requested value and data store outputs into a funded, balanced and
signed transaction. State for one build cycle lives in a BuildSession which
is replaced, never cleared, after a submission or any failure.
"""

from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import TypeVar

from loguru import logger
from madcore.constants import (
    DATA_STORE_SVA,
    DEFAULT_CHAIN_ID,
    EPOCH_BLOCK_SIZE,
    EPOCH_BOUNDARY,
    INDEX_HEX_LENGTH,
    VALUE_STORE_SVA,
)
from madcore.deposit import calculate_deposit, remaining_deposit
from madcore.errors import ExternalCollaboratorError, MadWalletError, ValidationError
from madcore.models import Curve, DataStore, Tx, ValueStore
from madcore.owner import encode_owner
from madcore.validation import (
    hex_or_text,
    validate_address,
    validate_amount,
    validate_curve,
    validate_number,
)

from madwallet.backends.base import LedgerBackend
from madwallet.wallet.accounts import AccountManager
from madwallet.wallet.draft import TxDraft
from madwallet.wallet.hasher import LocalTxHasher, TxHasher
from madwallet.wallet.models import Account, DataStoreRenewal, FundingRequirement, UTXOSnapshot
from madwallet.wallet.selection import spend_utxos
from madwallet.wallet.signing import sign_transaction

T = TypeVar("T")


@dataclass
class BuildSession:
    """
    Draft plus per-address funding requirements for one build cycle.

    snapshots holds each funded account's UTXO cache as it was before
    funding, put back if the cycle fails.
    """

    draft: TxDraft
    requirements: dict[str, FundingRequirement] = field(default_factory=dict)
    snapshots: dict[str, UTXOSnapshot] = field(default_factory=dict)

    def require(self, address: str, value: int, renewal: DataStoreRenewal | None = None) -> None:
        requirement = self.requirements.get(address)
        if requirement is None:
            requirement = FundingRequirement(address=address)
            self.requirements[address] = requirement
        requirement.total_value += value
        if renewal is not None:
            requirement.renewals.append(renewal)


def normalize_index(index: str | bytes) -> str:
    """Data store index as exactly 64 hex chars, left-padded with zeros"""
    index_hex = hex_or_text(index, "normalize_index")
    if len(index_hex) > INDEX_HEX_LENGTH:
        raise ValidationError(f"Index too large: {len(index_hex) // 2} bytes", "normalize_index")
    return index_hex.rjust(INDEX_HEX_LENGTH, "0")


class TransactionBuilder:
    """
    Builds and submits transactions for accounts held by an AccountManager.

    Calls on one builder must be serialized; the session is not safe for
    concurrent mutation. Without a backend the builder works from cached
    snapshots and can build but not submit.
    """

    def __init__(
        self,
        accounts: AccountManager,
        backend: LedgerBackend | None = None,
        hasher: TxHasher | None = None,
        chain_id: int = DEFAULT_CHAIN_ID,
    ):
        self.accounts = accounts
        self.backend = backend
        self.hasher = hasher or LocalTxHasher()
        self.chain_id = chain_id
        self.session = BuildSession(draft=TxDraft(chain_id))

    def reset(self) -> None:
        self.session = BuildSession(draft=TxDraft(self.chain_id))

    def _abort(self) -> None:
        for address, snapshot in self.session.snapshots.items():
            account = self.accounts.accounts.get(address)
            if account is not None:
                account.utxo = snapshot
        self.reset()

    async def _call(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except MadWalletError:
            raise
        except Exception as e:
            raise ExternalCollaboratorError(str(e), operation) from e

    async def create_value_store(
        self, from_address: str, value: int | str, to_address: str, to_curve: int | Curve
    ) -> ValueStore:
        """
        Add a value store output paying value to to_address.

        The spend is charged to from_address, which must be a wallet account.
        """
        from_address = validate_address(from_address)
        value = validate_amount(value)
        to_address = validate_address(to_address)
        to_curve = validate_curve(to_curve)
        account = self.accounts.get_account(from_address)

        owner = encode_owner(VALUE_STORE_SVA, to_curve, to_address)
        vout_index = self.session.draft.add_value_output(value, owner)
        self.session.require(account.address, value)
        return self.session.draft.vout[vout_index].value_store

    async def create_data_store(
        self,
        from_address: str,
        index: str | bytes,
        duration: int | str,
        raw_data: str | bytes,
        issued_at: int | str | None = None,
    ) -> DataStore:
        """
        Add a data store output owned by from_address.

        Args:
            from_address: Account that owns, funds and signs the data store
            index: 0x-prefixed hex, or text that is UTF-8 encoded; at most 32 bytes
            duration: Number of epochs to lease for
            raw_data: 0x-prefixed hex, or text that is UTF-8 encoded
            issued_at: Issue epoch; fetched from the ledger when omitted

        Returns:
            The DataStore output as placed in the draft
        """
        from_address = validate_address(from_address)
        duration = validate_number(duration, "create_data_store")
        account = self.accounts.get_account(from_address)
        raw_hex = hex_or_text(raw_data, "create_data_store")
        index_hex = normalize_index(index)
        deposit = calculate_deposit(bytes.fromhex(raw_hex), duration)

        if issued_at is not None:
            issued_at = validate_number(issued_at, "create_data_store")
        else:
            issued_at = await self._current_issue_epoch()

        owner = encode_owner(DATA_STORE_SVA, account.curve, account.address)
        vout_index = self.session.draft.add_data_output(
            index_hex,
            issued_at,
            deposit,
            raw_hex,
            owner,
            account.address,
            account.curve,
        )
        self.session.require(
            account.address, deposit, DataStoreRenewal(index=index_hex, epoch=issued_at)
        )
        return self.session.draft.vout[vout_index].data_store

    async def _current_issue_epoch(self) -> int:
        """Current epoch, moved to the next one near the end of an epoch window"""
        if self.backend is None:
            raise ValidationError("A ledger backend is required to fetch the epoch", "issued_at")
        epoch = await self._call("get_epoch", self.backend.get_epoch())
        block = await self._call("get_block_number", self.backend.get_block_number())
        position = block % EPOCH_BLOCK_SIZE
        if position > EPOCH_BOUNDARY or position == 0:
            epoch += 1
        return epoch

    async def build(
        self,
        change_address: str | None = None,
        change_curve: int | Curve | None = None,
        utxo_ids: list[str] | None = None,
    ) -> Tx:
        """Fund, hash and sign the pending draft without submitting it"""
        try:
            tx = await self._finalize(change_address, change_curve, utxo_ids)
        except MadWalletError:
            self._abort()
            raise
        except Exception as e:
            self._abort()
            raise ExternalCollaboratorError(str(e), "build") from e
        self.reset()
        return tx

    async def send(
        self,
        change_address: str | None = None,
        change_curve: int | Curve | None = None,
        utxo_ids: list[str] | None = None,
    ) -> str:
        """
        Fund, hash, sign and submit the pending draft.

        Returns:
            Transaction hash reported by the ledger
        """
        try:
            if self.backend is None:
                raise ValidationError("A ledger backend is required to submit", "send")
            tx = await self._finalize(change_address, change_curve, utxo_ids)
            tx_hash = await self.backend.send_transaction(tx)
        except MadWalletError:
            self._abort()
            raise
        except Exception as e:
            self._abort()
            raise ExternalCollaboratorError(str(e), "send") from e
        self.reset()
        return tx_hash

    async def _finalize(
        self,
        change_address: str | None,
        change_curve: int | Curve | None,
        utxo_ids: list[str] | None,
    ) -> Tx:
        if self.session.draft.is_empty():
            raise ValidationError("No outputs to fund", "build")
        if change_address is not None:
            change_address = validate_address(change_address)
        if change_curve is not None:
            change_curve = validate_curve(change_curve)

        for address in self.session.requirements:
            self.session.snapshots[address] = self.accounts.get_account(address).utxo.copy()
        for requirement in list(self.session.requirements.values()):
            await self._fund(requirement, change_address, change_curve, utxo_ids or [])
        return await sign_transaction(self.session.draft, self.accounts, self.hasher)

    async def _fund(
        self,
        requirement: FundingRequirement,
        change_address: str | None,
        change_curve: Curve | None,
        utxo_ids: list[str],
    ) -> None:
        account = self.accounts.get_account(requirement.address)
        draft = self.session.draft

        if self.backend is not None:
            if utxo_ids:
                await self.accounts.fetch_utxos_by_ids(account.address, utxo_ids)
            else:
                await self.accounts.refresh_value_stores(account.address, requirement.total_value)
        elif utxo_ids:
            raise ValidationError("Selecting UTXOs by id requires a ledger backend", "build")
        else:
            logger.warning(f"No ledger backend, using cached UTXOs for {account.address}")

        owed = requirement.total_value
        for renewal in requirement.renewals:
            data_store = await self._find_data_store(account, renewal.index)
            if data_store is None:
                continue
            refund = remaining_deposit(data_store, renewal.epoch)
            if not refund:
                continue
            draft.add_input(
                data_store.tx_hash,
                data_store.pre_image.tx_out_idx,
                account.address,
                account.curve,
                is_data_store=True,
            )
            account.utxo.remove_data_store(data_store)
            owed -= refund
            logger.debug(f"Renewing data store {renewal.index}, refund {refund}")

        if owed < 0:
            owner = encode_owner(
                VALUE_STORE_SVA, change_curve or account.curve, change_address or account.address
            )
            draft.add_value_output(-owed, owner)
        elif owed > 0:
            selection = spend_utxos(draft, account, owed, change_address, change_curve)
            logger.debug(
                f"Funded {account.address}: {requirement.total_value} required, "
                f"{len(selection.utxos)} value store(s), change {selection.change_value}"
            )

    async def _find_data_store(self, account: Account, index: str) -> DataStore | None:
        if self.backend is not None:
            data_store = await self.backend.get_data_store_by_index(
                account.address, account.curve, index
            )
        else:
            data_store = account.utxo.find_data_store(index)
        if data_store is None or data_store.pre_image.index.lower() != index:
            return None

        for owner in self.session.draft.input_owners:
            if (
                owner.tx_hash == data_store.tx_hash
                and owner.tx_out_idx == data_store.pre_image.tx_out_idx
            ):
                return None
        return data_store
