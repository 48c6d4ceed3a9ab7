"""
Transaction signing.

Two phases: canonicalize the draft through a TxHasher, then sign every
input and every data output with the owning account's signer. Signatures
are written back prefixed with SVA kind and curve.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger
from madcore.constants import DATA_STORE_SVA, VALUE_STORE_SVA
from madcore.errors import (
    ExternalCollaboratorError,
    MadWalletError,
    UnknownDataOutputOwnerError,
)
from madcore.models import Tx
from madcore.owner import decode_owner, prefix_sva_curve
from madcore.validation import normalize_hex
from pydantic import ValidationError as PydanticValidationError

from madwallet.wallet.draft import TxDraft
from madwallet.wallet.hasher import TxHasher
from madwallet.wallet.models import Account

if TYPE_CHECKING:
    from madwallet.wallet.accounts import AccountManager


async def canonicalize(draft: TxDraft, hasher: TxHasher) -> Tx:
    """Run the draft through hasher and parse the result back into a Tx"""
    try:
        hashed = await hasher.compute_hashes(draft.serialize())
    except MadWalletError:
        raise
    except Exception as e:
        raise ExternalCollaboratorError(f"Hasher failed: {e}", "canonicalize") from e

    try:
        tx = Tx.from_wire(hashed)
    except PydanticValidationError as e:
        raise ExternalCollaboratorError(f"Hasher returned malformed tx: {e}", "canonicalize") from e

    if len(tx.vin) != len(draft.vin) or len(tx.vout) != len(draft.vout):
        raise ExternalCollaboratorError("Hasher changed the transaction shape", "canonicalize")
    return tx


async def _sign_message(account: Account, message_hex: str, sva: int) -> str:
    message = bytes.fromhex(normalize_hex(message_hex, "sign"))
    try:
        signature = await account.signer.sign(message)
    except MadWalletError:
        raise
    except Exception as e:
        raise ExternalCollaboratorError(
            f"Signer for {account.address} failed: {e}", "sign"
        ) from e
    return prefix_sva_curve(sva, account.curve, signature).hex()


async def sign_transaction(draft: TxDraft, accounts: AccountManager, hasher: TxHasher) -> Tx:
    """
    Canonicalize and sign draft.

    Every input is matched to its recorded owner by consumed hash and index;
    every data output is signed by its recorded signer, which must agree with
    the owner tag. Each data output is signed exactly once. The signed inputs
    and outputs replace the draft's own.

    Returns:
        Fully signed Tx
    """
    tx = await canonicalize(draft, hasher)

    for txin in tx.vin:
        owner = draft.find_input_owner(txin.consumed_tx_hash, txin.consumed_tx_idx)
        account = accounts.get_account(owner.address)
        sva = DATA_STORE_SVA if owner.is_data_store else VALUE_STORE_SVA
        txin.signature = await _sign_message(account, txin.signature, sva)

    data_outputs = sum(1 for txout in tx.vout if txout.data_store is not None)
    recorded = {record.vout_index for record in draft.data_output_owners}
    if len(recorded) != len(draft.data_output_owners) or len(recorded) != data_outputs:
        raise UnknownDataOutputOwnerError(
            f"{data_outputs} data output(s) but {len(draft.data_output_owners)} signer record(s)",
            "sign",
        )

    signed_outputs = 0
    for record in draft.data_output_owners:
        data_store = None
        if record.vout_index < len(tx.vout):
            data_store = tx.vout[record.vout_index].data_store
        if data_store is None:
            raise UnknownDataOutputOwnerError(
                f"Output {record.vout_index} is not a data store", "sign"
            )
        owner = decode_owner(data_store.pre_image.owner)
        if owner.address != record.address or owner.curve != record.curve:
            raise UnknownDataOutputOwnerError(
                f"Output {record.vout_index} is owned by {owner.address}, "
                f"recorded signer is {record.address}",
                "sign",
            )
        account = accounts.get_account(record.address)
        data_store.signature = await _sign_message(account, data_store.signature, DATA_STORE_SVA)
        signed_outputs += 1

    draft.vin = tx.vin
    draft.vout = tx.vout
    logger.debug(f"Signed {len(tx.vin)} input(s) and {signed_outputs} data output(s)")
    return tx
