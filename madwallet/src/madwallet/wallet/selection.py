"""
UTXO selection.

Greedy largest-first over an account's cached value stores. Deterministic
for a given snapshot order; equal values go to the first one encountered.
"""

from __future__ import annotations

from loguru import logger
from madcore.constants import VALUE_STORE_SVA
from madcore.errors import InsufficientFundsError, NoUnspentOutputsError
from madcore.models import Curve, ValueStore
from madcore.owner import encode_owner

from madwallet.wallet.draft import TxDraft
from madwallet.wallet.models import Account, CoinSelection


def _highest_value_position(value_stores: list[ValueStore]) -> int:
    best = 0
    for position in range(1, len(value_stores)):
        if value_stores[position].value > value_stores[best].value:
            best = position
    return best


def spend_utxos(
    draft: TxDraft,
    account: Account,
    amount: int,
    change_address: str | None = None,
    change_curve: Curve | None = None,
) -> CoinSelection:
    """
    Consume value stores from account's snapshot until amount is covered.

    Each selected store becomes an input of draft and is removed from the
    snapshot. Any surplus on the last store is returned as one change output.

    Args:
        draft: Draft receiving inputs and the change output
        account: Account whose cached value stores are spent
        amount: Value to cover
        change_address: Change recipient (defaults to the account)
        change_curve: Change recipient curve (defaults to the account's)

    Returns:
        CoinSelection describing what was consumed
    """
    snapshot = account.utxo
    if snapshot.value < amount:
        raise InsufficientFundsError(
            f"Need {amount}, have {snapshot.value} for {account.address}", "spend_utxos"
        )

    selected: list[ValueStore] = []
    remaining = amount
    change_value = 0
    while remaining > 0:
        if not snapshot.value_stores:
            raise NoUnspentOutputsError(
                f"Ran out of value stores with {remaining} still owed by {account.address}",
                "spend_utxos",
            )
        value_store = snapshot.take_value_store(_highest_value_position(snapshot.value_stores))
        selected.append(value_store)
        draft.add_input(
            value_store.tx_hash,
            value_store.tx_out_idx,
            account.address,
            account.curve,
            is_data_store=False,
        )

        if value_store.value > remaining:
            change_value = value_store.value - remaining
            owner = encode_owner(
                VALUE_STORE_SVA,
                change_curve or account.curve,
                change_address or account.address,
            )
            draft.add_value_output(change_value, owner)
            break
        remaining -= value_store.value

    total_value = sum(vs.value for vs in selected)
    logger.debug(
        f"Selected {len(selected)} value store(s) worth {total_value} "
        f"from {account.address}, change {change_value}"
    )
    return CoinSelection(utxos=selected, total_value=total_value, change_value=change_value)
