"""
Data store deposit calculations.

All arithmetic is integer-only. A deposit buys (2 + duration) epochs at
(len(rawData) + BASE_DATASIZE_CONST) per epoch; consuming a store early
refunds what is left plus the two-epoch floor.
"""

from __future__ import annotations

from madcore.constants import BASE_DATASIZE_CONST, MAX_DATASTORE_SIZE
from madcore.errors import DataTooLargeError, DepositOverflowError, EpochInversionError
from madcore.models import DataStore


def epoch_cost(data_size: int) -> int:
    """Cost of holding data_size bytes for one epoch."""
    return data_size + BASE_DATASIZE_CONST


def calculate_deposit(raw_data: bytes, duration: int) -> int:
    """
    Deposit required to lease raw_data for duration epochs.

    Args:
        raw_data: Data store payload
        duration: Number of epochs to fund (the two-epoch floor is added)

    Returns:
        Deposit as integer
    """
    if len(raw_data) > MAX_DATASTORE_SIZE:
        raise DataTooLargeError(
            f"Data size {len(raw_data)} exceeds {MAX_DATASTORE_SIZE}", "calculate_deposit"
        )
    return epoch_cost(len(raw_data)) * (2 + duration)


def calculate_num_epochs(data_size: int, deposit: int) -> int:
    """Number of epochs a deposit funds beyond the two-epoch floor."""
    if data_size > MAX_DATASTORE_SIZE:
        raise DataTooLargeError(
            f"Data size {data_size} exceeds {MAX_DATASTORE_SIZE}", "calculate_num_epochs"
        )
    epochs = deposit // epoch_cost(data_size)
    if epochs < 2:
        raise DepositOverflowError(
            f"Deposit {deposit} cannot cover data size {data_size}", "calculate_num_epochs"
        )
    return epochs - 2


def remaining_deposit(data_store: DataStore, this_epoch: int) -> int | None:
    """
    Refundable deposit if data_store is consumed at this_epoch.

    Returns:
        Refund as integer, or None once the lease has lapsed (the store
        must not be consumed for a refund)
    """
    pre_image = data_store.pre_image
    issued_at = pre_image.issued_at
    deposit = pre_image.deposit_int
    raw_data = bytes.fromhex(pre_image.raw_data)

    if this_epoch < issued_at:
        raise EpochInversionError(
            f"Epoch {this_epoch} is before issue epoch {issued_at}", "remaining_deposit"
        )
    epoch_diff = this_epoch - issued_at
    cost = epoch_cost(len(raw_data))
    num_epochs = calculate_num_epochs(len(raw_data), deposit)

    if this_epoch > issued_at + num_epochs:
        return None
    if epoch_diff > num_epochs:
        return cost

    consumed = calculate_deposit(raw_data, epoch_diff)
    return deposit - consumed + 2 * cost
